# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales Engine: sale creation with stock debit, sale deletion with stock credit.

Invariants (per inventory item):
- item.quantity never goes below zero; overselling is rejected, not clamped.
- Creating a sale debits item.quantity by exactly quantity_sold, deleting it
  credits exactly quantity_sold back, so item.quantity + sum(quantity_sold)
  over the item's live sales stays constant.
- total_amount == quantity_sold * unit_price, in Decimal, rounded to cents.

Every multi-statement change runs in one transaction. Writers take the
write lock first (BEGIN IMMEDIATE on SQLite, SELECT ... FOR UPDATE on the
item elsewhere), and debits/credits are applied as in-SQL expressions
(quantity = quantity - n) so they never overwrite a concurrent change.
Failures roll back both the sale row and the quantity change and surface
as one error. Nothing is retried.

Bulk delete is the one partial-success operation: ids that do not resolve
are skipped and reported, while the resolved ones are deleted together.
"""

from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (
    ConcurrentModificationError,
    InsufficientStockError,
    InvalidInputError,
    InvalidQuantityOrPriceError,
    InvalidStatusError,
    ItemNotFoundError,
    SaleNotFoundError,
)
from ..extensions import db
from ..models import InventoryItem, Sale, User
from ..money import MAX_AMOUNT, line_total, parse_money, quantize_money
from ..validation import ValidationError, coerce_int
from .concurrency import begin_write_transaction, commit_or_conflict, is_check_violation, lock_for_update
from ..time_utils import day_bounds, parse_calendar_date, utcnow


METADATA_FIELDS = {
    "customer_name": 255,
    "payment_method": 32,
    "notes": 4000,
}


def _parse_quantity_sold(value) -> int:
    if value is None or value == "":
        raise InvalidQuantityOrPriceError("quantity_sold is required")
    # JSON numbers like 3.0 are whole quantities
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        quantity = coerce_int(value, "quantity_sold")
    except ValidationError as exc:
        raise InvalidQuantityOrPriceError(exc.message, details={"quantity_sold": value})
    if quantity < 1:
        raise InvalidQuantityOrPriceError("Quantity must be at least 1", details={"quantity_sold": quantity})
    return quantity


def _parse_item_id(value) -> int:
    if value is None or value == "":
        raise InvalidInputError("inventory_item_id is required")
    try:
        item_id = coerce_int(value, "inventory_item_id")
    except ValidationError as exc:
        raise InvalidInputError(exc.message, details={"inventory_item_id": value})
    if item_id < 1:
        raise InvalidInputError("inventory_item_id must be a positive integer")
    return item_id


def _parse_metadata(payload: dict) -> dict:
    metadata = {}
    for field, max_len in METADATA_FIELDS.items():
        raw = payload.get(field)
        if raw is None:
            continue
        if not isinstance(raw, str):
            raise InvalidInputError(f"{field} must be a string")
        value = raw.strip()
        if len(value) > max_len:
            raise InvalidInputError(f"{field} exceeds max length {max_len}")
        metadata[field] = value or None
    return metadata


def resolve_unit_price(raw_price, item: InventoryItem) -> Decimal:
    """
    Price for a new sale.

    A positive caller price is used as given. Otherwise, unless
    SALE_REQUIRE_UNIT_PRICE is set, fall back to the item's stored price
    (when positive) and then to SALE_DEFAULT_UNIT_PRICE. Each fallback is
    logged so items without a real price can be found and fixed.
    """
    price = parse_money(raw_price)
    if price is not None and price > 0:
        if price > MAX_AMOUNT:
            raise InvalidQuantityOrPriceError(
                f"Unit price cannot exceed {MAX_AMOUNT}",
                details={"unit_price": str(price)},
            )
        return price

    if current_app.config.get("SALE_REQUIRE_UNIT_PRICE"):
        raise InvalidQuantityOrPriceError(
            "Unit price must be greater than 0",
            details={"unit_price": raw_price if isinstance(raw_price, (str, int, float)) else None},
        )

    if item.unit_price is not None and item.unit_price > 0:
        current_app.logger.warning(
            "Sale for item %s: unit_price %r missing or invalid, using stored item price %s",
            item.id, raw_price, item.unit_price,
        )
        return quantize_money(item.unit_price)

    default_price = quantize_money(current_app.config["SALE_DEFAULT_UNIT_PRICE"])
    current_app.logger.warning(
        "Sale for item %s: unit_price %r missing or invalid and item has no price, using default %s",
        item.id, raw_price, default_price,
    )
    return default_price


def _lock_item(item_id: int) -> InventoryItem | None:
    return lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()


def create_sale(payload: dict, actor: User) -> Sale:
    """
    Record a sale and debit the item's stock in one transaction.

    payload: inventory_item_id, quantity_sold, unit_price and optional
    customer_name, payment_method, notes.

    Raises ItemNotFoundError, InvalidStatusError, InsufficientStockError,
    InvalidQuantityOrPriceError.
    """
    if not isinstance(payload, dict):
        raise InvalidInputError("Invalid JSON payload")

    item_id = _parse_item_id(payload.get("inventory_item_id"))
    quantity = _parse_quantity_sold(payload.get("quantity_sold"))
    metadata = _parse_metadata(payload)

    begin_write_transaction()
    try:
        item = _lock_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        if not item.item_status.is_sellable:
            raise InvalidStatusError(
                f"Cannot sell item with status: {item.status}. Item must be approved or pending.",
                details={"inventory_item_id": item.id, "status": item.status},
            )

        unit_price = resolve_unit_price(payload.get("unit_price"), item)
        total_amount = line_total(quantity, unit_price)
        if total_amount > MAX_AMOUNT:
            raise InvalidQuantityOrPriceError(
                f"Sale total cannot exceed {MAX_AMOUNT}",
                details={"quantity_sold": quantity, "unit_price": str(unit_price)},
            )

        if item.quantity < quantity:
            raise InsufficientStockError(available=item.quantity, requested=quantity)

        now = utcnow()
        sale = Sale(
            inventory_item_id=item.id,
            quantity_sold=quantity,
            unit_price=unit_price,
            total_amount=total_amount,
            sold_by=actor.id,
            created_at=now,
            **metadata,
        )
        db.session.add(sale)

        item.quantity = InventoryItem.quantity - quantity
        item.updated_at = now

        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        if is_check_violation(exc, "quantity_non_negative"):
            # Stock moved between our read and the debit
            current = db.session.get(InventoryItem, item_id)
            raise InsufficientStockError(available=current.quantity if current else 0, requested=quantity)
        raise
    except Exception:
        db.session.rollback()
        raise

    commit_or_conflict("Item")

    current_app.logger.info(
        "Sale %s created: item %s qty %s total %s by user %s",
        sale.id, item_id, quantity, total_amount, actor.id,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def _parse_limit(raw, default: int) -> int:
    ceiling = current_app.config.get("SALES_LIST_MAX_LIMIT", 10000)
    if raw is None or raw == "":
        return min(default, ceiling)
    try:
        limit = coerce_int(raw, "limit")
    except ValidationError as exc:
        raise InvalidInputError(exc.message, details={"limit": raw})
    if limit < 1:
        raise InvalidInputError("limit must be at least 1", details={"limit": limit})
    return min(limit, ceiling)


def parse_date_range(start_raw, end_raw):
    try:
        start = parse_calendar_date(start_raw)
        end = parse_calendar_date(end_raw)
    except ValueError:
        raise InvalidInputError(
            "Invalid date. Use YYYY-MM-DD or an ISO-8601 datetime",
            details={"startDate": start_raw, "endDate": end_raw},
        )
    if start and end and start > end:
        raise InvalidInputError(
            "startDate must be on or before endDate",
            details={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
    return start, end


def list_sales(*, start_date: str | None = None, end_date: str | None = None, limit=None) -> list[Sale]:
    """
    Sales in creation order (id ascending).

    start_date/end_date are inclusive calendar dates compared against the
    date part of created_at.
    """
    limit = _parse_limit(limit, current_app.config.get("SALES_LIST_DEFAULT_LIMIT", 50))
    start, end = parse_date_range(start_date, end_date)
    start_dt, end_dt = day_bounds(start, end)

    query = db.session.query(Sale)
    if start_dt is not None:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(Sale.created_at < end_dt)

    return query.order_by(Sale.id.asc()).limit(limit).all()


def list_recent_sales(limit=None) -> list[Sale]:
    """Newest sales first."""
    limit = _parse_limit(limit, 10)
    return (
        db.session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )


def _credit_item(item_id: int, quantity: int, context: str) -> bool:
    item = _lock_item(item_id)
    if item is None:
        current_app.logger.warning(
            "%s references missing inventory item %s; deleting without stock credit of %s",
            context, item_id, quantity,
        )
        return False
    item.quantity = InventoryItem.quantity + quantity
    item.updated_at = utcnow()
    return True


def delete_sale(sale_id: int, actor: User) -> dict:
    """
    Delete a sale and credit its quantity back to the item, atomically.
    """
    begin_write_transaction()
    try:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise SaleNotFoundError("Sale not found", details={"sale_id": sale_id})

        item_id = sale.inventory_item_id
        quantity = sale.quantity_sold
        _credit_item(item_id, quantity, f"Sale {sale.id}")
        db.session.delete(sale)
        db.session.flush()
    except Exception:
        db.session.rollback()
        raise

    commit_or_conflict("Item")

    current_app.logger.info(
        "Sale %s deleted by user %s: restored %s to item %s",
        sale_id, actor.id, quantity, item_id,
    )
    return {
        "message": "Sale deleted successfully",
        "inventory_item_id": item_id,
        "restoredQuantity": quantity,
    }


def parse_sale_ids(raw) -> list[int]:
    """
    Normalize a bulk id list.

    Accepts a JSON list or a comma-separated string. Entries that are not
    positive integers are dropped and duplicates removed (first occurrence
    order kept). Raises InvalidInputError when nothing usable remains.
    """
    if raw is None or raw == "" or raw == []:
        raise InvalidInputError("Invalid request. IDs array is required.")

    if isinstance(raw, str):
        candidates = [part.strip() for part in raw.split(",")]
    elif isinstance(raw, (list, tuple)):
        candidates = list(raw)
    else:
        raise InvalidInputError("IDs must be an array or comma-separated string.")

    ids: list[int] = []
    seen: set[int] = set()
    for candidate in candidates:
        if isinstance(candidate, float) and candidate.is_integer():
            candidate = int(candidate)
        try:
            sale_id = coerce_int(candidate, "id")
        except ValidationError:
            continue
        if sale_id < 1 or sale_id in seen:
            continue
        seen.add(sale_id)
        ids.append(sale_id)

    if not ids:
        raise InvalidInputError("Invalid sale IDs provided. All IDs must be valid numbers.")
    return ids


def bulk_delete_sales(raw_ids, actor: User) -> dict:
    """
    Delete many sales, crediting each one's quantity back to its item.

    Unknown ids are skipped and listed in missingIds. If none resolve,
    SaleNotFoundError. The credits and a single multi-row DELETE share one
    transaction; if the DELETE removes a different number of rows than were
    resolved (another request deleted some first) everything is rolled back
    with ConcurrentModificationError so no sale is credited twice.
    """
    ids = parse_sale_ids(raw_ids)

    begin_write_transaction()
    try:
        sales = (
            lock_for_update(db.session.query(Sale).filter(Sale.id.in_(ids)))
            .order_by(Sale.id.asc())
            .all()
        )
        if not sales:
            raise SaleNotFoundError(
                "No sales found with provided IDs",
                details={"requestedIds": ids},
            )

        found_ids = [s.id for s in sales]
        found = set(found_ids)
        missing_ids = [i for i in ids if i not in found]

        # One credit per item, summed over its sales
        credits: dict[int, int] = {}
        for sale in sales:
            credits[sale.inventory_item_id] = credits.get(sale.inventory_item_id, 0) + sale.quantity_sold
        for item_id in sorted(credits):
            _credit_item(item_id, credits[item_id], "Bulk delete")

        db.session.flush()
        result = db.session.execute(
            Sale.__table__.delete().where(Sale.__table__.c.id.in_(found_ids))
        )
        if result.rowcount != len(found_ids):
            current_app.logger.warning(
                "Bulk delete expected %s rows but removed %s (ids %s); rolling back",
                len(found_ids), result.rowcount, found_ids,
            )
            raise ConcurrentModificationError(
                "Some sales were deleted by another request, please retry",
                details={"expected": len(found_ids), "deleted": result.rowcount},
            )
    except Exception:
        db.session.rollback()
        raise

    commit_or_conflict("Item")
    # Rows were removed with a Core DELETE; drop any stale Sale objects
    for sale in sales:
        db.session.expunge(sale)

    current_app.logger.info(
        "Bulk delete by user %s: %s sale(s) removed, %s id(s) not found",
        actor.id, len(found_ids), len(missing_ids),
    )

    response = {
        "message": f"Successfully deleted {len(found_ids)} sale(s)",
        "deletedCount": len(found_ids),
    }
    if missing_ids:
        response["missingIds"] = missing_ids
    return response
