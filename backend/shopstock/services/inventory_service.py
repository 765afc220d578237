# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Inventory item store and status lifecycle.

Visibility:
- Admins see every item.
- Everyone else lists approved items plus their own pending items.
  Rejected items and other users' pending items stay out of their
  listings. Fetching one of their own items by id works in any status.

Edit/delete gate:
- Admin, or the owner while the item is still pending.

Status:
- New items are always pending, whoever creates them.
- approve/reject go through ItemStatus transitions (admin only).
- An admin editing an item may set any status explicitly.

Quantity is written here only by manual edits. Sale debits and credits
live in sales_service.
"""

from sqlalchemy import and_, func, or_

from ..errors import InvariantViolationError, ItemNotFoundError, PermissionDeniedError
from ..extensions import db
from ..models import InventoryItem, ItemStatus, Sale, User
from ..validation import ITEM_POLICY, enforce_rules_item, validate_payload
from .concurrency import begin_write_transaction, commit_or_conflict, lock_for_update
from ..time_utils import utcnow


def _get_item(item_id: int, *, lock: bool = False) -> InventoryItem:
    query = db.session.query(InventoryItem).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


def can_view(user: User, item: InventoryItem) -> bool:
    return user.is_admin or item.status == ItemStatus.APPROVED.value or item.created_by == user.id


def can_modify(user: User, item: InventoryItem) -> bool:
    return user.is_admin or (item.created_by == user.id and item.status == ItemStatus.PENDING.value)


def _stamp_approval(item: InventoryItem, actor: User) -> None:
    item.approved_by = actor.id
    item.approved_at = utcnow()


def create_item(payload: dict, actor: User) -> InventoryItem:
    """Create a pending item owned by actor. Any client-supplied status is ignored."""
    payload = dict(payload or {})
    payload.pop("status", None)

    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)

    now = utcnow()
    item = InventoryItem(
        **patch,
        status=ItemStatus.PENDING.value,
        created_by=actor.id,
        created_at=now,
        updated_at=now,
    )
    db.session.add(item)
    db.session.commit()
    return item


def get_item(item_id: int, actor: User) -> InventoryItem:
    item = _get_item(item_id)
    if not can_view(actor, item):
        raise PermissionDeniedError("Access denied", details={"inventory_item_id": item_id})
    return item


def update_item(item_id: int, payload: dict, actor: User) -> InventoryItem:
    """
    Partial update of the writable fields.

    A "status" key is an explicit override and is honoured for admins only.
    Overriding to approved stamps approval if the item was never approved.
    """
    payload = dict(payload or {})
    raw_status = payload.pop("status", None)
    has_status = raw_status is not None

    if has_status and not actor.is_admin:
        raise PermissionDeniedError(
            "Only admins can change item status directly",
            details={"inventory_item_id": item_id},
        )
    new_status = ItemStatus.parse(raw_status) if has_status else None

    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)

    begin_write_transaction()
    try:
        item = _get_item(item_id, lock=True)
        if not can_modify(actor, item):
            raise PermissionDeniedError(
                "You can only edit your own pending items",
                details={"inventory_item_id": item_id},
            )

        for k, v in patch.items():
            setattr(item, k, v)

        if new_status is not None and new_status.value != item.status:
            item.status = new_status.value
            if new_status == ItemStatus.APPROVED and item.approved_at is None:
                _stamp_approval(item, actor)

        item.updated_at = utcnow()
    except Exception:
        db.session.rollback()
        raise
    commit_or_conflict("Item")
    return item


def approve_item(item_id: int, actor: User) -> InventoryItem:
    """
    pending -> approved, stamping approved_by/approved_at.

    Approving an already approved item is a no-op: the original approval
    stamp is kept. Approving a rejected item raises InvalidStatusError.
    """
    begin_write_transaction()
    try:
        item = _get_item(item_id, lock=True)
        changed = item.transition_to(ItemStatus.APPROVED)
        if not changed:
            db.session.rollback()
            return item
        _stamp_approval(item, actor)
        item.updated_at = utcnow()
    except Exception:
        db.session.rollback()
        raise
    commit_or_conflict("Item")
    return item


def reject_item(item_id: int, actor: User) -> InventoryItem:
    """pending|approved -> rejected. No sale can be created against it afterwards."""
    begin_write_transaction()
    try:
        item = _get_item(item_id, lock=True)
        changed = item.transition_to(ItemStatus.REJECTED)
        if not changed:
            db.session.rollback()
            return item
        item.updated_at = utcnow()
    except Exception:
        db.session.rollback()
        raise
    commit_or_conflict("Item")
    return item


def delete_item(item_id: int, actor: User) -> None:
    """
    Delete an item under the same gate as update_item.

    Items with recorded sales are kept: every sale must keep resolving
    its inventory_item_id.
    """
    begin_write_transaction()
    try:
        item = _get_item(item_id, lock=True)
        if not can_modify(actor, item):
            raise PermissionDeniedError(
                "You can only delete your own pending items",
                details={"inventory_item_id": item_id},
            )

        sale_count = db.session.query(func.count(Sale.id)).filter(Sale.inventory_item_id == item.id).scalar()
        if sale_count:
            raise InvariantViolationError(
                "Cannot delete an item that has recorded sales",
                details={"inventory_item_id": item.id, "sale_count": sale_count},
            )

        db.session.delete(item)
    except Exception:
        db.session.rollback()
        raise
    commit_or_conflict("Item")


def _visible_query(actor: User):
    query = db.session.query(InventoryItem)
    if not actor.is_admin:
        query = query.filter(or_(
            InventoryItem.status == ItemStatus.APPROVED.value,
            and_(
                InventoryItem.status == ItemStatus.PENDING.value,
                InventoryItem.created_by == actor.id,
            ),
        ))
    return query


def list_items(actor: User, *, status: str | None = None, search: str | None = None) -> list[InventoryItem]:
    """
    Items visible to actor, newest first.

    search is a case-insensitive substring match on product_name, brand or sku.
    """
    query = _visible_query(actor)

    if status:
        query = query.filter(InventoryItem.status == ItemStatus.parse(status).value)

    if search and search.strip():
        # Escape LIKE wildcards so they match literally
        term = search.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{term}%"
        query = query.filter(or_(
            func.lower(InventoryItem.product_name).like(pattern, escape="\\"),
            func.lower(InventoryItem.brand).like(pattern, escape="\\"),
            func.lower(InventoryItem.sku).like(pattern, escape="\\"),
        ))

    return query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()).all()


def list_pending() -> list[InventoryItem]:
    """Admin approval queue, newest first."""
    return (
        db.session.query(InventoryItem)
        .filter(InventoryItem.status == ItemStatus.PENDING.value)
        .order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc())
        .all()
    )
