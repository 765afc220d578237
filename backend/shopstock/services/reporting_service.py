# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func

from ..errors import InvalidInputError
from ..extensions import db
from ..models import InventoryItem, Sale
from ..money import format_money, quantize_money
from .sales_service import parse_date_range
from ..time_utils import day_bounds, to_utc_z, utcnow


PERIODS = ("today", "yesterday", "week", "month", "all")
TOP_PRODUCTS_LIMIT = 10


def resolve_period(period: str | None, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    """
    Half-open [start, end) bounds for a relative period, in UTC.

    today/yesterday are calendar days; week and month are rolling
    windows of 7 and 30 days ending now. all (the default) is unbounded.
    """
    period = (period or "all").strip().lower()
    if period not in PERIODS:
        raise InvalidInputError(
            f"Invalid period. Must be one of: {', '.join(PERIODS)}",
            details={"period": period},
        )

    now = now or utcnow()
    midnight = datetime.combine(now.date(), datetime.min.time())

    if period == "today":
        return midnight, midnight + timedelta(days=1)
    if period == "yesterday":
        return midnight - timedelta(days=1), midnight
    if period == "week":
        return now - timedelta(days=7), None
    if period == "month":
        return now - timedelta(days=30), None
    return None, None


def _apply_range(query, start_dt, end_dt):
    if start_dt is not None:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(Sale.created_at < end_dt)
    return query


def _money(value) -> str:
    return format_money(value if value is not None else Decimal("0"))


def sales_stats(
    *,
    period: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict:
    """
    Aggregate sales over a period or an explicit date range.

    Explicit startDate/endDate (inclusive calendar dates) take priority
    over period. Read-only; not isolated from concurrent writes.
    """
    if start_date or end_date:
        start, end = parse_date_range(start_date, end_date)
        start_dt, end_dt = day_bounds(start, end)
        resolved = "custom"
    else:
        start_dt, end_dt = resolve_period(period)
        resolved = (period or "all").strip().lower()

    totals = _apply_range(
        db.session.query(
            func.count(Sale.id).label("total_sales"),
            func.coalesce(func.sum(Sale.quantity_sold), 0).label("total_items_sold"),
            func.sum(Sale.total_amount).label("total_revenue"),
            func.max(Sale.total_amount).label("largest_sale"),
            func.min(Sale.total_amount).label("smallest_sale"),
        ),
        start_dt,
        end_dt,
    ).one()

    total_sales = int(totals.total_sales or 0)
    total_revenue = quantize_money(totals.total_revenue or 0)
    average = quantize_money(total_revenue / total_sales) if total_sales else Decimal("0")

    top_rows = _apply_range(
        db.session.query(
            Sale.inventory_item_id,
            InventoryItem.product_name,
            InventoryItem.brand,
            func.sum(Sale.quantity_sold).label("total_quantity"),
            func.sum(Sale.total_amount).label("total_revenue"),
            func.count(Sale.id).label("sale_count"),
        ).join(InventoryItem, InventoryItem.id == Sale.inventory_item_id),
        start_dt,
        end_dt,
    ).group_by(
        Sale.inventory_item_id, InventoryItem.product_name, InventoryItem.brand,
    ).order_by(
        func.sum(Sale.quantity_sold).desc(), Sale.inventory_item_id.asc(),
    ).limit(TOP_PRODUCTS_LIMIT).all()

    return {
        "period": resolved,
        "start_date": to_utc_z(start_dt),
        "end_date": to_utc_z(end_dt),
        "total_sales": total_sales,
        "total_items_sold": int(totals.total_items_sold or 0),
        "total_revenue": _money(total_revenue),
        "average_sale_amount": _money(average),
        "largest_sale": _money(totals.largest_sale),
        "smallest_sale": _money(totals.smallest_sale),
        "topProducts": [
            {
                "inventory_item_id": row.inventory_item_id,
                "product_name": row.product_name,
                "brand": row.brand,
                "total_quantity": int(row.total_quantity or 0),
                "total_revenue": _money(row.total_revenue),
                "sale_count": int(row.sale_count or 0),
            }
            for row in top_rows
        ],
    }
