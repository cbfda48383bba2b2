# Overview: Sales summaries over recorded sale items.

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..time_utils import parse_iso_datetime, to_utc_z


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("from/to must be ISO-8601 dates")

    # A bare date as upper bound covers the whole day
    if end_dt is not None and end and len(end.strip()) == 10:
        end_dt = end_dt + timedelta(days=1) - timedelta(microseconds=1)

    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("from must not be after to")
    return start_dt, end_dt


def sales_report(*, start: str | None = None, end: str | None = None) -> dict:
    """
    Quantity and revenue per product for sales created within [start, end].

    Revenue uses price_at_sale, so later price changes do not rewrite history.
    Rows are ordered by revenue, highest first.
    """
    start_dt, end_dt = _parse_range(start, end)

    quantity = func.sum(SaleItem.quantity).label("quantity")
    revenue = func.sum(SaleItem.line_total_cents).label("total_cents")

    query = (
        db.session.query(Product.id, Product.name, quantity, revenue)
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, Sale.id == SaleItem.sale_id)
    )
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    rows = (
        query.group_by(Product.id, Product.name)
        .order_by(revenue.desc(), Product.name.asc())
        .all()
    )

    items = [
        {
            "product_id": product_id,
            "name": name,
            "quantity": int(qty or 0),
            "total_cents": int(total or 0),
        }
        for product_id, name, qty, total in rows
    ]

    return {
        "from": to_utc_z(start_dt),
        "to": to_utc_z(end_dt),
        "items": items,
        "total_revenue_cents": sum(row["total_cents"] for row in items),
    }
