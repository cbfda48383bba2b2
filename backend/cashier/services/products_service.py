# backend/cashier/services/products_service.py
"""
Products Service - the catalog read model plus basic maintenance.

The sale core only reads prices and stock from here; create/update/delete
back the inventory screen. Deletion is a soft-delete so sale items keep a
valid product reference.
"""
from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update, transaction

PRODUCT_MUTABLE_FIELDS = {"name", "price_cents", "stock"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(
    include_inactive: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional pagination.

    Args:
        include_inactive: include soft-deleted products
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc())
    if not include_inactive:
        base_query = base_query.filter(Product.is_active.is_(True))

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return p


def create_product(*, patch: dict) -> dict:
    """Create product from a validated patch dict."""
    with transaction() as session:
        p = Product()
        apply_product_patch(p, patch)
        session.add(p)
        session.flush()
        created = p.to_dict()

    current_app.logger.info("Created product %s (%s)", created["id"], created["name"])
    return created


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Update name, price or stock.

    Price changes affect future sales only; recorded sale items keep their
    price_at_sale snapshot.
    """
    with transaction() as session:
        p = lock_for_update(session.query(Product).filter(Product.id == product_id)).first()
        if not p or not p.is_active:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        apply_product_patch(p, patch)
        session.flush()
        updated = p.to_dict()

    current_app.logger.info("Updated product %s: %s", product_id, ", ".join(sorted(patch.keys())))
    return updated


def delete_product(*, product_id: int) -> None:
    """Soft-delete a product (is_active=false)."""
    with transaction() as session:
        p = lock_for_update(session.query(Product).filter(Product.id == product_id)).first()
        if not p or not p.is_active:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        p.is_active = False

    current_app.logger.info("Deactivated product %s", product_id)
