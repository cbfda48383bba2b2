"""
Sales Service - atomic sale recording.

A sale is written as one unit: the sale header, one sale item per cart
line with the price frozen at sale time, and a relative stock decrement for
each product. Any failure rolls the whole unit back.

Stock floor: the decrement is conditional (`stock >= quantity`), so a sale
that would drive any product below zero is refused inside the same
transaction rather than left to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app
from sqlalchemy import update

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..validation import MAX_STOCK
from .concurrency import transaction


@dataclass(frozen=True)
class CartItem:
    """One cart line. Carries the product id resolved at add-to-cart time."""
    product_id: int
    quantity: int


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def coerce_cart_items(items) -> list[CartItem]:
    """
    Normalize cart input into CartItem objects.

    Accepts CartItem instances, (product_id, quantity) pairs, or dicts with
    "product_id" and "quantity" keys (JSON payloads).
    """
    if items is None or isinstance(items, (str, bytes, dict)):
        raise ValidationError("items must be a list of cart lines")

    cart: list[CartItem] = []
    for index, raw in enumerate(items):
        if isinstance(raw, CartItem):
            product_id, quantity = raw.product_id, raw.quantity
        elif isinstance(raw, dict):
            product_id, quantity = raw.get("product_id"), raw.get("quantity")
        elif isinstance(raw, (tuple, list)) and len(raw) == 2:
            product_id, quantity = raw
        else:
            raise ValidationError("Invalid cart line", details={"line": index})

        if not _is_int(product_id):
            raise ValidationError("product_id must be an integer", details={"line": index})
        if not _is_int(quantity):
            raise ValidationError("quantity must be an integer", details={"line": index})
        if quantity <= 0:
            raise ValidationError(
                "quantity must be > 0",
                details={"line": index, "product_id": product_id, "quantity": quantity},
            )
        if quantity > MAX_STOCK:
            raise ValidationError(
                f"quantity cannot exceed {MAX_STOCK}",
                details={"line": index, "product_id": product_id},
            )
        cart.append(CartItem(product_id=product_id, quantity=quantity))

    if not cart:
        raise ValidationError("Cannot record a sale with no items")

    return cart


def _decrement_stock(session, product_id: int, quantity: int) -> None:
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount:
        return

    on_hand = session.query(Product.stock).filter_by(id=product_id).scalar()
    if on_hand is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    raise InsufficientStockError(
        "Insufficient stock to record sale",
        details={"product_id": product_id, "requested_quantity": quantity, "on_hand": on_hand},
    )


def record_sale(items: Iterable) -> int:
    """
    Persist a completed cart and return the new sale id.

    Prices are read at call time. Lines for the same product are kept as
    separate sale items, each decrementing stock once.

    Raises:
        ValidationError: empty cart or non-positive quantity
        NotFoundError: unknown product id
        InsufficientStockError: a decrement would take stock below zero
        ConcurrencyError / PersistenceError: database failure
    """
    cart = coerce_cart_items(items)

    with transaction() as session:
        product_ids = {item.product_id for item in cart}
        prices = dict(
            session.query(Product.id, Product.price_cents)
            .filter(Product.id.in_(product_ids), Product.is_active.is_(True))
            .all()
        )
        missing = sorted(product_ids - prices.keys())
        if missing:
            raise NotFoundError("Product not found", details={"product_ids": missing})

        total = sum(prices[item.product_id] * item.quantity for item in cart)

        sale = Sale(total_amount_cents=total)
        session.add(sale)
        session.flush()

        for item in cart:
            price = prices[item.product_id]
            session.add(SaleItem(
                sale_id=sale.id,
                product_id=item.product_id,
                quantity=item.quantity,
                price_at_sale_cents=price,
                line_total_cents=price * item.quantity,
            ))
            _decrement_stock(session, item.product_id, item.quantity)

        session.flush()
        sale_id = sale.id

    current_app.logger.info(
        "Recorded sale %s: %d line(s), total_cents=%d", sale_id, len(cart), total
    )
    return sale_id


def get_sale(sale_id: int) -> Sale:
    """Load a sale with its items."""
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale
