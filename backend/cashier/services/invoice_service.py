"""
Invoice Service - tax, totals and the immutable invoice snapshot.

compose_invoice() prices a recorded sale against the current settings:

    tax_amount = subtotal * tax_rate_bps / 10000   (rounded half-up to the cent)
    total      = subtotal + tax_amount
    change     = payment - total                   (must be >= 0)

Store identity and tax rate are copied onto the invoice row; nothing on it
refers back to settings.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import (
    InsufficientPaymentError,
    InvoiceAlreadyExistsError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import Invoice, Sale
from ..validation import MAX_PAYMENT_CENTS
from .concurrency import lock_for_update, transaction
from .invoice_number_service import next_invoice_number
from .settings_service import get_settings


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal_cents: int
    tax_rate_bps: int
    tax_amount_cents: int
    total_amount_cents: int


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def compute_tax_cents(subtotal_cents: int, tax_rate_bps: int) -> int:
    """Tax on a subtotal, rounded half-up to the nearest cent."""
    if subtotal_cents < 0 or tax_rate_bps < 0:
        raise ValidationError("subtotal and tax rate must be >= 0")
    return (subtotal_cents * tax_rate_bps + 5000) // 10000


def compute_totals(subtotal_cents: int, tax_rate_bps: int) -> InvoiceTotals:
    tax = compute_tax_cents(subtotal_cents, tax_rate_bps)
    return InvoiceTotals(
        subtotal_cents=subtotal_cents,
        tax_rate_bps=tax_rate_bps,
        tax_amount_cents=tax,
        total_amount_cents=subtotal_cents + tax,
    )


def compose_invoice(sale_id: int, payment_cents: int, invoice_number: str | None = None) -> Invoice:
    """
    Compute totals for a sale and persist its invoice.

    When invoice_number is omitted one is allocated inside the same
    transaction, so a rejected composition does not consume a number.

    Raises:
        ValidationError: non-integer sale id, or a payment that is negative,
            non-integer or above MAX_PAYMENT_CENTS
        InsufficientPaymentError: payment below the tax-inclusive total
        InvoiceAlreadyExistsError: the sale is already invoiced
        NotFoundError: unknown sale or missing settings
    """
    if not _is_int(sale_id):
        raise ValidationError("sale_id must be an integer")
    if not _is_int(payment_cents):
        raise ValidationError("payment_cents must be an integer")
    if payment_cents < 0:
        raise ValidationError("payment_cents must be >= 0")
    if payment_cents > MAX_PAYMENT_CENTS:
        raise ValidationError(f"payment_cents cannot exceed {MAX_PAYMENT_CENTS}")
    if invoice_number is not None and not str(invoice_number).strip():
        raise ValidationError("invoice_number cannot be blank")

    with transaction() as session:
        sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})

        existing = session.query(Invoice.invoice_number).filter_by(sale_id=sale_id).scalar()
        if existing is not None:
            raise InvoiceAlreadyExistsError(
                "Sale already has an invoice",
                details={"sale_id": sale_id, "invoice_number": existing},
            )

        settings = get_settings()
        totals = compute_totals(sale.total_amount_cents, settings.tax_rate_bps)

        if payment_cents < totals.total_amount_cents:
            raise InsufficientPaymentError(
                "Insufficient payment",
                details={
                    "total_amount_cents": totals.total_amount_cents,
                    "payment_amount_cents": payment_cents,
                    "shortfall_cents": totals.total_amount_cents - payment_cents,
                },
            )

        if invoice_number is None:
            invoice_number = next_invoice_number()

        invoice = Invoice(
            sale_id=sale.id,
            invoice_number=str(invoice_number).strip(),
            store_name=settings.store_name,
            store_address=settings.store_address,
            store_phone=settings.store_phone,
            tax_rate_bps=totals.tax_rate_bps,
            subtotal_cents=totals.subtotal_cents,
            tax_amount_cents=totals.tax_amount_cents,
            total_amount_cents=totals.total_amount_cents,
            payment_amount_cents=payment_cents,
            change_amount_cents=payment_cents - totals.total_amount_cents,
        )
        session.add(invoice)
        session.flush()

    current_app.logger.info(
        "Composed invoice %s for sale %s: total_cents=%d change_cents=%d",
        invoice.invoice_number,
        invoice.sale_id,
        invoice.total_amount_cents,
        invoice.change_amount_cents,
    )
    return invoice


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found", details={"invoice_id": invoice_id})
    return invoice


def get_invoice_by_number(invoice_number: str) -> Invoice:
    invoice = db.session.query(Invoice).filter_by(invoice_number=invoice_number).first()
    if not invoice:
        raise NotFoundError("Invoice not found", details={"invoice_number": invoice_number})
    return invoice


def get_invoice_for_sale(sale_id: int) -> Invoice:
    invoice = db.session.query(Invoice).filter_by(sale_id=sale_id).first()
    if not invoice:
        raise NotFoundError("Invoice not found", details={"sale_id": sale_id})
    return invoice
