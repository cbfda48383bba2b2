"""
Checkout - record sale, allocate invoice number, compose invoice.

The three steps share one transaction. If composition fails (typically
insufficient payment) the sale, its stock decrements and the counter
increment are all rolled back, leaving the cart's world exactly as before.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..models import Invoice, Sale
from .concurrency import transaction
from .invoice_number_service import next_invoice_number
from .invoice_service import compose_invoice
from .sales_service import get_sale, record_sale


@dataclass(frozen=True)
class CheckoutResult:
    sale: Sale
    invoice: Invoice

    @property
    def change_amount_cents(self) -> int:
        return self.invoice.change_amount_cents

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(include_items=True),
            "invoice": self.invoice.to_dict(),
            "change_amount_cents": self.change_amount_cents,
        }


def checkout(items: Iterable, payment_cents: int) -> CheckoutResult:
    with transaction():
        sale_id = record_sale(items)
        invoice_number = next_invoice_number()
        invoice = compose_invoice(sale_id, payment_cents, invoice_number=invoice_number)

    current_app.logger.info("Checkout complete: sale %s invoiced as %s", sale_id, invoice_number)
    return CheckoutResult(sale=get_sale(sale_id), invoice=invoice)
