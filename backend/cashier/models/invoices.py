from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z


class Invoice(db.Model):
    """
    Tax-inclusive billing document derived from a sale plus payment.

    Append-only. Store identity and tax rate are copied in at composition
    time so later settings edits never alter issued invoices.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.UniqueConstraint("sale_id", name="uq_invoices_sale_id"),
        db.CheckConstraint("change_amount_cents >= 0", name="change_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)
    invoice_number = db.Column(db.String(64), nullable=False)

    # Store identity snapshot
    store_name = db.Column(db.String(255), nullable=False, default="")
    store_address = db.Column(db.String(255), nullable=False, default="")
    store_phone = db.Column(db.String(64), nullable=False, default="")

    # Basis points (e.g., 1000 = 10.00%)
    tax_rate_bps = db.Column(db.Integer, nullable=False)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_amount_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_amount_cents = db.Column(db.Integer, nullable=False)
    change_amount_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    sale = db.relationship("Sale", backref=db.backref("invoice", uselist=False, lazy=True))

    @property
    def tax_percentage(self) -> Decimal:
        return Decimal(self.tax_rate_bps) / 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "invoice_number": self.invoice_number,
            "store_name": self.store_name,
            "store_address": self.store_address,
            "store_phone": self.store_phone,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_percentage": f"{self.tax_percentage:.2f}",
            "subtotal_cents": self.subtotal_cents,
            "tax_amount_cents": self.tax_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "payment_amount_cents": self.payment_amount_cents,
            "change_amount_cents": self.change_amount_cents,
            "created_at": to_utc_z(self.created_at),
        }
