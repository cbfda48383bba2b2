# Overview: Flask API routes for invoice numbering and composition.

from flask import Blueprint, request, jsonify, current_app

from ..errors import CashierError, json_error
from ..services import invoice_number_service, invoice_service


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("/next-number")
def next_number_route():
    """Allocate the next invoice number."""
    try:
        number = invoice_number_service.next_invoice_number()
        return jsonify({"invoice_number": number}), 201

    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to allocate invoice number")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("")
def compose_invoice_route():
    """
    Compose the invoice for a recorded sale.

    Body: {"sale_id": 1, "payment_cents": 15000, "invoice_number": "INV000042"}
    invoice_number is optional; one is allocated when omitted.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale_id = data.get("sale_id")
        payment_cents = data.get("payment_cents")

        if sale_id is None or payment_cents is None:
            return jsonify({"error": "sale_id and payment_cents required"}), 400

        invoice = invoice_service.compose_invoice(
            sale_id,
            payment_cents,
            invoice_number=data.get("invoice_number"),
        )
        return jsonify({"invoice": invoice.to_dict()}), 201

    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to compose invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
    except CashierError as e:
        return json_error(e)
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.get("/by-number/<string:invoice_number>")
def get_invoice_by_number_route(invoice_number: str):
    try:
        invoice = invoice_service.get_invoice_by_number(invoice_number)
    except CashierError as e:
        return json_error(e)
    return jsonify({"invoice": invoice.to_dict()}), 200
