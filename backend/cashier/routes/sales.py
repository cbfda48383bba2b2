# Overview: Flask API routes for sales and checkout; parses input and returns JSON responses.

# backend/cashier/routes/sales.py
"""Sales API routes: record a sale, read it back, or run a full checkout."""

from flask import Blueprint, request, jsonify, current_app

from ..errors import CashierError, json_error
from ..services import checkout_service, sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api")


@sales_bp.post("/sales")
def record_sale_route():
    """
    Record a sale from cart lines.

    Body: {"items": [{"product_id": 1, "quantity": 2}, ...]}
    """
    try:
        data = request.get_json(silent=True) or {}
        sale_id = sales_service.record_sale(data.get("items"))
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/sales/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Get sale with items."""
    try:
        sale = sales_service.get_sale(sale_id)
    except CashierError as e:
        return json_error(e)

    return jsonify({"sale": sale.to_dict(include_items=True)}), 200


@sales_bp.post("/checkout")
def checkout_route():
    """
    Record the sale and issue its invoice in one step.

    Body: {"items": [...], "payment_cents": 15000}
    Nothing is persisted when any step fails (e.g. insufficient payment).
    """
    try:
        data = request.get_json(silent=True) or {}
        if "payment_cents" not in data:
            return jsonify({"error": "payment_cents required"}), 400

        result = checkout_service.checkout(data.get("items"), data.get("payment_cents"))
        return jsonify(result.to_dict()), 201

    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to check out")
        return jsonify({"error": "Internal server error"}), 500
