from __future__ import annotations

from flask import Blueprint, jsonify, request, current_app

from ..errors import CashierError, json_error
from ..services import invoice_number_service, settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings_route():
    try:
        settings = settings_service.get_settings()
    except CashierError as e:
        return json_error(e)
    return jsonify({"settings": settings.to_dict()}), 200


@settings_bp.put("")
def update_settings_route():
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(payload)
    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"settings": settings.to_dict()}), 200


@settings_bp.post("/invoice-counter/reset")
def reset_invoice_counter_route():
    """Reset the invoice counter to 0. Requires {"confirm": true}."""
    payload = request.get_json(silent=True) or {}
    if payload.get("confirm") is not True:
        return jsonify({"error": "confirm=true required to reset the invoice counter"}), 400

    try:
        invoice_number_service.reset_invoice_counter()
        last_number = invoice_number_service.peek_last_invoice_number()
    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to reset invoice counter")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"last_invoice_number": last_number}), 200
