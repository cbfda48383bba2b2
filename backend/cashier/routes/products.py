# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, request, current_app, jsonify

from ..errors import CashierError, json_error
from ..models import Product
from ..services import products_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price_cents", "stock"},
    required_on_create={"name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products with optional pagination.

    Query params:
    - include_inactive: bool (optional) - include soft-deleted products
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    return products_service.list_products(
        include_inactive=include_inactive,
        page=page,
        per_page=per_page,
    )


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        return {"product": products_service.get_product(product_id).to_dict()}
    except CashierError as e:
        return json_error(e)


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch)
    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return {"product": created}, 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return {"product": updated}, 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id=product_id)
    except CashierError as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return {"ok": True}, 200
