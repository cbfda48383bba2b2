# Overview: Flask API routes for sales reporting.

from flask import Blueprint, request, jsonify

from ..errors import CashierError, json_error
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
def sales_report_route():
    """
    Per-product quantity and revenue.

    Query params:
    - from: ISO-8601 date or datetime (optional)
    - to: ISO-8601 date or datetime (optional, inclusive)
    """
    try:
        report = reporting_service.sales_report(
            start=request.args.get("from"),
            end=request.args.get("to"),
        )
    except CashierError as e:
        return json_error(e)
    return jsonify(report), 200
