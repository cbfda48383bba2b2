# backend/cashier/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether the settings rows the checkout
flow depends on are present.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import Setting
from ..services.settings_service import REQUIRED_KEYS, KEY_LAST_INVOICE_NUMBER

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and settings bootstrap.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        present = {key for (key,) in db.session.query(Setting.key).all()}
        missing = [k for k in (*REQUIRED_KEYS, KEY_LAST_INVOICE_NUMBER) if k not in present]
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy" if not missing else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"missing_settings": missing},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 503 if database["status"] == "unhealthy" else 200
    return {"status": database["status"], "checks": {"database": database}}, status_code
