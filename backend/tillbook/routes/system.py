# backend/tillbook/routes/system.py
"""
System health endpoint.

Checks the database and that the default roles exist.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Store, Role, InvoiceCounter
from tillbook.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        counter_count = db.session.query(InvoiceCounter).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"stores": store_count, "invoice_counters": counter_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_auth_health() -> dict:
    try:
        present = {r.name for r in db.session.query(Role).all()}
    except Exception:
        current_app.logger.exception("Auth health check failed")
        return {"status": "unhealthy", "error": "Auth service error"}

    missing = sorted({"admin", "manager", "cashier"} - present)
    if missing:
        return {"status": "degraded", "warning": f"Missing roles: {', '.join(missing)}"}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()
    database_health = check_database_health()
    auth_health = check_auth_health()

    checks = [database_health, auth_health]
    if any(c["status"] == "unhealthy" for c in checks):
        overall_status, http_status = "unhealthy", 503
    elif any(c["status"] == "degraded" for c in checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {"database": database_health, "auth_service": auth_health},
    }, http_status
