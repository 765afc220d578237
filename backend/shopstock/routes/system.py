# Overview: Flask API routes for system health; returns JSON status for each dependency.

"""
System health endpoint.

Checks database connectivity, the session table and that at least one
active admin exists (without one, nobody can approve items or manage users).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import InventoryItem, Sale, SessionToken, User
from ..permissions import ROLE_ADMIN
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "inventory_items": db.session.query(InventoryItem).count(),
            "sales": db.session.query(Sale).count(),
        }
        return {"status": "healthy", "latency_ms": _elapsed_ms(start_time), "details": details}
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Database error"}


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(False),
        ).count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            },
        }
    except Exception:
        current_app.logger.exception("Session service health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Session service error"}


def check_admin_health() -> dict:
    start_time = time.time()
    try:
        admins = db.session.query(User).filter(
            User.role == ROLE_ADMIN, User.is_active.is_(True)
        ).count()
        if admins == 0:
            return {
                "status": "degraded",
                "latency_ms": _elapsed_ms(start_time),
                "warning": "No active admin. Run: flask system init",
            }
        return {"status": "healthy", "latency_ms": _elapsed_ms(start_time), "details": {"admins": admins}}
    except Exception:
        current_app.logger.exception("Admin health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Auth service error"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "session_service": check_session_service_health(),
        "admin": check_admin_health(),
    }
    statuses = [c["status"] for c in checks.values()]

    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": checks,
    }, http_status
