"""
System health and audit endpoints.
"""

import time

from flask import Blueprint, current_app, request

from ..decorators import require_admin, require_auth
from ..extensions import db
from ..models import User
from ..models.auth import UserStatus
from ..permissions import Role
from ..services import audit_service
from ..services.token_service import get_codec
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Database connectivity plus whether an active administrator exists."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        admin_count = db.session.query(User).filter(
            User.role == Role.ADMIN,
            User.status == UserStatus.ACTIVE,
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000

        result = {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"users": user_count, "active_admins": admin_count},
        }
        if admin_count == 0:
            result["status"] = "degraded"
            result["warning"] = "No active administrator; run `flask system init`"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_token_service_health() -> dict:
    try:
        codec = get_codec()
    except KeyError:
        return {"status": "unhealthy", "error": "Token codec not initialized"}
    return {
        "status": "healthy",
        "details": {
            "algorithm": codec.algorithm,
            "ttl_seconds": current_app.config["JWT_EXPIRATION_SECONDS"],
        },
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: a dependency is unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    token_health = check_token_service_health()

    all_checks = [database_health, token_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "token_service": token_health,
        },
    }, http_status


@system_bp.get("/api/system/security-events")
@require_auth
@require_admin
def list_security_events():
    """Recent security events. Query params: user_id, event_type, limit (max 500)."""
    limit = min(max(request.args.get("limit", default=100, type=int), 1), 500)
    events = audit_service.list_security_events(
        user_id=request.args.get("user_id", type=int),
        event_type=request.args.get("event_type") or None,
        limit=limit,
    )
    return {"items": [e.to_dict() for e in events], "count": len(events)}, 200
