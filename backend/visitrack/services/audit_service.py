"""
Security event audit trail.

WHY: Immutable record of logins, token refreshes, password changes and access
denials. Written from routes and decorators only; the token codec and the
access guard stay free of I/O.

event_type values:
- LOGIN_SUCCESS / LOGIN_FAILED
- LOGOUT
- TOKEN_REFRESHED / TOKEN_REFRESH_FAILED
- PASSWORD_CHANGED
- USER_REGISTERED
- ACCESS_DENIED
"""

import logging
from datetime import timedelta

from flask import has_request_context, request

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

LOGIN_SUCCESS = "LOGIN_SUCCESS"
LOGIN_FAILED = "LOGIN_FAILED"
LOGOUT = "LOGOUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"
PASSWORD_CHANGED = "PASSWORD_CHANGED"
USER_REGISTERED = "USER_REGISTERED"
ACCESS_DENIED = "ACCESS_DENIED"


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    username: str | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Append one event and commit it.

    Inside a request, resource/action/ip/user agent default to the request's
    path, method, remote address and User-Agent header.
    """
    if has_request_context():
        resource = resource if resource is not None else request.path
        action = action if action is not None else request.method
        ip_address = ip_address if ip_address is not None else request.remote_addr
        user_agent = user_agent if user_agent is not None else request.headers.get("User-Agent")

    event = SecurityEvent(
        user_id=user_id,
        username=username,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    if not success:
        logger.info("Security event %s for user=%s: %s", event_type, username or user_id, reason)

    return event


def list_security_events(*, user_id: int | None = None, event_type: str | None = None, limit: int = 100):
    query = db.session.query(SecurityEvent)
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    if retention_days < 0:
        raise ValueError("retention_days must be non-negative")
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted
