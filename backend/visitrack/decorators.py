# Overview: Request authentication and role decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .errors import ForbiddenError, InvalidTokenError, error_response
from .extensions import db
from .services import audit_service
from .services.access_service import assert_admin_action
from .services.auth_service import user_for_claims
from .services.token_service import validate_token
from .types import Identity


def _is_authenticated() -> bool:
    return getattr(g, "identity", None) is not None


def deny_access(reason: str):
    """Audit an ACCESS_DENIED event for the current identity and answer 403."""
    db.session.rollback()
    identity = g.identity
    audit_service.log_security_event(
        user_id=identity.id,
        username=identity.username,
        event_type=audit_service.ACCESS_DENIED,
        success=False,
        reason=reason,
    )
    return error_response(ForbiddenError())


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.token_claims: decoded claims (subject, role, issued/expires at)
    - g.current_user: the User row named by the token subject
    - g.identity: immutable Identity for this request; role from the token
      claim, department fresh from the user row

    SECURITY: Returns 401 if:
    - No Authorization header
    - Malformed, wrongly signed or expired token (TOKEN_EXPIRED for the last)
    - Token subject no longer exists, or the name now belongs to another
      account (uid claim mismatch)
    - Account has been deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return jsonify({"code": InvalidTokenError.code, "error": "Authentication required"}), 401

        try:
            claims = validate_token(auth_header)
        except InvalidTokenError as exc:
            return error_response(exc)

        user = user_for_claims(claims)
        if user is None or not user.is_active:
            return error_response(InvalidTokenError())

        g.token_claims = claims
        g.current_user = user
        g.identity = Identity.from_user(user, role=claims.role)

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require an administrator. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"code": InvalidTokenError.code, "error": "Authentication required"}), 401
        try:
            assert_admin_action(g.identity)
        except ForbiddenError:
            return deny_access("Administrator role required")
        return f(*args, **kwargs)

    return decorated_function

