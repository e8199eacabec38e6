# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Login failures answer with one generic message whatever the cause
- Tokens are self-expiring; logout is recorded but does not revoke anything
- Every login, refresh and password change lands in security_events
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import (
    AccountInactiveError,
    AuthError,
    InvalidCredentialsError,
    InvalidTokenError,
    error_response,
    internal_error_response,
)
from ..services import audit_service, auth_service
from ..validation import ConflictError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _json_body() -> dict:
    """The JSON request body when it is an object, otherwise an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _non_string_field(**values):
    """Name of the first supplied value that is not a string, or None."""
    for name, value in values.items():
        if value is not None and not isinstance(value, str):
            return name
    return None


def _param(data: dict, *names):
    """First present value among JSON body keys, then form/query parameters."""
    for name in names:
        if data.get(name) is not None:
            return data.get(name)
    for name in names:
        value = request.values.get(name)
        if value is not None:
            return value
    return None


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with username/password and issue a bearer token.

    Body: {"username": ..., "password": ...}
    Returns: {token, tokenType, subject, role, roleDescription, department, expiresAt}
    """
    data = _json_body()
    username = _param(data, "username")
    password = _param(data, "password")

    bad_field = _non_string_field(username=username, password=password)
    if bad_field:
        return jsonify({"code": "VALIDATION_ERROR", "error": f"{bad_field} must be a string"}), 400
    if not username or not password:
        return jsonify({"code": "VALIDATION_ERROR", "error": "username and password required"}), 400

    try:
        issued = auth_service.login(username, password)
    except InvalidCredentialsError as exc:
        audit_service.log_security_event(
            user_id=None,
            username=str(username)[:50],
            event_type=audit_service.LOGIN_FAILED,
            success=False,
            reason="Account inactive" if isinstance(exc, AccountInactiveError) else "Invalid credentials",
        )
        return error_response(InvalidCredentialsError())
    except Exception:
        current_app.logger.exception("Failed to log in")
        return internal_error_response()

    audit_service.log_security_event(
        user_id=issued.user.id,
        username=issued.user.username,
        event_type=audit_service.LOGIN_SUCCESS,
        success=True,
    )
    return jsonify(issued.to_dict()), 200


@auth_bp.post("/register")
def register_route():
    """
    Self-service registration. New accounts are SALES and ACTIVE.

    Body: {username, password, confirmPassword, realName, email?, phone?, department?}
    """
    data = _json_body()
    bad_field = _non_string_field(
        username=data.get("username"),
        password=data.get("password"),
        confirmPassword=data.get("confirmPassword"),
        realName=data.get("realName"),
        email=data.get("email"),
        phone=data.get("phone"),
        department=data.get("department"),
    )
    if bad_field:
        return jsonify({"code": "VALIDATION_ERROR", "error": f"{bad_field} must be a string"}), 400

    try:
        user = auth_service.register(
            username=data.get("username"),
            password=data.get("password"),
            confirm_password=data.get("confirmPassword"),
            real_name=data.get("realName"),
            email=data.get("email"),
            phone=data.get("phone"),
            department=data.get("department"),
        )
    except (AuthError, ValidationError, ConflictError) as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return internal_error_response()

    audit_service.log_security_event(
        user_id=user.id,
        username=user.username,
        event_type=audit_service.USER_REGISTERED,
        success=True,
    )
    return jsonify(auth_service.get_user_info(user)), 201


@auth_bp.get("/user-info")
@require_auth
def user_info_route():
    return jsonify(auth_service.get_user_info(g.current_user)), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Record a logout.

    Tokens are not revoked server-side; the client discards its token and it
    expires on its own.
    """
    audit_service.log_security_event(
        user_id=g.identity.id,
        username=g.identity.username,
        event_type=audit_service.LOGOUT,
        success=True,
    )
    return jsonify({"message": "Logged out"}), 200


@auth_bp.post("/refresh")
def refresh_route():
    """
    Exchange an unexpired token for a new one.

    The old token comes from ?refreshToken=..., the JSON body, or the
    Authorization header, in that order.
    """
    data = _json_body()
    old_token = _param(data, "refreshToken") or request.headers.get("Authorization")

    if not old_token:
        return jsonify({"code": "VALIDATION_ERROR", "error": "refreshToken required"}), 400
    if not isinstance(old_token, str):
        return jsonify({"code": "VALIDATION_ERROR", "error": "refreshToken must be a string"}), 400

    try:
        issued = auth_service.refresh(old_token)
    except InvalidTokenError as exc:
        audit_service.log_security_event(
            user_id=None,
            event_type=audit_service.TOKEN_REFRESH_FAILED,
            success=False,
            reason=exc.message,
        )
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return internal_error_response()

    audit_service.log_security_event(
        user_id=issued.user.id,
        username=issued.user.username,
        event_type=audit_service.TOKEN_REFRESHED,
        success=True,
    )
    return jsonify(issued.to_dict()), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password.

    Body: {oldPassword, newPassword, confirmPassword}. A confirmation
    mismatch is rejected before the old password is checked.
    """
    data = _json_body()
    old_password = _param(data, "oldPassword")
    new_password = _param(data, "newPassword")
    confirm_password = _param(data, "confirmPassword")

    if not new_password or confirm_password is None:
        return jsonify({"code": "VALIDATION_ERROR", "error": "newPassword and confirmPassword required"}), 400
    bad_field = _non_string_field(
        oldPassword=old_password, newPassword=new_password, confirmPassword=confirm_password
    )
    if bad_field:
        return jsonify({"code": "VALIDATION_ERROR", "error": f"{bad_field} must be a string"}), 400

    try:
        auth_service.change_password(g.identity, old_password, new_password, confirm_password)
    except (AuthError, ValidationError) as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return internal_error_response()

    audit_service.log_security_event(
        user_id=g.identity.id,
        username=g.identity.username,
        event_type=audit_service.PASSWORD_CHANGED,
        success=True,
    )
    return jsonify({"message": "Password changed"}), 200
