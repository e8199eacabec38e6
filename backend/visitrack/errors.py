# Overview: Authentication and authorization error taxonomy plus the JSON error envelope.

"""
Auth / authz errors.

Every error carries a stable ``code`` and an HTTP ``status`` so the route
layer can answer with ``{"code": ..., "error": ...}`` without knowing which
service raised it. Messages are deliberately generic where a more specific
one would let a caller enumerate accounts or probe for records they cannot
see.
"""

from flask import jsonify


class AuthError(Exception):
    """Base class for authentication and authorization failures."""
    code = "AUTH_ERROR"
    status = 401
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    """Unknown user, wrong password, or (via subclass) inactive account."""
    code = "INVALID_CREDENTIALS"
    status = 401
    default_message = "invalid username or password"


class AccountInactiveError(InvalidCredentialsError):
    """
    Correct credentials for a disabled account.

    Reported to clients exactly like InvalidCredentialsError.
    """


class InvalidTokenError(AuthError):
    """Token is missing, malformed, unsigned, wrongly signed or otherwise unusable."""
    code = "INVALID_TOKEN"
    status = 401
    default_message = "Invalid or expired token"


class MalformedTokenError(InvalidTokenError):
    default_message = "Malformed token"


class InvalidSignatureError(InvalidTokenError):
    default_message = "Token signature verification failed"


class TokenExpiredError(InvalidTokenError):
    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class WrongOldPasswordError(AuthError):
    code = "WRONG_OLD_PASSWORD"
    status = 400
    default_message = "Old password is incorrect"


class PasswordMismatchError(AuthError):
    code = "PASSWORD_MISMATCH"
    status = 400
    default_message = "Password and confirmation do not match"


class ForbiddenError(AuthError):
    """Role or ownership denial. Never says which of the two failed."""
    code = "FORBIDDEN"
    status = 403
    default_message = "Access denied"


class NotFoundError(Exception):
    """The requested record does not exist at all."""
    code = "NOT_FOUND"
    status = 404

    def __init__(self, message: str = "Resource not found"):
        self.message = message
        super().__init__(message)


def error_response(exc: Exception):
    """Translate a known error into a JSON response tuple."""
    code = getattr(exc, "code", "BAD_REQUEST")
    status = getattr(exc, "status", 400)
    message = getattr(exc, "message", None) or str(exc)
    return jsonify({"code": code, "error": message}), status


def internal_error_response():
    return jsonify({"code": "INTERNAL_ERROR", "error": "Internal server error"}), 500


def register_error_handlers(app):
    """
    App-wide translation of service errors raised out of entity routes.

    ForbiddenError is audited as ACCESS_DENIED before answering 403. Anything
    unexpected is logged with its traceback and answered with a generic 500.
    """
    from werkzeug.exceptions import HTTPException

    from .validation import ConflictError, ValidationError

    @app.errorhandler(ForbiddenError)
    def _forbidden(exc):
        from flask import g
        from .decorators import deny_access

        if getattr(g, "identity", None) is None:
            return error_response(exc)
        return deny_access("Outside caller's role or ownership scope")

    @app.errorhandler(AuthError)
    @app.errorhandler(NotFoundError)
    @app.errorhandler(ValidationError)
    @app.errorhandler(ConflictError)
    def _known(exc):
        return error_response(exc)

    @app.errorhandler(Exception)
    def _unexpected(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"code": exc.name.upper().replace(" ", "_"), "error": exc.description}), exc.code
        from .extensions import db

        db.session.rollback()
        app.logger.exception("Unhandled error on request")
        return internal_error_response()
