# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication service: passwords, login, token refresh and registration.

WHY: Every customer and visit is attributed to a user, so the user behind a
request must be proven. Passwords are hashed with bcrypt; successful logins
are answered with a signed, self-expiring token (see token_service.py).

SECURITY NOTES:
- Login failures never say which check failed (unknown user, wrong password
  and inactive account all raise InvalidCredentialsError).
- "Check status, then issue token" and "check old password, then overwrite"
  run against a row locked with SELECT ... FOR UPDATE where supported.
- Changing a password does not invalidate tokens already issued; they
  expire on their own.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import bcrypt
from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..errors import (
    AccountInactiveError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    PasswordMismatchError,
    WrongOldPasswordError,
)
from ..extensions import db
from ..models import User, UserStatus
from ..permissions import Role
from ..time_utils import to_utc_z, utcnow
from ..types import Identity, TokenClaims
from ..validation import ConflictError, ValidationError, optional_text, require_text, validate_email
from .concurrency import lock_for_update, run_with_retry
from .token_service import TOKEN_TYPE, get_codec, get_token_ttl, validate_token

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet the length policy."""
    pass


@dataclass(frozen=True)
class IssuedToken:
    token: str
    claims: TokenClaims
    user: User
    token_type: str = TOKEN_TYPE

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "tokenType": self.token_type,
            "subject": self.claims.subject,
            "role": self.claims.role.value,
            "roleDescription": self.claims.role.description,
            "department": self.user.department,
            "expiresAt": to_utc_z(self.claims.expires_at),
        }


def _config(key: str, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def validate_password_policy(password: str) -> None:
    """
    Length-only policy: PASSWORD_MIN_LENGTH..PASSWORD_MAX_LENGTH characters
    and no more than 72 bytes once encoded.

    Raises PasswordValidationError if requirements not met.
    """
    min_length = _config("PASSWORD_MIN_LENGTH", 6)
    max_length = _config("PASSWORD_MAX_LENGTH", 20)

    if not isinstance(password, str) or not password:
        raise PasswordValidationError("Password is required")
    if len(password) < min_length or len(password) > max_length:
        raise PasswordValidationError(
            f"Password must be between {min_length} and {max_length} characters"
        )
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise PasswordValidationError("Password is too long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Cost factor comes from BCRYPT_ROUNDS (12 by default; tests lower it).
    Password is validated against the length policy before hashing.
    """
    validate_password_policy(password)
    salt = bcrypt.gensalt(rounds=int(_config("BCRYPT_ROUNDS", 12)))
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for anything that is not a usable bcrypt hash instead of
    raising, so a corrupt row reads as "wrong password".
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _issue_token(user: User, role: Role) -> IssuedToken:
    codec = get_codec()
    now = datetime.now(timezone.utc).replace(microsecond=0)
    token = codec.encode(user.username, role, now, get_token_ttl(), user_id=user.id)
    return IssuedToken(token=token, claims=codec.decode(token), user=user)


def _find_user_for_update(username: str) -> User | None:
    return lock_for_update(
        db.session.query(User).filter(User.username == username)
    ).first()


def user_for_claims(claims: TokenClaims, *, for_update: bool = False) -> User | None:
    """
    The account a token was issued to, or None.

    Matches on username and on the uid claim, so a token issued before its
    account was deleted never resolves to a later account with the same name.
    """
    query = db.session.query(User).filter(User.username == claims.subject)
    if for_update:
        query = lock_for_update(query)
    user = query.first()
    if user is None or claims.user_id is None or user.id != claims.user_id:
        return None
    return user


def login(username: str, password: str) -> IssuedToken:
    """
    Verify username/password and issue a token.

    Checks, in order: user exists, password matches, account is active.
    Every failure raises InvalidCredentialsError (inactive accounts via its
    AccountInactiveError subclass) and leaves last_login_at untouched.
    """
    if not isinstance(username, str) or not isinstance(password, str):
        raise InvalidCredentialsError()
    username = username.strip()
    if not username or not password:
        raise InvalidCredentialsError()

    def _login():
        user = _find_user_for_update(username)
        if user is None:
            db.session.rollback()
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            db.session.rollback()
            raise InvalidCredentialsError()
        if not user.is_active:
            db.session.rollback()
            raise AccountInactiveError()

        issued = _issue_token(user, user.role)
        user.last_login_at = utcnow()
        db.session.commit()
        return issued

    issued = run_with_retry(_login)
    logger.info("User %s logged in", issued.user.username)
    return issued


def refresh(old_token: str) -> IssuedToken:
    """
    Exchange a still-valid token for a new one.

    The old token must verify and be unexpired (TokenExpiredError otherwise).
    The account it was issued to must still exist and be active. The new
    token carries the role claim of the old one.
    """
    claims = validate_token(old_token)

    def _refresh():
        user = user_for_claims(claims, for_update=True)
        if user is None or not user.is_active:
            db.session.rollback()
            raise InvalidTokenError("Token refresh failed")
        issued = _issue_token(user, claims.role)
        db.session.commit()
        return issued

    return run_with_retry(_refresh)


def validate_credentials(username: str, password: str) -> bool:
    """True when the username exists, is active and the password matches. No side effects."""
    if not isinstance(username, str) or not isinstance(password, str):
        return False
    if not username or not password:
        return False
    user = db.session.query(User).filter(User.username == username.strip()).first()
    if user is None:
        return False
    return verify_password(password, user.password_hash) and user.is_active


def change_password(
    identity: Identity,
    old_password: str,
    new_password: str,
    confirm_password: str | None = None,
) -> None:
    """
    Replace the caller's password.

    Raises:
        PasswordMismatchError: new and confirmation differ (checked before any query)
        PasswordValidationError: new password violates the length policy
        WrongOldPasswordError: old password does not match the stored hash
    """
    if confirm_password is not None and new_password != confirm_password:
        raise PasswordMismatchError()
    if not old_password:
        raise WrongOldPasswordError()

    new_hash = hash_password(new_password)

    def _change():
        user = lock_for_update(
            db.session.query(User).filter(User.id == identity.id)
        ).first()
        if user is None:
            db.session.rollback()
            raise NotFoundError("User not found")
        if not verify_password(old_password, user.password_hash):
            db.session.rollback()
            raise WrongOldPasswordError()
        user.password_hash = new_hash
        db.session.commit()

    run_with_retry(_change)
    logger.info("Password changed for user %s", identity.username)


def exists_by_username(username: str | None) -> bool:
    if not username or not username.strip():
        return False
    return db.session.query(User.id).filter(User.username == username.strip()).first() is not None


def exists_by_email(email: str | None) -> bool:
    if not email or not email.strip():
        return False
    return db.session.query(User.id).filter(User.email == email.strip()).first() is not None


def register(
    username: str,
    password: str,
    confirm_password: str,
    real_name: str,
    email: str | None = None,
    phone: str | None = None,
    department: str | None = None,
) -> User:
    """
    Self-service sign up. New accounts are SALES and ACTIVE.

    Raises:
        PasswordMismatchError: password and confirmation differ
        ValidationError: a field is missing, too long or malformed
        ConflictError: username or email already taken
    """
    if password != confirm_password:
        raise PasswordMismatchError()

    username = require_text(username, "username", max_length=50)
    validate_password_policy(password)
    real_name = require_text(real_name, "realName", max_length=100)
    email = validate_email(email)
    phone = optional_text(phone, "phone", max_length=20)
    department = optional_text(department, "department", max_length=100)

    if exists_by_username(username):
        raise ConflictError("Username already exists")
    if exists_by_email(email):
        raise ConflictError("Email already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        real_name=real_name,
        email=email,
        phone=phone,
        department=department,
        role=Role.SALES,
        status=UserStatus.ACTIVE,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username or email already exists")

    logger.info("Registered user %s", username)
    return user


def get_user_info(user: User) -> dict:
    """The caller's own profile in the auth API's camelCase shape."""
    return {
        "id": user.id,
        "username": user.username,
        "realName": user.real_name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role.value,
        "roleDescription": user.role.description,
        "department": user.department,
        "avatarUrl": user.avatar_url,
        "status": user.status.value,
        "statusDescription": user.status.description,
        "lastLoginAt": to_utc_z(user.last_login_at),
    }
