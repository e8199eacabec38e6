"""
Signed access tokens: encoding, decoding and bearer validation.

Tokens are self-contained JWTs. There is no server-side session or revocation
record; a token is valid iff its signature verifies, it has not expired, and
its role claim names a known role. Nothing in this module touches the
database or the network.

The codec is built once from app config in create_app and kept in
``app.extensions``. The signing secret is never re-read after startup.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from ..errors import InvalidSignatureError, MalformedTokenError, TokenExpiredError
from ..permissions import parse_role
from ..time_utils import as_aware_utc
from ..types import TokenClaims

logger = logging.getLogger(__name__)

TOKEN_TYPE = "Bearer"
EXTENSION_KEY = "visitrack.token_codec"
MIN_SECRET_BYTES = 32

_REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


@dataclass(frozen=True)
class TokenCodec:
    """HMAC-signed JWT encoder/decoder bound to one signing secret."""
    secret: str = field(repr=False)
    algorithm: str = "HS256"

    def __post_init__(self):
        if not self.secret or len(self.secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ValueError(f"Token signing secret must be at least {MIN_SECRET_BYTES} bytes")
        if not self.algorithm.startswith("HS"):
            raise ValueError("Only HMAC (HS*) signing algorithms are supported")

    def encode(self, subject: str, role, issued_at: datetime, ttl, user_id: int | None = None) -> str:
        """Create a signed token.

        Args:
            subject: Username the token is issued to (non-empty)
            role: Role claim (Role or role name)
            issued_at: Issue time; embedded as ``iat``
            ttl: Lifetime as timedelta or seconds (> 0)
            user_id: Account id, embedded as ``uid``. Usernames can be freed
                and re-registered; the id cannot.

        Returns:
            Encoded token string. Same inputs and secret give the same token.
        """
        if not subject or not str(subject).strip():
            raise ValueError("Token subject must not be empty")
        if not isinstance(ttl, timedelta):
            ttl = timedelta(seconds=ttl)
        if ttl <= timedelta(0):
            raise ValueError("Token ttl must be positive")

        role = parse_role(role)
        issued_at = as_aware_utc(issued_at)
        payload = {
            "sub": str(subject),
            "role": role.value,
            "type": "access",
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        if user_id is not None:
            payload["uid"] = int(user_id)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenClaims:
        """Verify and decode a token.

        Raises:
            InvalidSignatureError: signature does not match this secret
            TokenExpiredError: signature is fine but ``exp`` has passed
            MalformedTokenError: anything else (bad structure, missing or
                unknown claims, wrong token type)
        """
        if not token or not isinstance(token, str):
            raise MalformedTokenError()

        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.InvalidSignatureError:
            raise InvalidSignatureError()
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected malformed token: %s", exc)
            raise MalformedTokenError()

        if payload.get("type") != "access":
            raise MalformedTokenError()

        try:
            role = parse_role(payload["role"])
        except ValueError:
            raise MalformedTokenError("Unknown role claim")

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise MalformedTokenError()

        user_id = payload.get("uid")
        if user_id is not None and (isinstance(user_id, bool) or not isinstance(user_id, int)):
            raise MalformedTokenError()

        try:
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            raise MalformedTokenError()

        return TokenClaims(
            subject=subject,
            role=role,
            issued_at=issued_at,
            expires_at=expires_at,
            user_id=user_id,
        )


def init_token_codec(app) -> TokenCodec:
    """Build the process-wide codec from config. Called once by create_app."""
    codec = TokenCodec(
        secret=app.config["JWT_SECRET_KEY"],
        algorithm=app.config.get("JWT_ALGORITHM", "HS256"),
    )
    app.extensions[EXTENSION_KEY] = codec
    logger.info(
        "Token codec initialized (algorithm=%s, ttl=%ss)",
        codec.algorithm, app.config.get("JWT_EXPIRATION_SECONDS"),
    )
    return codec


def get_codec() -> TokenCodec:
    return current_app.extensions[EXTENSION_KEY]


def get_token_ttl() -> timedelta:
    return timedelta(seconds=int(current_app.config["JWT_EXPIRATION_SECONDS"]))


def strip_bearer(value: str | None) -> str:
    """Remove an optional ``Bearer `` scheme prefix."""
    if value is None:
        raise MalformedTokenError("Authorization token required")
    token = value.strip()
    scheme, _, rest = token.partition(" ")
    if scheme.lower() == TOKEN_TYPE.lower():
        token = rest.strip()
    if not token:
        raise MalformedTokenError("Authorization token required")
    return token


def validate_token(value: str | None, codec: TokenCodec | None = None) -> TokenClaims:
    """
    Validate a bearer token and return its claims.

    Accepts the raw token or the full ``Bearer <token>`` header value.
    Pure: depends only on the token string and the signing secret.
    """
    codec = codec or get_codec()
    return codec.decode(strip_bearer(value))
