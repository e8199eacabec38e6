"""
Token codec and validator tests.

Verifies:
- encode/decode round trip before expiry
- Expired tokens fail as expired, never as malformed
- A flipped signature byte fails as an invalid signature
- Unknown role claims and broken structure fail as malformed
- Bearer prefix handling
"""

import base64
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from visitrack.errors import (
    InvalidSignatureError,
    InvalidTokenError,
    MalformedTokenError,
    TokenExpiredError,
)
from visitrack.permissions import Role
from visitrack.services.token_service import TokenCodec, strip_bearer, validate_token

SECRET = "unit-test-secret-that-is-long-enough-0123456789"


@pytest.fixture
def codec():
    return TokenCodec(secret=SECRET)


def _now():
    return datetime.now(timezone.utc).replace(microsecond=0)


def _flip_signature_byte(token: str) -> str:
    header, payload, signature = token.split(".")
    raw = bytearray(base64.urlsafe_b64decode(signature + "=" * (-len(signature) % 4)))
    raw[0] ^= 0x01
    flipped = base64.urlsafe_b64encode(bytes(raw)).rstrip(b"=").decode("ascii")
    return ".".join([header, payload, flipped])


class TestRoundTrip:

    def test_decode_returns_subject_and_role(self, codec):
        now = _now()
        token = codec.encode("alice", Role.SALES, now, timedelta(hours=1))

        claims = codec.decode(token)

        assert claims.subject == "alice"
        assert claims.role == Role.SALES
        assert claims.issued_at == now
        assert claims.expires_at == now + timedelta(hours=1)

    def test_ttl_in_seconds(self, codec):
        now = _now()
        claims = codec.decode(codec.encode("bob", "MANAGER", now, 120))
        assert claims.role == Role.MANAGER
        assert claims.expires_at - claims.issued_at == timedelta(seconds=120)

    def test_encoding_is_deterministic(self, codec):
        now = _now()
        first = codec.encode("alice", Role.ADMIN, now, 60)
        second = codec.encode("alice", Role.ADMIN, now, 60)
        assert first == second

    def test_naive_issue_time_is_treated_as_utc(self, codec):
        now = _now()
        claims = codec.decode(codec.encode("alice", Role.SALES, now.replace(tzinfo=None), 60))
        assert claims.issued_at == now

    def test_account_id_round_trip(self, codec):
        claims = codec.decode(codec.encode("alice", Role.SALES, _now(), 60, user_id=7))
        assert claims.user_id == 7

    def test_account_id_absent(self, codec):
        assert codec.decode(codec.encode("alice", Role.SALES, _now(), 60)).user_id is None


class TestEncodeArguments:

    @pytest.mark.parametrize("ttl", [0, -1, timedelta(0), timedelta(seconds=-5)])
    def test_non_positive_ttl_rejected(self, codec, ttl):
        with pytest.raises(ValueError):
            codec.encode("alice", Role.SALES, _now(), ttl)

    @pytest.mark.parametrize("subject", ["", "   ", None])
    def test_empty_subject_rejected(self, codec, subject):
        with pytest.raises(ValueError):
            codec.encode(subject, Role.SALES, _now(), 60)

    def test_unknown_role_rejected(self, codec):
        with pytest.raises(ValueError):
            codec.encode("alice", "ROOT", _now(), 60)

    def test_short_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenCodec(secret="too-short")


class TestDecodeFailures:

    def test_expired_token_is_expired_not_malformed(self, codec):
        token = codec.encode("alice", Role.SALES, _now() - timedelta(hours=2), timedelta(hours=1))

        with pytest.raises(TokenExpiredError) as excinfo:
            codec.decode(token)
        assert not isinstance(excinfo.value, MalformedTokenError)
        assert excinfo.value.code == "TOKEN_EXPIRED"

    def test_flipped_signature_byte(self, codec):
        token = codec.encode("alice", Role.SALES, _now(), 3600)

        with pytest.raises(InvalidSignatureError):
            codec.decode(_flip_signature_byte(token))

    def test_other_secret_is_invalid_signature(self, codec):
        other = TokenCodec(secret="another-secret-that-is-also-long-enough-987654")
        token = other.encode("alice", Role.SALES, _now(), 3600)

        with pytest.raises(InvalidSignatureError):
            codec.decode(token)

    def test_expired_and_wrongly_signed_reports_signature(self, codec):
        token = codec.encode("alice", Role.SALES, _now() - timedelta(hours=2), 60)

        with pytest.raises(InvalidSignatureError):
            codec.decode(_flip_signature_byte(token))

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "a.b"])
    def test_garbage_is_malformed(self, codec, token):
        with pytest.raises(MalformedTokenError):
            codec.decode(token)

    def test_unknown_role_claim_is_malformed(self, codec):
        now = _now()
        token = jwt.encode(
            {"sub": "alice", "role": "ROOT", "type": "access", "iat": now, "exp": now + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(MalformedTokenError):
            codec.decode(token)

    @pytest.mark.parametrize("uid", ["7", True, 1.5])
    def test_non_integer_account_id_is_malformed(self, codec, uid):
        now = _now()
        token = jwt.encode(
            {"sub": "alice", "role": "SALES", "type": "access", "uid": uid, "iat": now, "exp": now + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(MalformedTokenError):
            codec.decode(token)

    def test_missing_expiry_is_malformed(self, codec):
        token = jwt.encode(
            {"sub": "alice", "role": "SALES", "type": "access", "iat": _now()},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(MalformedTokenError):
            codec.decode(token)

    def test_all_failures_are_invalid_token(self, codec):
        for error in (TokenExpiredError, InvalidSignatureError, MalformedTokenError):
            assert issubclass(error, InvalidTokenError)


class TestValidator:

    def test_strips_bearer_prefix(self, codec):
        token = codec.encode("alice", Role.MANAGER, _now(), 3600)

        claims = validate_token(f"Bearer {token}", codec=codec)

        assert claims.subject == "alice"
        assert claims.role == Role.MANAGER

    def test_accepts_raw_token(self, codec):
        token = codec.encode("alice", Role.SALES, _now(), 3600)
        assert validate_token(token, codec=codec).subject == "alice"

    @pytest.mark.parametrize("value", [None, "", "Bearer ", "   "])
    def test_blank_is_malformed(self, value):
        with pytest.raises(MalformedTokenError):
            strip_bearer(value)

    def test_uses_app_codec(self, app):
        from visitrack.services.token_service import get_codec

        with app.app_context():
            token = get_codec().encode("carol", Role.ADMIN, _now(), 60)
            assert validate_token(token).role == Role.ADMIN
