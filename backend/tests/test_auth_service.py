"""
Authenticator tests: login, refresh, password changes and registration.
"""

from datetime import timedelta

import pytest

from conftest import DEFAULT_PASSWORD, identity_of, make_user
from visitrack.errors import (
    AccountInactiveError,
    InvalidCredentialsError,
    InvalidTokenError,
    PasswordMismatchError,
    TokenExpiredError,
    WrongOldPasswordError,
)
from visitrack.extensions import db
from visitrack.models import User, UserStatus
from visitrack.permissions import Role
from visitrack.services import auth_service
from visitrack.services.auth_service import PasswordValidationError
from visitrack.services.token_service import get_codec, validate_token
from visitrack.time_utils import utcnow
from visitrack.validation import ConflictError, ValidationError


class TestPasswords:

    def test_hash_and_verify(self, app):
        hashed = auth_service.hash_password("secret123")
        assert hashed != "secret123"
        assert auth_service.verify_password("secret123", hashed)
        assert not auth_service.verify_password("secret124", hashed)

    @pytest.mark.parametrize("password", ["", "12345", "x" * 21])
    def test_length_policy(self, app, password):
        with pytest.raises(PasswordValidationError):
            auth_service.hash_password(password)

    def test_corrupt_hash_reads_as_wrong_password(self):
        assert not auth_service.verify_password("secret123", "not-a-bcrypt-hash")
        assert not auth_service.verify_password("secret123", "")


class TestLogin:

    def test_success_issues_token_and_records_login(self, db_session, alice):
        assert alice.last_login_at is None

        issued = auth_service.login("alice", DEFAULT_PASSWORD)

        claims = validate_token(issued.token)
        assert claims.subject == "alice"
        assert claims.role == Role.SALES
        assert issued.token_type == "Bearer"
        assert claims.expires_at - claims.issued_at == timedelta(seconds=3600)
        assert db.session.get(User, alice.id).last_login_at is not None

    def test_unknown_user(self, db_session):
        with pytest.raises(InvalidCredentialsError):
            auth_service.login("nobody", DEFAULT_PASSWORD)

    def test_wrong_password_no_token_no_last_login(self, db_session, alice):
        with pytest.raises(InvalidCredentialsError) as excinfo:
            auth_service.login("alice", "wrong-password")

        assert not isinstance(excinfo.value, AccountInactiveError)
        assert db.session.get(User, alice.id).last_login_at is None

    def test_inactive_account_with_correct_password(self, db_session):
        user = make_user("carol", status=UserStatus.INACTIVE)

        with pytest.raises(InvalidCredentialsError) as excinfo:
            auth_service.login("carol", DEFAULT_PASSWORD)

        assert excinfo.value.message == "invalid username or password"
        assert db.session.get(User, user.id).last_login_at is None

    def test_inactive_checked_after_password(self, db_session):
        make_user("carol", status=UserStatus.INACTIVE)

        with pytest.raises(InvalidCredentialsError) as excinfo:
            auth_service.login("carol", "wrong-password")
        assert not isinstance(excinfo.value, AccountInactiveError)

    def test_failures_share_one_message(self, db_session, alice):
        make_user("carol", status=UserStatus.INACTIVE)
        messages = set()
        for username, password in [("nobody", "x" * 6), ("alice", "wrong1"), ("carol", DEFAULT_PASSWORD)]:
            with pytest.raises(InvalidCredentialsError) as excinfo:
                auth_service.login(username, password)
            messages.add(excinfo.value.message)
        assert messages == {"invalid username or password"}


class TestValidateCredentials:

    def test_true_for_good_credentials(self, db_session, alice):
        assert auth_service.validate_credentials("alice", DEFAULT_PASSWORD)

    def test_false_without_side_effects(self, db_session, alice):
        assert not auth_service.validate_credentials("alice", "wrong-password")
        assert not auth_service.validate_credentials("nobody", DEFAULT_PASSWORD)
        assert db.session.get(User, alice.id).last_login_at is None


class TestRefresh:

    def test_refresh_keeps_role_claim(self, db_session, alice):
        old = get_codec().encode("alice", Role.SALES, utcnow() - timedelta(minutes=5), 3600, user_id=alice.id)

        issued = auth_service.refresh(old)

        claims = validate_token(issued.token)
        assert claims.subject == "alice"
        assert claims.role == Role.SALES
        assert claims.expires_at > validate_token(old).expires_at

    def test_refresh_keeps_old_role_even_if_stored_role_changed(self, db_session, alice):
        old = get_codec().encode("alice", Role.SALES, utcnow(), 3600, user_id=alice.id)
        alice.role = Role.MANAGER
        db.session.commit()

        assert validate_token(auth_service.refresh(old).token).role == Role.SALES

    def test_expired_token_cannot_be_refreshed(self, db_session, alice):
        expired = get_codec().encode("alice", Role.SALES, utcnow() - timedelta(hours=2), 3600)

        with pytest.raises(TokenExpiredError):
            auth_service.refresh(expired)

    def test_inactive_account_cannot_refresh(self, db_session, alice):
        token = auth_service.login("alice", DEFAULT_PASSWORD).token
        alice.status = UserStatus.INACTIVE
        db.session.commit()

        with pytest.raises(InvalidTokenError):
            auth_service.refresh(token)

    def test_deleted_account_cannot_refresh(self, db_session):
        user = make_user("dave")
        token = auth_service.login("dave", DEFAULT_PASSWORD).token
        db.session.delete(user)
        db.session.commit()

        with pytest.raises(InvalidTokenError):
            auth_service.refresh(token)

    def test_reregistered_username_cannot_refresh_old_token(self, db_session):
        user = make_user("dave", role=Role.MANAGER, department="West")
        token = auth_service.login("dave", DEFAULT_PASSWORD).token
        db.session.delete(user)
        db.session.commit()
        auth_service.register("dave", "secret123", "secret123", "Dave Again", department="East")

        with pytest.raises(InvalidTokenError):
            auth_service.refresh(token)

    def test_token_without_account_id_cannot_refresh(self, db_session, alice):
        unbound = get_codec().encode("alice", Role.SALES, utcnow(), 3600)

        with pytest.raises(InvalidTokenError):
            auth_service.refresh(unbound)

    def test_garbage_cannot_be_refreshed(self, db_session):
        with pytest.raises(InvalidTokenError):
            auth_service.refresh("garbage")


class TestChangePassword:

    def test_success(self, db_session, alice):
        auth_service.change_password(identity_of(alice), DEFAULT_PASSWORD, "newpass1", "newpass1")

        assert auth_service.validate_credentials("alice", "newpass1")
        assert not auth_service.validate_credentials("alice", DEFAULT_PASSWORD)

    def test_wrong_old_password(self, db_session, alice):
        with pytest.raises(WrongOldPasswordError):
            auth_service.change_password(identity_of(alice), "wrong-old", "newpass1", "newpass1")
        assert auth_service.validate_credentials("alice", DEFAULT_PASSWORD)

    def test_mismatch_checked_before_store(self, db_session, alice, monkeypatch):
        identity = identity_of(alice)

        def _no_store(*args, **kwargs):
            raise AssertionError("store must not be touched")

        monkeypatch.setattr(auth_service, "lock_for_update", _no_store)
        monkeypatch.setattr(auth_service, "run_with_retry", _no_store)

        with pytest.raises(PasswordMismatchError):
            auth_service.change_password(identity, DEFAULT_PASSWORD, "newpass1", "newpass2")

    def test_mismatch_wins_over_wrong_old_password(self, db_session, alice):
        with pytest.raises(PasswordMismatchError):
            auth_service.change_password(identity_of(alice), "wrong-old", "newpass1", "newpass2")

    def test_existing_tokens_survive_password_change(self, db_session, alice):
        token = auth_service.login("alice", DEFAULT_PASSWORD).token
        auth_service.change_password(identity_of(alice), DEFAULT_PASSWORD, "newpass1", "newpass1")

        assert validate_token(token).subject == "alice"


class TestRegister:

    def test_new_account_is_active_sales(self, db_session):
        user = auth_service.register(
            username="erin",
            password="secret123",
            confirm_password="secret123",
            real_name="Erin",
            email="erin@example.com",
            department="East",
        )

        assert user.role == Role.SALES
        assert user.status == UserStatus.ACTIVE
        assert auth_service.validate_credentials("erin", "secret123")

    def test_confirmation_mismatch(self, db_session):
        with pytest.raises(PasswordMismatchError):
            auth_service.register("erin", "secret123", "secret124", "Erin")

    def test_duplicate_username(self, db_session, alice):
        with pytest.raises(ConflictError):
            auth_service.register("alice", "secret123", "secret123", "Other Alice")

    def test_duplicate_email(self, db_session, alice):
        with pytest.raises(ConflictError):
            auth_service.register("erin", "secret123", "secret123", "Erin", email=alice.email)

    def test_bad_email(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.register("erin", "secret123", "secret123", "Erin", email="not-an-email")

    def test_username_too_long(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.register("u" * 51, "secret123", "secret123", "Erin")

    def test_exists_helpers(self, db_session, alice):
        assert auth_service.exists_by_username("alice")
        assert not auth_service.exists_by_username("nobody")
        assert auth_service.exists_by_email(alice.email)
        assert not auth_service.exists_by_email("")
        assert not auth_service.exists_by_email(None)


class TestUserInfo:

    def test_profile_shape(self, db_session, manager_east):
        info = auth_service.get_user_info(manager_east)

        assert info["username"] == "manager_east"
        assert info["role"] == "MANAGER"
        assert info["roleDescription"] == "经理"
        assert info["department"] == "East"
        assert info["status"] == "ACTIVE"
        assert "password_hash" not in info and "passwordHash" not in info
