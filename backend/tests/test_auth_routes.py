"""
Auth API tests through the Flask test client.

Verifies:
- Login response shape and generic failure message
- Bearer handling on protected routes (401 for missing/bad/expired tokens)
- Refresh, logout, change-password and registration endpoints
- Security events are written for logins and denials
"""

from datetime import timedelta

import pytest

from conftest import DEFAULT_PASSWORD, auth_headers, login_headers, make_user
from visitrack.models import SecurityEvent, UserStatus
from visitrack.permissions import Role
from visitrack.services.token_service import get_codec
from visitrack.time_utils import utcnow


def _events(db_session, event_type):
    return db_session.query(SecurityEvent).filter_by(event_type=event_type).all()


class TestLoginRoute:

    def test_login_success_shape(self, client, db_session, manager_east):
        resp = client.post("/api/auth/login", json={"username": "manager_east", "password": DEFAULT_PASSWORD})

        assert resp.status_code == 200
        body = resp.json
        assert body["tokenType"] == "Bearer"
        assert body["subject"] == "manager_east"
        assert body["role"] == "MANAGER"
        assert body["roleDescription"] == "经理"
        assert body["department"] == "East"
        assert body["expiresAt"].endswith("Z")
        assert body["token"]
        assert len(_events(db_session, "LOGIN_SUCCESS")) == 1

    def test_wrong_password(self, client, db_session, alice):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "wrong-password"})

        assert resp.status_code == 401
        assert resp.json == {"code": "INVALID_CREDENTIALS", "error": "invalid username or password"}
        assert "token" not in resp.json
        assert len(_events(db_session, "LOGIN_FAILED")) == 1

    def test_inactive_account_looks_like_bad_password(self, client, db_session):
        make_user("carol", status=UserStatus.INACTIVE)

        resp = client.post("/api/auth/login", json={"username": "carol", "password": DEFAULT_PASSWORD})

        assert resp.status_code == 401
        assert resp.json == {"code": "INVALID_CREDENTIALS", "error": "invalid username or password"}

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "alice"})
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            {"username": 12345, "password": DEFAULT_PASSWORD},
            {"username": "alice", "password": 123456},
            {"username": ["alice"], "password": DEFAULT_PASSWORD},
            ["alice", DEFAULT_PASSWORD],
        ],
    )
    def test_non_string_credentials_are_rejected(self, client, db_session, alice, body):
        resp = client.post("/api/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json["code"] == "VALIDATION_ERROR"


class TestBearerHandling:

    def test_missing_header(self, client, db_session):
        resp = client.get("/api/auth/user-info")
        assert resp.status_code == 401
        assert resp.json["code"] == "INVALID_TOKEN"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/user-info", headers=auth_headers("garbage"))
        assert resp.status_code == 401
        assert resp.json["code"] == "INVALID_TOKEN"

    def test_expired_token(self, client, db_session, alice):
        expired = get_codec().encode("alice", Role.SALES, utcnow() - timedelta(hours=2), 3600)

        resp = client.get("/api/auth/user-info", headers=auth_headers(expired))

        assert resp.status_code == 401
        assert resp.json["code"] == "TOKEN_EXPIRED"

    def test_unknown_subject(self, client, db_session):
        token = get_codec().encode("ghost", Role.ADMIN, utcnow(), 3600)

        resp = client.get("/api/auth/user-info", headers=auth_headers(token))

        assert resp.status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/customers"),
            ("GET", "/api/visits"),
            ("GET", "/api/schools"),
            ("GET", "/api/departments"),
            ("GET", "/api/users"),
            ("POST", "/api/auth/logout"),
            ("POST", "/api/auth/change-password"),
        ],
    )
    def test_protected_routes_require_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


class TestAccountBinding:

    def test_old_token_does_not_carry_over_to_reregistered_username(
        self, client, db_session, admin, alice_customer
    ):
        manager = make_user("mgr", role=Role.MANAGER, department="West")
        old_headers = login_headers(client, "mgr")

        resp = client.delete(f"/api/users/{manager.id}", headers=login_headers(client, "admin"))
        assert resp.status_code == 200
        resp = client.post("/api/auth/register", json={
            "username": "mgr",
            "password": "secret123",
            "confirmPassword": "secret123",
            "realName": "Someone Else",
            "department": "East",
        })
        assert resp.status_code == 201

        resp = client.get("/api/customers", headers=old_headers)
        assert resp.status_code == 401
        assert resp.json["code"] == "INVALID_TOKEN"

        refresh_token = old_headers["Authorization"].split(" ", 1)[1]
        assert client.post("/api/auth/refresh", json={"refreshToken": refresh_token}).status_code == 401

    def test_deactivated_account_loses_access_immediately(self, client, db_session, admin, alice_customer):
        headers = login_headers(client, "alice")
        assert client.get(f"/api/customers/{alice_customer.id}", headers=headers).status_code == 200

        resp = client.put(
            f"/api/users/{alice_customer.created_by_id}/status",
            json={"status": "inactive"},
            headers=login_headers(client, "admin"),
        )
        assert resp.status_code == 200

        resp = client.get(f"/api/customers/{alice_customer.id}", headers=headers)
        assert resp.status_code == 401
        assert resp.json["code"] == "INVALID_TOKEN"


class TestUserInfoAndLogout:

    def test_user_info(self, client, db_session, alice):
        resp = client.get("/api/auth/user-info", headers=login_headers(client, "alice"))

        assert resp.status_code == 200
        assert resp.json["username"] == "alice"
        assert resp.json["role"] == "SALES"
        assert resp.json["lastLoginAt"] is not None

    def test_logout_is_logged(self, client, db_session, alice):
        headers = login_headers(client, "alice")

        resp = client.post("/api/auth/logout", headers=headers)

        assert resp.status_code == 200
        assert len(_events(db_session, "LOGOUT")) == 1
        # Tokens are self-expiring; logout does not revoke them.
        assert client.get("/api/auth/user-info", headers=headers).status_code == 200


class TestRefreshRoute:

    def test_refresh_with_query_param(self, client, db_session, alice):
        token = client.post(
            "/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD}
        ).json["token"]

        resp = client.post(f"/api/auth/refresh?refreshToken={token}")

        assert resp.status_code == 200
        assert resp.json["subject"] == "alice"
        assert resp.json["role"] == "SALES"

    def test_refresh_expired(self, client, db_session, alice):
        expired = get_codec().encode("alice", Role.SALES, utcnow() - timedelta(hours=2), 3600)

        resp = client.post("/api/auth/refresh", json={"refreshToken": expired})

        assert resp.status_code == 401
        assert resp.json["code"] == "TOKEN_EXPIRED"
        assert len(_events(db_session, "TOKEN_REFRESH_FAILED")) == 1

    def test_refresh_inactive(self, client, db_session, alice):
        token = get_codec().encode("alice", Role.SALES, utcnow(), 3600, user_id=alice.id)
        alice.status = UserStatus.INACTIVE
        db_session.commit()

        resp = client.post("/api/auth/refresh", json={"refreshToken": token})

        assert resp.status_code == 401
        assert resp.json["code"] == "INVALID_TOKEN"

    def test_refresh_requires_token(self, client, db_session):
        assert client.post("/api/auth/refresh").status_code == 400


class TestChangePasswordRoute:

    def test_change_password(self, client, db_session, alice):
        headers = login_headers(client, "alice")

        resp = client.post(
            "/api/auth/change-password",
            json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "newpass1", "confirmPassword": "newpass1"},
            headers=headers,
        )

        assert resp.status_code == 200
        assert login_headers(client, "alice", "newpass1")
        assert len(_events(db_session, "PASSWORD_CHANGED")) == 1

    def test_mismatch(self, client, db_session, alice):
        resp = client.post(
            "/api/auth/change-password",
            json={"oldPassword": "wrong-old", "newPassword": "newpass1", "confirmPassword": "newpass2"},
            headers=login_headers(client, "alice"),
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "PASSWORD_MISMATCH"

    def test_wrong_old_password(self, client, db_session, alice):
        resp = client.post(
            "/api/auth/change-password",
            json={"oldPassword": "wrong-old", "newPassword": "newpass1", "confirmPassword": "newpass1"},
            headers=login_headers(client, "alice"),
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "WRONG_OLD_PASSWORD"


class TestRegisterRoute:

    def test_register(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "username": "erin",
            "password": "secret123",
            "confirmPassword": "secret123",
            "realName": "Erin",
            "email": "erin@example.com",
        })

        assert resp.status_code == 201
        assert resp.json["role"] == "SALES"
        assert resp.json["status"] == "ACTIVE"
        assert login_headers(client, "erin", "secret123")

    def test_duplicate_username(self, client, db_session, alice):
        resp = client.post("/api/auth/register", json={
            "username": "alice",
            "password": "secret123",
            "confirmPassword": "secret123",
            "realName": "Alice Again",
        })
        assert resp.status_code == 409

    def test_mismatch(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "username": "erin",
            "password": "secret123",
            "confirmPassword": "secret999",
            "realName": "Erin",
        })
        assert resp.status_code == 400
        assert resp.json["code"] == "PASSWORD_MISMATCH"
