# Overview: Pytest coverage for login, refresh, logout and /me.

"""
Authentication route tests.

Verifies:
- Management and staff both log in through one endpoint
- Failed logins are 401 and audited; successful ones too
- Refresh: 400 without a token, 403 with a bad one
- Protected endpoints return 401 for missing, malformed and expired tokens
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD, auth_headers, get_auth_token, principal_for
from multishop.models import SecurityEvent, Staff, User
from multishop.services import token_service
from multishop.services.token_service import TokenKind
from multishop.time_utils import utcnow


def _login(client, username, password=PASSWORD):
    return client.post("/api/auth/login", json={"username": username, "password": password})


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_management_login(self, client, owner, db_session):
        resp = _login(client, "owner")
        assert resp.status_code == 200
        body = resp.json
        assert body["success"] is True
        assert body["data"]["token_type"] == "Bearer"
        assert body["data"]["principal"]["kind"] == "Management"
        assert body["data"]["principal"]["role"] == "Owner"
        assert body["data"]["principal"]["branch_id"] is None
        assert db_session.get(User, owner.id).last_login_at is not None

    def test_staff_login(self, client, staff_a, db_session):
        resp = _login(client, "staff_a")
        assert resp.status_code == 200
        principal = resp.json["data"]["principal"]
        assert principal["kind"] == "Staff"
        assert principal["role"] == "Staff"
        assert principal["branch_id"] == staff_a.branch_id
        assert db_session.get(Staff, staff_a.id).last_login_at is not None

    def test_login_logs_success(self, client, staff_a, db_session):
        _login(client, "staff_a")
        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_SUCCESS").one()
        assert event.principal_kind == "Staff"
        assert event.principal_id == staff_a.id
        assert event.branch_id == staff_a.branch_id

    def test_wrong_password(self, client, owner, db_session):
        resp = _login(client, "owner", "Wrong-password1!")
        assert resp.status_code == 401
        assert resp.json["success"] is False
        assert resp.json["message"] == "Invalid credentials"
        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.username == "owner"
        assert event.success is False

    def test_unknown_user_has_same_answer(self, client, owner):
        resp = _login(client, "nobody")
        assert resp.status_code == 401
        assert resp.json["message"] == "Invalid credentials"

    def test_inactive_account(self, client, staff_a, db_session):
        staff_a.is_active = False
        db_session.commit()
        assert _login(client, "staff_a").status_code == 401

    @pytest.mark.parametrize("payload", [
        {},
        {"username": "owner"},
        {"password": PASSWORD},
        {"username": "   ", "password": PASSWORD},
        {"username": 5, "password": PASSWORD},
    ])
    def test_missing_fields(self, client, owner, payload):
        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 400

    def test_non_object_body(self, client, owner):
        resp = client.post("/api/auth/login", json=["owner", PASSWORD])
        assert resp.status_code == 400


# =============================================================================
# REFRESH
# =============================================================================


class TestRefresh:

    def test_refresh(self, client, staff_a, db_session):
        tokens = _login(client, "staff_a").json["data"]
        resp = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert resp.status_code == 200
        new_access = resp.json["data"]["access_token"]
        me = client.get("/api/auth/me", headers=auth_headers(new_access))
        assert me.status_code == 200
        assert me.json["data"]["username"] == "staff_a"
        assert db_session.query(SecurityEvent).filter_by(event_type="TOKEN_REFRESHED").count() == 1

    def test_refresh_camel_case_field(self, client, owner):
        tokens = _login(client, "owner").json["data"]
        resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refresh_token"]})
        assert resp.status_code == 200

    def test_refresh_missing_token(self, client, db_session):
        resp = client.post("/api/auth/refresh", json={})
        assert resp.status_code == 400

    def test_refresh_invalid_token(self, client, db_session):
        resp = client.post("/api/auth/refresh", json={"refresh_token": "garbage"})
        assert resp.status_code == 403

    def test_access_token_cannot_refresh(self, client, owner):
        tokens = _login(client, "owner").json["data"]
        resp = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert resp.status_code == 403


# =============================================================================
# PROTECTED ENDPOINTS
# =============================================================================


class TestTokenChecks:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/branches"),
            ("POST", "/api/branches"),
            ("GET", "/api/customers"),
            ("POST", "/api/customers"),
            ("GET", "/api/staff"),
            ("GET", "/api/users"),
            ("GET", "/api/api-keys"),
            ("GET", "/api/dashboard/stats"),
            ("GET", "/api/dashboard/branch-stats"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["success"] is False

    def test_malformed_header(self, client, owner):
        token = get_auth_token(client, "owner")
        resp = client.get("/api/auth/me", headers={"Authorization": f"Token {token}"})
        assert resp.status_code == 401

    def test_expired_access_token(self, client, app, owner):
        issued = utcnow() - app.config["JWT_ACCESS_EXPIRES"] - timedelta(minutes=1)
        token = token_service.issue(principal_for(owner), TokenKind.ACCESS, now=issued)
        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.json["error"]["code"] == "INVALID_CREDENTIAL"

    def test_refresh_token_is_not_a_bearer(self, client, owner):
        tokens = _login(client, "owner").json["data"]
        resp = client.get("/api/auth/me", headers=auth_headers(tokens["refresh_token"]))
        assert resp.status_code == 401


class TestMeAndLogout:

    def test_me_for_staff(self, client, staff_a_headers, staff_a):
        resp = client.get("/api/auth/me", headers=staff_a_headers)
        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["full_name"] == "Staff_A"
        assert data["branch_name"] == "Branch A - Downtown"
        assert data["auth_method"] == "token"

    def test_me_for_management(self, client, owner_headers):
        data = client.get("/api/auth/me", headers=owner_headers).json["data"]
        assert data["kind"] == "Management"
        assert "branch_name" not in data

    def test_logout(self, client, owner_headers):
        resp = client.post("/api/auth/logout", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json == {"success": True, "message": "Logged out"}
