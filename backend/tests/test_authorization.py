"""
Authorization tests for GymDesk.

Verifies:
- Unauthenticated requests return 401
- Member and user roles are denied admin operations (403)
- Admin passes every role gate
- Members only see their own records
- Login enforces the role picked on the login form
"""

import pytest

from gymdesk.services import billing_service

from conftest import TEST_PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/accounts"),
            ("GET", "/api/members"),
            ("POST", "/api/members"),
            ("GET", "/api/members/search?q=a"),
            ("GET", "/api/bills"),
            ("POST", "/api/bills"),
            ("GET", "/api/packages"),
            ("GET", "/api/packages/configs"),
            ("GET", "/api/notifications"),
            ("GET", "/api/supplements"),
            ("POST", "/api/supplements/orders"),
            ("GET", "/api/diet-plans"),
            ("GET", "/api/registrations"),
            ("GET", "/api/dashboard/admin"),
            ("GET", "/api/dashboard/member"),
            ("GET", "/api/reports/members"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-real-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/system/health")
        assert resp.status_code == 200
        assert resp.json["components"]["database"]["status"] == "healthy"


# =============================================================================
# MEMBER / USER DENIED ADMIN OPERATIONS: 403
# =============================================================================


class TestMemberDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/accounts"),
            ("GET", "/api/members"),
            ("POST", "/api/members"),
            ("GET", "/api/bills"),
            ("POST", "/api/supplements"),
            ("POST", "/api/supplements/orders"),
            ("GET", "/api/notifications"),
            ("GET", "/api/registrations"),
            ("GET", "/api/dashboard/admin"),
            ("GET", "/api/dashboard/user"),
            ("GET", "/api/reports/bills"),
        ],
    )
    def test_forbidden(self, client, member_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=member_headers, json={})
        assert resp.status_code == 403
        assert resp.json["role"] == "member"

    def test_cannot_view_other_member(self, client, member_headers, member, other_member):
        assert client.get(f"/api/members/{member.id}", headers=member_headers).status_code == 200
        assert client.get(f"/api/members/{other_member.id}", headers=member_headers).status_code == 403

    def test_cannot_fetch_other_members_receipt(self, client, member_headers, member, other_member):
        own = billing_service.create_bill(member_id=member.id, amount_cents=100, description="Fee", due_date="2026-12-01")
        other = billing_service.create_bill(member_id=other_member.id, amount_cents=100, description="Fee", due_date="2026-12-01")
        assert client.get(f"/api/bills/{own.id}/receipt", headers=member_headers).status_code == 200
        assert client.get(f"/api/bills/{other.id}/receipt", headers=member_headers).status_code == 403


class TestUserDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/members"),
            ("DELETE", "/api/members/1"),
            ("GET", "/api/bills"),
            ("POST", "/api/packages"),
            ("GET", "/api/dashboard/member"),
            ("GET", "/api/diet-plans"),
        ],
    )
    def test_forbidden(self, client, user_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=user_headers, json={})
        assert resp.status_code == 403

    def test_front_desk_operations_allowed(self, client, user_headers, member):
        assert client.get("/api/members/search?q=ravi", headers=user_headers).json["count"] == 1
        assert client.post(f"/api/members/{member.id}/check-in", headers=user_headers).status_code == 200
        assert client.get("/api/supplements/low-stock", headers=user_headers).status_code == 200
        assert client.get("/api/dashboard/user", headers=user_headers).status_code == 200


# =============================================================================
# ADMIN PASSES EVERY GATE
# =============================================================================


class TestAdminAllowed:

    @pytest.mark.parametrize(
        "path",
        [
            "/api/accounts",
            "/api/members",
            "/api/members/search?q=x",
            "/api/bills",
            "/api/packages",
            "/api/notifications",
            "/api/supplements/orders",
            "/api/supplements/low-stock",
            "/api/diet-plans",
            "/api/registrations",
            "/api/dashboard/admin",
            "/api/dashboard/user",
            "/api/dashboard/member",
        ],
    )
    def test_admin_reads(self, client, admin_headers, path):
        resp = client.get(path, headers=admin_headers)
        assert resp.status_code == 200, f"{path} returned {resp.status_code}"


# =============================================================================
# LOGIN / SESSION
# =============================================================================


class TestLogin:

    def test_role_mismatch(self, client, member_account):
        resp = client.post("/api/auth/login", json={
            "email": member_account.email, "password": TEST_PASSWORD, "role": "admin",
        })
        assert resp.status_code == 403
        assert resp.json["expected_role"] == "admin"

    def test_bad_password(self, client, member_account):
        resp = client.post("/api/auth/login", json={"email": member_account.email, "password": "nope-nope"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"email": "x@gym.test"}).status_code == 400

    def test_login_payload(self, client, member_account):
        resp = client.post("/api/auth/login", json={
            "email": "  RAVI@gym.test", "password": TEST_PASSWORD, "role": "member",
        })
        assert resp.status_code == 200
        assert resp.json["account"] == {
            "id": member_account.id,
            "account_id": member_account.account_id,
            "email": "ravi@gym.test",
            "first_name": "Ravi",
            "last_name": "Kumar",
            "role": "member",
        }
        assert len(resp.json["token"]) == 64

    def test_logout_revokes_token(self, client, member_account):
        token = get_auth_token(client, member_account.email)
        headers = auth_headers(token)
        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert client.post("/api/auth/logout", headers=headers).status_code == 401

    def test_change_password_revokes_sessions(self, client, member_account):
        headers = auth_headers(get_auth_token(client, member_account.email))
        resp = client.post("/api/auth/change-password", headers=headers, json={
            "current_password": TEST_PASSWORD, "new_password": "brandnew1",
        })
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert get_auth_token(client, member_account.email, "brandnew1") is not None
