"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Client role denied admin-only operations (403)
- Admin role can perform privileged operations
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS — 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/categories"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders/place"),
            ("GET", "/api/reports/low-stock"),
            ("GET", "/api/reports/recent-activities"),
            ("GET", "/api/auth/profile"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


# =============================================================================
# CLIENT DENIED ADMIN OPERATIONS — 403
# =============================================================================


class TestClientDeniedAdminOperations:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("GET", "/api/users/count"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("POST", "/api/categories"),
            ("DELETE", "/api/categories/1"),
            ("GET", "/api/orders/pending-count"),
            ("GET", "/api/reports/low-stock"),
            ("GET", "/api/reports/low-stock-count"),
            ("POST", "/api/reports/send-all-low-stock-alerts"),
            ("POST", "/api/reports/low-stock/alert/1"),
            ("GET", "/api/reports/recent-activities"),
        ],
    )
    def test_admin_only(self, client, client_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=client_headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_client_can_read_catalog(self, client, client_headers):
        assert client.get("/api/products", headers=client_headers).status_code == 200
        assert client.get("/api/categories", headers=client_headers).status_code == 200


# =============================================================================
# ADMIN ALLOWED
# =============================================================================


class TestAdminAllowed:

    def test_can_list_users(self, client, admin_headers, client_user):
        resp = client.get("/api/users", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 2

    def test_can_read_reports(self, client, admin_headers):
        assert client.get("/api/reports/low-stock", headers=admin_headers).status_code == 200
        assert client.get("/api/reports/recent-activities", headers=admin_headers).status_code == 200
