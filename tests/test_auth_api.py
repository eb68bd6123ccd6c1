"""Tests for the authentication API endpoints."""

import re

from wellness_api.schemas.auth import Role

TOKEN_RE = re.compile(r"^[0-9a-f]{64}:\d+:[0-9a-f]{64}$")


def _csrf(client) -> str:
    return client.get("/api/auth/csrf-token").json()["data"]["csrfToken"]


class TestCsrfTokenEndpoint:
    """Tests for GET /api/auth/csrf-token."""

    def test_returns_valid_token(self, client, app):
        response = client.get("/api/auth/csrf-token")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        token = body["data"]["csrfToken"]
        assert TOKEN_RE.match(token)
        assert app.state.csrf_codec.validate(token) is True
        assert body["data"]["expiresInSeconds"] == 900

    def test_response_header_carries_token_too(self, client):
        response = client.get("/api/auth/csrf-token")
        assert TOKEN_RE.match(response.headers["X-CSRF-Token"])


class TestIssueTokenEndpoint:
    """Tests for POST /api/auth/token."""

    body = {"userId": "u2", "username": "bob", "role": "staff"}

    def test_requires_csrf_token(self, client, admin_headers):
        response = client.post("/api/auth/token", json=self.body, headers=admin_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "CSRF token missing"

    def test_requires_authentication(self, client):
        response = client.post(
            "/api/auth/token", json=self.body, headers={"X-CSRF-Token": _csrf(client)}
        )
        assert response.status_code == 401

    def test_requires_admin(self, client, staff_headers):
        response = client.post(
            "/api/auth/token",
            json=self.body,
            headers={**staff_headers, "X-CSRF-Token": _csrf(client)},
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Insufficient permissions"

    def test_admin_issues_token(self, client, admin_headers, token_service):
        response = client.post(
            "/api/auth/token",
            json=self.body,
            headers={**admin_headers, "X-CSRF-Token": _csrf(client)},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Token generated successfully"
        assert body["data"]["expiresIn"] == "7d"

        claims = token_service.verify(body["data"]["token"])
        assert claims["id"] == "u2"
        assert claims["username"] == "bob"
        assert claims["role"] == Role.STAFF.value

    def test_csrf_token_in_json_body(self, client, admin_headers):
        response = client.post(
            "/api/auth/token",
            json={**self.body, "_csrf": _csrf(client)},
            headers=admin_headers,
        )
        assert response.status_code == 200

    def test_missing_fields(self, client, admin_headers):
        response = client.post(
            "/api/auth/token",
            json={"userId": "u2"},
            headers={**admin_headers, "X-CSRF-Token": _csrf(client)},
        )
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "userId, username, and role are required",
        }

    def test_unknown_role(self, client, admin_headers):
        response = client.post(
            "/api/auth/token",
            json={**self.body, "role": "superuser"},
            headers={**admin_headers, "X-CSRF-Token": _csrf(client)},
        )
        assert response.status_code == 400
        assert "Unknown role 'superuser'" in response.json()["error"]

    def test_issued_token_authenticates(self, client, admin_headers):
        issued = client.post(
            "/api/auth/token",
            json=self.body,
            headers={**admin_headers, "X-CSRF-Token": _csrf(client)},
        ).json()["data"]["token"]

        response = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {issued}"})
        assert response.json()["data"] == {"id": "u2", "role": "staff"}


class TestVerifyEndpoint:
    """Tests for GET /api/auth/verify."""

    def test_returns_identity(self, client, admin_headers):
        response = client.get("/api/auth/verify", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"id": "u1", "role": "admin"}}

    def test_requires_token(self, client):
        response = client.get("/api/auth/verify")
        assert response.status_code == 401
        assert response.json()["error"] == "Authentication required"

    def test_rejects_bad_token(self, client):
        response = client.get("/api/auth/verify", headers={"Authorization": "Bearer x.y.z"})
        assert response.status_code == 403


class TestAppRoutes:
    """Tests for the root, health and fallback routes."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["version"] == "2.0.0"
        assert "timestamp" in data
        assert data["uptime"] >= 0

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["name"] == "Wellness API"
        assert body["message"] == "Welcome to Wellness API"

    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Route GET /api/nope not found"}

    def test_docs_disabled_without_debug(self, client):
        assert client.get("/docs").status_code == 404

    def test_cors_exposes_csrf_header(self, client):
        response = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert "X-CSRF-Token" in response.headers["access-control-expose-headers"]
