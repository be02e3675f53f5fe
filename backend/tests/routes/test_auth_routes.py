"""
Authentication Routes Integration Tests
========================================

Integration tests for authentication endpoints including:
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET /auth/verify
- GET /auth/me
- PATCH /auth/me
"""

import pytest
from fastapi.testclient import TestClient

from storesafe.models.user import User
from storesafe.services.auth_service import AuthService


pytestmark = pytest.mark.integration

PASSWORD = "TestPassword123!"


class TestLoginEndpoint:
    """Integration tests for POST /auth/login endpoint."""

    def test_login_success(self, client: TestClient, ops_user: User):
        # Act
        response = client.post("/auth/login", json={"email": ops_user.email, "password": PASSWORD})

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    def test_login_invalid_email(self, client: TestClient):
        response = client.post(
            "/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}
        )

        assert response.status_code == 401
        assert "Invalid" in response.json()["detail"]

    def test_login_invalid_password(self, client: TestClient, ops_user: User):
        response = client.post(
            "/auth/login", json={"email": ops_user.email, "password": "WrongPassword123!"}
        )

        assert response.status_code == 401

    def test_login_with_malformed_stored_hash(self, client: TestClient, ops_user: User, db_session):
        # Arrange
        ops_user.hashed_password = "not-a-hash"
        db_session.commit()

        # Act
        response = client.post("/auth/login", json={"email": ops_user.email, "password": PASSWORD})

        # Assert
        assert response.status_code == 401

    def test_login_locked_account(self, client: TestClient, locked_user: User):
        response = client.post("/auth/login", json={"email": locked_user.email, "password": PASSWORD})

        assert response.status_code == 403
        assert "locked" in response.json()["detail"].lower()

    def test_login_disabled_account(self, client: TestClient, inactive_user: User):
        response = client.post("/auth/login", json={"email": inactive_user.email, "password": PASSWORD})

        assert response.status_code == 403
        assert "disabled" in response.json()["detail"].lower()

    def test_login_missing_fields(self, client: TestClient):
        response = client.post("/auth/login", json={"email": "ops@example.com"})

        assert response.status_code == 422
        assert response.json()["message"] == "Validation error"

    def test_login_case_insensitive_email(self, client: TestClient, ops_user: User):
        response = client.post(
            "/auth/login", json={"email": ops_user.email.upper(), "password": PASSWORD}
        )

        assert response.status_code == 200


class TestRefreshTokenEndpoint:
    """Integration tests for POST /auth/refresh endpoint."""

    def test_refresh_success(self, client: TestClient, ops_refresh_token: str):
        response = client.post("/auth/refresh", json={"refresh_token": ops_refresh_token})

        assert response.status_code == 200
        assert "access_token" in response.json()

    def test_refresh_with_invalid_token(self, client: TestClient):
        response = client.post("/auth/refresh", json={"refresh_token": "invalid.token.here"})

        assert response.status_code == 401

    def test_refresh_with_access_token_fails(self, client: TestClient, ops_user: User):
        access = AuthService.create_access_token(user_id=ops_user.id, token_version=ops_user.token_version)

        response = client.post("/auth/refresh", json={"refresh_token": access})

        assert response.status_code == 401


class TestLogoutEndpoint:
    """Integration tests for POST /auth/logout endpoint."""

    def test_logout_success(self, client: TestClient, ops_headers: dict):
        response = client.post("/auth/logout", headers=ops_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Successfully logged out"

    def test_logout_without_auth(self, client: TestClient):
        response = client.post("/auth/logout")

        assert response.status_code == 401

    def test_logout_invalidates_tokens(self, client: TestClient, ops_headers: dict):
        # Act
        client.post("/auth/logout", headers=ops_headers)
        response = client.get("/auth/me", headers=ops_headers)

        # Assert
        assert response.status_code == 401
        assert "invalidated" in response.json()["detail"]


class TestVerifyTokenEndpoint:
    def test_verify_valid_token(self, client: TestClient, ops_headers: dict, ops_user: User):
        response = client.get("/auth/verify", headers=ops_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["user_id"] == str(ops_user.id)
        assert data["role"] == "ops"

    def test_verify_invalid_token(self, client: TestClient):
        response = client.get("/auth/verify", headers={"Authorization": "Bearer invalid"})

        assert response.status_code == 401


class TestMeEndpoint:
    """Integration tests for GET/PATCH /auth/me."""

    def test_me_success(self, client: TestClient, ops_headers: dict, ops_user: User):
        # Act
        response = client.get("/auth/me", headers=ops_headers)

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == ops_user.email
        assert data["home_address"] == "1 Deansgate, Manchester"
        assert "hashed_password" not in data

    def test_pending_user_can_read_profile(self, client: TestClient, pending_headers: dict):
        response = client.get("/auth/me", headers=pending_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "pending"

    def test_update_home_location(self, client: TestClient, readonly_headers: dict):
        # Act
        response = client.patch(
            "/auth/me",
            headers=readonly_headers,
            json={"home_address": "Piccadilly, Manchester", "home_latitude": 53.4774, "home_longitude": -2.2309},
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["home_address"] == "Piccadilly, Manchester"
        assert data["home_latitude"] == 53.4774

    def test_update_rejects_out_of_range_latitude(self, client: TestClient, ops_headers: dict):
        response = client.patch("/auth/me", headers=ops_headers, json={"home_latitude": 123.0})

        assert response.status_code == 422


class TestAuthFlowIntegration:
    def test_complete_login_logout_flow(self, client: TestClient, ops_user: User):
        # Login
        tokens = client.post(
            "/auth/login", json={"email": ops_user.email, "password": PASSWORD}
        ).json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        # Use the token
        assert client.get("/auth/me", headers=headers).status_code == 200

        # Logout
        assert client.post("/auth/logout", headers=headers).status_code == 200

        # Old refresh token no longer works
        response = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401
