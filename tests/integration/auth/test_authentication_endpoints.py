"""
Integration tests for authentication and authorization through API endpoints.

Tests the auth, role and feature flag stages using FastAPI TestClient.
"""

from datetime import timedelta
from typing import Any, Callable, Dict, List

from fastapi.testclient import TestClient

from screenpop.core.auth import TokenService
from screenpop.main import create_app

LOOKUP = "/api/screenpop/customer?customerId=CUST-12345"


class TestAuthenticationEndpoints:
    """Test authentication through API endpoints."""

    def test_valid_token_authentication(
        self,
        test_client: TestClient,
        qa_token: str,
        auth_headers: Callable,
        read_audit: Callable[[], List[Dict[str, Any]]],
    ) -> None:
        response = test_client.get(LOOKUP, headers=auth_headers(qa_token))

        assert response.status_code == 200

        successes = [e for e in read_audit() if e["action"] == "AUTH_SUCCESS"]
        assert len(successes) == 1
        assert successes[0]["actor"] == "qa@company.com"
        assert successes[0]["role"] == "qa"

    def test_missing_authorization_header(
        self,
        test_client: TestClient,
        read_audit: Callable[[], List[Dict[str, Any]]],
    ) -> None:
        response = test_client.get(LOOKUP)

        assert response.status_code == 401
        response_data = response.json()
        assert response_data["error"] == "Authorization header required"
        assert response_data["code"] == "authentication_error"

        failures = [e for e in read_audit() if e["action"] == "AUTH_FAILED"]
        assert len(failures) == 1
        assert failures[0]["reason"] == "Missing authorization header"

    def test_invalid_token_authentication(
        self,
        test_client: TestClient,
        read_audit: Callable[[], List[Dict[str, Any]]],
    ) -> None:
        response = test_client.get(LOOKUP, headers={"Authorization": "Bearer invalid_token_123"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"

        failures = [e for e in read_audit() if e["action"] == "AUTH_FAILED"]
        assert failures[0]["reason"] == "Invalid or expired token"

    def test_non_bearer_scheme_is_invalid(self, test_client: TestClient) -> None:
        response = test_client.get(LOOKUP, headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"

    def test_expired_token_authentication(
        self,
        test_client: TestClient,
        token_service: TokenService,
        auth_headers: Callable,
    ) -> None:
        expired = token_service.issue(
            id="qa-001", email="qa@company.com", role="qa", ttl=timedelta(seconds=-1)
        )
        response = test_client.get(LOOKUP, headers=auth_headers(expired))
        assert response.status_code == 401

    def test_token_signed_with_other_secret(self, test_client: TestClient, auth_headers: Callable) -> None:
        token = TokenService(secret="someone-elses-secret").issue(
            id="qa-001", email="qa@company.com", role="qa"
        )
        response = test_client.get(LOOKUP, headers=auth_headers(token))
        assert response.status_code == 401


class TestRoleAuthorization:
    """Test require_role on the test-data endpoint."""

    def test_allowed_roles(
        self, test_client: TestClient, admin_token: str, qa_token: str, auth_headers: Callable
    ) -> None:
        for token in (admin_token, qa_token):
            response = test_client.get("/api/screenpop/test-data", headers=auth_headers(token))
            assert response.status_code == 200

    def test_other_role_denied(
        self,
        test_client: TestClient,
        viewer_token: str,
        auth_headers: Callable,
        read_audit: Callable[[], List[Dict[str, Any]]],
    ) -> None:
        response = test_client.get("/api/screenpop/test-data", headers=auth_headers(viewer_token))

        assert response.status_code == 403
        assert response.json()["error"] == "Access denied"

        denied = [e for e in read_audit() if e["action"] == "AUTHORIZATION_FAILED"]
        assert len(denied) == 1
        assert denied[0]["actor"] == "viewer@company.com"
        assert denied[0]["required_roles"] == ["admin", "qa"]

    def test_role_check_requires_authentication(self, test_client: TestClient) -> None:
        response = test_client.get("/api/screenpop/test-data")
        assert response.status_code == 401


class TestFeatureFlag:
    """Test the feature flag gate."""

    def test_disabled_feature_rejects_everyone(
        self,
        settings_factory: Callable,
        admin_token: str,
        auth_headers: Callable,
        read_audit: Callable[[], List[Dict[str, Any]]],
    ) -> None:
        app = create_app(settings_factory(enabled=False))
        with TestClient(app) as client:
            response = client.get(LOOKUP, headers=auth_headers(admin_token))
            health = client.get("/health")

        assert response.status_code == 403
        assert response.json()["error"] == "Screen Pop testing is not enabled"
        assert health.status_code == 200
        assert health.json()["feature"] == "disabled"

        disabled = [e for e in read_audit() if e["action"] == "FEATURE_DISABLED"]
        assert len(disabled) == 1
        assert disabled[0]["actor"] == "admin@company.com"
