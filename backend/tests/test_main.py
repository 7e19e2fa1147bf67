"""
Test suite for the FastAPI application.

Tests cover health endpoints, the request correlation middleware, the
request validation handler and router registration.
"""

from unittest.mock import patch

from fastapi import status
from fastapi.testclient import TestClient

from restaurant_orders.main import app
from tests.factories import bearer


# ============================================================================
# Health Endpoints
# ============================================================================


class TestHealthEndpoints:
    """Test suite for health check and readiness endpoints."""

    def test_health_check_returns_200(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert "service" in data
        assert "version" in data

    def test_readiness_check_returns_200_when_database_answers(
        self, test_client: TestClient
    ):
        with patch("restaurant_orders.main.check_database_health", return_value=True):
            response = test_client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ready"
        assert data["dependencies_ready"] is True
        assert data["database"] == "healthy"

    def test_readiness_check_returns_503_when_database_down(
        self, test_client: TestClient
    ):
        with patch("restaurant_orders.main.check_database_health", return_value=False):
            response = test_client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["database"] == "unhealthy"

    def test_liveness_check(self, test_client: TestClient):
        response = test_client.get("/health/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "alive"


# ============================================================================
# Middleware
# ============================================================================


class TestRequestLoggingMiddleware:
    def test_generates_request_id(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.headers.get("X-Request-ID")

    def test_echoes_incoming_request_id(self, test_client: TestClient):
        response = test_client.get(
            "/health", headers={"X-Request-ID": "req-1234"}
        )

        assert response.headers["X-Request-ID"] == "req-1234"

    def test_cors_preflight(self, test_client: TestClient):
        response = test_client.options(
            "/health",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert (
            response.headers["access-control-allow-origin"]
            == "http://localhost:5173"
        )


# ============================================================================
# Exception Handlers
# ============================================================================


class TestValidationHandler:
    def test_malformed_body_returns_structured_422(
        self, test_client: TestClient, client_identity
    ):
        response = test_client.post(
            "/api/v1/orders",
            json={"restaurant_id": "abc"},
            headers={**bearer(client_identity), "X-Request-ID": "req-422"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        data = response.json()
        assert data["error"] == "Validation Error"
        assert data["message"] == "Request validation failed"
        assert data["request_id"] == "req-422"
        locations = [tuple(error["loc"]) for error in data["details"]]
        assert ("body", "restaurant_id") in locations
        assert ("body", "total") in locations


# ============================================================================
# Application Configuration
# ============================================================================


class TestApplicationConfiguration:
    def test_order_routes_registered(self):
        paths = app.openapi()["paths"]

        assert "/api/v1/orders" in paths
        assert "/api/v1/orders/{order_id}/status" in paths
        assert "/api/v1/orders/owner/{owner_id}" in paths

    def test_openapi_schema(self, test_client: TestClient):
        response = test_client.get("/openapi.json")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["info"]["title"] == "Restaurant Orders API"
