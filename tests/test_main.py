"""
Unit tests for application-level routes and error handling
"""
import pytest
from fastapi import status


@pytest.mark.unit
class TestAppRoutes:
    """Tests for root, health and index routes"""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert "Dream Decol" in response.json()["message"]

    def test_health(self, client):
        response = client.get("/health")

        assert response.json() == {"status": "healthy"}

    def test_api_index(self, client):
        response = client.get("/api")

        endpoints = response.json()["endpoints"]
        assert endpoints["products"] == "/api/products"
        assert endpoints["bookings"] == "/api/bookings"

    def test_localhost_cors(self, client):
        response = client.options(
            "/api/products",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "GET"
            }
        )

        assert response.headers.get("access-control-allow-origin") == "http://localhost:5173"


@pytest.mark.unit
class TestErrorHandling:
    """Tests for global exception handlers"""

    def test_validation_error_shape(self, client):
        response = client.get("/api/products?page=0")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["detail"] == "Validation error"
        assert data["errors"][0]["field"] == "page"

    def test_unhandled_error_is_masked(self, db):
        from fastapi.testclient import TestClient
        from app.main import app
        from app.core.database import get_db

        def broken_db():
            raise RuntimeError("connection refused")
            yield

        app.dependency_overrides[get_db] = broken_db
        try:
            with TestClient(app, raise_server_exceptions=False) as client:
                response = client.get("/api/products")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"detail": "Something went wrong!"}
