"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, EmailStr

from arqsite.core.errors import (
    AuthenticationAppError,
    ConfigurationAppError,
    ExpiredAppError,
    ExternalServiceAppError,
    LLMAppError,
    NotFoundAppError,
    ValidationAppError,
)
from arqsite.core.exception_handlers import setup_exception_handlers, status_code_for
from arqsite.core.middleware import request_id_middleware


class _Signup(BaseModel):
    email: EmailStr
    name: str


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        "error_cls,expected",
        [
            (ValidationAppError, 400),
            (AuthenticationAppError, 401),
            (NotFoundAppError, 404),
            (ExpiredAppError, 410),
            (ConfigurationAppError, 500),
            (LLMAppError, 500),
            (ExternalServiceAppError, 502),
        ],
    )
    def test_status_mapping(self, error_cls, expected):
        """Each domain error maps to one status code."""
        assert status_code_for(error_cls(code="x", message="y")) == expected

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400 with the envelope."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(code="download_token_required", message="Download token is required")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "download_token_required"
        assert data["error"]["message"] == "Download token is required"
        assert "request_id" in data["error"]

    def test_client_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        """Details are returned for 4xx errors."""
        @app_with_handlers.get("/test-details")
        async def test_endpoint():
            raise ValidationAppError(
                code="invalid_export_type",
                message="Invalid export type",
                details={"allowed": ["contacts", "all"]},
            )

        response = client.get("/test-details")

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"allowed": ["contacts", "all"]}

    def test_expired_returns_410(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-expired")
        async def test_endpoint():
            raise ExpiredAppError(code="download_token_expired", message="Download link has expired")

        response = client.get("/test-expired")

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "download_token_expired"

    def test_server_errors_hide_details(self, client: TestClient, app_with_handlers: FastAPI):
        """Details of 5xx errors stay in the logs."""
        @app_with_handlers.get("/test-upstream")
        async def test_endpoint():
            raise ExternalServiceAppError(
                code="database_error",
                message="Database request failed",
                details={"table": "contact_submissions", "http_status": 503},
            )

        response = client.get("/test-upstream")

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "database_error"
        assert "details" not in error

    def test_configuration_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-config")
        async def test_endpoint():
            raise ConfigurationAppError(code="database_not_configured", message="Database not configured")

        response = client.get("/test-config")

        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Database not configured"


class TestRequestValidationHandler:
    """Malformed bodies come back as 400 in the same envelope."""

    def test_invalid_body_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/signup")
        async def signup(payload: _Signup):
            return {"ok": True}

        response = client.post("/signup", json={"email": "not-an-email"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["message"] == "Invalid request body"
        assert set(error["details"]["fields"]) == {"email", "name"}

    def test_non_json_body_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/signup")
        async def signup(payload: _Signup):
            return {"ok": True}

        response = client.post("/signup", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"


class TestGeneralExceptionHandler:
    """Unexpected exceptions become a generic 500."""

    def test_unexpected_error_does_not_leak(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/boom")
        async def boom():
            raise KeyError("service_role_key=abc123")

        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "internal_server_error"
        assert body["error"]["message"] == "Internal server error"
        assert "abc123" not in response.text

    def test_request_id_is_echoed_in_error(self, app_with_handlers: FastAPI):
        app_with_handlers.middleware("http")(request_id_middleware)

        @app_with_handlers.get("/missing")
        async def missing():
            raise NotFoundAppError(code="content_not_found", message="Content not found")

        client = TestClient(app_with_handlers)
        response = client.get("/missing", headers={"X-Request-ID": "req-abc"})

        assert response.status_code == 404
        assert response.json()["error"]["request_id"] == "req-abc"
        assert response.headers["X-Request-ID"] == "req-abc"
