"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from ratelimit_api.core.errors import (
    AppError,
    ConfigurationAppError,
    RateLimitExceededAppError,
    ValidationAppError,
)
from ratelimit_api.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(code="test_validation", message="Test validation error")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "test_validation"
        assert data["error"]["message"] == "Test validation error"
        assert "request_id" in data["error"]
        assert "details" not in data["error"]

    def test_validation_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation-details")
        async def test_endpoint():
            raise ValidationAppError(
                code="invalid_json",
                message="Request body must be a JSON object",
                details={"context": {"received_type": "list"}},
            )

        response = client.get("/test-validation-details")

        assert response.status_code == 400
        assert response.json()["error"]["details"]["context"]["received_type"] == "list"

    def test_configuration_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-config")
        async def test_endpoint():
            raise ConfigurationAppError(code="rate_limiter_not_found", message="missing")

        response = client.get("/test-config")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "rate_limiter_not_found"


class TestRateLimitExceededHandler:
    def test_returns_status_headers_and_retry_after(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-limited")
        async def test_endpoint():
            raise RateLimitExceededAppError(
                code="rate_limit_exceeded",
                message="Too many requests",
                details={"limit": 5, "remaining": 0, "retry_after": 7},
                headers={"Retry-After": "7", "X-RateLimit-Limit": "5"},
            )

        response = client.get("/test-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "7"
        assert response.headers["X-RateLimit-Limit"] == "5"
        data = response.json()
        assert data["retry_after"] == 7
        assert data["error"]["code"] == "rate_limit_exceeded"
        assert data["error"]["details"]["limit"] == 5

    def test_honours_custom_status_code(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-limited-503")
        async def test_endpoint():
            raise RateLimitExceededAppError(
                code="rate_limit_exceeded", message="busy", status_code=503
            )

        response = client.get("/test-limited-503")

        assert response.status_code == 503
        assert "retry_after" not in response.json()

    def test_is_still_an_app_error(self):
        exc = RateLimitExceededAppError(code="rate_limit_exceeded", message="busy")
        assert isinstance(exc, AppError)
        assert str(exc) == "busy"
        assert exc.status_code == 429
        assert exc.headers == {}


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_generic_500(self, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("limiter store corrupted at 0xdeadbeef")

        client = TestClient(app_with_handlers, raise_server_exceptions=False)
        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "0xdeadbeef" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = Request(
            {"type": "http", "method": "GET", "path": "/test", "headers": [], "query_string": b""}
        )

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        data = json.loads(response_text)
        assert response.status_code == 500
        assert "request_id" in data["error"]
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text
        assert "Test error" not in response_text

    def test_request_id_falls_back_to_request_state(self):
        request = Request(
            {
                "type": "http",
                "method": "GET",
                "path": "/test",
                "headers": [],
                "query_string": b"",
                "state": {"request_id": "req-from-state"},
            }
        )

        response = asyncio.run(general_exception_handler(request, RuntimeError("boom")))

        assert json.loads(bytes(response.body))["error"]["request_id"] == "req-from-state"


class TestHttpExceptionHandler:
    def test_unknown_route_returns_not_found_error_shape(self, client: TestClient):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "not_found"
        assert error["message"] == "Route GET /api/does-not-exist not found"
        assert "request_id" in error
        assert "detail" not in response.json()

    def test_wrong_method_returns_method_not_allowed(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/only-get")
        async def test_endpoint():
            return {"ok": True}

        response = client.post("/only-get")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "method_not_allowed"
        assert response.headers["allow"] == "GET"

    def test_explicit_http_exception_keeps_status_and_detail(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/teapot")
        async def test_endpoint():
            raise HTTPException(status_code=418, detail="short and stout")

        response = client.get("/teapot")

        assert response.status_code == 418
        assert response.json()["error"] == {
            "code": "http_error",
            "message": "short and stout",
            "request_id": None,
        }


class TestErrorHandlerIntegration:
    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert RateLimitExceededAppError in app_with_handlers.exception_handlers
        assert StarletteHTTPException in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
