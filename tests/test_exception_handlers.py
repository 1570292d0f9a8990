"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from throttle.core.errors import (
    AppError,
    AuthenticationAppError,
    RateLimitAppError,
    ValidationAppError,
)
from throttle.core.exception_handlers import general_exception_handler, setup_exception_handlers


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
            raise ValidationAppError(code="rate_limit_unknown_key_strategy", message="Unknown key strategy")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "rate_limit_unknown_key_strategy"
        assert data["error"]["message"] == "Unknown key strategy"
        assert "request_id" in data["error"]
        assert "details" not in data["error"]

    def test_authentication_error_returns_403(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-auth")
        async def test_endpoint():
            raise AuthenticationAppError(code="invalid_api_key", message="Invalid or missing API key")

        response = client.get("/test-auth")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "invalid_api_key"

    def test_rate_limit_error_returns_429_with_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitAppError(
                code="rate_limit_exceeded",
                message="Rate limit exceeded. Try again later.",
                details={"scope": "data", "limit": 2, "remaining": 0, "retry_after": 7},
                headers={"Retry-After": "7", "X-RateLimit-Remaining": "0"},
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "7"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        details = response.json()["error"]["details"]
        assert details["scope"] == "data"
        assert details["retry_after"] == 7

    def test_error_is_printable(self) -> None:
        error = RateLimitAppError(code="rate_limit_exceeded", message="Rate limit exceeded")
        assert str(error) == "Rate limit exceeded"
        assert error.headers is None


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_general_exception_handler_logic(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: limiter lock poisoned")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "lock poisoned" not in data["error"]["message"]
        assert "request_id" in data["error"]

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("details")))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
