"""Tests for global exception handlers.

Validates that all exception types are handled consistently with proper HTTP
status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from registration_policy.core.errors import (
    AppError,
    AuthenticationAppError,
    InputError,
    RuleEvaluationError,
    ValidationAppError,
)
from registration_policy.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_input_error_returns_400_with_details(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-input")
        async def endpoint():
            raise InputError(
                code="invalid_ip_address",
                message="requester.ip_address must be an IPv4 or IPv6 literal",
                details={"field": "requester.ip_address"},
            )

        response = client.get("/test-input")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_ip_address"
        assert error["details"] == {"field": "requester.ip_address"}
        assert "request_id" in error

    def test_validation_error_without_details_omits_key(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def endpoint():
            raise ValidationAppError(code="bad", message="bad input")

        response = client.get("/test-validation")

        assert response.status_code == 400
        assert "details" not in response.json()["error"]

    def test_authentication_error_returns_403(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-auth")
        async def endpoint():
            raise AuthenticationAppError(code="invalid_api_key", message="Invalid or missing API key")

        response = client.get("/test-auth")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "invalid_api_key"

    def test_rule_evaluation_error_returns_503(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-unavailable")
        async def endpoint():
            raise RuleEvaluationError(
                code="reputation_store_unavailable",
                message="Reputation store error",
            )

        response = client.get("/test-unavailable")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "reputation_store_unavailable"


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def endpoint():
            raise RuntimeError("database password is hunter2")

        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "hunter2" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        body = bytes(response.body).decode()
        data = json.loads(body)
        assert response.status_code == 500
        assert "Traceback" not in body
        assert "ValueError" not in body
        assert "Test error" not in data["error"]["message"]


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
