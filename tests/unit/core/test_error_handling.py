"""
Tests for error handling middleware.

Tests:
- Workflow errors mapped onto the standard error body
- Authentication errors and request validation errors
- Store and cache failures
- Sanitization of sensitive data
- Last-resort handling of unexpected exceptions
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import IntegrityError, OperationalError

from core.middleware.authentication import TokenExpiredError
from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    sanitize_error_message,
    setup_error_handlers,
)
from core.workflow.errors import (
    AccessDenied,
    DuplicateApplication,
    DuplicateCompany,
    InvalidState,
    NotFound,
    ServerError,
    ValidationError,
)


class Payload(BaseModel):
    title: str
    count: int


@pytest.fixture
def client():
    """Test app raising each kind of error."""
    app = FastAPI()
    setup_error_handlers(app)
    app.add_middleware(ErrorHandlingMiddleware)

    @app.get("/validation")
    async def validation():
        raise ValidationError.for_field("rejectionReason", "Rejection reason is required")

    @app.get("/denied")
    async def denied():
        raise AccessDenied()

    @app.get("/missing")
    async def missing():
        raise NotFound.for_resource("Job", 99)

    @app.get("/invalid-state")
    async def invalid_state():
        raise InvalidState("Job is already approved", {"approvalStatus": "approved"})

    @app.get("/duplicate")
    async def duplicate():
        raise DuplicateApplication()

    @app.get("/server")
    async def server():
        raise ServerError()

    @app.get("/expired")
    async def expired():
        raise TokenExpiredError()

    @app.post("/body")
    async def body(payload: Payload):
        return payload

    @app.get("/integrity")
    async def integrity():
        raise IntegrityError("INSERT", {}, Exception("duplicate key"))

    @app.get("/database")
    async def database():
        raise OperationalError("SELECT", {}, Exception("password=hunter2 connection refused"))

    @app.get("/redis")
    async def redis_down():
        raise RedisConnectionError("connection refused")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret=abc123 leaked")

    return TestClient(app, raise_server_exceptions=False)


class TestWorkflowErrors:
    """Test the workflow error taxonomy."""

    def test_validation_error(self, client):
        """Test VALIDATION_ERROR with per-field details."""
        response = client.get("/validation")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["message"] == "Rejection reason is required"
        assert error["details"] == [
            {"field": "rejectionReason", "message": "Rejection reason is required"}
        ]
        assert error["path"] == "/validation"
        assert error["method"] == "GET"

    @pytest.mark.parametrize(
        "path,status_code,code",
        [
            ("/denied", 403, "ACCESS_DENIED"),
            ("/missing", 404, "NOT_FOUND"),
            ("/invalid-state", 400, "INVALID_STATE"),
            ("/duplicate", 400, "DUPLICATE_APPLICATION"),
            ("/server", 500, "SERVER_ERROR"),
        ],
    )
    def test_status_and_code(self, client, path, status_code, code):
        """Test each error class maps to its status and code."""
        response = client.get(path)

        assert response.status_code == status_code
        assert response.json()["error"]["code"] == code

    def test_details_passed_through(self, client):
        """Test that structured details reach the client."""
        error = client.get("/invalid-state").json()["error"]

        assert error["details"] == {"approvalStatus": "approved"}

    def test_no_details_key_when_empty(self, client):
        """Test that errors without details omit the key."""
        assert "details" not in client.get("/denied").json()["error"]

    def test_request_id_echoed(self, client):
        """Test that an incoming request id is returned in the body."""
        response = client.get("/missing", headers={"X-Request-ID": "abc-123"})

        assert response.json()["error"]["request_id"] == "abc-123"

    def test_default_messages(self):
        """Test the default message of each error."""
        assert DuplicateApplication().message == "You have already applied for this job"
        assert DuplicateCompany().message == "You already have a company profile"
        assert NotFound.for_resource("Job").message == "Job not found"


class TestFrameworkErrors:
    """Test authentication and request validation failures."""

    def test_authentication_error(self, client):
        """Test 401 with a Bearer challenge."""
        response = client.get("/expired")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_EXPIRED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_request_validation_error(self, client):
        """Test that body validation failures list the offending fields."""
        response = client.post("/body", json={"title": "x"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert [d["field"] for d in error["details"]] == ["count"]

    def test_unknown_route(self, client):
        """Test that 404s from routing use the same body."""
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_EXCEPTION"


class TestInfrastructureErrors:
    """Test store and cache failures."""

    def test_integrity_error(self, client):
        """Test that constraint violations become 409."""
        response = client.get("/integrity")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INTEGRITY_ERROR"

    def test_database_error_hides_internals(self, client):
        """Test that driver messages never reach the client."""
        response = client.get("/database")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "SERVER_ERROR"
        assert "hunter2" not in response.text
        assert "details" not in error

    def test_redis_unavailable(self, client):
        """Test that a cache outage is a 503."""
        response = client.get("/redis")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "CACHE_ERROR"

    def test_unexpected_exception(self, client):
        """Test the last-resort handler."""
        response = client.get("/boom")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "SERVER_ERROR"
        assert error["message"] == "An unexpected error occurred"
        assert "abc123" not in response.text


class TestSanitization:
    """Test sensitive data removal."""

    @pytest.mark.parametrize(
        "message,leaked",
        [
            ("password=hunter2", "hunter2"),
            ('{"token": "eyJhbGci"}', "eyJhbGci"),
            ("otp: 123456", "123456"),
            ("api_key=sk_live_1", "sk_live_1"),
            ("card 4111111111111111", "4111111111111111"),
        ],
    )
    def test_sanitize_error_message(self, message, leaked):
        """Test that secrets are redacted."""
        sanitized = sanitize_error_message(message)

        assert leaked not in sanitized
        assert "[REDACTED]" in sanitized

    def test_plain_message_untouched(self):
        """Test that ordinary messages are unchanged."""
        assert sanitize_error_message("Job not found") == "Job not found"
