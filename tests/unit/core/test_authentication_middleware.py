"""
Tests for authentication middleware.

Tests:
- Token validation from Authorization header
- User loading and inactive account rejection
- Public endpoint exemptions (optional auth on public reads)
- Error responses
"""

from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from api.dependencies import get_current_user, require_active_user
from core.config import settings
from core.middleware.authentication import AuthenticationMiddleware
from core.security import create_access_token, create_refresh_token
from database.models.users import User
from tests.conftest import auth_headers, create_user


@pytest.fixture
def app():
    """Create test FastAPI app."""
    app = FastAPI()

    @app.get("/api/v1/jobs")
    async def list_jobs(user=Depends(get_current_user)):
        return {"user_id": user.id if user else None}

    @app.post("/api/v1/jobs")
    async def create_job(user: User = Depends(require_active_user)):
        return {"user_id": user.id}

    @app.get("/api/v1/users/profile")
    async def profile(user: User = Depends(require_active_user)):
        return {"user_id": user.id, "role": user.role}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(
        AuthenticationMiddleware,
        jwt_secret=settings.jwt_secret_key,
        jwt_algorithm=settings.jwt_algorithm,
    )
    return app


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


class TestProtectedPaths:
    """Test paths that need a valid token."""

    def test_valid_token(self, client):
        """Test that the user is loaded into the request."""
        user = create_user()

        response = client.get("/api/v1/users/profile", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {"user_id": user.id, "role": "jobseeker"}

    def test_missing_token(self, client):
        """Test that no token is a 401 with a challenge header."""
        response = client.get("/api/v1/users/profile")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"
        assert response.json()["error"]["path"] == "/api/v1/users/profile"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_non_bearer_scheme(self, client):
        response = client.get(
            "/api/v1/users/profile", headers={"Authorization": "Basic dXNlcjpwYXNz"}
        )

        assert response.status_code == 401

    def test_expired_token(self, client):
        user = create_user()
        token = create_access_token(
            user.id, user.email, "jobseeker", expires_delta=timedelta(seconds=-1)
        )

        response = client.get(
            "/api/v1/users/profile", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_EXPIRED"

    def test_garbage_token(self, client):
        response = client.get(
            "/api/v1/users/profile", headers={"Authorization": "Bearer not.a.token"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_INVALID"

    def test_refresh_token_rejected(self, client):
        """Test that refresh tokens cannot be used as access tokens."""
        user = create_user()
        token = create_refresh_token(user.id)

        response = client.get(
            "/api/v1/users/profile", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_INVALID"

    def test_deleted_user(self, client):
        """Test a token whose user no longer exists."""
        token = create_access_token(9999, "ghost@jobboard.io", "jobseeker")

        response = client.get(
            "/api/v1/users/profile", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "USER_NOT_FOUND"

    def test_inactive_user(self, client):
        """Test that inactive accounts get a 403 without a challenge header."""
        user = create_user(is_active=False)

        response = client.get("/api/v1/users/profile", headers=auth_headers(user))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "USER_INACTIVE"
        assert "WWW-Authenticate" not in response.headers

    def test_write_on_public_listing_needs_auth(self, client):
        """Test that only reads of the job listing are public."""
        response = client.post("/api/v1/jobs")

        assert response.status_code == 401


class TestPublicPaths:
    """Test paths open to anonymous callers."""

    def test_anonymous_read(self, client):
        response = client.get("/api/v1/jobs")

        assert response.status_code == 200
        assert response.json() == {"user_id": None}

    def test_token_honoured_on_public_read(self, client):
        """Test that a valid token still identifies the caller."""
        user = create_user()

        response = client.get("/api/v1/jobs", headers=auth_headers(user))

        assert response.json() == {"user_id": user.id}

    def test_bad_token_ignored(self, client):
        """Test that an unusable token on a public path is treated as anonymous."""
        response = client.get("/api/v1/jobs", headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 200
        assert response.json() == {"user_id": None}

    def test_health(self, client):
        assert client.get("/health").status_code == 200


class TestPublicEndpointMatching:
    """Test the public path rules directly."""

    @pytest.mark.parametrize(
        "method,path,expected",
        [
            ("POST", "/api/v1/auth/login", True),
            ("POST", "/api/v1/auth/register", True),
            ("GET", "/health", True),
            ("GET", "/docs", True),
            ("GET", "/api/v1/jobs", True),
            ("GET", "/api/v1/jobs/12", True),
            ("GET", "/api/v1/companies/3", True),
            ("GET", "/api/v1/jobs/my-jobs", False),
            ("GET", "/api/v1/jobs/pending", False),
            ("PUT", "/api/v1/jobs/12", False),
            ("GET", "/api/v1/applications", False),
            ("GET", "/api/v1/auth/me", False),
        ],
    )
    def test_is_public_endpoint(self, method, path, expected):
        middleware = AuthenticationMiddleware(None, jwt_secret="x" * 32)

        assert middleware._is_public_endpoint(method, path) is expected
