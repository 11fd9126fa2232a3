"""
Authentication middleware for verifying caller identity.

This middleware:
1. Validates bearer JWT access tokens from the Authorization header
2. Loads the user and rejects inactive accounts
3. Injects the user into the request scope for route guards

Anonymous access is only allowed to the public paths (auth entry points,
health checks, docs and read-only job/company listings). On those paths a
valid token is still honoured so owners and admins see their own
unapproved jobs; a bad token there is ignored.
"""

import logging
import re
from typing import Callable, Optional

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select

from core.security import verify_jwt_token, JWTPayload
from database.engine import AsyncSessionLocal
from database.models.users import User

logger = logging.getLogger(__name__)

# Public endpoints that don't require authentication
PUBLIC_ENDPOINTS = [
    "/",
    "/health",
    "/ready",
    "/api/v1/auth/register",
    "/api/v1/auth/login",
    "/api/v1/auth/send-otp",
    "/api/v1/auth/verify-otp",
    "/api/v1/auth/refresh-token",
    "/docs",
    "/redoc",
    "/openapi.json",
]

# Read-only listings open to anonymous visitors (GET only)
PUBLIC_READ_PATTERNS = [
    re.compile(r"^/api/v1/jobs/?$"),
    re.compile(r"^/api/v1/jobs/\d+/?$"),
    re.compile(r"^/api/v1/companies/?$"),
    re.compile(r"^/api/v1/companies/\d+/?$"),
]


class AuthenticationError(Exception):
    """Base exception for authentication errors."""

    code = "AUTHENTICATION_ERROR"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationRequired(AuthenticationError):
    """Raised when a protected route is called without a token."""

    code = "AUTHENTICATION_REQUIRED"
    default_message = "Authentication required."


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    code = "TOKEN_EXPIRED"
    default_message = "Authentication token has expired. Please refresh your token."


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""

    code = "TOKEN_INVALID"
    default_message = "Invalid authentication token."


class InvalidCredentialsError(AuthenticationError):
    """Raised on a failed login or OTP check."""

    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials."


class UserNotFoundError(AuthenticationError):
    """Raised when the token's user no longer exists."""

    code = "USER_NOT_FOUND"
    default_message = "User account not found."


class InactiveUserError(AuthenticationError):
    """Raised when user account is inactive."""

    code = "USER_INACTIVE"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "User account is inactive. Please contact support."


class AuthenticationMiddleware:
    """
    Authentication middleware that validates caller identity.

    Features:
    - JWT access token validation
    - Inactive account rejection
    - Optional authentication on public read-only paths
    - Request context injection (``scope["user"]``, ``scope["jwt_payload"]``)
    """

    def __init__(
        self,
        app: Callable,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
    ):
        """
        Initialize authentication middleware.

        Args:
            app: ASGI application
            jwt_secret: Secret key for JWT verification
            jwt_algorithm: JWT signing algorithm
        """
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        """
        Process requests with authentication validation.

        Args:
            scope: ASGI scope dictionary
            receive: ASGI receive function
            send: ASGI send function
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        scope["user"] = None
        is_public = self._is_public_endpoint(request.method, request.url.path)
        token = self._extract_token(request)

        if token is None and is_public:
            await self.app(scope, receive, send)
            return

        try:
            if not token:
                raise AuthenticationRequired()

            try:
                payload = verify_jwt_token(
                    token, self.jwt_secret, self.jwt_algorithm, expected_type="access"
                )
            except jwt.ExpiredSignatureError:
                raise TokenExpiredError()
            except jwt.InvalidTokenError as e:
                raise TokenInvalidError(f"Invalid token: {str(e)}")

            user = await self._load_user(payload)
            scope["user"] = user
            scope["jwt_payload"] = payload

        except AuthenticationError as e:
            if is_public:
                logger.info(f"Ignoring unusable token on public path: {e.code}")
                await self.app(scope, receive, send)
                return

            if isinstance(e, (TokenInvalidError, InactiveUserError)):
                logger.warning(f"Authentication rejected: {e.code} {request.url.path}")
            await self._send_error_response(scope, receive, send, e)
            return

        # Continue to next middleware/route
        await self.app(scope, receive, send)

    def _is_public_endpoint(self, method: str, path: str) -> bool:
        """
        Check if endpoint is public (no auth required).

        Args:
            method: HTTP method
            path: Request path

        Returns:
            True if endpoint is public
        """
        if path in PUBLIC_ENDPOINTS:
            return True

        # Prefix match for health checks and docs
        public_prefixes = ["/health", "/docs", "/redoc", "/openapi"]
        if any(path.startswith(prefix) for prefix in public_prefixes):
            return True

        if method in ("GET", "HEAD"):
            return any(pattern.match(path) for pattern in PUBLIC_READ_PATTERNS)

        return False

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract JWT token from Authorization header.

        Args:
            request: FastAPI request

        Returns:
            JWT token or None
        """
        auth_header = request.headers.get("Authorization")

        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:].strip() or None

        return None

    async def _load_user(self, payload: JWTPayload) -> User:
        """
        Load the token's user and check it may act.

        Raises:
            TokenInvalidError: token carries no user id
            UserNotFoundError: user doesn't exist
            InactiveUserError: user is inactive
        """
        user_id = payload.get("user_id")
        if not user_id:
            raise TokenInvalidError("Token missing user_id")

        async with AsyncSessionLocal() as db:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()

        if not user:
            raise UserNotFoundError()

        if not user.is_active:
            raise InactiveUserError()

        return user

    async def _send_error_response(
        self,
        scope: dict,
        receive: Callable,
        send: Callable,
        exc: AuthenticationError,
    ) -> None:
        """
        Send error response for authentication failures.

        Args:
            scope: ASGI scope
            receive: ASGI receive function
            send: ASGI send function
            exc: The authentication failure
        """
        response = JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.default_message,
                    "path": scope.get("path"),
                    "method": scope.get("method"),
                }
            },
            headers={"WWW-Authenticate": "Bearer"}
            if exc.status_code == status.HTTP_401_UNAUTHORIZED
            else None,
        )
        await response(scope, receive, send)

