"""
Error handling middleware with security-compliant error sanitization.

Maps the workflow error taxonomy, authentication failures, request
validation failures and store/cache failures onto one response body:

    {"error": {"code", "message", "path", "method", ["details"], ["request_id"]}}
"""

import logging
import re
import traceback
from typing import Any, Callable, Optional

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.middleware.authentication import AuthenticationError
from core.workflow.errors import WorkflowError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be logged
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'otp["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'\b\d{16}\b'),  # Credit card
]


def sanitize_error_message(message: Any) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Extract safe error details without exposing sensitive information.

    Args:
        exc: The exception to extract details from
        include_details: Whether to include the stack trace (only in dev)

    Returns:
        Dictionary with safe error details
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }

    if include_details:
        details["traceback"] = traceback.format_exc()

    return details


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """
    Format request validation errors into per-field entries.

    Args:
        exc: The validation exception

    Returns:
        List of formatted validation errors
    """
    errors = []
    for error in exc.errors():
        # Drop the leading "body"/"query"/"path" segment
        location = [str(loc) for loc in error["loc"]]
        if len(location) > 1 and location[0] in ("body", "query", "path"):
            location = location[1:]
        errors.append(
            {
                "field": ".".join(location),
                "message": sanitize_error_message(error["msg"]),
                "type": error["type"],
            }
        )
    return errors


def classify_exception(
    exc: Exception, path: str, method: str, debug: bool = False
) -> tuple[int, str, str, Optional[Any]]:
    """
    Map an exception to (status code, error code, message, details) and log it
    with the appropriate severity.
    """
    details = None

    if isinstance(exc, WorkflowError):
        status_code = exc.status_code
        error_code = exc.code
        message = sanitize_error_message(exc.message)
        details = exc.details or None
        if status_code >= 500:
            logger.error(f"Server error: {method} {path} - {message}")
        else:
            logger.info(f"{exc.code}: {method} {path} - {message}")

    elif isinstance(exc, AuthenticationError):
        status_code = exc.status_code
        error_code = exc.code
        message = exc.default_message
        logger.info(f"{exc.code}: {method} {path}")

    elif isinstance(exc, StarletteHTTPException):
        status_code = exc.status_code
        error_code = "HTTP_EXCEPTION"
        message = sanitize_error_message(exc.detail)
        logger.warning(
            f"HTTP exception: {method} {path} - Status: {status_code}, Message: {message}"
        )

    elif isinstance(exc, RequestValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
        error_code = "VALIDATION_ERROR"
        message = "Request validation failed"
        details = format_validation_errors(exc)
        logger.warning(f"Validation error: {method} {path} - Errors: {details}")

    elif isinstance(exc, IntegrityError):
        status_code = status.HTTP_409_CONFLICT
        error_code = "INTEGRITY_ERROR"
        message = "Database integrity constraint violated"
        if debug:
            details = get_safe_error_details(exc, include_details=True)
        logger.error(f"Database integrity error: {method} {path}", exc_info=not debug)

    elif isinstance(exc, SQLAlchemyError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code = "SERVER_ERROR"
        message = "A database error occurred"
        if debug:
            details = get_safe_error_details(exc, include_details=True)
        logger.error(f"SQLAlchemy error: {method} {path}", exc_info=not debug)

    elif isinstance(exc, RedisConnectionError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        error_code = "CACHE_ERROR"
        message = "Cache service temporarily unavailable"
        logger.error(f"Redis connection error: {method} {path}", exc_info=True)

    elif isinstance(exc, RedisError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code = "CACHE_ERROR"
        message = "A cache error occurred"
        if debug:
            details = get_safe_error_details(exc, include_details=True)
        logger.error(f"Redis error: {method} {path}", exc_info=not debug)

    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code = "SERVER_ERROR"
        message = "An unexpected error occurred"
        if debug:
            details = get_safe_error_details(exc, include_details=True)
        logger.error(
            f"Unhandled exception: {method} {path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True,
        )

    return status_code, error_code, message, details


def build_error_response(
    exc: Exception,
    path: str,
    method: str,
    request_id: Optional[str] = None,
    debug: bool = False,
) -> JSONResponse:
    """Build the standard JSON error response for ``exc``."""
    status_code, error_code, message, details = classify_exception(exc, path, method, debug)

    error_response: dict[str, Any] = {
        "error": {
            "code": error_code,
            "message": message,
            "path": path,
            "method": method,
        }
    }
    if details is not None:
        error_response["error"]["details"] = details
    if request_id:
        error_response["error"]["request_id"] = request_id

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(status_code=status_code, content=error_response, headers=headers)


def _request_id_from_scope(scope: dict) -> Optional[str]:
    state = scope.get("state") or {}
    if state.get("request_id"):
        return state["request_id"]
    for key, value in scope.get("headers") or []:
        if key == b"x-request-id":
            return value.decode()
    return None


class ErrorHandlingMiddleware:
    """
    Last-resort error handling middleware.

    Features:
    - Sanitizes error messages to prevent sensitive data leakage
    - Provides structured error responses
    - Catches anything the route-level handlers let through
    """

    def __init__(self, app: Callable, debug: bool = False):
        """
        Initialize error handling middleware.

        Args:
            app: The ASGI application
            debug: Whether to include detailed error information
        """
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        """
        Process requests with comprehensive error handling.

        Args:
            scope: ASGI scope
            receive: ASGI receive channel
            send: ASGI send channel
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = await self._handle_exception(exc, scope)
            await response(scope, receive, send)

    async def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        """
        Handle different types of exceptions and return appropriate responses.

        Args:
            exc: The exception to handle
            scope: ASGI scope for context

        Returns:
            JSONResponse with error details
        """
        return build_error_response(
            exc,
            path=scope.get("path", "unknown"),
            method=scope.get("method", "unknown"),
            request_id=_request_id_from_scope(scope),
            debug=self.debug,
        )


def setup_error_handlers(app, debug: bool = False):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
        debug: Whether to include detailed error information
    """

    async def handler(request: Request, exc: Exception):
        return build_error_response(
            exc,
            path=str(request.url.path),
            method=request.method,
            request_id=getattr(request.state, "request_id", None)
            or request.headers.get("x-request-id"),
            debug=debug,
        )

    app.add_exception_handler(WorkflowError, handler)
    app.add_exception_handler(AuthenticationError, handler)
    app.add_exception_handler(StarletteHTTPException, handler)
    app.add_exception_handler(RequestValidationError, handler)
    app.add_exception_handler(SQLAlchemyError, handler)
    app.add_exception_handler(RedisError, handler)
    app.add_exception_handler(Exception, handler)
