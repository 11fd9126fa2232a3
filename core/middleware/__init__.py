"""
Core middleware package.

This package provides the request pipeline around the job board API:
- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Redis-based sliding window rate limiting
- Bearer JWT authentication
- The authorization gate and role-based route guards
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    StructuredFormatter,
    setup_logging,
)

from core.middleware.rate_limiting import (
    RateLimitMiddleware,
    RateLimitRule,
    RateLimitStrategy,
    RateLimitWindow,
    SlidingWindowRateLimiter,
    default_rules,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    AuthenticationError,
    AuthenticationRequired,
    InvalidCredentialsError,
)

from core.middleware.authorization import (
    Action,
    Decision,
    authorize,
    can_transition,
    require_roles,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "StructuredFormatter",
    "setup_logging",
    # Rate limiting
    "RateLimitMiddleware",
    "RateLimitRule",
    "RateLimitStrategy",
    "RateLimitWindow",
    "SlidingWindowRateLimiter",
    "default_rules",
    # Authentication
    "AuthenticationMiddleware",
    "AuthenticationError",
    "AuthenticationRequired",
    "InvalidCredentialsError",
    # Authorization
    "Action",
    "Decision",
    "authorize",
    "can_transition",
    "require_roles",
]
