"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from database.engine import init_db, close_db
from api.routes import health
from api.routes.v1 import applications, auth, companies, jobs, users

# Import middleware components
from core.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    StructuredLoggingMiddleware,
    default_rules,
    setup_error_handlers,
    setup_logging,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Job board API: postings, applications and their moderation workflow",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Setup error handlers (before middleware)
setup_error_handlers(app, debug=settings.debug)

# Add middleware (order matters - the last one added runs first)
# 1. Rate limiting (innermost - only applied to identified requests)
if settings.rate_limit_enabled:
    app.add_middleware(
        RateLimitMiddleware,
        redis_url=str(settings.redis_url),
        rules=default_rules(
            per_window=settings.rate_limit_per_window,
            auth_per_minute=settings.rate_limit_auth_per_minute,
        ),
        key_prefix="jobboard:ratelimit",
        enable_headers=True,
        trusted_proxies=settings.trusted_proxies,
    )

# 2. Authentication middleware (validates bearer JWT access tokens)
app.add_middleware(
    AuthenticationMiddleware,
    jwt_secret=settings.jwt_secret_key,
    jwt_algorithm=settings.jwt_algorithm,
)

# 3. Structured logging middleware (logs all requests/responses)
app.add_middleware(
    StructuredLoggingMiddleware,
    log_request_body=settings.log_request_body,
    max_body_size=settings.log_max_body_size,
)

# 4. Error handling middleware (catches all errors)
app.add_middleware(
    ErrorHandlingMiddleware,
    debug=settings.debug,
)

# 5. CORS middleware (outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check routes
app.include_router(health.router, tags=["Health"])

# API v1 routes
app.include_router(auth.router, prefix=settings.api_v1_prefix, tags=["Authentication"])
app.include_router(users.router, prefix=settings.api_v1_prefix, tags=["Users"])
app.include_router(companies.router, prefix=settings.api_v1_prefix, tags=["Companies"])
app.include_router(jobs.router, prefix=settings.api_v1_prefix, tags=["Jobs"])
app.include_router(
    applications.router, prefix=settings.api_v1_prefix, tags=["Applications"]
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
