"""FastAPI dependencies for dependency injection."""

from typing import Optional
from fastapi import Depends, Query, Request

from api.schemas.common import PaginationParams
from core.config import settings
from core.middleware.authentication import AuthenticationRequired, InactiveUserError
from core.middleware.authorization import require_roles
from database.models.users import User, UserRole
from database.store import EntityStore, get_store


async def get_current_user(request: Request) -> Optional[User]:
    """
    Get the caller identified by the authentication middleware.
    This is optional - returns None for anonymous requests.
    """
    return request.scope.get("user")


async def require_authenticated_user(
    current_user: Optional[User] = Depends(get_current_user),
) -> User:
    """Require user to be authenticated."""
    if not current_user:
        raise AuthenticationRequired("Authentication required")
    return current_user


async def require_active_user(
    current_user: User = Depends(require_authenticated_user),
) -> User:
    """Require user to be active."""
    if not current_user.is_active:
        raise InactiveUserError("User account is inactive")
    return current_user


# Role guards, evaluated once per request before the route runs
require_admin = require_roles(UserRole.ADMIN)
require_employer = require_roles(UserRole.EMPLOYER)
require_employer_or_admin = require_roles(UserRole.EMPLOYER, UserRole.ADMIN)
require_jobseeker = require_roles(UserRole.JOBSEEKER)


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
) -> PaginationParams:
    """Pagination from ``?page=&limit=``."""
    return PaginationParams(page=page, page_size=limit)


def get_strict_transitions() -> bool:
    """Whether application status updates follow the transition table."""
    return settings.application_strict_transitions


__all__ = [
    "EntityStore",
    "get_store",
    "get_current_user",
    "require_authenticated_user",
    "require_active_user",
    "require_admin",
    "require_employer",
    "require_employer_or_admin",
    "require_jobseeker",
    "get_pagination_params",
    "get_strict_transitions",
]
