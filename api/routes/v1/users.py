"""User profile and admin user-management endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from api.dependencies import (
    get_pagination_params,
    get_store,
    require_active_user,
    require_admin,
)
from api.schemas.common import MessageResponse, PaginatedResponse, PaginationParams
from api.schemas.users import (
    ProfileUpdateRequest,
    RoleUpdateRequest,
    UserResponse,
    UserStatusRequest,
    VisibilityUpdateRequest,
    VolunteerApprovalRequest,
)
from api.services import users as user_service
from core.security import generate_request_id
from database.models.users import User, UserRole
from database.store import EntityStore

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/profile",
    response_model=UserResponse,
    summary="Get my profile",
)
async def get_profile(
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> UserResponse:
    user = await user_service.get_profile(store, current_user)
    return UserResponse.model_validate(user)


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update my profile",
    description=(
        "Merge profile fields into the caller's profile. Unknown keys are ignored; "
        "phone, mobileNumber and location are also accepted at the root level."
    ),
)
async def update_profile(
    request: Request,
    payload: ProfileUpdateRequest,
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> UserResponse:
    user = await user_service.update_profile(
        store, current_user, payload, request_id=generate_request_id(request)
    )
    return UserResponse.model_validate(user)


@router.post(
    "/profile/visibility",
    response_model=dict[str, Any],
    summary="Update profile visibility",
    description="Set visibility (public, private, freelance-hidden) and freelancer details.",
)
async def update_visibility(
    request: Request,
    payload: VisibilityUpdateRequest,
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> dict[str, Any]:
    return await user_service.update_visibility(
        store, current_user, payload, request_id=generate_request_id(request)
    )


@router.get(
    "",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
    description="All accounts, filterable by role and name/e-mail (admin only).",
)
async def list_users(
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> PaginatedResponse[UserResponse]:
    items, total = await user_service.list_users(store, pagination, role=role, search=search)
    return PaginatedResponse[UserResponse].create(
        items=[UserResponse.model_validate(u) for u in items],
        total=total,
        pagination=pagination,
    )


@router.get(
    "/volunteers",
    response_model=list[UserResponse],
    summary="List volunteers",
)
async def list_volunteers(
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> list[UserResponse]:
    volunteers = await user_service.list_volunteers(store)
    return [UserResponse.model_validate(u) for u in volunteers]


@router.patch(
    "/{user_id}/approve",
    response_model=UserResponse,
    summary="Approve volunteer",
    description="Approve (or revoke) a volunteer account (admin only).",
)
async def approve_volunteer(
    request: Request,
    payload: Optional[VolunteerApprovalRequest] = None,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> UserResponse:
    user = await user_service.approve_volunteer(
        store,
        current_user,
        user_id,
        approved=payload.approved if payload is not None else True,
        request_id=generate_request_id(request),
    )
    return UserResponse.model_validate(user)


@router.patch(
    "/{user_id}/role",
    response_model=UserResponse,
    summary="Change role",
)
async def update_role(
    request: Request,
    payload: RoleUpdateRequest,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> UserResponse:
    user = await user_service.update_role(
        store, current_user, user_id, payload.role, request_id=generate_request_id(request)
    )
    return UserResponse.model_validate(user)


@router.patch(
    "/{user_id}/status",
    response_model=UserResponse,
    summary="Activate or deactivate user",
)
async def set_user_status(
    request: Request,
    payload: UserStatusRequest,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> UserResponse:
    user = await user_service.set_user_status(
        store,
        current_user,
        user_id,
        is_active=payload.is_active,
        request_id=generate_request_id(request),
    )
    return UserResponse.model_validate(user)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Delete user",
    description="Hard-delete an account and everything it owns (admin only).",
)
async def delete_user(
    request: Request,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> MessageResponse:
    await user_service.delete_user(
        store, current_user, user_id, request_id=generate_request_id(request)
    )
    return MessageResponse(message="User deleted successfully")
