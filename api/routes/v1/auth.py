"""
Authentication endpoints.

Password login, one-time code login (``OTP_MODE`` picks random e-mailed
codes or the static demo code) and refresh-token rotation. All issued
tokens are HS256 JWTs carrying the user id and role.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status

from api.dependencies import get_store, require_active_user
from api.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    OtpSentResponse,
    RefreshTokenRequest,
    RegisterRequest,
    SendOtpRequest,
    TokenResponse,
    VerifyOtpRequest,
)
from api.schemas.common import MessageResponse
from api.schemas.users import UserResponse
from api.services import auth as auth_service
from core.config import settings
from core.otp import OtpIssuer, get_otp_issuer
from core.security import generate_request_id
from database.models.users import User
from database.store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        **auth_service.issue_tokens(user),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a job seeker, employer or volunteer account.",
)
async def register(
    request: Request,
    payload: RegisterRequest,
    store: EntityStore = Depends(get_store),
) -> TokenResponse:
    user = await auth_service.register(store, payload, request_id=generate_request_id(request))
    return _token_response(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in with e-mail and password",
)
async def login(
    request: Request,
    payload: LoginRequest,
    store: EntityStore = Depends(get_store),
) -> TokenResponse:
    user = await auth_service.login(
        store, payload.email, payload.password, request_id=generate_request_id(request)
    )
    return _token_response(user)


@router.post(
    "/send-otp",
    response_model=OtpSentResponse,
    summary="Send a one-time login code",
)
async def send_otp(
    payload: SendOtpRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    issuer: OtpIssuer = Depends(get_otp_issuer),
) -> OtpSentResponse:
    await auth_service.send_otp(
        store,
        payload.email,
        issuer,
        settings.otp_expire_minutes,
        background_tasks=background_tasks,
    )
    return OtpSentResponse(
        message="OTP sent successfully",
        expires_in_minutes=settings.otp_expire_minutes,
    )


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    summary="Log in with a one-time code",
)
async def verify_otp(
    request: Request,
    payload: VerifyOtpRequest,
    store: EntityStore = Depends(get_store),
    issuer: OtpIssuer = Depends(get_otp_issuer),
) -> TokenResponse:
    user = await auth_service.verify_otp(
        store, payload.email, payload.otp, issuer, request_id=generate_request_id(request)
    )
    return _token_response(user)


@router.post(
    "/refresh-token",
    response_model=AccessTokenResponse,
    summary="Refresh tokens",
    description="Exchange a refresh token for a new access/refresh token pair.",
)
async def refresh_token(
    payload: RefreshTokenRequest,
    store: EntityStore = Depends(get_store),
) -> AccessTokenResponse:
    tokens = await auth_service.refresh_tokens(store, payload.refresh_token)
    return AccessTokenResponse(**tokens)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
)
async def me(
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> UserResponse:
    user = await auth_service.get_me(store, current_user)
    return UserResponse.model_validate(user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
)
async def logout(
    request: Request,
    current_user: User = Depends(require_active_user),
) -> MessageResponse:
    await auth_service.logout(current_user, request_id=generate_request_id(request))
    return MessageResponse(message="Logged out successfully")
