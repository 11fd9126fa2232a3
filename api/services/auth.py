"""
Authentication service functions: registration, password and one-time
code login, token refresh.
"""

import logging
from typing import Any, Optional

import jwt
from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from api.schemas.auth import RegisterRequest
from core.integrations.email import get_notifier
from core.middleware.authentication import (
    InactiveUserError,
    InvalidCredentialsError,
    TokenExpiredError,
    TokenInvalidError,
    UserNotFoundError,
)
from core.otp import OtpIssuer
from core.security import (
    AuditAction,
    ResourceType,
    create_token_pair,
    hash_password,
    log_audit_event,
    verify_jwt_token,
    verify_password,
)
from core.utils.datetime import now
from core.workflow.errors import NotFound, ValidationError
from database.models.users import User, UserRole
from database.store import EntityStore

logger = logging.getLogger(__name__)


async def _find_by_email(store: EntityStore, email: str) -> Optional[User]:
    return await store.find_one(select(User).where(User.email == email.strip().lower()))


def issue_tokens(user: User) -> dict[str, Any]:
    return create_token_pair(user.id, user.email, UserRole(user.role).value)


async def register(
    store: EntityStore,
    data: RegisterRequest,
    request_id: Optional[str] = None,
) -> User:
    """
    Create an account.

    Raises:
        ValidationError: the e-mail address is already registered
    """
    if await _find_by_email(store, data.email) is not None:
        raise ValidationError.for_field("email", "User already exists with this email")

    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        role=UserRole(data.role),
        is_active=True,
        is_volunteer_approved=False,
        email_verified=False,
        profile={},
    )
    store.add(user)
    try:
        await store.commit()
    except IntegrityError as e:
        raise ValidationError.for_field("email", "User already exists with this email") from e
    await store.refresh(user)

    logger.info(f"User {user.id} registered as {UserRole(user.role).value}")
    await log_audit_event(
        action=AuditAction.REGISTER,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        request_id=request_id,
        details={"email": user.email, "role": UserRole(user.role).value},
        contains_pii=True,
    )
    return user


async def _mark_logged_in(store: EntityStore, user: User, request_id: Optional[str]) -> None:
    user.last_login_at = now()
    await store.commit()
    await store.refresh(user)
    await log_audit_event(
        action=AuditAction.LOGIN,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        request_id=request_id,
    )


async def login(
    store: EntityStore,
    email: str,
    password: str,
    request_id: Optional[str] = None,
) -> User:
    """
    Password login.

    Unknown e-mail and wrong password produce the same error.

    Raises:
        InvalidCredentialsError: bad e-mail / password
        InactiveUserError: the account was deactivated
    """
    user = await _find_by_email(store, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise InvalidCredentialsError("Invalid credentials")
    if not user.is_active:
        raise InactiveUserError("User account is inactive")

    await _mark_logged_in(store, user, request_id)
    return user


async def send_otp(
    store: EntityStore,
    email: str,
    issuer: OtpIssuer,
    expire_minutes: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    """
    Issue a one-time login code and schedule its delivery.

    Raises:
        NotFound: no account uses this e-mail
        InactiveUserError: the account was deactivated
    """
    user = await _find_by_email(store, email)
    if user is None:
        raise NotFound("User not found")
    if not user.is_active:
        raise InactiveUserError("User account is inactive")

    code = issuer.issue(user)
    await store.commit()

    if issuer.requires_delivery and background_tasks is not None:
        background_tasks.add_task(
            get_notifier().send_otp, user.email, user.full_name, code, expire_minutes
        )


async def verify_otp(
    store: EntityStore,
    email: str,
    code: str,
    issuer: OtpIssuer,
    request_id: Optional[str] = None,
) -> User:
    """
    Log in with a one-time code. A successful login also verifies the e-mail.

    Raises:
        ValidationError: unknown account, wrong or expired code
        InactiveUserError: the account was deactivated
    """
    user = await _find_by_email(store, email)
    if user is None or not issuer.verify(user, code):
        raise ValidationError.for_field("otp", "Invalid or expired OTP")
    if not user.is_active:
        raise InactiveUserError("User account is inactive")

    user.email_verified = True
    await _mark_logged_in(store, user, request_id)
    return user


async def refresh_tokens(store: EntityStore, refresh_token: str) -> dict[str, Any]:
    """
    Exchange a refresh token for a new token pair.

    Raises:
        TokenExpiredError / TokenInvalidError: unusable refresh token
        UserNotFoundError: the account no longer exists
        InactiveUserError: the account was deactivated
    """
    try:
        payload = verify_jwt_token(refresh_token, expected_type="refresh")
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Refresh token has expired. Please log in again.")
    except jwt.InvalidTokenError:
        raise TokenInvalidError("Invalid refresh token")

    user = await store.get(User, payload.get("user_id"))
    if user is None:
        raise UserNotFoundError("User not found")
    if not user.is_active:
        raise InactiveUserError("User account is inactive")
    return issue_tokens(user)


async def get_me(store: EntityStore, user: User) -> User:
    account = await store.get(User, user.id)
    if account is None:
        raise UserNotFoundError("User not found")
    return account


async def logout(user: User, request_id: Optional[str] = None) -> None:
    """Tokens are stateless; logging out is recorded and left to the client."""
    await log_audit_event(
        action=AuditAction.LOGOUT,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        request_id=request_id,
    )
