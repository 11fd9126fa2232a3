"""
Security utilities.

Password hashing (bcrypt), JWT access/refresh tokens (PyJWT), one-time
password hashing, PII masking and the audit log for job board transitions.
"""

import hashlib
import hmac
import json
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set

import bcrypt
import jwt
from fastapi import Request

from core.config import settings

logger = logging.getLogger("security.audit")

# Decoded JWT claims
JWTPayload = Dict[str, Any]


# ==================== Passwords ===================== #
def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


# ==================== Tokens ===================== #
def _encode(claims: JWTPayload, secret_key: Optional[str]) -> str:
    return jwt.encode(
        claims,
        secret_key or settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    secret_key: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token carrying the caller's id and role.

    Args:
        user_id: User ID
        email: User email
        role: User role (jobseeker, employer, admin, volunteer)
        secret_key: Signing key, defaults to ``JWT_SECRET_KEY``
        expires_delta: Lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    claims = {
        "user_id": user_id,
        "email": email,
        "role": str(getattr(role, "value", role)),
        "type": "access",
        "iat": now,
        "exp": expires,
        "jti": uuid.uuid4().hex,
    }
    return _encode(claims, secret_key)


def create_refresh_token(
    user_id: int,
    secret_key: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a long-lived refresh token."""
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(days=settings.refresh_token_expire_days))
    claims = {
        "user_id": user_id,
        "type": "refresh",
        "iat": now,
        "exp": expires,
        "jti": uuid.uuid4().hex,
    }
    return _encode(claims, secret_key)


def create_token_pair(
    user_id: int,
    email: str,
    role: str,
    secret_key: Optional[str] = None,
) -> Dict[str, Any]:
    """Create an access + refresh token pair for a login response."""
    return {
        "access_token": create_access_token(user_id, email, role, secret_key=secret_key),
        "refresh_token": create_refresh_token(user_id, secret_key=secret_key),
        "token_type": "Bearer",
        "expires_in": settings.access_token_expire_minutes * 60,
    }


def verify_jwt_token(
    token: str,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
    expected_type: Optional[str] = None,
) -> JWTPayload:
    """
    Decode and verify a token.

    Raises:
        jwt.ExpiredSignatureError: token has expired
        jwt.InvalidTokenError: bad signature, algorithm or token type
    """
    payload = jwt.decode(
        token,
        secret_key or settings.jwt_secret_key,
        algorithms=[algorithm or settings.jwt_algorithm],
        options={"require": ["exp", "iat"]},
    )
    if expected_type and payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    return payload


# ==================== One-time passwords ===================== #
def generate_otp_code(length: int = 6) -> str:
    """Generate a numeric one-time code."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_otp(code: str) -> str:
    """Hash an OTP code (keyed with the JWT secret) for storage."""
    return hmac.new(
        settings.jwt_secret_key.encode("utf-8"),
        code.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_otp(code: str, hashed: str) -> bool:
    return hmac.compare_digest(hash_otp(code), hashed)


# ==================== Audit logging ===================== #
class AuditAction(str, Enum):
    """Audit log action types."""
    # Write operations
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    # Job moderation
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    FEATURE = "FEATURE"
    STATUS_CHANGE = "STATUS_CHANGE"

    # Application workflow
    APPLY = "APPLY"
    WITHDRAW = "WITHDRAW"
    ADD_NOTE = "ADD_NOTE"
    SCHEDULE_INTERVIEW = "SCHEDULE_INTERVIEW"

    # Accounts
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    REGISTER = "REGISTER"
    ROLE_CHANGE = "ROLE_CHANGE"
    VERIFY = "VERIFY"


class ResourceType(str, Enum):
    """Resource types for audit logging."""
    USER = "USER"
    COMPANY = "COMPANY"
    JOB = "JOB"
    APPLICATION = "APPLICATION"


# PII fields that should be masked in logs
PII_FIELDS: Set[str] = {
    "email", "phone", "mobilenumber", "mobile_number",
    "first_name", "last_name", "full_name", "name",
    "address", "location", "cover_letter", "coverletter",
}


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Recursively mask PII fields in data structures.

    Args:
        data: Data to mask (dict, list, or primitive)
        depth: Current recursion depth (max 10)

    Returns:
        Data with PII fields masked
    """
    if depth > 10:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key.lower() in PII_FIELDS:
                if isinstance(value, str) and len(value) > 0:
                    # Partial masking: show first char and length indicator
                    masked[key] = f"{value[0]}***[{len(value)}]"
                else:
                    masked[key] = "[MASKED]"
            else:
                masked[key] = mask_pii(value, depth + 1)
        return masked
    elif isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:5]]  # Limit list items
    else:
        return data


def generate_request_id(request: Request) -> str:
    """Return the correlation id set by the logging middleware, or derive one."""
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id

    timestamp = datetime.now(timezone.utc).isoformat()
    client = request.client.host if request.client else "unknown"
    raw = f"{timestamp}-{request.method}-{request.url.path}-{client}"
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


async def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[Any] = None,
    user_id: Optional[int] = None,
    request_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    contains_pii: bool = False,
    ip_address: Optional[str] = None,
):
    """
    Log an audit event for a state transition.

    This creates a structured log entry suitable for SIEM ingestion.
    """
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": str(resource_id) if resource_id is not None else None,
        "user_id": user_id,
        "request_id": request_id,
        "contains_pii": contains_pii,
        "ip_address": ip_address,
        "details": mask_pii(details) if details and contains_pii else details,
    }

    logger.info(json.dumps(event, default=str))
