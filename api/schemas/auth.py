"""Authentication API schemas."""

from typing import Literal
from pydantic import EmailStr, Field, field_validator

from api.schemas.common import CamelModel
from api.schemas.users import UserResponse

# Roles a visitor may pick at sign-up; admins are promoted by other admins
RegistrationRole = Literal["jobseeker", "employer", "volunteer"]


class RegisterRequest(CamelModel):
    """Schema for account registration."""

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: RegistrationRole = "jobseeker"

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from name fields."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class SendOtpRequest(CamelModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class VerifyOtpRequest(SendOtpRequest):
    otp: str = Field(..., min_length=4, max_length=10, pattern=r"^\d+$")


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class AccessTokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class TokenResponse(AccessTokenResponse):
    """Login / registration response: a token pair plus the account."""

    user: UserResponse


class OtpSentResponse(CamelModel):
    message: str
    expires_in_minutes: int
