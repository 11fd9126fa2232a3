"""User and profile API schemas."""

from datetime import datetime
from typing import Any, Optional
from pydantic import ConfigDict, Field

from api.schemas.common import CamelModel, TimestampMixin
from database.models.users import ProfileVisibility, UserRole


class UserSummary(CamelModel):
    """Public identity of a user embedded in other resources."""

    id: int
    first_name: str
    last_name: str
    email: str


class UserResponse(TimestampMixin):
    """Schema for a user account (never carries credentials)."""

    id: int
    first_name: str
    last_name: str
    email: str
    role: UserRole
    is_active: bool
    is_volunteer_approved: bool
    email_verified: bool
    last_login_at: Optional[datetime] = None
    profile: dict[str, Any] = Field(default_factory=dict)


class ProfileUpdateRequest(CamelModel):
    """
    Schema for ``PUT /users/profile``.

    Only the keys listed in ``api.services.users.PROFILE_KEYS`` are copied
    into the stored profile; ``phone``, ``mobileNumber`` and ``location``
    are also accepted at the root level.
    """

    model_config = ConfigDict(extra="ignore")

    profile: Optional[dict[str, Any]] = None
    phone: Optional[str] = None
    mobile_number: Optional[str] = None
    location: Optional[dict[str, Any]] = None


class VisibilityUpdateRequest(CamelModel):
    """Schema for ``POST /users/profile/visibility``."""

    visibility: ProfileVisibility
    is_freelancer: bool = False
    freelance_company: Optional[str] = Field(None, max_length=100)


class VolunteerApprovalRequest(CamelModel):
    approved: bool = True


class RoleUpdateRequest(CamelModel):
    role: UserRole


class UserStatusRequest(CamelModel):
    is_active: bool
