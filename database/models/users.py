"""
User Models

Identity, role and the self-managed profile sub-record.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime, JSON, Index
from database.engine import Base
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any


# ==================== User Enums ===================== #
class UserRole(str, PyEnum):
    JOBSEEKER = "jobseeker"  # browses and applies to jobs
    EMPLOYER = "employer"  # owns a company and posts jobs
    ADMIN = "admin"  # moderates users, companies and jobs
    VOLUNTEER = "volunteer"  # needs admin approval before acting


class ProfileVisibility(str, PyEnum):
    PUBLIC = "public"
    PRIVATE = "private"
    FREELANCE_HIDDEN = "freelance-hidden"


class User(Base):
    """
    Core user identity and authentication.

    ``profile`` is a JSON document only ever written through the
    whitelisted merge in ``api.services.users``.
    """

    __tablename__: str = "users"
    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        String(20), default=UserRole.JOBSEEKER, nullable=False, index=True
    )

    # Account flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_volunteer_approved: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    profile: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    # One-time password login (only the hash is kept)
    otp_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    otp_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )

    __table_args__ = (Index("idx_users_role_active", "role", "is_active"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
