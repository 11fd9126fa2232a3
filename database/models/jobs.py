"""
Job Models

Job postings with two independent lifecycles: the admin moderation axis
(``approval_status``) and the operational axis (``status``).
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    DateTime,
    Integer,
    Text,
    JSON,
    Index,
)
from database.engine import Base
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.companies import Company


# ==================== Job Enums ===================== #
class JobStatus(str, PyEnum):
    """Operational status, changed by the poster or an admin."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class ApprovalStatus(str, PyEnum):
    """Moderation status, changed by admins only."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class JobType(str, PyEnum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    FREELANCE = "freelance"


class ExperienceLevel(str, PyEnum):
    ENTRY = "entry-level"
    MID = "mid-level"
    SENIOR = "senior-level"
    EXECUTIVE = "executive"


class SalaryPeriod(str, PyEnum):
    HOURLY = "hourly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Job(Base):
    """
    A job posting belonging to a company.

    ``applications_count`` mirrors the number of applications that reference
    the job. It is only ever changed through single-statement SQL updates
    (see ``database.store.EntityStore.increment``).
    """

    __tablename__: str = "jobs"
    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    posted_by_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str] = mapped_column(Text, nullable=False)

    # Compensation
    salary_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salary_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salary_currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    salary_period: Mapped[SalaryPeriod] = mapped_column(
        String(20), default=SalaryPeriod.YEARLY, nullable=False
    )

    job_type: Mapped[JobType] = mapped_column(String(20), nullable=False, index=True)
    experience_level: Mapped[ExperienceLevel] = mapped_column(
        String(20), nullable=False, index=True
    )
    skills: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    benefits: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    application_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Lifecycle
    status: Mapped[JobStatus] = mapped_column(
        String(20), default=JobStatus.ACTIVE, nullable=False, index=True
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        String(20), default=ApprovalStatus.PENDING, nullable=False, index=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Counters
    applications_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    views_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", lazy="selectin")
    locations: Mapped[list["JobLocation"]] = relationship(
        "JobLocation",
        back_populates="job",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JobLocation.id",
    )

    __table_args__ = (
        Index("idx_jobs_listing", "approval_status", "status", "featured", "created_at"),
    )


class JobLocation(Base):
    """One place a job can be done from."""

    __tablename__: str = "job_locations"
    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remote: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    job: Mapped["Job"] = relationship("Job", back_populates="locations")
