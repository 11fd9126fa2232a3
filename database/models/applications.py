"""
Application Models

A job seeker's application to a job, with its append-only notes and the
interview sub-record.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    Date,
    DateTime,
    Text,
    JSON,
    UniqueConstraint,
)
from database.engine import Base
from core.utils.datetime import now
from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.jobs import Job
    from database.models.users import User


# ==================== Application Enums ===================== #
class ApplicationStatus(str, PyEnum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    SHORTLISTED = "shortlisted"
    INTERVIEW_SCHEDULED = "interview-scheduled"
    HIRED = "hired"
    REJECTED = "rejected"


class InterviewType(str, PyEnum):
    PHONE = "phone"
    VIDEO = "video"
    IN_PERSON = "in-person"


class Application(Base):
    """
    Application of one user to one job.

    The (job_id, applicant_id) unique constraint is what actually prevents
    duplicate applications; the service-level pre-check only exists to give
    a friendlier error.
    """

    __tablename__: str = "applications"
    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    applicant_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Metadata only (filename, url, uploaded_at)
    resume: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    status: Mapped[ApplicationStatus] = mapped_column(
        String(30), default=ApplicationStatus.PENDING, nullable=False, index=True
    )

    # Interview
    interview_scheduled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    interview_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    interview_time: Mapped[str | None] = mapped_column(String(10), nullable=True)
    interview_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    interview_type: Mapped[InterviewType | None] = mapped_column(
        String(20), nullable=True
    )
    interview_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )

    # Relationships
    job: Mapped["Job"] = relationship("Job", lazy="selectin")
    applicant: Mapped["User"] = relationship("User", lazy="selectin")
    notes: Mapped[list["ApplicationNote"]] = relationship(
        "ApplicationNote",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ApplicationNote.id",
    )

    __table_args__ = (
        UniqueConstraint("job_id", "applicant_id", name="uq_application_job_applicant"),
    )

    @property
    def interview(self) -> dict[str, Any]:
        """The interview sub-record as one document."""
        return {
            "scheduled": self.interview_scheduled,
            "date": self.interview_date,
            "time": self.interview_time,
            "location": self.interview_location,
            "type": self.interview_type,
            "notes": self.interview_notes,
        }


class ApplicationNote(Base):
    """Append-only note left by the job owner or an admin."""

    __tablename__: str = "application_notes"
    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    added_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )

    application: Mapped["Application"] = relationship(
        "Application", back_populates="notes"
    )
