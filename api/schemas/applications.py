"""Job application API schemas."""

from datetime import date as date_type, datetime
from typing import Optional
from pydantic import Field, field_validator

from api.schemas.common import CamelModel
from api.schemas.jobs import JobSummary
from api.schemas.users import UserSummary
from database.models.applications import ApplicationStatus, InterviewType


class ResumeReference(CamelModel):
    """Metadata of an uploaded resume; the file itself is stored elsewhere."""

    filename: str = Field(..., min_length=1, max_length=255)
    url: Optional[str] = Field(None, max_length=500)


class ApplicationCreateRequest(CamelModel):
    """Schema for applying to a job."""

    job_id: int = Field(..., ge=1)
    cover_letter: Optional[str] = Field(None, max_length=2000)
    resume: Optional[ResumeReference] = None

    @field_validator("cover_letter", mode="before")
    @classmethod
    def strip_cover_letter(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            return v.strip() or None
        return v


class ApplicationStatusRequest(CamelModel):
    # Unknown values are reported by the workflow as VALIDATION_ERROR
    status: Optional[str] = None


class NoteCreateRequest(CamelModel):
    content: Optional[str] = Field(None, max_length=2000)


class InterviewRequest(CamelModel):
    """
    Schema for scheduling an interview.

    Fields are loosely typed on purpose: missing or malformed values are
    reported together, per field, by the workflow.
    """

    date: Optional[str] = None
    time: Optional[str] = Field(None, max_length=10)
    location: Optional[str] = Field(None, max_length=255)
    type: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)


class NoteResponse(CamelModel):
    id: int
    content: str
    added_by_id: Optional[int] = None
    added_at: datetime


class InterviewResponse(CamelModel):
    scheduled: bool = False
    date: Optional[date_type] = None
    time: Optional[str] = None
    location: Optional[str] = None
    type: Optional[InterviewType] = None
    notes: Optional[str] = None


class ApplicationResponse(CamelModel):
    id: int
    job_id: int
    applicant_id: int
    cover_letter: Optional[str] = None
    resume: Optional[dict] = None
    status: ApplicationStatus
    notes: list[NoteResponse] = Field(default_factory=list)
    interview: InterviewResponse
    applied_at: datetime
    updated_at: datetime
    job: Optional[JobSummary] = None
    applicant: Optional[UserSummary] = None
