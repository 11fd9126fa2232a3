"""Job posting API schemas."""

from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator, model_validator

from api.schemas.common import CamelModel, TimestampMixin
from api.schemas.companies import CompanySummary
from database.models.jobs import (
    ApprovalStatus,
    ExperienceLevel,
    JobStatus,
    JobType,
    SalaryPeriod,
)


class JobLocationSchema(CamelModel):
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    remote: bool = False


class JobLocationResponse(JobLocationSchema):
    id: int


class _SalaryRangeCheck(CamelModel):
    @model_validator(mode="after")
    def check_salary_range(self):
        salary_min = getattr(self, "salary_min", None)
        salary_max = getattr(self, "salary_max", None)
        if salary_min is not None and salary_max is not None and salary_max < salary_min:
            raise ValueError("salaryMax must be greater than or equal to salaryMin")
        return self


class JobCreateRequest(_SalaryRangeCheck):
    """Schema for posting a new job. New jobs always start pending approval."""

    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=50, max_length=5000)
    requirements: str = Field(..., min_length=20, max_length=3000)
    locations: list[JobLocationSchema] = Field(default_factory=list)
    salary_min: Optional[int] = Field(None, ge=0)
    salary_max: Optional[int] = Field(None, ge=0)
    salary_currency: str = Field(default="USD", min_length=3, max_length=3)
    salary_period: SalaryPeriod = SalaryPeriod.YEARLY
    job_type: JobType
    experience_level: ExperienceLevel
    skills: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    application_deadline: Optional[datetime] = None
    status: JobStatus = JobStatus.ACTIVE

    @field_validator("title", "description", "requirements", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("skills", "benefits")
    @classmethod
    def drop_blank_entries(cls, v: list[str]) -> list[str]:
        return [item.strip() for item in v if item and item.strip()]


class JobUpdateRequest(_SalaryRangeCheck):
    """
    Partial update of a job's content.

    Moderation fields and counters are not part of this schema; the
    operational status has its own endpoint.
    """

    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=50, max_length=5000)
    requirements: Optional[str] = Field(None, min_length=20, max_length=3000)
    locations: Optional[list[JobLocationSchema]] = None
    salary_min: Optional[int] = Field(None, ge=0)
    salary_max: Optional[int] = Field(None, ge=0)
    salary_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    salary_period: Optional[SalaryPeriod] = None
    job_type: Optional[JobType] = None
    experience_level: Optional[ExperienceLevel] = None
    skills: Optional[list[str]] = None
    benefits: Optional[list[str]] = None
    application_deadline: Optional[datetime] = None


class JobRejectRequest(CamelModel):
    # Blank reasons are reported by the workflow as VALIDATION_ERROR
    rejection_reason: Optional[str] = Field(None, max_length=1000)


class JobStatusRequest(CamelModel):
    status: Optional[str] = None


class JobSummary(CamelModel):
    """Job fields embedded in applications."""

    id: int
    title: str
    status: JobStatus
    approval_status: ApprovalStatus
    company_id: int
    posted_by_id: int


class JobResponse(TimestampMixin):
    id: int
    company_id: int
    posted_by_id: int
    title: str
    description: str
    requirements: str
    locations: list[JobLocationResponse] = Field(default_factory=list)
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: str
    salary_period: SalaryPeriod
    job_type: JobType
    experience_level: ExperienceLevel
    skills: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    application_deadline: Optional[datetime] = None
    status: JobStatus
    approval_status: ApprovalStatus
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    featured: bool
    applications_count: int
    views_count: int
    company: Optional[CompanySummary] = None
