from database.models.users import User, UserRole, ProfileVisibility
from database.models.companies import Company, CompanySize
from database.models.jobs import (
    Job,
    JobLocation,
    JobStatus,
    ApprovalStatus,
    JobType,
    ExperienceLevel,
    SalaryPeriod,
)
from database.models.applications import (
    Application,
    ApplicationNote,
    ApplicationStatus,
    InterviewType,
)

__all__ = [
    "User",
    "UserRole",
    "ProfileVisibility",
    "Company",
    "CompanySize",
    "Job",
    "JobLocation",
    "JobStatus",
    "ApprovalStatus",
    "JobType",
    "ExperienceLevel",
    "SalaryPeriod",
    "Application",
    "ApplicationNote",
    "ApplicationStatus",
    "InterviewType",
]
