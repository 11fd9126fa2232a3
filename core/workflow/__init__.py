from core.workflow.errors import (
    WorkflowError,
    ValidationError,
    AccessDenied,
    NotFound,
    InvalidState,
    DuplicateApplication,
    DuplicateCompany,
    ServerError,
)
from core.workflow import application_status, job_approval

__all__ = [
    "WorkflowError",
    "ValidationError",
    "AccessDenied",
    "NotFound",
    "InvalidState",
    "DuplicateApplication",
    "DuplicateCompany",
    "ServerError",
    "application_status",
    "job_approval",
]
