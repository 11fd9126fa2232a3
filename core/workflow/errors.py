"""
Workflow error taxonomy.

Every business-rule violation raised by the state machines, the
authorization gate or the services is one of these. Each carries a stable
``code`` and the HTTP status it maps to; ``core.middleware.error_handling``
turns them into the standard error body.
"""

from typing import Any


class WorkflowError(Exception):
    """Base class for job board workflow errors."""

    code: str = "WORKFLOW_ERROR"
    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(WorkflowError):
    """
    Malformed or missing input.

    ``details`` is a list of ``{"field": ..., "message": ...}`` entries, one
    per offending field.
    """

    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, details: Any = None):
        super().__init__(message, details or [])

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, [{"field": field, "message": message}])


class AccessDenied(WorkflowError):
    code = "ACCESS_DENIED"
    status_code = 403
    default_message = "You don't have permission to perform this action"


class NotFound(WorkflowError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"

    @classmethod
    def for_resource(cls, resource: str, resource_id: Any = None) -> "NotFound":
        if resource_id is None:
            return cls(f"{resource} not found")
        return cls(f"{resource} not found", {"resource": resource, "id": resource_id})


class InvalidState(WorkflowError):
    """A transition precondition is not met."""

    code = "INVALID_STATE"
    status_code = 400
    default_message = "Transition not allowed in the current state"


class DuplicateApplication(WorkflowError):
    code = "DUPLICATE_APPLICATION"
    status_code = 400
    default_message = "You have already applied for this job"


class DuplicateCompany(WorkflowError):
    code = "DUPLICATE_COMPANY"
    status_code = 400
    default_message = "You already have a company profile"


class ServerError(WorkflowError):
    """Unexpected or store-level failure. The message never carries internals."""

    code = "SERVER_ERROR"
    status_code = 500
    default_message = "An unexpected error occurred"
