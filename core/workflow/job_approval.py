"""
Job approval state machine.

Two orthogonal axes live on a job:

* approval (admin moderation): ``pending -> approved | rejected``; both
  outcomes are terminal.
* operational status: any of ``draft | active | paused | closed``, set
  freely by the poster or an admin.

The functions below validate and mutate the job in memory only; callers
are responsible for authorization and for persisting the result.
"""

import logging
from datetime import datetime

from core.utils.datetime import now as utc_now
from core.workflow.errors import InvalidState, ValidationError
from database.models.jobs import ApprovalStatus, Job, JobStatus

logger = logging.getLogger(__name__)


def approve(job: Job, now: datetime | None = None) -> Job:
    """
    Approve a pending job.

    Raises:
        InvalidState: job is not pending (already approved or rejected)
    """
    if job.approval_status != ApprovalStatus.PENDING:
        current = ApprovalStatus(job.approval_status).value
        raise InvalidState(f"Job is already {current}", {"approvalStatus": current})

    job.approval_status = ApprovalStatus.APPROVED
    job.approved_at = now or utc_now()
    job.rejection_reason = None
    logger.debug("Job %s approved", job.id)
    return job


def reject(job: Job, reason: str | None) -> Job:
    """
    Reject a pending job with a reason.

    The reason is checked before the state so an empty reason is always a
    validation problem, whatever state the job is in.

    Raises:
        ValidationError: reason is missing or blank
        InvalidState: job is not pending
    """
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError.for_field("rejectionReason", "Rejection reason is required")

    if job.approval_status != ApprovalStatus.PENDING:
        current = ApprovalStatus(job.approval_status).value
        raise InvalidState(f"Job is already {current}", {"approvalStatus": current})

    job.approval_status = ApprovalStatus.REJECTED
    job.rejection_reason = cleaned
    logger.debug("Job %s rejected", job.id)
    return job


def set_status(job: Job, new_status: str) -> Job:
    """
    Set the operational status. No ordering is imposed on this axis.

    Raises:
        ValidationError: unknown status value
    """
    try:
        status = JobStatus(new_status)
    except ValueError:
        allowed = ", ".join(s.value for s in JobStatus)
        raise ValidationError.for_field("status", f"Status must be one of: {allowed}")

    job.status = status
    return job


def toggle_featured(job: Job) -> Job:
    """Flip the featured flag."""
    job.featured = not job.featured
    return job
