"""
Job service functions for API endpoints.

Public listings, the employer's own postings and the admin moderation
workflow (approve / reject / feature / operational status).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from fastapi import BackgroundTasks
from sqlalchemy import or_, select

from api.schemas.common import PaginationParams
from api.schemas.jobs import JobCreateRequest, JobUpdateRequest
from core.integrations.email import get_notifier
from core.middleware.authorization import Action, authorize, can_transition
from core.security import AuditAction, ResourceType, log_audit_event
from core.workflow import job_approval
from core.workflow.errors import InvalidState, NotFound, ValidationError
from database.models.companies import Company
from database.models.jobs import (
    ApprovalStatus,
    ExperienceLevel,
    Job,
    JobLocation,
    JobStatus,
    JobType,
)
from database.models.users import User
from database.store import EntityStore

logger = logging.getLogger(__name__)

# Columns an explicit null in an update must not clear
REQUIRED_JOB_FIELDS = frozenset(
    {
        "title",
        "description",
        "requirements",
        "salary_currency",
        "salary_period",
        "job_type",
        "experience_level",
        "skills",
        "benefits",
    }
)


@dataclass
class JobFilters:
    """Filters accepted by the public job listing."""

    search: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[JobType] = None
    experience_level: Optional[ExperienceLevel] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    remote: Optional[bool] = None
    featured: Optional[bool] = None


async def _load_job(store: EntityStore, job_id: int) -> Job:
    job = await store.get(Job, job_id)
    if job is None:
        raise NotFound.for_resource("Job", job_id)
    return job


async def list_public_jobs(
    store: EntityStore, filters: JobFilters, pagination: PaginationParams
) -> tuple[Sequence[Job], int]:
    """Approved, active jobs; featured first, then newest."""
    query = select(Job).where(
        Job.approval_status == ApprovalStatus.APPROVED.value,
        Job.status == JobStatus.ACTIVE.value,
    )

    if filters.search:
        term = f"%{filters.search.strip()}%"
        query = query.where(
            or_(
                Job.title.ilike(term),
                Job.description.ilike(term),
                Job.requirements.ilike(term),
            )
        )
    if filters.location:
        term = f"%{filters.location.strip()}%"
        query = query.where(
            Job.locations.any(
                or_(
                    JobLocation.city.ilike(term),
                    JobLocation.state.ilike(term),
                    JobLocation.country.ilike(term),
                )
            )
        )
    if filters.job_type:
        query = query.where(Job.job_type == filters.job_type.value)
    if filters.experience_level:
        query = query.where(Job.experience_level == filters.experience_level.value)
    if filters.salary_min is not None:
        query = query.where(Job.salary_min >= filters.salary_min)
    if filters.salary_max is not None:
        query = query.where(Job.salary_max <= filters.salary_max)
    if filters.remote:
        query = query.where(Job.locations.any(JobLocation.remote.is_(True)))
    if filters.featured:
        query = query.where(Job.featured.is_(True))

    query = query.order_by(Job.featured.desc(), Job.created_at.desc(), Job.id.desc())
    return await store.paginate(query, pagination.offset, pagination.page_size)


async def list_pending_jobs(
    store: EntityStore, pagination: PaginationParams
) -> tuple[Sequence[Job], int]:
    """Admin moderation queue, newest first."""
    query = (
        select(Job)
        .where(Job.approval_status == ApprovalStatus.PENDING.value)
        .order_by(Job.created_at.desc(), Job.id.desc())
    )
    return await store.paginate(query, pagination.offset, pagination.page_size)


async def list_my_jobs(
    store: EntityStore, actor: User, pagination: PaginationParams
) -> tuple[Sequence[Job], int]:
    """Jobs posted by ``actor`` in any approval state."""
    query = (
        select(Job)
        .where(Job.posted_by_id == actor.id)
        .order_by(Job.created_at.desc(), Job.id.desc())
    )
    return await store.paginate(query, pagination.offset, pagination.page_size)


async def get_job(store: EntityStore, actor: Optional[User], job_id: int) -> Job:
    """
    Job detail. Counts a view with a single atomic update.

    Jobs that are not approved yet (or were rejected) only exist for their
    poster and admins; everyone else gets ``NotFound``.
    """
    job = await _load_job(store, job_id)

    if job.approval_status != ApprovalStatus.APPROVED:
        if actor is None or not can_transition(actor, job, Action.JOB_VIEW_UNAPPROVED).allowed:
            raise NotFound.for_resource("Job", job_id)

    await store.increment(Job, job.id, "views_count", 1)
    await store.commit()
    await store.refresh(job, ["views_count"])
    return job


def _build_locations(locations) -> list[JobLocation]:
    return [JobLocation(**location.model_dump()) for location in locations]


async def create_job(
    store: EntityStore,
    actor: User,
    data: JobCreateRequest,
    request_id: Optional[str] = None,
) -> Job:
    """
    Post a job for the caller's company. New jobs always await approval.

    Raises:
        InvalidState: the caller has no (active) company profile
    """
    company = await store.find_one(select(Company).where(Company.owner_id == actor.id))
    if company is None:
        raise InvalidState("Create a company profile before posting jobs")
    if not company.is_active:
        raise InvalidState("Your company profile is deactivated")

    values = data.model_dump(exclude={"locations"})
    job = Job(
        **values,
        company_id=company.id,
        posted_by_id=actor.id,
        locations=_build_locations(data.locations),
        approval_status=ApprovalStatus.PENDING,
        featured=False,
        applications_count=0,
        views_count=0,
    )
    store.add(job)
    await store.commit()
    await store.refresh(job)

    logger.info(f"Job {job.id} posted by user {actor.id} for company {company.id}")
    await log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=actor.id,
        request_id=request_id,
        details={"company_id": company.id, "title": job.title},
    )
    return job


async def update_job(
    store: EntityStore,
    actor: User,
    job_id: int,
    data: JobUpdateRequest,
    request_id: Optional[str] = None,
) -> Job:
    """Partial update of a job's content (poster or admin)."""
    job = await _load_job(store, job_id)
    authorize(actor, job, Action.JOB_UPDATE)

    changes = data.model_dump(exclude_unset=True, exclude={"locations"})

    salary_min = changes.get("salary_min", job.salary_min)
    salary_max = changes.get("salary_max", job.salary_max)
    if salary_min is not None and salary_max is not None and salary_max < salary_min:
        raise ValidationError.for_field(
            "salaryMax", "salaryMax must be greater than or equal to salaryMin"
        )

    for field, value in changes.items():
        if value is None and field in REQUIRED_JOB_FIELDS:
            continue
        setattr(job, field, value)

    if "locations" in data.model_fields_set and data.locations is not None:
        job.locations = _build_locations(data.locations)

    await store.commit()
    await store.refresh(job)

    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=actor.id,
        request_id=request_id,
        details={"fields": sorted(changes)},
    )
    return job


async def delete_job(
    store: EntityStore,
    actor: User,
    job_id: int,
    request_id: Optional[str] = None,
) -> None:
    """Delete a job together with its applications (poster or admin)."""
    job = await _load_job(store, job_id)
    authorize(actor, job, Action.JOB_DELETE)

    await store.delete(job)
    await store.commit()

    logger.info(f"Job {job_id} deleted by user {actor.id}")
    await log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.JOB,
        resource_id=job_id,
        user_id=actor.id,
        request_id=request_id,
    )


async def _notify_poster(
    store: EntityStore,
    background_tasks: Optional[BackgroundTasks],
    job: Job,
    approved: bool,
) -> None:
    if background_tasks is None:
        return
    poster = await store.get(User, job.posted_by_id)
    if poster is None:
        return
    background_tasks.add_task(
        get_notifier().job_moderated,
        poster.email,
        poster.full_name,
        job.title,
        approved,
        job.rejection_reason,
    )


async def approve_job(
    store: EntityStore,
    actor: User,
    job_id: int,
    background_tasks: Optional[BackgroundTasks] = None,
    request_id: Optional[str] = None,
) -> Job:
    """
    Approve a pending job (admin).

    Raises:
        InvalidState: the job was already approved or rejected
    """
    job = await _load_job(store, job_id)
    authorize(actor, job, Action.JOB_APPROVE)

    job_approval.approve(job)
    await store.commit()
    await store.refresh(job)

    await log_audit_event(
        action=AuditAction.APPROVE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=actor.id,
        request_id=request_id,
    )
    await _notify_poster(store, background_tasks, job, approved=True)
    return job


async def reject_job(
    store: EntityStore,
    actor: User,
    job_id: int,
    reason: Optional[str],
    background_tasks: Optional[BackgroundTasks] = None,
    request_id: Optional[str] = None,
) -> Job:
    """
    Reject a pending job with a reason (admin).

    Raises:
        ValidationError: blank reason
        InvalidState: the job was already approved or rejected
    """
    job = await _load_job(store, job_id)
    authorize(actor, job, Action.JOB_REJECT)

    job_approval.reject(job, reason)
    await store.commit()
    await store.refresh(job)

    await log_audit_event(
        action=AuditAction.REJECT,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=actor.id,
        request_id=request_id,
        details={"reason": job.rejection_reason},
    )
    await _notify_poster(store, background_tasks, job, approved=False)
    return job


async def set_job_status(
    store: EntityStore,
    actor: User,
    job_id: int,
    new_status: Optional[str],
    request_id: Optional[str] = None,
) -> Job:
    """Change the operational status (poster or admin)."""
    job = await _load_job(store, job_id)
    authorize(actor, job, Action.JOB_SET_STATUS)

    previous = JobStatus(job.status).value
    job_approval.set_status(job, new_status or "")
    await store.commit()
    await store.refresh(job)

    await log_audit_event(
        action=AuditAction.STATUS_CHANGE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=actor.id,
        request_id=request_id,
        details={"from": previous, "to": JobStatus(job.status).value},
    )
    return job


async def toggle_featured(
    store: EntityStore,
    actor: User,
    job_id: int,
    request_id: Optional[str] = None,
) -> Job:
    """Flip the featured flag (admin)."""
    job = await _load_job(store, job_id)
    authorize(actor, job, Action.JOB_FEATURE)

    job_approval.toggle_featured(job)
    await store.commit()
    await store.refresh(job)

    await log_audit_event(
        action=AuditAction.FEATURE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=actor.id,
        request_id=request_id,
        details={"featured": job.featured},
    )
    return job
