"""
Application service functions for API endpoints.

Each write follows the same order: load, authorize, run the state machine,
persist in one transaction, then audit and schedule the best-effort
notification. Every business-rule violation is raised before anything is
written, so a failed call leaves no partial mutation behind.
"""

import logging
from typing import Optional, Sequence

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from api.schemas.applications import ApplicationCreateRequest, InterviewRequest
from api.schemas.common import PaginationParams
from core.integrations.email import get_notifier
from core.middleware.authorization import Action, authorize, can_transition
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.validators import sanitize_filename
from core.workflow import application_status
from core.workflow.errors import DuplicateApplication, InvalidState, NotFound
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import ApprovalStatus, Job, JobStatus
from database.models.users import User
from database.store import EntityStore

logger = logging.getLogger(__name__)


async def _load_application(store: EntityStore, application_id: int) -> Application:
    application = await store.get(Application, application_id)
    if application is None:
        raise NotFound.for_resource("Application", application_id)
    return application


async def _load_job(store: EntityStore, job_id: int) -> Job:
    job = await store.get(Job, job_id)
    if job is None:
        raise NotFound.for_resource("Job", job_id)
    return job


def _company_name(job: Job) -> str:
    return job.company.name if job.company is not None else ""


async def create_application(
    store: EntityStore,
    applicant: User,
    data: ApplicationCreateRequest,
    background_tasks: Optional[BackgroundTasks] = None,
    request_id: Optional[str] = None,
) -> Application:
    """
    Apply ``applicant`` to a job.

    The application insert and the ``applications_count`` increment are
    committed together.

    Raises:
        NotFound: the job does not exist or is hidden from the applicant
        InvalidState: the job is not approved or not active
        DuplicateApplication: the applicant already applied to this job
    """
    job = await _load_job(store, data.job_id)

    # Same visibility rule as the job detail view
    if job.approval_status != ApprovalStatus.APPROVED:
        if not can_transition(applicant, job, Action.JOB_VIEW_UNAPPROVED).allowed:
            raise NotFound.for_resource("Job", job.id)
        raise InvalidState(
            "This job has not been approved",
            {"approvalStatus": ApprovalStatus(job.approval_status).value},
        )
    if job.status != JobStatus.ACTIVE:
        raise InvalidState(
            "This job is not accepting applications",
            {"status": JobStatus(job.status).value},
        )

    existing = await store.find_one(
        select(Application.id).where(
            Application.job_id == job.id,
            Application.applicant_id == applicant.id,
        )
    )
    if existing is not None:
        raise DuplicateApplication()

    resume = None
    if data.resume is not None:
        resume = data.resume.model_dump()
        resume["filename"] = sanitize_filename(resume["filename"])

    application = Application(
        job_id=job.id,
        applicant_id=applicant.id,
        cover_letter=data.cover_letter,
        resume=resume,
        status=ApplicationStatus.PENDING,
    )
    store.add(application)
    try:
        # Unique (job_id, applicant_id) is the real guard against races
        await store.flush()
    except IntegrityError as e:
        raise DuplicateApplication() from e

    await store.increment(Job, job.id, "applications_count", 1)
    try:
        await store.commit()
    except IntegrityError as e:
        raise DuplicateApplication() from e

    await store.refresh(application)
    await store.refresh(job, ["applications_count"])

    logger.info(f"User {applicant.id} applied to job {job.id} (application {application.id})")
    await log_audit_event(
        action=AuditAction.APPLY,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=applicant.id,
        request_id=request_id,
        details={"job_id": job.id},
    )

    if background_tasks is not None:
        background_tasks.add_task(
            get_notifier().application_received,
            applicant.email,
            applicant.full_name,
            job.title,
            _company_name(job),
        )
    return application


async def list_my_applications(store: EntityStore, applicant: User) -> Sequence[Application]:
    """Applications submitted by ``applicant``, newest first."""
    return await store.find(
        select(Application)
        .where(Application.applicant_id == applicant.id)
        .order_by(Application.applied_at.desc(), Application.id.desc())
    )


async def get_application(
    store: EntityStore, actor: User, application_id: int
) -> Application:
    """Single application, visible to its applicant, the job owner and admins."""
    application = await _load_application(store, application_id)
    authorize(actor, application, Action.APPLICATION_VIEW)
    return application


async def withdraw_application(
    store: EntityStore,
    actor: User,
    application_id: int,
    request_id: Optional[str] = None,
) -> None:
    """
    Delete an application on behalf of its applicant.

    The job's ``applications_count`` is decremented (never below zero) in
    the same transaction.
    """
    application = await _load_application(store, application_id)
    authorize(actor, application, Action.APPLICATION_WITHDRAW)

    job_id = application.job_id
    await store.delete(application)
    await store.increment(Job, job_id, "applications_count", -1, floor=0)
    await store.commit()

    logger.info(f"Application {application_id} withdrawn by user {actor.id}")
    await log_audit_event(
        action=AuditAction.WITHDRAW,
        resource_type=ResourceType.APPLICATION,
        resource_id=application_id,
        user_id=actor.id,
        request_id=request_id,
        details={"job_id": job_id},
    )


async def list_job_applications(
    store: EntityStore, actor: User, job_id: int
) -> Sequence[Application]:
    """Applications received by a job, newest first (job owner or admin)."""
    job = await _load_job(store, job_id)
    authorize(actor, job, Action.APPLICATION_LIST_FOR_JOB)
    return await store.find(
        select(Application)
        .where(Application.job_id == job.id)
        .order_by(Application.applied_at.desc(), Application.id.desc())
    )


async def list_applications(
    store: EntityStore,
    pagination: PaginationParams,
    status: Optional[ApplicationStatus] = None,
    job_id: Optional[int] = None,
) -> tuple[Sequence[Application], int]:
    """Admin listing with optional status / job filters."""
    query = select(Application)
    if status:
        query = query.where(Application.status == status.value)
    if job_id:
        query = query.where(Application.job_id == job_id)
    query = query.order_by(Application.applied_at.desc(), Application.id.desc())
    return await store.paginate(query, pagination.offset, pagination.page_size)


async def update_application_status(
    store: EntityStore,
    actor: User,
    application_id: int,
    new_status: Optional[str],
    strict: bool = True,
    background_tasks: Optional[BackgroundTasks] = None,
    request_id: Optional[str] = None,
) -> Application:
    """
    Move an application through the status workflow.

    Raises:
        NotFound: unknown application
        AccessDenied: caller is neither the job owner nor an admin
        ValidationError: unknown status
        InvalidState: (strict mode) transition not in the table
    """
    application = await _load_application(store, application_id)
    authorize(actor, application, Action.APPLICATION_UPDATE_STATUS)

    previous = ApplicationStatus(application.status).value
    application_status.update_status(application, new_status or "", strict=strict)
    current = ApplicationStatus(application.status).value

    await store.commit()
    await store.refresh(application)

    await log_audit_event(
        action=AuditAction.STATUS_CHANGE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=actor.id,
        request_id=request_id,
        details={"from": previous, "to": current, "strict": strict},
    )

    if background_tasks is not None and previous != current:
        applicant = application.applicant
        job = application.job
        background_tasks.add_task(
            get_notifier().status_changed,
            applicant.email,
            applicant.full_name,
            job.title,
            _company_name(job),
            current,
        )
    return application


async def add_application_note(
    store: EntityStore,
    actor: User,
    application_id: int,
    content: Optional[str],
    request_id: Optional[str] = None,
) -> Application:
    """Append a note (job owner or admin)."""
    application = await _load_application(store, application_id)
    authorize(actor, application, Action.APPLICATION_ADD_NOTE)

    application_status.add_note(application, content, actor.id)
    await store.commit()
    await store.refresh(application)

    await log_audit_event(
        action=AuditAction.ADD_NOTE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=actor.id,
        request_id=request_id,
    )
    return application


async def schedule_interview(
    store: EntityStore,
    actor: User,
    application_id: int,
    data: InterviewRequest,
    background_tasks: Optional[BackgroundTasks] = None,
    request_id: Optional[str] = None,
) -> Application:
    """
    Schedule an interview for a shortlisted application.

    Raises:
        ValidationError: date/time missing or malformed
        InvalidState: application is not shortlisted
    """
    application = await _load_application(store, application_id)
    authorize(actor, application, Action.APPLICATION_SCHEDULE_INTERVIEW)

    application_status.schedule_interview(
        application,
        date=data.date,
        time=data.time,
        type=data.type,
        location=data.location,
        notes=data.notes,
    )
    await store.commit()
    await store.refresh(application)

    await log_audit_event(
        action=AuditAction.SCHEDULE_INTERVIEW,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=actor.id,
        request_id=request_id,
        details={"date": str(application.interview_date), "time": application.interview_time},
    )

    if background_tasks is not None:
        applicant = application.applicant
        interview_type = application.interview_type
        background_tasks.add_task(
            get_notifier().interview_scheduled,
            applicant.email,
            applicant.full_name,
            application.job.title,
            application.interview_date.isoformat(),
            application.interview_time,
            interview_type.value if hasattr(interview_type, "value") else interview_type,
            application.interview_location,
        )
    return application
