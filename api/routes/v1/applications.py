"""
Job application endpoints.

Applying and withdrawing belong to the applicant; status changes, notes
and interviews belong to the owner of the job applied to (or an admin).
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request, status

from api.dependencies import (
    get_pagination_params,
    get_store,
    get_strict_transitions,
    require_active_user,
    require_admin,
    require_employer_or_admin,
)
from api.schemas.applications import (
    ApplicationCreateRequest,
    ApplicationResponse,
    ApplicationStatusRequest,
    InterviewRequest,
    NoteCreateRequest,
)
from api.schemas.common import MessageResponse, PaginatedResponse, PaginationParams
from api.services import applications as application_service
from core.security import generate_request_id
from database.models.applications import ApplicationStatus
from database.models.users import User
from database.store import EntityStore

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to a job",
    description="Submit an application. Each user can apply to a job only once.",
)
async def create_application(
    request: Request,
    payload: ApplicationCreateRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> ApplicationResponse:
    """
    Apply to a job.

    - **jobId**: Job to apply to
    - **coverLetter**: Optional cover letter (max 2000 characters)
    - **resume**: Optional resume reference (filename, url)
    """
    application = await application_service.create_application(
        store,
        current_user,
        payload,
        background_tasks=background_tasks,
        request_id=generate_request_id(request),
    )
    return ApplicationResponse.model_validate(application)


@router.get(
    "",
    response_model=PaginatedResponse[ApplicationResponse],
    summary="List all applications",
    description="Admin listing with optional status and job filters.",
)
async def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    job_id: Optional[int] = Query(None, alias="jobId", ge=1),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> PaginatedResponse[ApplicationResponse]:
    items, total = await application_service.list_applications(
        store, pagination, status=status_filter, job_id=job_id
    )
    return PaginatedResponse[ApplicationResponse].create(
        items=[ApplicationResponse.model_validate(a) for a in items],
        total=total,
        pagination=pagination,
    )


@router.get(
    "/my-applications",
    response_model=list[ApplicationResponse],
    summary="My applications",
    description="Applications submitted by the caller, newest first.",
)
async def list_my_applications(
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> list[ApplicationResponse]:
    applications = await application_service.list_my_applications(store, current_user)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get(
    "/job/{job_id}",
    response_model=list[ApplicationResponse],
    summary="Applications for a job",
    description="Applications received by a job. Only the job's poster or an admin.",
)
async def list_job_applications(
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_employer_or_admin),
    store: EntityStore = Depends(get_store),
) -> list[ApplicationResponse]:
    applications = await application_service.list_job_applications(store, current_user, job_id)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get(
    "/{application_id}",
    response_model=ApplicationResponse,
    summary="Get application",
    description="Visible to the applicant, the job's poster and admins.",
)
async def get_application(
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> ApplicationResponse:
    application = await application_service.get_application(store, current_user, application_id)
    return ApplicationResponse.model_validate(application)


@router.delete(
    "/{application_id}",
    response_model=MessageResponse,
    summary="Withdraw application",
    description="Delete an application. Only the applicant can withdraw it.",
)
async def withdraw_application(
    request: Request,
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_active_user),
    store: EntityStore = Depends(get_store),
) -> MessageResponse:
    await application_service.withdraw_application(
        store, current_user, application_id, request_id=generate_request_id(request)
    )
    return MessageResponse(message="Application withdrawn successfully")


@router.patch(
    "/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Update application status",
    description=(
        "Move an application through pending, reviewing, shortlisted, "
        "interview-scheduled, hired or rejected."
    ),
)
async def update_application_status(
    request: Request,
    payload: ApplicationStatusRequest,
    background_tasks: BackgroundTasks,
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_employer_or_admin),
    strict: bool = Depends(get_strict_transitions),
    store: EntityStore = Depends(get_store),
) -> ApplicationResponse:
    application = await application_service.update_application_status(
        store,
        current_user,
        application_id,
        payload.status,
        strict=strict,
        background_tasks=background_tasks,
        request_id=generate_request_id(request),
    )
    return ApplicationResponse.model_validate(application)


@router.post(
    "/{application_id}/notes",
    response_model=ApplicationResponse,
    summary="Add application note",
    description="Append a note to an application. Notes cannot be edited or removed.",
)
async def add_application_note(
    request: Request,
    payload: NoteCreateRequest,
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_employer_or_admin),
    store: EntityStore = Depends(get_store),
) -> ApplicationResponse:
    application = await application_service.add_application_note(
        store,
        current_user,
        application_id,
        payload.content,
        request_id=generate_request_id(request),
    )
    return ApplicationResponse.model_validate(application)


@router.post(
    "/{application_id}/interview",
    response_model=ApplicationResponse,
    summary="Schedule interview",
    description="Schedule an interview for a shortlisted application.",
)
async def schedule_interview(
    request: Request,
    payload: InterviewRequest,
    background_tasks: BackgroundTasks,
    application_id: int = Path(..., ge=1, description="Application ID"),
    current_user: User = Depends(require_employer_or_admin),
    store: EntityStore = Depends(get_store),
) -> ApplicationResponse:
    """
    Schedule an interview.

    - **date**: Interview date, ``YYYY-MM-DD``
    - **time**: Interview time
    - **type**: phone, video or in-person
    - **location**: Optional location or meeting link
    - **notes**: Optional notes for the candidate
    """
    application = await application_service.schedule_interview(
        store,
        current_user,
        application_id,
        payload,
        background_tasks=background_tasks,
        request_id=generate_request_id(request),
    )
    return ApplicationResponse.model_validate(application)
