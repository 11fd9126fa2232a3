"""
Job posting endpoints.

Listings and job detail are public; posting and editing need an employer
account, moderation needs an admin.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request, status

from api.dependencies import (
    get_current_user,
    get_pagination_params,
    get_store,
    require_admin,
    require_employer,
    require_employer_or_admin,
)
from api.schemas.common import MessageResponse, PaginatedResponse, PaginationParams
from api.schemas.jobs import (
    JobCreateRequest,
    JobRejectRequest,
    JobResponse,
    JobStatusRequest,
    JobUpdateRequest,
)
from api.services import jobs as job_service
from core.security import generate_request_id
from database.models.jobs import ExperienceLevel, JobType
from database.models.users import User
from database.store import EntityStore

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _page(items, total: int, pagination: PaginationParams) -> PaginatedResponse[JobResponse]:
    return PaginatedResponse[JobResponse].create(
        items=[JobResponse.model_validate(job) for job in items],
        total=total,
        pagination=pagination,
    )


@router.get(
    "",
    response_model=PaginatedResponse[JobResponse],
    summary="Search jobs",
    description="Approved, active jobs. Featured jobs come first, then the newest.",
)
async def list_jobs(
    search: Optional[str] = Query(None, max_length=100),
    location: Optional[str] = Query(None, max_length=100),
    job_type: Optional[JobType] = Query(None, alias="jobType"),
    experience_level: Optional[ExperienceLevel] = Query(None, alias="experienceLevel"),
    salary_min: Optional[int] = Query(None, alias="salaryMin", ge=0),
    salary_max: Optional[int] = Query(None, alias="salaryMax", ge=0),
    remote: Optional[bool] = Query(None),
    featured: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(get_pagination_params),
    store: EntityStore = Depends(get_store),
) -> PaginatedResponse[JobResponse]:
    filters = job_service.JobFilters(
        search=search,
        location=location,
        job_type=job_type,
        experience_level=experience_level,
        salary_min=salary_min,
        salary_max=salary_max,
        remote=remote,
        featured=featured,
    )
    items, total = await job_service.list_public_jobs(store, filters, pagination)
    return _page(items, total, pagination)


@router.get(
    "/pending",
    response_model=PaginatedResponse[JobResponse],
    summary="Pending jobs",
    description="Moderation queue of jobs awaiting approval (admin only).",
)
async def list_pending_jobs(
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> PaginatedResponse[JobResponse]:
    items, total = await job_service.list_pending_jobs(store, pagination)
    return _page(items, total, pagination)


@router.get(
    "/my-jobs",
    response_model=PaginatedResponse[JobResponse],
    summary="My jobs",
    description="Jobs posted by the caller, whatever their approval state.",
)
async def list_my_jobs(
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(require_employer_or_admin),
    store: EntityStore = Depends(get_store),
) -> PaginatedResponse[JobResponse]:
    items, total = await job_service.list_my_jobs(store, current_user, pagination)
    return _page(items, total, pagination)


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job",
    description="Job detail. Unapproved jobs are only visible to their poster and admins.",
)
async def get_job(
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: Optional[User] = Depends(get_current_user),
    store: EntityStore = Depends(get_store),
) -> JobResponse:
    job = await job_service.get_job(store, current_user, job_id)
    return JobResponse.model_validate(job)


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a job",
    description="Create a job for the caller's company. It stays pending until an admin approves it.",
)
async def create_job(
    request: Request,
    payload: JobCreateRequest,
    current_user: User = Depends(require_employer),
    store: EntityStore = Depends(get_store),
) -> JobResponse:
    job = await job_service.create_job(
        store, current_user, payload, request_id=generate_request_id(request)
    )
    return JobResponse.model_validate(job)


@router.put(
    "/{job_id}",
    response_model=JobResponse,
    summary="Update job",
    description="Update a job's content. Only its poster or an admin.",
)
async def update_job(
    request: Request,
    payload: JobUpdateRequest,
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_employer_or_admin),
    store: EntityStore = Depends(get_store),
) -> JobResponse:
    job = await job_service.update_job(
        store, current_user, job_id, payload, request_id=generate_request_id(request)
    )
    return JobResponse.model_validate(job)


@router.delete(
    "/{job_id}",
    response_model=MessageResponse,
    summary="Delete job",
    description="Delete a job and its applications. Only its poster or an admin.",
)
async def delete_job(
    request: Request,
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_employer_or_admin),
    store: EntityStore = Depends(get_store),
) -> MessageResponse:
    await job_service.delete_job(
        store, current_user, job_id, request_id=generate_request_id(request)
    )
    return MessageResponse(message="Job deleted successfully")


@router.patch(
    "/{job_id}/approve",
    response_model=JobResponse,
    summary="Approve job",
    description="Approve a pending job (admin only).",
)
async def approve_job(
    request: Request,
    background_tasks: BackgroundTasks,
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> JobResponse:
    job = await job_service.approve_job(
        store,
        current_user,
        job_id,
        background_tasks=background_tasks,
        request_id=generate_request_id(request),
    )
    return JobResponse.model_validate(job)


@router.patch(
    "/{job_id}/reject",
    response_model=JobResponse,
    summary="Reject job",
    description="Reject a pending job with a reason (admin only).",
)
async def reject_job(
    request: Request,
    payload: JobRejectRequest,
    background_tasks: BackgroundTasks,
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> JobResponse:
    job = await job_service.reject_job(
        store,
        current_user,
        job_id,
        payload.rejection_reason,
        background_tasks=background_tasks,
        request_id=generate_request_id(request),
    )
    return JobResponse.model_validate(job)


@router.patch(
    "/{job_id}/status",
    response_model=JobResponse,
    summary="Set job status",
    description="Set the operational status: draft, active, paused or closed.",
)
async def set_job_status(
    request: Request,
    payload: JobStatusRequest,
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_employer_or_admin),
    store: EntityStore = Depends(get_store),
) -> JobResponse:
    job = await job_service.set_job_status(
        store, current_user, job_id, payload.status, request_id=generate_request_id(request)
    )
    return JobResponse.model_validate(job)


@router.patch(
    "/{job_id}/feature",
    response_model=JobResponse,
    summary="Toggle featured",
    description="Feature or un-feature a job (admin only).",
)
async def toggle_featured(
    request: Request,
    job_id: int = Path(..., ge=1, description="Job ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> JobResponse:
    job = await job_service.toggle_featured(
        store, current_user, job_id, request_id=generate_request_id(request)
    )
    return JobResponse.model_validate(job)
