"""Company profile endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status

from api.dependencies import (
    get_current_user,
    get_pagination_params,
    get_store,
    require_admin,
    require_employer,
)
from api.schemas.common import MessageResponse, PaginatedResponse, PaginationParams
from api.schemas.companies import (
    CompanyCreateRequest,
    CompanyResponse,
    CompanyStatusRequest,
    CompanyUpdateRequest,
    CompanyVerifyRequest,
    LogoReference,
)
from api.services import companies as company_service
from core.security import generate_request_id
from database.models.companies import CompanySize
from database.models.users import User
from database.store import EntityStore

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get(
    "",
    response_model=PaginatedResponse[CompanyResponse],
    summary="List companies",
    description="Active companies, filterable by industry, size and name.",
)
async def list_companies(
    industry: Optional[str] = Query(None, max_length=100),
    size: Optional[CompanySize] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(get_pagination_params),
    store: EntityStore = Depends(get_store),
) -> PaginatedResponse[CompanyResponse]:
    items, total = await company_service.list_companies(
        store, pagination, industry=industry, size=size, search=search
    )
    return PaginatedResponse[CompanyResponse].create(
        items=[CompanyResponse.model_validate(c) for c in items],
        total=total,
        pagination=pagination,
    )


@router.get(
    "/{company_id}",
    response_model=CompanyResponse,
    summary="Get company",
)
async def get_company(
    company_id: int = Path(..., ge=1, description="Company ID"),
    current_user: Optional[User] = Depends(get_current_user),
    store: EntityStore = Depends(get_store),
) -> CompanyResponse:
    company = await company_service.get_company(store, current_user, company_id)
    return CompanyResponse.model_validate(company)


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create company",
    description="Create the caller's company profile. Each employer can own one company.",
)
async def create_company(
    request: Request,
    payload: CompanyCreateRequest,
    current_user: User = Depends(require_employer),
    store: EntityStore = Depends(get_store),
) -> CompanyResponse:
    company = await company_service.create_company(
        store, current_user, payload, request_id=generate_request_id(request)
    )
    return CompanyResponse.model_validate(company)


@router.put(
    "/{company_id}",
    response_model=CompanyResponse,
    summary="Update company",
    description="Update the company profile (owner only).",
)
async def update_company(
    request: Request,
    payload: CompanyUpdateRequest,
    company_id: int = Path(..., ge=1, description="Company ID"),
    current_user: User = Depends(require_employer),
    store: EntityStore = Depends(get_store),
) -> CompanyResponse:
    company = await company_service.update_company(
        store, current_user, company_id, payload, request_id=generate_request_id(request)
    )
    return CompanyResponse.model_validate(company)


@router.delete(
    "/{company_id}",
    response_model=MessageResponse,
    summary="Delete company",
    description="Delete the company and all of its jobs (owner only).",
)
async def delete_company(
    request: Request,
    company_id: int = Path(..., ge=1, description="Company ID"),
    current_user: User = Depends(require_employer),
    store: EntityStore = Depends(get_store),
) -> MessageResponse:
    await company_service.delete_company(
        store, current_user, company_id, request_id=generate_request_id(request)
    )
    return MessageResponse(message="Company deleted successfully")


@router.post(
    "/{company_id}/logo",
    response_model=CompanyResponse,
    summary="Set company logo",
    description="Record an uploaded logo's metadata (owner only).",
)
async def upload_logo(
    request: Request,
    payload: LogoReference,
    company_id: int = Path(..., ge=1, description="Company ID"),
    current_user: User = Depends(require_employer),
    store: EntityStore = Depends(get_store),
) -> CompanyResponse:
    company = await company_service.upload_logo(
        store, current_user, company_id, payload, request_id=generate_request_id(request)
    )
    return CompanyResponse.model_validate(company)


@router.patch(
    "/{company_id}/verify",
    response_model=CompanyResponse,
    summary="Verify company",
    description="Grant or revoke the verified badge (admin only).",
)
async def verify_company(
    request: Request,
    payload: Optional[CompanyVerifyRequest] = None,
    company_id: int = Path(..., ge=1, description="Company ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> CompanyResponse:
    company = await company_service.verify_company(
        store,
        current_user,
        company_id,
        verified=payload.verified if payload is not None else True,
        request_id=generate_request_id(request),
    )
    return CompanyResponse.model_validate(company)


@router.patch(
    "/{company_id}/status",
    response_model=CompanyResponse,
    summary="Set company status",
    description="Activate or deactivate a company (admin only).",
)
async def set_company_status(
    request: Request,
    payload: CompanyStatusRequest,
    company_id: int = Path(..., ge=1, description="Company ID"),
    current_user: User = Depends(require_admin),
    store: EntityStore = Depends(get_store),
) -> CompanyResponse:
    company = await company_service.set_company_status(
        store,
        current_user,
        company_id,
        is_active=payload.is_active,
        request_id=generate_request_id(request),
    )
    return CompanyResponse.model_validate(company)
