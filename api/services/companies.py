"""
Company service functions for API endpoints.

Each employer owns at most one company. The owner check happens up front
for a friendly error; the unique ``owner_id`` column settles races.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from api.schemas.common import PaginationParams
from api.schemas.companies import (
    CompanyCreateRequest,
    CompanyUpdateRequest,
    LogoReference,
)
from core.middleware.authorization import Action, authorize
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import now
from core.utils.validators import sanitize_filename
from core.workflow.errors import DuplicateCompany, NotFound
from database.models.companies import Company, CompanySize
from database.models.users import User, UserRole
from database.store import EntityStore

logger = logging.getLogger(__name__)


async def _load_company(store: EntityStore, company_id: int) -> Company:
    company = await store.get(Company, company_id)
    if company is None:
        raise NotFound.for_resource("Company", company_id)
    return company


async def list_companies(
    store: EntityStore,
    pagination: PaginationParams,
    industry: Optional[str] = None,
    size: Optional[CompanySize] = None,
    search: Optional[str] = None,
) -> tuple[Sequence[Company], int]:
    """Active companies, newest first."""
    query = select(Company).where(Company.is_active.is_(True))
    if industry:
        query = query.where(Company.industry.ilike(f"%{industry.strip()}%"))
    if size:
        query = query.where(Company.size == size.value)
    if search:
        term = f"%{search.strip()}%"
        query = query.where(or_(Company.name.ilike(term), Company.description.ilike(term)))
    query = query.order_by(Company.created_at.desc(), Company.id.desc())
    return await store.paginate(query, pagination.offset, pagination.page_size)


async def get_company(
    store: EntityStore, actor: Optional[User], company_id: int
) -> Company:
    """Company detail; deactivated companies are only visible to their owner and admins."""
    company = await _load_company(store, company_id)
    if not company.is_active:
        is_owner = actor is not None and actor.id == company.owner_id
        is_admin = actor is not None and actor.role == UserRole.ADMIN
        if not (is_owner or is_admin):
            raise NotFound.for_resource("Company", company_id)
    return company


async def get_owned_company(store: EntityStore, owner: User) -> Optional[Company]:
    return await store.find_one(select(Company).where(Company.owner_id == owner.id))


async def create_company(
    store: EntityStore,
    owner: User,
    data: CompanyCreateRequest,
    request_id: Optional[str] = None,
) -> Company:
    """
    Create the caller's company profile.

    Raises:
        DuplicateCompany: the caller already owns a company
    """
    if await get_owned_company(store, owner) is not None:
        raise DuplicateCompany()

    values = data.model_dump()
    if data.headquarters is not None:
        values["headquarters"] = data.headquarters.model_dump(by_alias=True, exclude_none=True)

    company = Company(**values, owner_id=owner.id, verified=False, is_active=True)
    store.add(company)
    try:
        await store.commit()
    except IntegrityError as e:
        raise DuplicateCompany() from e
    await store.refresh(company)

    logger.info(f"Company {company.id} created by user {owner.id}")
    await log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.COMPANY,
        resource_id=company.id,
        user_id=owner.id,
        request_id=request_id,
        details={"name": company.name},
    )
    return company


async def update_company(
    store: EntityStore,
    actor: User,
    company_id: int,
    data: CompanyUpdateRequest,
    request_id: Optional[str] = None,
) -> Company:
    """Partial update (owner only)."""
    company = await _load_company(store, company_id)
    authorize(actor, company, Action.COMPANY_UPDATE)

    changes = data.model_dump(exclude_unset=True)
    if "headquarters" in changes and data.headquarters is not None:
        changes["headquarters"] = data.headquarters.model_dump(by_alias=True, exclude_none=True)
    if changes.get("name") is None:
        changes.pop("name", None)

    for field, value in changes.items():
        setattr(company, field, value)

    await store.commit()
    await store.refresh(company)

    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.COMPANY,
        resource_id=company.id,
        user_id=actor.id,
        request_id=request_id,
        details={"fields": sorted(changes)},
    )
    return company


async def delete_company(
    store: EntityStore,
    actor: User,
    company_id: int,
    request_id: Optional[str] = None,
) -> None:
    """Delete a company; its jobs (and their applications) go with it."""
    company = await _load_company(store, company_id)
    authorize(actor, company, Action.COMPANY_DELETE)

    await store.delete(company)
    await store.commit()

    logger.info(f"Company {company_id} deleted by user {actor.id}")
    await log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.COMPANY,
        resource_id=company_id,
        user_id=actor.id,
        request_id=request_id,
    )


async def upload_logo(
    store: EntityStore,
    actor: User,
    company_id: int,
    logo: LogoReference,
    request_id: Optional[str] = None,
) -> Company:
    """Record the logo's metadata (owner only)."""
    company = await _load_company(store, company_id)
    authorize(actor, company, Action.COMPANY_UPLOAD_LOGO)

    company.logo = {
        "filename": sanitize_filename(logo.filename),
        "url": logo.url,
        "uploadedAt": (logo.uploaded_at or now()).isoformat(),
    }
    await store.commit()
    await store.refresh(company)

    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.COMPANY,
        resource_id=company.id,
        user_id=actor.id,
        request_id=request_id,
        details={"logo": company.logo["filename"]},
    )
    return company


async def verify_company(
    store: EntityStore,
    actor: User,
    company_id: int,
    verified: bool = True,
    request_id: Optional[str] = None,
) -> Company:
    """Set the verified badge (admin)."""
    company = await _load_company(store, company_id)
    authorize(actor, company, Action.COMPANY_VERIFY)

    company.verified = verified
    await store.commit()
    await store.refresh(company)

    await log_audit_event(
        action=AuditAction.VERIFY,
        resource_type=ResourceType.COMPANY,
        resource_id=company.id,
        user_id=actor.id,
        request_id=request_id,
        details={"verified": verified},
    )
    return company


async def set_company_status(
    store: EntityStore,
    actor: User,
    company_id: int,
    is_active: bool,
    request_id: Optional[str] = None,
) -> Company:
    """Activate or deactivate a company (admin)."""
    company = await _load_company(store, company_id)
    authorize(actor, company, Action.COMPANY_SET_STATUS)

    company.is_active = is_active
    await store.commit()
    await store.refresh(company)

    await log_audit_event(
        action=AuditAction.STATUS_CHANGE,
        resource_type=ResourceType.COMPANY,
        resource_id=company.id,
        user_id=actor.id,
        request_id=request_id,
        details={"is_active": is_active},
    )
    return company
