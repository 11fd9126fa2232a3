"""
User service functions for API endpoints.

Self-service profile management and the admin user-management actions.
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import or_, select

from api.schemas.common import PaginationParams
from api.schemas.users import ProfileUpdateRequest, VisibilityUpdateRequest
from core.middleware.authorization import Action, authorize
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.validators import validate_phone
from core.workflow.errors import InvalidState, NotFound, ValidationError
from database.models.applications import Application
from database.models.jobs import Job
from database.models.users import ProfileVisibility, User, UserRole
from database.store import EntityStore

logger = logging.getLogger(__name__)

# Keys a user may set on their own profile; anything else is dropped
PROFILE_KEYS = frozenset(
    {
        "title",
        "summary",
        "experience",
        "education",
        "skills",
        "location",
        "phone",
        "website",
        "linkedin",
        "github",
        "youtube",
        "isFreelancer",
        "freelanceCompany",
        "profileVisibility",
    }
)


def _clean_experience(entries: Any) -> list[dict[str, Any]]:
    """Keep entries with a position and a company; normalize their keys."""
    cleaned = []
    for entry in entries or []:
        if not isinstance(entry, dict) or not entry.get("position") or not entry.get("company"):
            continue
        current = bool(entry.get("current"))
        item = {
            "company": entry["company"],
            "position": entry["position"],
            "startDate": entry.get("startDate") or None,
            "endDate": None if current else entry.get("endDate") or None,
            "current": current,
            "description": entry.get("description") or None,
        }
        cleaned.append({k: v for k, v in item.items() if v is not None})
    return cleaned


def _clean_education(entries: Any) -> list[dict[str, Any]]:
    """Keep entries with a degree and an institution; normalize their keys."""
    cleaned = []
    for entry in entries or []:
        if not isinstance(entry, dict) or not entry.get("degree") or not entry.get("institution"):
            continue
        current = bool(entry.get("current"))
        item = {
            "institution": entry["institution"],
            "degree": entry["degree"],
            "field": entry.get("field") or None,
            "startDate": entry.get("startDate") or None,
            "endDate": None if current else entry.get("endDate") or None,
            "current": current,
        }
        cleaned.append({k: v for k, v in item.items() if v is not None})
    return cleaned


def merge_profile(current: Optional[dict[str, Any]], data: ProfileUpdateRequest) -> dict[str, Any]:
    """
    Merge a profile update into ``current`` and return the new profile.

    Only ``PROFILE_KEYS`` are copied. ``phone`` / ``mobileNumber`` /
    ``location`` sent at the root level (or ``mobileNumber`` inside the
    profile) fill in for missing profile keys. Experience and education
    entries missing their required keys are dropped, and a location with no
    city, state or country is ignored.

    Raises:
        ValidationError: invalid phone number or visibility value
    """
    incoming = dict(data.profile or {})
    if not incoming.get("phone") and incoming.get("mobileNumber"):
        incoming["phone"] = incoming["mobileNumber"]
    if not incoming.get("phone") and data.phone:
        incoming["phone"] = data.phone
    if not incoming.get("phone") and data.mobile_number:
        incoming["phone"] = data.mobile_number
    if not incoming.get("location") and data.location:
        incoming["location"] = data.location

    filtered = {key: value for key, value in incoming.items() if key in PROFILE_KEYS}

    if "experience" in filtered:
        filtered["experience"] = _clean_experience(filtered["experience"])
    if "education" in filtered:
        filtered["education"] = _clean_education(filtered["education"])

    if "location" in filtered:
        location = filtered["location"] if isinstance(filtered["location"], dict) else {}
        location = {
            key: location[key]
            for key in ("city", "state", "country")
            if location.get(key)
        }
        if location:
            filtered["location"] = location
        else:
            del filtered["location"]

    if filtered.get("phone"):
        is_valid, error = validate_phone(str(filtered["phone"]))
        if not is_valid:
            raise ValidationError.for_field("phone", error)

    if "profileVisibility" in filtered:
        try:
            filtered["profileVisibility"] = ProfileVisibility(filtered["profileVisibility"]).value
        except ValueError:
            allowed = ", ".join(v.value for v in ProfileVisibility)
            raise ValidationError.for_field(
                "profileVisibility", f"Profile visibility must be one of: {allowed}"
            )

    return {**(current or {}), **filtered}


async def _load_user(store: EntityStore, user_id: int) -> User:
    user = await store.get(User, user_id)
    if user is None:
        raise NotFound.for_resource("User", user_id)
    return user


async def get_profile(store: EntityStore, user: User) -> User:
    return await _load_user(store, user.id)


async def update_profile(
    store: EntityStore,
    user: User,
    data: ProfileUpdateRequest,
    request_id: Optional[str] = None,
) -> User:
    """Apply a whitelisted profile update. An empty payload changes nothing."""
    account = await _load_user(store, user.id)

    has_root_aliases = bool(data.phone or data.mobile_number or data.location)
    if not data.profile and not has_root_aliases:
        return account

    # Reassign so the JSON column is flagged dirty
    account.profile = merge_profile(account.profile, data)
    await store.commit()
    await store.refresh(account)

    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.USER,
        resource_id=account.id,
        user_id=account.id,
        request_id=request_id,
        details={"profile_keys": sorted(account.profile)},
    )
    return account


async def update_visibility(
    store: EntityStore,
    user: User,
    data: VisibilityUpdateRequest,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Set profile visibility and the freelancer flags; returns the profile."""
    account = await _load_user(store, user.id)
    account.profile = {
        **(account.profile or {}),
        "profileVisibility": data.visibility.value,
        "isFreelancer": data.is_freelancer,
        "freelanceCompany": data.freelance_company,
    }
    await store.commit()
    await store.refresh(account)

    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.USER,
        resource_id=account.id,
        user_id=account.id,
        request_id=request_id,
        details={"profileVisibility": data.visibility.value},
    )
    return account.profile


async def list_users(
    store: EntityStore,
    pagination: PaginationParams,
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
) -> tuple[Sequence[User], int]:
    """Admin listing with optional role filter and name/email search."""
    query = select(User)
    if role:
        query = query.where(User.role == role.value)
    if search:
        term = f"%{search.strip()}%"
        query = query.where(
            or_(User.first_name.ilike(term), User.last_name.ilike(term), User.email.ilike(term))
        )
    query = query.order_by(User.created_at.desc(), User.id.desc())
    return await store.paginate(query, pagination.offset, pagination.page_size)


async def list_volunteers(store: EntityStore) -> Sequence[User]:
    return await store.find(
        select(User)
        .where(User.role == UserRole.VOLUNTEER.value)
        .order_by(User.created_at.desc(), User.id.desc())
    )


async def _load_managed_user(store: EntityStore, actor: User, user_id: int) -> User:
    user = await _load_user(store, user_id)
    authorize(actor, user, Action.USER_MANAGE)
    return user


async def approve_volunteer(
    store: EntityStore,
    actor: User,
    user_id: int,
    approved: bool = True,
    request_id: Optional[str] = None,
) -> User:
    """
    Approve or revoke a volunteer.

    Raises:
        InvalidState: the user is not a volunteer
    """
    user = await _load_managed_user(store, actor, user_id)
    if user.role != UserRole.VOLUNTEER:
        raise InvalidState("User is not a volunteer", {"role": UserRole(user.role).value})

    user.is_volunteer_approved = approved
    await store.commit()
    await store.refresh(user)

    await log_audit_event(
        action=AuditAction.APPROVE if approved else AuditAction.REJECT,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=actor.id,
        request_id=request_id,
    )
    return user


async def update_role(
    store: EntityStore,
    actor: User,
    user_id: int,
    role: UserRole,
    request_id: Optional[str] = None,
) -> User:
    """
    Change a user's role (admin).

    Raises:
        InvalidState: an admin tried to change their own role
    """
    user = await _load_managed_user(store, actor, user_id)
    if user.id == actor.id:
        raise InvalidState("You cannot change your own role")

    previous = UserRole(user.role).value
    user.role = role
    await store.commit()
    await store.refresh(user)

    await log_audit_event(
        action=AuditAction.ROLE_CHANGE,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=actor.id,
        request_id=request_id,
        details={"from": previous, "to": role.value},
    )
    return user


async def set_user_status(
    store: EntityStore,
    actor: User,
    user_id: int,
    is_active: bool,
    request_id: Optional[str] = None,
) -> User:
    """Activate or deactivate an account (admin, never their own)."""
    user = await _load_managed_user(store, actor, user_id)
    if user.id == actor.id:
        raise InvalidState("You cannot change the status of your own account")

    user.is_active = is_active
    await store.commit()
    await store.refresh(user)

    await log_audit_event(
        action=AuditAction.STATUS_CHANGE,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=actor.id,
        request_id=request_id,
        details={"is_active": is_active},
    )
    return user


async def delete_user(
    store: EntityStore,
    actor: User,
    user_id: int,
    request_id: Optional[str] = None,
) -> None:
    """
    Hard-delete an account (admin).

    The user's applications disappear with it, so each job they applied to
    gets its ``applications_count`` decremented in the same transaction.
    Companies and jobs owned by the user are removed by the database
    cascades.
    """
    user = await _load_managed_user(store, actor, user_id)
    if user.id == actor.id:
        raise InvalidState("You cannot delete your own account")

    job_ids = await store.find(
        select(Application.job_id).where(Application.applicant_id == user.id)
    )
    for job_id in job_ids:
        await store.increment(Job, job_id, "applications_count", -1, floor=0)

    await store.delete(user)
    await store.commit()

    logger.info(f"User {user_id} deleted by admin {actor.id}")
    await log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        user_id=actor.id,
        request_id=request_id,
        details={"applications_removed": len(job_ids)},
    )
