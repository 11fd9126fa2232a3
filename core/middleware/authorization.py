"""
Authorization gate for job board state transitions.

This module implements:
1. ``can_transition``: pure ownership/role rules deciding whether an actor
   may perform an action on a resource
2. ``authorize``: the same decision, raising ``AccessDenied`` on deny
3. ``require_roles``: declarative route guard keyed by the required role set

Rules are evaluated in order and the first match wins:

1. admins may perform every job, application and user management action
2. job update / delete / status change: the poster only
3. job approve / reject / feature: admins only
4. application view / list / status / notes / interview: the poster of the
   job the application targets (viewing is also open to the applicant)
5. application withdrawal: the applicant only, even for admins
6. company update / delete / logo: the owner; verify / activate: admins
7. anything else is denied
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from fastapi import Request

from core.middleware.authentication import AuthenticationRequired, InactiveUserError
from core.workflow.errors import AccessDenied
from database.models.applications import Application
from database.models.companies import Company
from database.models.jobs import Job
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Actions guarded by the gate."""

    # Job management
    JOB_UPDATE = "job:update"
    JOB_DELETE = "job:delete"
    JOB_SET_STATUS = "job:set_status"
    JOB_APPROVE = "job:approve"
    JOB_REJECT = "job:reject"
    JOB_FEATURE = "job:feature"
    JOB_VIEW_UNAPPROVED = "job:view_unapproved"

    # Application management
    APPLICATION_VIEW = "application:view"
    APPLICATION_LIST_FOR_JOB = "application:list_for_job"
    APPLICATION_UPDATE_STATUS = "application:update_status"
    APPLICATION_ADD_NOTE = "application:add_note"
    APPLICATION_SCHEDULE_INTERVIEW = "application:schedule_interview"
    APPLICATION_WITHDRAW = "application:withdraw"

    # Company management
    COMPANY_UPDATE = "company:update"
    COMPANY_DELETE = "company:delete"
    COMPANY_UPLOAD_LOGO = "company:upload_logo"
    COMPANY_VERIFY = "company:verify"
    COMPANY_SET_STATUS = "company:set_status"

    # User management
    USER_MANAGE = "user:manage"


# Actions an admin may always perform
ADMIN_ACTIONS: frozenset[Action] = frozenset(
    {
        Action.JOB_UPDATE,
        Action.JOB_DELETE,
        Action.JOB_SET_STATUS,
        Action.JOB_APPROVE,
        Action.JOB_REJECT,
        Action.JOB_FEATURE,
        Action.JOB_VIEW_UNAPPROVED,
        Action.APPLICATION_VIEW,
        Action.APPLICATION_LIST_FOR_JOB,
        Action.APPLICATION_UPDATE_STATUS,
        Action.APPLICATION_ADD_NOTE,
        Action.APPLICATION_SCHEDULE_INTERVIEW,
        Action.COMPANY_VERIFY,
        Action.COMPANY_SET_STATUS,
        Action.USER_MANAGE,
    }
)

JOB_OWNER_ACTIONS = frozenset(
    {Action.JOB_UPDATE, Action.JOB_DELETE, Action.JOB_SET_STATUS, Action.JOB_VIEW_UNAPPROVED}
)
JOB_ADMIN_ONLY_ACTIONS = frozenset({Action.JOB_APPROVE, Action.JOB_REJECT, Action.JOB_FEATURE})
APPLICATION_MANAGE_ACTIONS = frozenset(
    {
        Action.APPLICATION_VIEW,
        Action.APPLICATION_UPDATE_STATUS,
        Action.APPLICATION_ADD_NOTE,
        Action.APPLICATION_SCHEDULE_INTERVIEW,
    }
)
COMPANY_OWNER_ACTIONS = frozenset(
    {Action.COMPANY_UPDATE, Action.COMPANY_DELETE, Action.COMPANY_UPLOAD_LOGO}
)


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


def can_transition(actor: User, resource: Any, action: Action) -> Decision:
    """
    Decide whether ``actor`` may perform ``action`` on ``resource``.

    Args:
        actor: Authenticated user
        resource: Job, Application, Company or User the action targets
            (for ``APPLICATION_LIST_FOR_JOB`` this is the Job)
        action: Action being attempted

    Returns:
        Decision with a human-readable reason when denied
    """
    if actor.role == UserRole.ADMIN and action in ADMIN_ACTIONS:
        return Decision.allow()

    if action in JOB_OWNER_ACTIONS and isinstance(resource, Job):
        if actor.id == resource.posted_by_id:
            return Decision.allow()
        return Decision.deny("Only the employer who posted this job can do that")

    if action in JOB_ADMIN_ONLY_ACTIONS:
        return Decision.deny("Only admins can moderate jobs")

    if action == Action.APPLICATION_LIST_FOR_JOB and isinstance(resource, Job):
        if actor.id == resource.posted_by_id:
            return Decision.allow()
        return Decision.deny("You can only view applications for your own jobs")

    if action in APPLICATION_MANAGE_ACTIONS and isinstance(resource, Application):
        if action == Action.APPLICATION_VIEW and actor.id == resource.applicant_id:
            return Decision.allow()
        if resource.job is not None and actor.id == resource.job.posted_by_id:
            return Decision.allow()
        return Decision.deny("Only the job owner or an admin can manage this application")

    if action == Action.APPLICATION_WITHDRAW and isinstance(resource, Application):
        if actor.id == resource.applicant_id:
            return Decision.allow()
        return Decision.deny("Only the applicant can withdraw this application")

    if action in COMPANY_OWNER_ACTIONS and isinstance(resource, Company):
        if actor.id == resource.owner_id:
            return Decision.allow()
        return Decision.deny("Only the company owner can do that")

    if action in (Action.COMPANY_VERIFY, Action.COMPANY_SET_STATUS):
        return Decision.deny("Only admins can moderate companies")

    if action == Action.USER_MANAGE:
        return Decision.deny("Only admins can manage users")

    return Decision.deny("Action not permitted")


def authorize(actor: User, resource: Any, action: Action) -> None:
    """
    Enforce ``can_transition``.

    Raises:
        AccessDenied: when the gate denies the action
    """
    decision = can_transition(actor, resource, action)
    if not decision.allowed:
        logger.warning(
            f"User {actor.id} ({actor.role}) denied {action.value} on "
            f"{type(resource).__name__} {getattr(resource, 'id', None)}: {decision.reason}"
        )
        raise AccessDenied(decision.reason)


def require_roles(*allowed_roles: UserRole) -> Callable:
    """
    Dependency to require one of the given roles.

    The authenticated user is read from the request scope (set by the
    authentication middleware) and returned to the route.

    Args:
        allowed_roles: Roles allowed through

    Returns:
        FastAPI dependency
    """
    allowed = {UserRole(role) for role in allowed_roles}

    async def dependency(request: Request) -> User:
        user = request.scope.get("user")
        if not user:
            raise AuthenticationRequired("Authentication required")
        if not user.is_active:
            raise InactiveUserError("User account is inactive")

        if UserRole(user.role) not in allowed:
            logger.warning(
                f"User {user.id} with role {user.role} attempted action "
                f"requiring roles: {sorted(r.value for r in allowed)}"
            )
            raise AccessDenied(
                f"This action requires one of the roles: "
                f"{', '.join(sorted(r.value for r in allowed))}"
            )
        return user

    return dependency
