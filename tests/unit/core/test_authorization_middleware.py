"""
Tests for the authorization gate.

Tests:
- Job ownership and admin-only moderation
- Application access for applicant, job owner and admin
- Withdrawal being applicant-only
- Company ownership and moderation
- Role guards on routes
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from core.middleware.authentication import AuthenticationError
from core.middleware.authorization import Action, authorize, can_transition, require_roles
from core.middleware.error_handling import setup_error_handlers
from core.workflow.errors import AccessDenied
from database.models.applications import Application
from database.models.companies import Company
from database.models.jobs import Job
from database.models.users import User, UserRole


ADMIN = User(id=1, role=UserRole.ADMIN, is_active=True)
POSTER = User(id=2, role=UserRole.EMPLOYER, is_active=True)
OTHER_EMPLOYER = User(id=3, role=UserRole.EMPLOYER, is_active=True)
APPLICANT = User(id=4, role=UserRole.JOBSEEKER, is_active=True)
OTHER_SEEKER = User(id=5, role=UserRole.JOBSEEKER, is_active=True)


@pytest.fixture
def job():
    return Job(id=10, company_id=20, posted_by_id=POSTER.id)


@pytest.fixture
def application(job):
    return Application(id=30, job_id=job.id, applicant_id=APPLICANT.id, job=job)


@pytest.fixture
def company():
    return Company(id=20, owner_id=POSTER.id, name="Acme")


class TestJobRules:
    """Test job actions."""

    @pytest.mark.parametrize(
        "action", [Action.JOB_UPDATE, Action.JOB_DELETE, Action.JOB_SET_STATUS]
    )
    def test_poster_and_admin_manage_job(self, job, action):
        """Test that the poster and admins may edit a job."""
        assert can_transition(POSTER, job, action).allowed
        assert can_transition(ADMIN, job, action).allowed

    @pytest.mark.parametrize(
        "action", [Action.JOB_UPDATE, Action.JOB_DELETE, Action.JOB_SET_STATUS]
    )
    def test_other_employer_denied(self, job, action):
        """Test that another employer cannot touch the job."""
        decision = can_transition(OTHER_EMPLOYER, job, action)

        assert not decision.allowed
        assert "posted this job" in decision.reason

    @pytest.mark.parametrize(
        "action", [Action.JOB_APPROVE, Action.JOB_REJECT, Action.JOB_FEATURE]
    )
    def test_moderation_is_admin_only(self, job, action):
        """Test that even the poster cannot moderate their own job."""
        assert can_transition(ADMIN, job, action).allowed
        assert not can_transition(POSTER, job, action).allowed
        assert not can_transition(APPLICANT, job, action).allowed

    def test_view_unapproved(self, job):
        """Test who can see a job awaiting approval."""
        assert can_transition(POSTER, job, Action.JOB_VIEW_UNAPPROVED).allowed
        assert can_transition(ADMIN, job, Action.JOB_VIEW_UNAPPROVED).allowed
        assert not can_transition(APPLICANT, job, Action.JOB_VIEW_UNAPPROVED).allowed


class TestApplicationRules:
    """Test application actions."""

    def test_view(self, application):
        """Test that the applicant, job owner and admin can view."""
        assert can_transition(APPLICANT, application, Action.APPLICATION_VIEW).allowed
        assert can_transition(POSTER, application, Action.APPLICATION_VIEW).allowed
        assert can_transition(ADMIN, application, Action.APPLICATION_VIEW).allowed
        assert not can_transition(OTHER_SEEKER, application, Action.APPLICATION_VIEW).allowed
        assert not can_transition(OTHER_EMPLOYER, application, Action.APPLICATION_VIEW).allowed

    @pytest.mark.parametrize(
        "action",
        [
            Action.APPLICATION_UPDATE_STATUS,
            Action.APPLICATION_ADD_NOTE,
            Action.APPLICATION_SCHEDULE_INTERVIEW,
        ],
    )
    def test_manage(self, application, action):
        """Test that only the job owner and admins manage applications."""
        assert can_transition(POSTER, application, action).allowed
        assert can_transition(ADMIN, application, action).allowed
        assert not can_transition(OTHER_EMPLOYER, application, action).allowed
        # The applicant cannot move their own application along
        assert not can_transition(APPLICANT, application, action).allowed

    def test_list_for_job(self, job):
        """Test listing a job's applications."""
        assert can_transition(POSTER, job, Action.APPLICATION_LIST_FOR_JOB).allowed
        assert can_transition(ADMIN, job, Action.APPLICATION_LIST_FOR_JOB).allowed
        assert not can_transition(OTHER_EMPLOYER, job, Action.APPLICATION_LIST_FOR_JOB).allowed

    def test_withdraw_is_applicant_only(self, application):
        """Test that nobody but the applicant can withdraw, admins included."""
        assert can_transition(APPLICANT, application, Action.APPLICATION_WITHDRAW).allowed
        assert not can_transition(ADMIN, application, Action.APPLICATION_WITHDRAW).allowed
        assert not can_transition(POSTER, application, Action.APPLICATION_WITHDRAW).allowed
        assert not can_transition(OTHER_SEEKER, application, Action.APPLICATION_WITHDRAW).allowed


class TestCompanyAndUserRules:
    """Test company and user management actions."""

    @pytest.mark.parametrize(
        "action", [Action.COMPANY_UPDATE, Action.COMPANY_DELETE, Action.COMPANY_UPLOAD_LOGO]
    )
    def test_owner_actions(self, company, action):
        """Test that only the owner edits the company."""
        assert can_transition(POSTER, company, action).allowed
        assert not can_transition(OTHER_EMPLOYER, company, action).allowed
        assert not can_transition(ADMIN, company, action).allowed

    @pytest.mark.parametrize("action", [Action.COMPANY_VERIFY, Action.COMPANY_SET_STATUS])
    def test_company_moderation(self, company, action):
        """Test that verification and activation are admin-only."""
        assert can_transition(ADMIN, company, action).allowed
        assert not can_transition(POSTER, company, action).allowed

    def test_user_management(self):
        """Test that only admins manage users."""
        assert can_transition(ADMIN, APPLICANT, Action.USER_MANAGE).allowed
        assert not can_transition(POSTER, APPLICANT, Action.USER_MANAGE).allowed

    def test_authorize_raises_access_denied(self, job):
        """Test that a denial is raised as AccessDenied."""
        with pytest.raises(AccessDenied) as exc_info:
            authorize(OTHER_EMPLOYER, job, Action.JOB_DELETE)

        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "ACCESS_DENIED"

    def test_authorize_allows(self, job):
        """Test that an allowed action returns quietly."""
        assert authorize(POSTER, job, Action.JOB_DELETE) is None


class TestRoleGuards:
    """Test the require_roles route dependency."""

    @pytest.fixture
    def make_client(self):
        def _make(user):
            app = FastAPI()
            setup_error_handlers(app)

            @app.middleware("http")
            async def inject_user(request, call_next):
                request.scope["user"] = user
                return await call_next(request)

            @app.get("/admin-only")
            async def admin_only(current=Depends(require_roles(UserRole.ADMIN))):
                return {"id": current.id}

            @app.get("/employers")
            async def employers(
                current=Depends(require_roles(UserRole.EMPLOYER, UserRole.ADMIN)),
            ):
                return {"id": current.id}

            return TestClient(app, raise_server_exceptions=False)

        return _make

    def test_allowed_role(self, make_client):
        """Test that a matching role passes through."""
        response = make_client(ADMIN).get("/admin-only")

        assert response.status_code == 200
        assert response.json() == {"id": ADMIN.id}

    def test_any_of_several_roles(self, make_client):
        """Test guards with more than one role."""
        assert make_client(POSTER).get("/employers").status_code == 200
        assert make_client(ADMIN).get("/employers").status_code == 200

    def test_wrong_role(self, make_client):
        """Test that other roles are forbidden."""
        response = make_client(APPLICANT).get("/admin-only")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACCESS_DENIED"

    def test_anonymous(self, make_client):
        """Test that a missing user is an authentication failure."""
        response = make_client(None).get("/admin-only")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"

    def test_inactive_user(self, make_client):
        """Test that deactivated accounts are rejected."""
        inactive = User(id=9, role=UserRole.ADMIN, is_active=False)

        response = make_client(inactive).get("/admin-only")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "USER_INACTIVE"

    def test_authentication_errors_are_not_access_denied(self):
        """Test the two failure families stay apart."""
        assert not issubclass(AuthenticationError, AccessDenied)
