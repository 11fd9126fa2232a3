"""
Tests for application endpoints.

Tests:
- Applying (counter increment, duplicate guard)
- Withdrawing (counter decrement, applicant only)
- Visibility rules for applicants, job owners and admins
- Status workflow, notes and interview scheduling
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from api.schemas.applications import ApplicationCreateRequest
from api.services import applications as application_service
from core.workflow.errors import DuplicateApplication
from database.engine import AsyncSessionLocal
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import ApprovalStatus, Job, JobStatus
from database.store import EntityStore
from tests.conftest import (
    auth_headers,
    create_application,
    create_job,
    create_user,
    fetch,
    run,
)

API = "/api/v1/applications"


class TestApply:
    """Test POST /applications."""

    def test_apply(self, client, jobseeker, approved_job):
        """Test that applying creates a pending application and bumps the counter."""
        response = client.post(
            API,
            headers=auth_headers(jobseeker),
            json={
                "jobId": approved_job.id,
                "coverLetter": "  I would love to join.  ",
                "resume": {"filename": "../../cv.pdf", "url": "https://files.example.com/cv.pdf"},
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["applicantId"] == jobseeker.id
        assert data["coverLetter"] == "I would love to join."
        assert "/" not in data["resume"]["filename"]
        assert data["interview"]["scheduled"] is False
        assert data["notes"] == []
        assert data["job"]["id"] == approved_job.id
        assert fetch(Job, approved_job.id).applications_count == 1

    def test_duplicate_application(self, client, jobseeker, approved_job):
        """Test that a second application to the same job is refused."""
        headers = auth_headers(jobseeker)
        client.post(API, headers=headers, json={"jobId": approved_job.id})

        response = client.post(API, headers=headers, json={"jobId": approved_job.id})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "DUPLICATE_APPLICATION"
        assert fetch(Job, approved_job.id).applications_count == 1

    def test_unknown_job(self, client, jobseeker):
        response = client.post(API, headers=auth_headers(jobseeker), json={"jobId": 9999})

        assert response.status_code == 404

    def test_hidden_job_not_found(self, client, company, jobseeker):
        """Test that jobs the applicant cannot see are reported as missing."""
        rejected = create_job(company, approval_status=ApprovalStatus.REJECTED)
        headers = auth_headers(jobseeker)

        assert client.get(f"/api/v1/jobs/{rejected.id}", headers=headers).status_code == 404
        response = client.post(API, headers=headers, json={"jobId": rejected.id})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        assert fetch(Job, rejected.id).applications_count == 0

    def test_pending_job_not_found(self, client, jobseeker, pending_job):
        response = client.post(API, headers=auth_headers(jobseeker), json={"jobId": pending_job.id})

        assert response.status_code == 404
        assert fetch(Job, pending_job.id).applications_count == 0

    def test_unapproved_job_visible_to_poster(self, client, employer, pending_job):
        """Test that the poster sees the job exists but still cannot apply."""
        response = client.post(API, headers=auth_headers(employer), json={"jobId": pending_job.id})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATE"
        assert fetch(Job, pending_job.id).applications_count == 0

    @pytest.mark.parametrize("status", [JobStatus.CLOSED, JobStatus.PAUSED, JobStatus.DRAFT])
    def test_job_not_active(self, client, company, jobseeker, status):
        """Test that only active jobs accept applications."""
        job = create_job(company, status=status)

        response = client.post(API, headers=auth_headers(jobseeker), json={"jobId": job.id})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATE"
        assert fetch(Job, job.id).applications_count == 0

    def test_requires_auth(self, client, approved_job):
        response = client.post(API, json={"jobId": approved_job.id})

        assert response.status_code == 401

    def test_counter_tracks_applicants(self, client, approved_job):
        """Test that the counter equals the number of applications."""
        for _ in range(3):
            seeker = create_user()
            client.post(API, headers=auth_headers(seeker), json={"jobId": approved_job.id})

        assert fetch(Job, approved_job.id).applications_count == 3


class TestUniqueApplicationConstraint:
    """Test that the database constraint, not the pre-check, enforces one application per job."""

    def test_duplicate_past_precheck(self, jobseeker, approved_job):
        """Test that an insert the pre-check lets through is refused as a duplicate."""

        async def apply() -> str:
            async with AsyncSessionLocal() as session:
                store = EntityStore(session)
                # Hide earlier applications from the friendly pre-check
                with patch.object(store, "find_one", AsyncMock(return_value=None)):
                    try:
                        await application_service.create_application(
                            store, jobseeker, ApplicationCreateRequest(job_id=approved_job.id)
                        )
                    except DuplicateApplication:
                        return "duplicate"
                    return "created"

        async def count_applications() -> int:
            async with AsyncSessionLocal() as session:
                result = await session.execute(
                    select(func.count())
                    .select_from(Application)
                    .where(Application.job_id == approved_job.id)
                )
                return result.scalar_one()

        outcomes = [run(apply()), run(apply())]

        assert outcomes == ["created", "duplicate"]
        assert run(count_applications()) == 1
        assert fetch(Job, approved_job.id).applications_count == 1


class TestWithdraw:
    """Test DELETE /applications/{id}."""

    def test_withdraw(self, client, jobseeker, approved_job):
        application = create_application(approved_job, jobseeker)

        response = client.delete(f"{API}/{application.id}", headers=auth_headers(jobseeker))

        assert response.status_code == 200
        assert response.json()["message"] == "Application withdrawn successfully"
        assert fetch(Application, application.id) is None
        assert fetch(Job, approved_job.id).applications_count == 0

    def test_reapply_after_withdraw(self, client, jobseeker, approved_job):
        """Test that withdrawing frees the (job, applicant) slot."""
        application = create_application(approved_job, jobseeker)
        client.delete(f"{API}/{application.id}", headers=auth_headers(jobseeker))

        response = client.post(
            API, headers=auth_headers(jobseeker), json={"jobId": approved_job.id}
        )

        assert response.status_code == 201
        assert fetch(Job, approved_job.id).applications_count == 1

    def test_only_applicant_can_withdraw(self, client, employer, admin, approved_job, jobseeker):
        """Test that neither the job owner nor an admin can withdraw."""
        application = create_application(approved_job, jobseeker)

        by_owner = client.delete(f"{API}/{application.id}", headers=auth_headers(employer))
        by_admin = client.delete(f"{API}/{application.id}", headers=auth_headers(admin))

        assert by_owner.status_code == 403
        assert by_admin.status_code == 403
        assert fetch(Application, application.id) is not None


class TestVisibility:
    """Test who can read which applications."""

    def test_my_applications(self, client, jobseeker, company):
        first = create_application(create_job(company), jobseeker)
        second = create_application(create_job(company), jobseeker)
        create_application(create_job(company), create_user())

        response = client.get(f"{API}/my-applications", headers=auth_headers(jobseeker))

        assert response.status_code == 200
        assert {a["id"] for a in response.json()} == {first.id, second.id}

    def test_get_application(self, client, jobseeker, employer, admin, approved_job):
        """Test that the applicant, job owner and admin can read it."""
        application = create_application(approved_job, jobseeker)

        for user in (jobseeker, employer, admin):
            response = client.get(f"{API}/{application.id}", headers=auth_headers(user))
            assert response.status_code == 200
            assert response.json()["applicant"]["id"] == jobseeker.id

    def test_get_application_denied(self, client, jobseeker, other_employer, approved_job):
        application = create_application(approved_job, jobseeker)
        stranger = create_user()

        assert (
            client.get(f"{API}/{application.id}", headers=auth_headers(stranger)).status_code
            == 403
        )
        assert (
            client.get(
                f"{API}/{application.id}", headers=auth_headers(other_employer)
            ).status_code
            == 403
        )

    def test_job_applications(self, client, employer, other_employer, approved_job, jobseeker):
        """Test that only the job owner lists a job's applications."""
        application = create_application(approved_job, jobseeker)

        own = client.get(f"{API}/job/{approved_job.id}", headers=auth_headers(employer))
        other = client.get(f"{API}/job/{approved_job.id}", headers=auth_headers(other_employer))

        assert [a["id"] for a in own.json()] == [application.id]
        assert other.status_code == 403

    def test_admin_listing(self, client, admin, approved_job, company):
        """Test the admin listing and its filters."""
        reviewing = create_application(
            approved_job, create_user(), status=ApplicationStatus.REVIEWING
        )
        create_application(approved_job, create_user())
        create_application(create_job(company), create_user(), status=ApplicationStatus.REVIEWING)

        response = client.get(
            API,
            headers=auth_headers(admin),
            params={"status": "reviewing", "jobId": approved_job.id},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == reviewing.id

    def test_admin_listing_forbidden(self, client, employer):
        response = client.get(API, headers=auth_headers(employer))

        assert response.status_code == 403


class TestStatusWorkflow:
    """Test PATCH /applications/{id}/status."""

    def test_forward_move(self, client, employer, approved_job, jobseeker):
        application = create_application(approved_job, jobseeker)

        response = client.patch(
            f"{API}/{application.id}/status",
            headers=auth_headers(employer),
            json={"status": "reviewing"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "reviewing"

    def test_skip_ahead_refused(self, client, employer, approved_job, jobseeker):
        application = create_application(approved_job, jobseeker)

        response = client.patch(
            f"{API}/{application.id}/status",
            headers=auth_headers(employer),
            json={"status": "hired"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATE"
        assert fetch(Application, application.id).status == ApplicationStatus.PENDING

    def test_terminal_state(self, client, employer, approved_job, jobseeker):
        application = create_application(
            approved_job, jobseeker, status=ApplicationStatus.REJECTED
        )

        response = client.patch(
            f"{API}/{application.id}/status",
            headers=auth_headers(employer),
            json={"status": "reviewing"},
        )

        assert response.status_code == 400

    def test_unknown_status(self, client, employer, approved_job, jobseeker):
        application = create_application(approved_job, jobseeker)

        response = client.patch(
            f"{API}/{application.id}/status",
            headers=auth_headers(employer),
            json={"status": "ghosted"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_other_employer_denied(self, client, other_employer, approved_job, jobseeker):
        application = create_application(approved_job, jobseeker)

        response = client.patch(
            f"{API}/{application.id}/status",
            headers=auth_headers(other_employer),
            json={"status": "reviewing"},
        )

        assert response.status_code == 403

    def test_applicant_cannot_change_status(self, client, jobseeker, approved_job):
        application = create_application(approved_job, jobseeker)

        response = client.patch(
            f"{API}/{application.id}/status",
            headers=auth_headers(jobseeker),
            json={"status": "reviewing"},
        )

        assert response.status_code == 403


class TestNotes:
    """Test POST /applications/{id}/notes."""

    def test_add_note(self, client, employer, approved_job, jobseeker):
        application = create_application(approved_job, jobseeker)

        response = client.post(
            f"{API}/{application.id}/notes",
            headers=auth_headers(employer),
            json={"content": "  Strong portfolio  "},
        )

        assert response.status_code == 200
        notes = response.json()["notes"]
        assert len(notes) == 1
        assert notes[0]["content"] == "Strong portfolio"
        assert notes[0]["addedById"] == employer.id

    def test_blank_note(self, client, employer, approved_job, jobseeker):
        application = create_application(approved_job, jobseeker)

        response = client.post(
            f"{API}/{application.id}/notes", headers=auth_headers(employer), json={"content": " "}
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "content"


class TestInterview:
    """Test POST /applications/{id}/interview."""

    def test_schedule(self, client, employer, approved_job, jobseeker):
        application = create_application(
            approved_job, jobseeker, status=ApplicationStatus.SHORTLISTED
        )

        response = client.post(
            f"{API}/{application.id}/interview",
            headers=auth_headers(employer),
            json={
                "date": "2030-05-14",
                "time": "14:30",
                "type": "video",
                "location": "https://meet.example.com/abc",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "interview-scheduled"
        assert data["interview"] == {
            "scheduled": True,
            "date": "2030-05-14",
            "time": "14:30",
            "location": "https://meet.example.com/abc",
            "type": "video",
            "notes": None,
        }

    def test_requires_shortlisted(self, client, employer, approved_job, jobseeker):
        application = create_application(approved_job, jobseeker)

        response = client.post(
            f"{API}/{application.id}/interview",
            headers=auth_headers(employer),
            json={"date": "2030-05-14", "time": "14:30"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATE"

    def test_missing_fields_reported_together(self, client, employer, approved_job, jobseeker):
        application = create_application(
            approved_job, jobseeker, status=ApplicationStatus.SHORTLISTED
        )

        response = client.post(
            f"{API}/{application.id}/interview", headers=auth_headers(employer), json={}
        )

        assert response.status_code == 400
        fields = [d["field"] for d in response.json()["error"]["details"]]
        assert fields == ["date", "time"]
        assert fetch(Application, application.id).status == ApplicationStatus.SHORTLISTED
