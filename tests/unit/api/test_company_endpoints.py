"""
Tests for company endpoints.

Tests:
- Public listing and detail (deactivated companies hidden)
- One company per employer
- Owner-only update / delete / logo
- Admin verification and activation
"""

from database.models.jobs import Job
from database.models.users import UserRole
from tests.conftest import auth_headers, create_company, create_job, create_user, fetch

API = "/api/v1/companies"


class TestPublicCompanies:
    """Test GET /companies and GET /companies/{id}."""

    def test_list_active_companies(self, client, company):
        """Test that deactivated companies are left out."""
        create_company(create_user(UserRole.EMPLOYER), is_active=False)

        response = client.get(API)

        assert response.status_code == 200
        assert [c["id"] for c in response.json()["items"]] == [company.id]

    def test_filters(self, client):
        """Test industry and name filters."""
        match = create_company(create_user(UserRole.EMPLOYER), name="Globex Health", industry="Healthcare")
        create_company(create_user(UserRole.EMPLOYER), name="Initech", industry="Software")

        by_industry = client.get(API, params={"industry": "health"}).json()["items"]
        by_name = client.get(API, params={"search": "globex"}).json()["items"]

        assert [c["id"] for c in by_industry] == [match.id]
        assert [c["id"] for c in by_name] == [match.id]

    def test_get_company(self, client, company):
        response = client.get(f"{API}/{company.id}")

        assert response.status_code == 200
        assert response.json()["name"] == company.name
        assert response.json()["ownerId"] == company.owner_id

    def test_deactivated_company_hidden(self, client, jobseeker):
        """Test that only the owner and admins see a deactivated company."""
        owner = create_user(UserRole.EMPLOYER)
        admin = create_user(UserRole.ADMIN)
        company = create_company(owner, is_active=False)

        assert client.get(f"{API}/{company.id}").status_code == 404
        assert client.get(f"{API}/{company.id}", headers=auth_headers(jobseeker)).status_code == 404
        assert client.get(f"{API}/{company.id}", headers=auth_headers(owner)).status_code == 200
        assert client.get(f"{API}/{company.id}", headers=auth_headers(admin)).status_code == 200


class TestCreateCompany:
    """Test POST /companies."""

    def test_create(self, client, employer):
        response = client.post(
            API,
            headers=auth_headers(employer),
            json={
                "name": "  Hooli  ",
                "industry": "Software",
                "size": "51-200",
                "founded": 2004,
                "website": "https://hooli.example.com",
                "headquarters": {"city": "Palo Alto", "zipCode": "94301"},
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Hooli"
        assert data["ownerId"] == employer.id
        assert data["verified"] is False
        assert data["isActive"] is True
        assert data["headquarters"] == {"city": "Palo Alto", "zipCode": "94301"}

    def test_one_company_per_employer(self, client, employer, company):
        response = client.post(API, headers=auth_headers(employer), json={"name": "Second Co"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "DUPLICATE_COMPANY"

    def test_invalid_founded_year(self, client, employer):
        response = client.post(
            API, headers=auth_headers(employer), json={"name": "Future Co", "founded": 3000}
        )

        assert response.status_code == 400

    def test_jobseeker_cannot_create(self, client, jobseeker):
        response = client.post(API, headers=auth_headers(jobseeker), json={"name": "Side Hustle"})

        assert response.status_code == 403


class TestManageCompany:
    """Test owner-only company management."""

    def test_update(self, client, employer, company):
        response = client.put(
            f"{API}/{company.id}",
            headers=auth_headers(employer),
            json={"description": "We build things", "size": "11-50"},
        )

        assert response.status_code == 200
        assert response.json()["description"] == "We build things"
        assert response.json()["size"] == "11-50"
        assert response.json()["name"] == company.name

    def test_update_by_other_employer(self, client, other_employer, company):
        response = client.put(
            f"{API}/{company.id}",
            headers=auth_headers(other_employer),
            json={"description": "Taken over"},
        )

        assert response.status_code == 403

    def test_upload_logo(self, client, employer, company):
        response = client.post(
            f"{API}/{company.id}/logo",
            headers=auth_headers(employer),
            json={"filename": "my logo.png", "url": "https://cdn.example.com/logo.png"},
        )

        assert response.status_code == 200
        logo = response.json()["logo"]
        assert logo["filename"] == "my_logo.png"
        assert logo["url"] == "https://cdn.example.com/logo.png"
        assert logo["uploadedAt"]

    def test_delete_cascades_to_jobs(self, client, employer, company, approved_job):
        response = client.delete(f"{API}/{company.id}", headers=auth_headers(employer))

        assert response.status_code == 200
        assert response.json()["message"] == "Company deleted successfully"
        assert fetch(Job, approved_job.id) is None

    def test_delete_by_other_employer(self, client, other_employer, company):
        response = client.delete(f"{API}/{company.id}", headers=auth_headers(other_employer))

        assert response.status_code == 403


class TestAdminCompanyActions:
    """Test verification and activation."""

    def test_verify(self, client, admin, company):
        granted = client.patch(f"{API}/{company.id}/verify", headers=auth_headers(admin))
        revoked = client.patch(
            f"{API}/{company.id}/verify", headers=auth_headers(admin), json={"verified": False}
        )

        assert granted.status_code == 200
        assert granted.json()["verified"] is True
        assert revoked.json()["verified"] is False

    def test_verify_admin_only(self, client, employer, company):
        response = client.patch(f"{API}/{company.id}/verify", headers=auth_headers(employer))

        assert response.status_code == 403

    def test_deactivate_hides_company(self, client, admin, employer, company):
        """Test that a deactivated company leaves the public listing."""
        response = client.patch(
            f"{API}/{company.id}/status", headers=auth_headers(admin), json={"isActive": False}
        )

        assert response.status_code == 200
        assert response.json()["isActive"] is False
        assert client.get(API).json()["total"] == 0

    def test_deactivate_keeps_jobs(self, client, admin, company):
        job = create_job(company)

        client.patch(
            f"{API}/{company.id}/status", headers=auth_headers(admin), json={"isActive": False}
        )

        assert fetch(Job, job.id) is not None

    def test_unknown_company(self, client, admin):
        response = client.patch(
            f"{API}/9999/status", headers=auth_headers(admin), json={"isActive": True}
        )

        assert response.status_code == 404
