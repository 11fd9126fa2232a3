"""Shared fixtures and utilities for tests."""

import asyncio
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Optional

# Settings are read once at import time, so the environment must be ready
# before anything from the application is imported.
if "TEST_DATABASE_URL" not in os.environ:
    _test_db = Path(tempfile.mkdtemp(prefix="jobboard-tests-")) / "test.db"
    os.environ["TEST_DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_db}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("REFRESH_TOKEN_EXPIRE_DAYS", "30")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["OTP_MODE"] = "static"
os.environ.setdefault("STATIC_OTP_CODE", "123456")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("JSON_LOGS", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.security import create_access_token, hash_password  # noqa: E402
from database.engine import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from database.models import (  # noqa: E402
    Application,
    ApplicationStatus,
    ApprovalStatus,
    Company,
    ExperienceLevel,
    Job,
    JobLocation,
    JobStatus,
    JobType,
    User,
    UserRole,
)

TEST_PASSWORD = "SecurePass123!"
# bcrypt is slow on purpose; hash the shared test password once
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

JOB_DESCRIPTION = (
    "Build and operate the services behind our job board, from the API "
    "layer down to the database."
)
JOB_REQUIREMENTS = "Three years of Python and SQL experience."


def run(coro):
    """Run a coroutine to completion from synchronous test code."""
    return asyncio.run(coro)


async def _reset_database():
    await drop_db()
    await init_db()


@pytest.fixture(autouse=True)
def reset_database():
    """Every test starts from an empty schema."""
    run(_reset_database())
    yield


@pytest.fixture
def client():
    """Create test client."""
    from api.main import app

    return TestClient(app, raise_server_exceptions=False)


# ==================== Seeding ===================== #
def _unique(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:8]}"


async def _save(entity):
    async with AsyncSessionLocal() as session:
        session.add(entity)
        await session.commit()
        await session.refresh(entity)
        return entity


async def _get(model, entity_id):
    async with AsyncSessionLocal() as session:
        return await session.get(model, entity_id)


def create_user(
    role: UserRole = UserRole.JOBSEEKER,
    email: Optional[str] = None,
    is_active: bool = True,
    **kwargs: Any,
) -> User:
    user = User(
        first_name=kwargs.pop("first_name", "Test"),
        last_name=kwargs.pop("last_name", role.value.title()),
        email=email or f"{_unique(role.value)}@jobboard.io",
        password_hash=TEST_PASSWORD_HASH,
        role=role,
        is_active=is_active,
        profile=kwargs.pop("profile", {}),
        **kwargs,
    )
    return run(_save(user))


def create_company(owner: User, **kwargs: Any) -> Company:
    company = Company(
        owner_id=owner.id,
        name=kwargs.pop("name", _unique("Acme ")),
        industry=kwargs.pop("industry", "Software"),
        is_active=kwargs.pop("is_active", True),
        verified=kwargs.pop("verified", False),
        **kwargs,
    )
    return run(_save(company))


def create_job(
    company: Company,
    approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
    status: JobStatus = JobStatus.ACTIVE,
    **kwargs: Any,
) -> Job:
    locations = kwargs.pop("locations", [{"city": "Austin", "country": "USA"}])
    job = Job(
        company_id=company.id,
        posted_by_id=kwargs.pop("posted_by_id", company.owner_id),
        title=kwargs.pop("title", "Backend Engineer"),
        description=kwargs.pop("description", JOB_DESCRIPTION),
        requirements=kwargs.pop("requirements", JOB_REQUIREMENTS),
        job_type=kwargs.pop("job_type", JobType.FULL_TIME),
        experience_level=kwargs.pop("experience_level", ExperienceLevel.MID),
        approval_status=approval_status,
        status=status,
        locations=[JobLocation(**location) for location in locations],
        **kwargs,
    )
    return run(_save(job))


def create_application(
    job: Job,
    applicant: User,
    status: ApplicationStatus = ApplicationStatus.PENDING,
    **kwargs: Any,
) -> Application:
    """Insert an application and keep the job's counter in step."""

    async def _create():
        async with AsyncSessionLocal() as session:
            application = Application(
                job_id=job.id, applicant_id=applicant.id, status=status, **kwargs
            )
            session.add(application)
            stored_job = await session.get(Job, job.id)
            stored_job.applications_count += 1
            await session.commit()
            await session.refresh(application)
            return application

    return run(_create())


def fetch(model, entity_id):
    """Load a fresh copy of an entity (None when it no longer exists)."""
    return run(_get(model, entity_id))


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.email, UserRole(user.role).value)
    return {"Authorization": f"Bearer {token}"}


# ==================== Fixtures ===================== #
@pytest.fixture
def admin() -> User:
    return create_user(UserRole.ADMIN)


@pytest.fixture
def employer() -> User:
    return create_user(UserRole.EMPLOYER)


@pytest.fixture
def other_employer() -> User:
    return create_user(UserRole.EMPLOYER)


@pytest.fixture
def jobseeker() -> User:
    return create_user(UserRole.JOBSEEKER)


@pytest.fixture
def company(employer) -> Company:
    return create_company(employer)


@pytest.fixture
def approved_job(company) -> Job:
    return create_job(company)


@pytest.fixture
def pending_job(company) -> Job:
    return create_job(company, approval_status=ApprovalStatus.PENDING)
