"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite schema per test
- Organizations, profiles with membership roles, resolved AccessContexts
- HTTPX AsyncClient (anonymous and session-cookie authenticated)
- Local blob storage under tmp_path
"""
import os
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Generator

# Must be set before cfs_portal settings are imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["TESTING"] = "1"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["ENV"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext
from cfs_portal.core.config import settings
from cfs_portal.core.deps import COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE, get_db
from cfs_portal.core.rate_limit import limiter
from cfs_portal.core.security import create_session_token
from cfs_portal.db.base import Base
from cfs_portal.db.enums import Role
from cfs_portal.db.models import Membership, Organization, Profile
from cfs_portal.db.session import SessionLocal, engine
from cfs_portal.main import app
from cfs_portal.schemas.cfs import CfsCreate
from cfs_portal.services import access_service, cfs_intake_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create the schema, yield a session, drop everything afterwards."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Blob writes land under tmp_path."""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(tmp_path / "blobs"))
    return tmp_path / "blobs"


def _make_org(db: Session, name: str) -> Organization:
    org = Organization(name=name, slug=f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}")
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Organization that owns the calls under test."""
    return _make_org(db, "Eastside Outreach")


@pytest.fixture(scope="function")
def partner_org(db: Session) -> Organization:
    """Organization the calls get shared with."""
    return _make_org(db, "Harbor Shelter")


@pytest.fixture(scope="function")
def other_org(db: Session) -> Organization:
    """Organization with no relationship to the calls."""
    return _make_org(db, "Northside Services")


@pytest.fixture(scope="function")
def make_profile(db: Session):
    """Factory: approved profile with a membership role, acting in ``org``."""

    def _make(
        org: Organization | None,
        role: Role | None = Role.ADMIN,
        *,
        approved: bool = True,
        global_admin: bool = False,
    ) -> Profile:
        profile = Profile(
            email=f"staff-{uuid.uuid4().hex[:8]}@test.org",
            display_name="Test Staff",
            organization_id=org.id if org else None,
            is_approved=approved,
            is_global_admin=global_admin,
        )
        db.add(profile)
        db.flush()
        if org is not None and role is not None:
            db.add(Membership(profile_id=profile.id, organization_id=org.id, role=role.value))
        db.commit()
        return profile

    return _make


@pytest.fixture(scope="function")
def make_ctx(db: Session, make_profile):
    """Factory: resolved AccessContext for a new profile with ``role`` in ``org``."""

    def _make(org: Organization | None, role: Role | None = Role.ADMIN, **kwargs) -> AccessContext:
        profile = make_profile(org, role, **kwargs)
        return access_service.resolve_access_context(db, profile)

    return _make


@pytest.fixture(scope="function")
def admin_ctx(make_ctx, test_org) -> AccessContext:
    return make_ctx(test_org, Role.ADMIN)


@pytest.fixture(scope="function")
def coordinator_ctx(make_ctx, test_org) -> AccessContext:
    return make_ctx(test_org, Role.COORDINATOR)


@pytest.fixture(scope="function")
def intake_ctx(make_ctx, test_org) -> AccessContext:
    return make_ctx(test_org, Role.INTAKE)


@pytest.fixture(scope="function")
def viewer_ctx(make_ctx, test_org) -> AccessContext:
    return make_ctx(test_org, Role.VIEWER)


@pytest.fixture(scope="function")
def partner_admin_ctx(make_ctx, partner_org) -> AccessContext:
    return make_ctx(partner_org, Role.ADMIN)


@pytest.fixture(scope="function")
def other_admin_ctx(make_ctx, other_org) -> AccessContext:
    return make_ctx(other_org, Role.ADMIN)


@pytest.fixture(scope="function")
def create_call(db: Session, admin_ctx: AccessContext):
    """Factory: create a call through the intake service and return its id."""

    def _create(ctx: AccessContext | None = None, **overrides) -> int:
        payload = {"initial_report_narrative": "Person sleeping in the bus shelter on 5th", **overrides}
        result = cfs_intake_service.create_call(db, ctx or admin_ctx, CfsCreate(**payload))
        return result.cfs_id

    return _create


# =============================================================================
# Client Fixtures
# =============================================================================

@asynccontextmanager
async def _client(db: Session, cookies: dict | None = None, headers: dict | None = None):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies=cookies,
            headers=headers,
        ) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient for public endpoints."""
    async with _client(db) as c:
        yield c


@pytest.fixture(scope="function")
def client_for(db: Session):
    """Factory: AsyncClient with a session cookie for ``profile`` and the CSRF header."""

    def _make(profile: Profile, *, csrf: bool = True):
        token = create_session_token(profile.id, profile.token_version)
        headers = {CSRF_HEADER: CSRF_HEADER_VALUE} if csrf else None
        return _client(db, cookies={COOKIE_NAME: token}, headers=headers)

    return _make


@pytest.fixture(scope="function")
def admin_profile(make_profile, test_org) -> Profile:
    return make_profile(test_org, Role.ADMIN)


@pytest.fixture(scope="function")
async def authed_client(client_for, admin_profile) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for an admin of test_org, with session cookie and CSRF header."""
    async with client_for(admin_profile) as c:
        yield c
