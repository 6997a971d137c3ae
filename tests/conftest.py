"""
PyTest configuration and fixtures for Hospitality QA Portal tests
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.session import get_db
from app.models.base import Base
from app.models.survey import GuestSurveyLink, SurveyType
from app.models.user import Organization, Property, PropertyAssignment, User, UserRole
from tests.factories import create_template, make_headers


# Test database setup - Using async SQLite with aiosqlite
SQLALCHEMY_TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestingSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """
    Create a fresh database for each test.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session
        await session.commit()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session):
    """
    Async HTTP client with the database dependency overridden.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def organization(db_session):
    org = Organization(name="Azure Villas", slug="azure-villas", is_active=True)
    db_session.add(org)
    await db_session.commit()
    return org


@pytest_asyncio.fixture
async def other_organization(db_session):
    org = Organization(name="Other Group", slug="other-group", is_active=True)
    db_session.add(org)
    await db_session.commit()
    return org


async def _user(db_session, organization, email, name, role, is_active=True):
    user = User(
        email=email,
        full_name=name,
        role=role,
        organization_id=organization.id,
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session, organization):
    return await _user(db_session, organization, "admin@example.com", "Alice Admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def manager_user(db_session, organization):
    return await _user(db_session, organization, "manager@example.com", "Max Manager", UserRole.PROPERTY_MANAGER)


@pytest_asyncio.fixture
async def other_manager(db_session, organization):
    """Property manager without any assignment"""
    return await _user(db_session, organization, "other.manager@example.com", "Olga Other", UserRole.PROPERTY_MANAGER)


@pytest_asyncio.fixture
async def staff_user(db_session, organization):
    return await _user(db_session, organization, "staff@example.com", "Sam Staff", UserRole.STAFF)


@pytest_asyncio.fixture
async def other_org_admin(db_session, other_organization):
    return await _user(db_session, other_organization, "admin@other.example.com", "Oscar Outside", UserRole.ADMIN)


@pytest_asyncio.fixture
async def property_a(db_session, organization, manager_user, staff_user):
    """Property with manager_user as primary PM; manager and staff assigned"""
    prop = Property(
        organization_id=organization.id,
        name="Villa Amara",
        slug="villa-amara",
        code="AMA",
        is_active=True,
        primary_pm_id=manager_user.id,
    )
    db_session.add(prop)
    await db_session.commit()

    db_session.add_all([
        PropertyAssignment(user_id=manager_user.id, property_id=prop.id),
        PropertyAssignment(user_id=staff_user.id, property_id=prop.id),
    ])
    await db_session.commit()
    return prop


@pytest_asyncio.fixture
async def property_b(db_session, organization):
    """Property nobody is assigned to"""
    prop = Property(
        organization_id=organization.id,
        name="Villa Borea",
        slug="villa-borea",
        code="BOR",
        is_active=True,
    )
    db_session.add(prop)
    await db_session.commit()
    return prop


@pytest_asyncio.fixture
async def internal_template(db_session, organization, admin_user):
    return await create_template(db_session, organization, admin_user)


@pytest_asyncio.fixture
async def guest_template(db_session, organization, admin_user):
    return await create_template(
        db_session, organization, admin_user, survey_type=SurveyType.GUEST, name="Guest Feedback"
    )


@pytest_asyncio.fixture
async def guest_link(db_session, guest_template, property_a, admin_user):
    link = GuestSurveyLink(
        token="guest-token-amara",
        template_id=guest_template.id,
        property_id=property_a.id,
        created_by=admin_user.id,
        is_active=True,
    )
    db_session.add(link)
    await db_session.commit()
    return link


@pytest_asyncio.fixture
async def admin_headers(admin_user):
    return make_headers(admin_user)


@pytest_asyncio.fixture
async def manager_headers(manager_user, property_a):
    return make_headers(manager_user)


@pytest_asyncio.fixture
async def other_manager_headers(other_manager):
    return make_headers(other_manager)


@pytest_asyncio.fixture
async def staff_headers(staff_user, property_a):
    return make_headers(staff_user)


@pytest_asyncio.fixture
async def other_org_headers(other_org_admin):
    return make_headers(other_org_admin)
