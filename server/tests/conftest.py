"""Test configuration and fixtures."""

import os

# Settings are read at import time; point them at an in-memory database first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WORKERS_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret-with-at-least-thirty-two-bytes")

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from excursion_booking.core.config import settings
from excursion_booking.core.database import Base
from excursion_booking.core.dependencies import Actor, get_db
from excursion_booking.models import *  # noqa: F403 - Import all models

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FUTURE_START = datetime(2030, 6, 1, 10, 0)
LATER_START = datetime(2030, 6, 2, 10, 0)
PAST_START = datetime(2020, 1, 1, 10, 0)


def make_token(user_id: int, role: Role) -> str:
    """Sign a bearer token the way the identity provider would."""
    return jwt.encode(
        {"sub": str(user_id), "role": role.value},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def bearer(user_id: int, role: Role) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def catalogue(test_session):
    """
    Ids of one organization with a manager and a guide, two customers, and
    an excursion with future, past and nearly sold-out slots.
    """
    organization = Organization(name="Reykjavik Outdoors")
    other_organization = Organization(name="Elsewhere Tours")
    manager = User(email="manager@example.com", name="Manager", role=Role.MANAGER, organization=organization)
    guide = User(email="guide@example.com", name="Guide", role=Role.GUIDE, organization=organization)
    admin = User(email="admin@example.com", name="Admin", role=Role.ADMIN)
    customer = User(email="customer@example.com", name="Customer", role=Role.USER)
    other_customer = User(email="other@example.com", name="Other", role=Role.USER)
    test_session.add_all([organization, other_organization, manager, guide, admin, customer, other_customer])
    await test_session.flush()

    excursion = Excursion(
        title="Northern Lights Adventure",
        description="Aurora hunting",
        city="Reykjavik",
        organization_id=organization.id,
        guide_id=guide.id,
        manager_id=manager.id,
    )
    standard = TicketSlot(starts_at=FUTURE_START, category="Standard", total=10, sold=0, price=Decimal("20.00"), currency="USD")
    vip = TicketSlot(starts_at=FUTURE_START, category="VIP", total=2, sold=0, price=Decimal("50.00"), currency="USD")
    later = TicketSlot(starts_at=LATER_START, category="Standard", total=10, sold=0, price=Decimal("25.00"), currency="USD")
    past = TicketSlot(starts_at=PAST_START, category="Standard", total=10, sold=0, price=Decimal("15.00"), currency="USD")
    excursion.slots.extend([standard, vip, later, past])

    unguided = Excursion(title="Solo Walk", organization_id=organization.id)
    unguided.slots.append(
        TicketSlot(starts_at=FUTURE_START, category="Standard", total=5, sold=0, price=Decimal("10.00"), currency="USD")
    )

    test_session.add_all([excursion, unguided])
    await test_session.commit()

    # Ids only: a rollback expires ORM instances and async sessions cannot lazy-load them
    return SimpleNamespace(
        organization=organization.id,
        other_organization=other_organization.id,
        manager=manager.id,
        guide=guide.id,
        admin=admin.id,
        customer=customer.id,
        other_customer=other_customer.id,
        excursion=excursion.id,
        unguided=unguided.id,
        standard=standard.id,
        vip=vip.id,
        later=later.id,
        past=past.id,
    )


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a user id and role."""
    return bearer


@pytest.fixture
def customer_actor(catalogue):
    return Actor(user_id=catalogue.customer, role=Role.USER)


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create the application with its database dependency bound to the test session."""
    from excursion_booking.main import create_app

    app = create_app()

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def booking_payload(catalogue):
    """A valid booking request for one Standard ticket."""
    return {
        "user_id": catalogue.customer,
        "excursion_id": catalogue.excursion,
        "ticket_category": "Standard",
        "date_time": "2030-06-01 10:00",
        "quantity": 1,
    }
