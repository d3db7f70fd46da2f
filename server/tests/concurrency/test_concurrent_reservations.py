"""Concurrency tests for slot reservations and cancellations."""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from excursion_booking.core.database import Base
from excursion_booking.core.dependencies import Actor
from excursion_booking.core.exceptions import ConflictError, InsufficientInventoryError
from excursion_booking.core.observability import REGISTRY
from excursion_booking.models import Excursion, Organization, Role, TicketSlot, User
from excursion_booking.schemas.booking import CreateBookingRequest
from excursion_booking.services.booking_service import BookingService
from excursion_booking.services.inventory_service import InventoryService


@pytest_asyncio.fixture(scope="function")
async def file_engine(tmp_path):
    """
    File-backed SQLite engine so every session gets its own connection.

    Transactions start with BEGIN IMMEDIATE, so writers queue on the
    database lock instead of failing.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(file_engine):
    return async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture(scope="function")
async def seeded(session_factory):
    """A guided excursion with one Standard slot of five tickets."""
    async with session_factory() as session:
        organization = Organization(name="Concurrency Org")
        guide = User(email="guide@example.com", role=Role.GUIDE, organization=organization)
        customer = User(email="customer@example.com", role=Role.USER)
        session.add_all([organization, guide, customer])
        await session.flush()

        excursion = Excursion(title="Crowded Tour", organization_id=organization.id, guide_id=guide.id)
        slot = TicketSlot(
            starts_at=datetime(2030, 6, 1, 10, 0),
            category="Standard",
            total=5,
            sold=0,
            price=Decimal("20"),
            currency="USD",
        )
        excursion.slots.append(slot)
        session.add(excursion)
        await session.commit()

        return {"slot_id": slot.id, "excursion_id": excursion.id, "customer_id": customer.id}


async def _sold(session_factory, slot_id: int) -> int:
    async with session_factory() as session:
        slot = await InventoryService(session).get_slot(slot_id)
        return slot.sold


def _underflow_faults() -> float:
    return REGISTRY.get_sample_value("slot_integrity_faults_total", {"kind": "release_underflow"}) or 0.0


@pytest.mark.asyncio
async def test_concurrent_reservations_never_oversell(session_factory, seeded):
    """Ten single-ticket reservations on five tickets: five win, five are rejected."""
    slot_id = seeded["slot_id"]

    async def reserve_one():
        async with session_factory() as session:
            try:
                await InventoryService(session).reserve(slot_id, 1)
                await session.commit()
                return "reserved"
            except InsufficientInventoryError:
                await session.rollback()
                return "rejected"

    results = await asyncio.gather(*(reserve_one() for _ in range(10)))

    assert results.count("reserved") == 5
    assert results.count("rejected") == 5
    assert await _sold(session_factory, slot_id) == 5


@pytest.mark.asyncio
async def test_concurrent_bookings_never_oversell(session_factory, seeded):
    """Booking through the ledger under contention keeps sold within capacity."""
    actor = Actor(user_id=seeded["customer_id"], role=Role.USER)
    request = CreateBookingRequest(
        user_id=seeded["customer_id"],
        excursion_id=seeded["excursion_id"],
        ticket_category="Standard",
        date_time="2030-06-01 10:00",
        quantity=2,
    )

    async def book():
        async with session_factory() as session:
            try:
                await BookingService(session).create_booking(actor, request)
                return True
            except InsufficientInventoryError:
                return False

    results = await asyncio.gather(*(book() for _ in range(6)))

    assert results.count(True) == 2
    assert await _sold(session_factory, seeded["slot_id"]) == 4


@pytest.mark.asyncio
async def test_concurrent_double_cancel_releases_once(session_factory, seeded):
    """Two cancels racing on one booking return its tickets exactly once."""
    actor = Actor(user_id=seeded["customer_id"], role=Role.USER)
    async with session_factory() as session:
        booking = await BookingService(session).create_booking(
            actor,
            CreateBookingRequest(
                user_id=seeded["customer_id"],
                excursion_id=seeded["excursion_id"],
                ticket_category="Standard",
                date_time="2030-06-01 10:00",
                quantity=3,
            ),
        )
        booking_id = booking.id
    assert await _sold(session_factory, seeded["slot_id"]) == 3
    faults_before = _underflow_faults()

    async def cancel():
        async with session_factory() as session:
            try:
                return await BookingService(session).cancel_booking(actor, booking_id)
            except ConflictError as e:
                return e

    results = await asyncio.gather(cancel(), cancel())

    assert sum(isinstance(r, ConflictError) for r in results) <= 1
    assert await _sold(session_factory, seeded["slot_id"]) == 0
    # The losing cancel sees the booking already cancelled and releases nothing
    assert _underflow_faults() == faults_before
