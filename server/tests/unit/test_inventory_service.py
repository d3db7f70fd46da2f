"""Unit tests for slot inventory operations."""

from datetime import datetime
from decimal import Decimal

import pytest

from excursion_booking.core.exceptions import InsufficientInventoryError, NotFoundError
from excursion_booking.models.slot import TicketSlot
from excursion_booking.services.inventory_service import InventoryService, normalize_quantity, remaining


async def _sold(session, slot_id: int) -> int:
    slot = await InventoryService(session).get_slot(slot_id)
    return slot.sold


def test_normalize_quantity():
    """Missing and non-positive quantities book one ticket."""
    assert normalize_quantity(None) == 1
    assert normalize_quantity(0) == 1
    assert normalize_quantity(-3) == 1
    assert normalize_quantity(4) == 4


def test_remaining_clamps_corrupt_counters():
    """A slot with sold > total reports zero remaining."""
    slot = TicketSlot(
        starts_at=datetime(2030, 1, 1, 9, 0),
        category="Standard",
        total=1,
        sold=3,
        price=Decimal("5"),
        currency="USD",
    )
    assert remaining(slot) == 0


@pytest.mark.asyncio
async def test_find_slot_exact_match(test_session, catalogue):
    """Slots resolve by excursion, start time and category."""
    service = InventoryService(test_session)

    slot = await service.find_slot(catalogue.excursion, datetime(2030, 6, 1, 10, 0), "VIP")
    assert slot is not None
    assert slot.id == catalogue.vip

    # Seconds are ignored
    slot = await service.find_slot(catalogue.excursion, datetime(2030, 6, 1, 10, 0, 42), "VIP")
    assert slot is not None
    assert slot.id == catalogue.vip


@pytest.mark.asyncio
async def test_find_slot_no_match(test_session, catalogue):
    """Unknown start times and categories do not resolve."""
    service = InventoryService(test_session)

    assert await service.find_slot(catalogue.excursion, datetime(2030, 6, 1, 11, 0), "VIP") is None
    assert await service.find_slot(catalogue.excursion, datetime(2030, 6, 1, 10, 0), "Balcony") is None
    assert await service.find_slot(catalogue.unguided, datetime(2030, 6, 1, 10, 0), "VIP") is None


@pytest.mark.asyncio
async def test_reserve_increments_sold(test_session, catalogue):
    """A reservation within capacity increases sold by the quantity."""
    service = InventoryService(test_session)

    slot = await service.reserve(catalogue.standard, 3)
    await test_session.commit()

    assert slot.sold == 3
    assert await _sold(test_session, catalogue.standard) == 3


@pytest.mark.asyncio
async def test_reserve_exact_remaining(test_session, catalogue):
    """Reserving exactly the remaining capacity sells the slot out."""
    service = InventoryService(test_session)

    slot = await service.reserve(catalogue.vip, 2)
    await test_session.commit()

    assert slot.sold == slot.total == 2
    assert remaining(slot) == 0


@pytest.mark.asyncio
async def test_reserve_over_capacity_rejected(test_session, catalogue):
    """A reservation larger than remaining capacity leaves sold untouched."""
    service = InventoryService(test_session)
    await service.reserve(catalogue.vip, 1)
    await test_session.commit()

    with pytest.raises(InsufficientInventoryError) as exc_info:
        await service.reserve(catalogue.vip, 2)
    await test_session.rollback()

    assert exc_info.value.requested_quantity == 2
    assert exc_info.value.available_quantity == 1
    assert exc_info.value.problem_details["code"] == "INSUFFICIENT_INVENTORY"
    assert await _sold(test_session, catalogue.vip) == 1


@pytest.mark.asyncio
async def test_reserve_normalizes_quantity(test_session, catalogue):
    """A zero quantity reserves one ticket."""
    service = InventoryService(test_session)

    slot = await service.reserve(catalogue.standard, 0)
    await test_session.commit()

    assert slot.sold == 1


@pytest.mark.asyncio
async def test_reserve_unknown_slot(test_session, catalogue):
    """Reserving on a missing slot is a not-found error."""
    service = InventoryService(test_session)

    with pytest.raises(NotFoundError):
        await service.reserve(999_999, 1)


@pytest.mark.asyncio
async def test_release_decrements_sold(test_session, catalogue):
    """Releasing returns tickets to the slot."""
    service = InventoryService(test_session)
    await service.reserve(catalogue.standard, 5)

    slot = await service.release(catalogue.standard, 2)
    await test_session.commit()

    assert slot.sold == 3
    assert await _sold(test_session, catalogue.standard) == 3


@pytest.mark.asyncio
async def test_release_underflow_clamps_to_zero(test_session, catalogue):
    """Releasing more than was sold floors sold at zero."""
    service = InventoryService(test_session)
    await service.reserve(catalogue.standard, 1)

    slot = await service.release(catalogue.standard, 4)
    await test_session.commit()

    assert slot.sold == 0
    assert await _sold(test_session, catalogue.standard) == 0


@pytest.mark.asyncio
async def test_release_missing_slot(test_session, catalogue):
    """Releasing on a deleted slot is skipped."""
    service = InventoryService(test_session)

    assert await service.release(999_999, 1) is None


@pytest.mark.asyncio
async def test_list_slots_ordered(test_session, catalogue):
    """Slots are listed by start time."""
    service = InventoryService(test_session)

    slots = await service.list_slots(catalogue.excursion)

    assert len(slots) == 4
    assert [s.starts_at for s in slots] == sorted(s.starts_at for s in slots)
    assert slots[0].id == catalogue.past
