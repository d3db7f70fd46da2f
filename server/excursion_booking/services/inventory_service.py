"""Ticket inventory: slot lookup and atomic reserve/release of slot capacity."""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import InsufficientInventoryError, NotFoundError
from ..core.observability import metrics_collector
from ..core.timeutils import format_slot_datetime, truncate_to_minute
from ..models.slot import TicketSlot

logger = logging.getLogger(__name__)


def normalize_quantity(quantity: int | None) -> int:
    """Missing, zero or negative quantities book a single ticket."""
    if quantity is None or quantity <= 0:
        return 1
    return quantity


def remaining(slot: TicketSlot) -> int:
    """
    Remaining capacity of a slot, never negative.

    A negative ``total - sold`` means the stored counters are corrupt; it is
    logged and counted as an integrity fault and reported as 0.
    """
    value = slot.total - slot.sold
    if value < 0:
        logger.error(
            "Integrity fault - slot has negative remaining capacity",
            extra={
                "slot_id": slot.id,
                "excursion_id": slot.excursion_id,
                "total": slot.total,
                "sold": slot.sold,
            }
        )
        metrics_collector.record_integrity_fault("negative_remaining")
        return 0
    return value


class InventoryService:
    """
    Slot capacity operations.

    ``reserve`` and ``release`` are single conditional UPDATE statements, so
    concurrent callers cannot oversell or underflow a slot regardless of how
    their transactions interleave. Both run inside the caller's transaction;
    committing is the caller's job.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_slot(self, excursion_id: int, starts_at: datetime, category: str) -> TicketSlot | None:
        """
        Find the slot matching an excursion, start time and category exactly.

        Args:
            excursion_id: Excursion owning the slot
            starts_at: Slot start; compared at minute precision
            category: Ticket category

        Returns:
            Matching slot, or None
        """
        stmt = select(TicketSlot).where(
            TicketSlot.excursion_id == excursion_id,
            TicketSlot.starts_at == truncate_to_minute(starts_at),
            TicketSlot.category == category,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_slot(self, slot_id: int) -> TicketSlot | None:
        """Get a slot by ID, reloading counters from the database."""
        stmt = (
            select(TicketSlot)
            .where(TicketSlot.id == slot_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_slot_or_raise(self, slot_id: int) -> TicketSlot:
        slot = await self.get_slot(slot_id)
        if not slot:
            raise NotFoundError(resource_type="slot", resource_id=str(slot_id))
        return slot

    async def reserve(self, slot_id: int, quantity: int) -> TicketSlot:
        """
        Atomically add ``quantity`` to a slot's sold count.

        The increment only applies when ``sold + quantity <= total``; a
        rejected reservation leaves the slot untouched.

        Args:
            slot_id: Slot to reserve on
            quantity: Tickets to reserve, normalized to at least 1

        Returns:
            The slot with refreshed counters

        Raises:
            NotFoundError: If the slot does not exist
            InsufficientInventoryError: If remaining capacity is too small
        """
        quantity = normalize_quantity(quantity)

        stmt = (
            update(TicketSlot)
            .where(
                TicketSlot.id == slot_id,
                TicketSlot.sold + quantity <= TicketSlot.total,
            )
            .values(sold=TicketSlot.sold + quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        slot = await self.get_slot_or_raise(slot_id)

        if result.rowcount != 1:
            available = remaining(slot)
            logger.warning(
                "Slot reservation rejected - insufficient capacity",
                extra={
                    "slot_id": slot_id,
                    "excursion_id": slot.excursion_id,
                    "requested_quantity": quantity,
                    "available_quantity": available,
                }
            )
            metrics_collector.record_reservation_rejected("sold_out")
            raise InsufficientInventoryError(
                requested_quantity=quantity,
                available_quantity=available,
                category=slot.category,
                date_time=format_slot_datetime(slot.starts_at),
                slot_id=slot_id,
            )

        logger.debug(
            "Slot capacity reserved",
            extra={"slot_id": slot_id, "quantity": quantity, "sold": slot.sold, "total": slot.total}
        )
        return slot

    async def release(self, slot_id: int, quantity: int) -> TicketSlot | None:
        """
        Atomically return ``quantity`` tickets to a slot.

        ``sold`` never drops below zero. A release larger than the sold count
        is an integrity fault: it is logged, counted, and ``sold`` is clamped
        to 0 instead of going negative.

        Args:
            slot_id: Slot to release on
            quantity: Tickets to return

        Returns:
            The slot with refreshed counters, or None if the slot no longer exists
        """
        quantity = normalize_quantity(quantity)

        stmt = (
            update(TicketSlot)
            .where(TicketSlot.id == slot_id, TicketSlot.sold >= quantity)
            .values(sold=TicketSlot.sold - quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        if result.rowcount != 1:
            slot = await self.get_slot(slot_id)
            if slot is None:
                logger.warning(
                    "Release skipped - slot no longer exists",
                    extra={"slot_id": slot_id, "quantity": quantity}
                )
                return None

            logger.error(
                "Integrity fault - release exceeds sold count, clamping to zero",
                extra={
                    "slot_id": slot_id,
                    "excursion_id": slot.excursion_id,
                    "release_quantity": quantity,
                    "sold": slot.sold,
                }
            )
            metrics_collector.record_integrity_fault("release_underflow")
            await self.db.execute(
                update(TicketSlot)
                .where(TicketSlot.id == slot_id)
                .values(sold=0)
                .execution_options(synchronize_session=False)
            )

        slot = await self.get_slot(slot_id)
        logger.debug(
            "Slot capacity released",
            extra={"slot_id": slot_id, "quantity": quantity, "sold": slot.sold if slot else None}
        )
        return slot

    async def list_slots(self, excursion_id: int) -> list[TicketSlot]:
        """All slots of an excursion ordered by start time, with fresh counters."""
        stmt = (
            select(TicketSlot)
            .where(TicketSlot.excursion_id == excursion_id)
            .order_by(TicketSlot.starts_at, TicketSlot.id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())
