"""Booking service for business logic operations."""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.dependencies import Actor
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientInventoryError,
    NotFoundError,
    PreconditionFailedError,
    ProblemDetailsException,
    ValidationError,
)
from ..core.observability import metrics_collector
from ..core.timeutils import format_slot_datetime, parse_slot_datetime, utc_now
from ..models.booking import (
    DEFAULT_BOOKING_IMAGE,
    DEFAULT_PAYMENT_METHOD,
    Booking,
    BookingStatus,
)
from ..models.excursion import Excursion
from ..models.slot import TicketSlot
from ..models.user import Role
from ..schemas.booking import CreateBookingRequest, UpdateBookingRequest
from .inventory_service import InventoryService, normalize_quantity
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


def booking_total(price: Decimal, quantity: int) -> Decimal:
    """Total price of ``quantity`` tickets at ``price`` each."""
    return price * normalize_quantity(quantity)


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.inventory_service = InventoryService(db)
        self.notification_service = NotificationService(db)

    def _parse_date_time(self, value: str) -> datetime:
        try:
            return parse_slot_datetime(value)
        except ValueError as e:
            raise ValidationError(
                detail=f"Invalid date_time '{value}', expected 'yyyy-MM-dd HH:mm'"
            ) from e

    async def _resolve_slot(
        self,
        excursion_id: int,
        starts_at: datetime,
        category: str,
        quantity: int,
    ) -> TicketSlot:
        """Find the slot a request refers to; an unknown slot has no tickets to sell."""
        slot = await self.inventory_service.find_slot(excursion_id, starts_at, category)
        if not slot:
            logger.warning(
                "Booking rejected - no matching slot",
                extra={
                    "excursion_id": excursion_id,
                    "starts_at": starts_at.isoformat(),
                    "category": category,
                }
            )
            metrics_collector.record_reservation_rejected("no_slot")
            raise InsufficientInventoryError(
                requested_quantity=quantity,
                available_quantity=0,
                category=category,
                date_time=format_slot_datetime(starts_at),
            )
        return slot

    async def _commit_booking_change(self, booking: Booking) -> None:
        """Commit the unit of work; a concurrent write to the booking row becomes a conflict."""
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(
                "Booking modified concurrently",
                extra={"booking_id": booking.id}
            )
            raise ConflictError(
                detail=f"Booking {booking.id} was modified concurrently, retry the request",
                conflicting_resource={"booking_id": booking.id}
            ) from e

    async def create_booking(self, actor: Actor, request: CreateBookingRequest) -> Booking:
        """
        Book tickets on an excursion slot.

        Args:
            actor: Caller; must be the booking user with role User
            request: Booking creation request

        Returns:
            Created booking entity

        Raises:
            AuthorizationError: If the actor is not the booking user
            NotFoundError: If the excursion does not exist
            PreconditionFailedError: If the excursion has no guide
            ValidationError: If category or date/time are missing or malformed, or status is not Pending
            InsufficientInventoryError: If the slot is unknown or sold out
        """
        if actor.user_id != request.user_id or actor.role != Role.USER:
            logger.warning(
                "Booking creation rejected - actor mismatch",
                extra={"actor": actor.user_id, "role": actor.role, "user_id": request.user_id}
            )
            raise AuthorizationError(
                detail="Only the booking user can create a booking",
                required_roles=[Role.USER.value],
            )

        excursion = await self.db.get(Excursion, request.excursion_id)
        if not excursion:
            raise NotFoundError(resource_type="excursion", resource_id=str(request.excursion_id))
        if excursion.guide_id is None:
            raise PreconditionFailedError(detail=f"Excursion {excursion.id} has no guide assigned")

        if not request.ticket_category or not request.date_time:
            raise ValidationError(detail="ticket_category and date_time are required")
        if request.status not in (None, BookingStatus.PENDING):
            raise ValidationError(detail=f"New bookings start as Pending, got '{request.status.value}'")
        starts_at = self._parse_date_time(request.date_time)
        quantity = normalize_quantity(request.quantity)

        slot = await self._resolve_slot(excursion.id, starts_at, request.ticket_category, quantity)

        try:
            slot = await self.inventory_service.reserve(slot.id, quantity)

            booking = Booking(
                user_id=request.user_id,
                excursion_id=excursion.id,
                slot_id=slot.id,
                ticket_category=slot.category,
                starts_at=slot.starts_at,
                quantity=quantity,
                status=BookingStatus.PENDING,
                total=request.total if request.total is not None else booking_total(slot.price, quantity),
                payment_method=request.payment_method or DEFAULT_PAYMENT_METHOD,
                image=request.image or DEFAULT_BOOKING_IMAGE,
                timestamp=utc_now(),
            )
            self.db.add(booking)
            await self.db.commit()
        except ProblemDetailsException:
            await self.db.rollback()
            raise

        metrics_collector.record_booking_created(excursion.id)
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": booking.id,
                "excursion_id": excursion.id,
                "slot_id": slot.id,
                "quantity": quantity,
                "remaining_capacity": slot.total - slot.sold,
            }
        )

        delivered = await self.notification_service.deliver([
            (excursion.guide_id, f"Booked: {excursion.title}"),
            (booking.user_id, f"You booked: {excursion.title}"),
        ])
        if not delivered:
            # rollback of the notifications expired the committed booking
            await self.db.refresh(booking)

        return booking

    async def update_booking(self, actor: Actor, request: UpdateBookingRequest) -> Booking:
        """
        Move a pending booking to another slot or quantity.

        The new slot is reserved before the old one is released. When the
        slot does not change only the quantity difference is reserved or
        released. Any failure leaves the booking and both slots untouched.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the actor does not own the booking
            PreconditionFailedError: If the booking is not pending or already started
            ValidationError: If date/time is malformed
            InsufficientInventoryError: If the new slot cannot hold the quantity
            ConflictError: If the booking was modified concurrently
        """
        booking = await self.get_booking_by_id_or_raise(request.booking_id, for_update=True)
        if booking.user_id != actor.user_id:
            raise AuthorizationError(detail="You can only edit your own bookings")

        now = utc_now()
        if booking.status != BookingStatus.PENDING or booking.starts_at <= now:
            raise PreconditionFailedError(
                detail=f"Booking {booking.id} can only be edited while pending and before it starts"
            )

        category = request.ticket_category or booking.ticket_category
        starts_at = self._parse_date_time(request.date_time) if request.date_time else booking.starts_at
        quantity = normalize_quantity(request.quantity)
        old_slot_id = booking.slot_id
        old_quantity = booking.quantity

        try:
            slot = await self._resolve_slot(booking.excursion_id, starts_at, category, quantity)

            if slot.id == old_slot_id:
                delta = quantity - old_quantity
                if delta > 0:
                    slot = await self.inventory_service.reserve(slot.id, delta)
                elif delta < 0:
                    slot = await self.inventory_service.release(slot.id, -delta) or slot
            else:
                slot = await self.inventory_service.reserve(slot.id, quantity)
                if old_slot_id is not None:
                    await self.inventory_service.release(old_slot_id, old_quantity)

            booking.slot_id = slot.id
            booking.ticket_category = slot.category
            booking.starts_at = slot.starts_at
            booking.quantity = quantity
            booking.total = request.total if request.total is not None else booking_total(slot.price, quantity)
            if request.payment_method:
                booking.payment_method = request.payment_method

            await self._commit_booking_change(booking)
        except ProblemDetailsException:
            await self.db.rollback()
            logger.warning(
                "Booking update rolled back",
                extra={"booking_id": request.booking_id, "old_slot_id": old_slot_id}
            )
            raise

        metrics_collector.record_booking_updated()
        logger.info(
            "Booking updated successfully",
            extra={
                "booking_id": booking.id,
                "old_slot_id": old_slot_id,
                "new_slot_id": booking.slot_id,
                "old_quantity": old_quantity,
                "new_quantity": quantity,
            }
        )

        return booking

    async def cancel_booking(self, actor: Actor, booking_id: int) -> Booking:
        """
        Cancel a booking and restore its tickets to the slot.

        Cancelling an already cancelled booking returns it unchanged.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the actor does not own the booking
            ConflictError: If the booking was cancelled concurrently
        """
        booking = await self.get_booking_by_id_or_raise(booking_id, for_update=True)
        if booking.user_id != actor.user_id:
            raise AuthorizationError(detail="You can only cancel your own bookings")

        if booking.status == BookingStatus.CANCELLED:
            logger.info(
                "Booking already cancelled - returning existing booking",
                extra={"booking_id": booking_id}
            )
            return booking

        excursion = await self.db.get(Excursion, booking.excursion_id)

        try:
            if booking.slot_id is not None:
                await self.inventory_service.release(booking.slot_id, booking.quantity)
            booking.status = BookingStatus.CANCELLED
            await self._commit_booking_change(booking)
        except ProblemDetailsException:
            await self.db.rollback()
            raise

        metrics_collector.record_booking_cancelled()
        logger.info(
            "Booking cancelled successfully",
            extra={
                "booking_id": booking_id,
                "slot_id": booking.slot_id,
                "tickets_restored": booking.quantity,
            }
        )

        if excursion is not None:
            messages = [(booking.user_id, f"You cancelled: {excursion.title}")]
            if excursion.guide_id is not None:
                messages.insert(0, (excursion.guide_id, f"Booking cancelled: {excursion.title}"))
            if not await self.notification_service.deliver(messages):
                await self.db.refresh(booking)

        return booking

    async def get_booking(self, booking_id: int) -> Booking:
        """
        Get booking by ID.

        Raises:
            NotFoundError: If booking not found
        """
        return await self.get_booking_by_id_or_raise(booking_id)

    async def get_booking_for_actor(self, actor: Actor, booking_id: int) -> Booking:
        """
        Get a booking the actor may see.

        Visibility follows ``list_bookings``: users see their own bookings,
        guides those on excursions they guide, managers and admins all.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the booking is outside the actor's scope
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if actor.has_role(Role.MANAGER, Role.ADMIN) or booking.user_id == actor.user_id:
            return booking

        if actor.role == Role.GUIDE:
            excursion = await self.db.get(Excursion, booking.excursion_id)
            if excursion is not None and excursion.guide_id == actor.user_id:
                return booking

        logger.warning(
            "Booking read rejected - outside actor scope",
            extra={"booking_id": booking_id, "actor": actor.user_id, "role": actor.role}
        )
        raise AuthorizationError(detail="You can only view bookings you own or guide")

    async def get_booking_by_id(self, booking_id: int, for_update: bool = False) -> Booking | None:
        """
        Get booking by ID.

        With ``for_update`` the row stays locked until the transaction ends, so
        a concurrent edit or cancel waits and then sees the committed state.
        """
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: int, for_update: bool = False) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id, for_update=for_update)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": booking_id}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking

    async def list_bookings_for_user(self, actor: Actor, user_id: int) -> list[Booking]:
        """
        Bookings of one user, newest first.

        Statuses are not rewritten here; readers use ``Booking.effective_status``.

        Raises:
            AuthorizationError: If the actor asks for someone else's bookings
        """
        if actor.user_id != user_id:
            raise AuthorizationError(detail="You can only list your own bookings")

        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.timestamp.desc(), Booking.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def list_bookings(self, actor: Actor) -> list[Booking]:
        """
        Bookings visible to the actor.

        Users see their own bookings, guides see bookings on excursions they
        guide, managers and admins see every booking.
        """
        stmt = select(Booking).order_by(Booking.timestamp.desc(), Booking.id.desc())

        if actor.role == Role.USER:
            stmt = stmt.where(Booking.user_id == actor.user_id)
        elif actor.role == Role.GUIDE:
            stmt = stmt.join(Excursion, Booking.excursion_id == Excursion.id).where(
                Excursion.guide_id == actor.user_id
            )

        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def list_guide_bookings(self, actor: Actor, guide_id: int) -> list[Booking]:
        """
        Bookings on excursions guided by ``guide_id``.

        Raises:
            AuthorizationError: If the actor is not that guide
        """
        if actor.user_id != guide_id or actor.role != Role.GUIDE:
            raise AuthorizationError(
                detail="Guides can only list bookings of their own excursions",
                required_roles=[Role.GUIDE.value],
            )

        stmt = (
            select(Booking)
            .join(Excursion, Booking.excursion_id == Excursion.id)
            .where(Excursion.guide_id == guide_id)
            .order_by(Booking.starts_at, Booking.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def complete_past_bookings(self, now: datetime | None = None, batch_size: int = 500) -> int:
        """
        Persist ``Pending -> Completed`` for bookings whose start time has passed.

        Args:
            now: Reference time, defaults to the current UTC time
            batch_size: Maximum number of bookings to complete in one call

        Returns:
            Number of bookings completed
        """
        now = now or utc_now()

        stmt = (
            select(Booking)
            .where(
                Booking.status == BookingStatus.PENDING,
                Booking.starts_at < now
            )
            .order_by(Booking.starts_at, Booking.id)
            .limit(batch_size)
        )
        result = await self.db.execute(stmt)
        past_bookings = list(result.scalars())

        if not past_bookings:
            return 0

        for booking in past_bookings:
            booking.status = BookingStatus.COMPLETED

        try:
            await self.db.commit()
        except StaleDataError:
            # A concurrent edit or cancel won; the next sweep picks up what is left
            await self.db.rollback()
            logger.info(
                "Completion batch skipped due to concurrent modification",
                extra={"batch_size": len(past_bookings)}
            )
            return 0

        metrics_collector.record_bookings_completed(len(past_bookings))
        logger.info(
            "Completion batch finished",
            extra={
                "completed_count": len(past_bookings),
                "batch_size": batch_size,
                "reference_time": now.isoformat(),
            }
        )

        return len(past_bookings)