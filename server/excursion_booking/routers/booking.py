"""Booking router for booking operations."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Actor, CurrentActor, DatabaseSession
from ..core.timeutils import format_slot_datetime, utc_now
from ..models.booking import Booking as BookingModel
from ..schemas.common import problem_responses
from ..schemas.booking import (
    Booking,
    BookingList,
    CancelBookingRequest,
    CreateBookingRequest,
    GetBookingRequest,
    ListBookingsForUserRequest,
    ListGuideBookingsRequest,
    UpdateBookingRequest,
)
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/booking",
    tags=["booking"],
    responses=problem_responses(400, 401, 403, 404, 409, 412, 422),
)


def _convert_booking_to_schema(booking_model: BookingModel) -> Booking:
    """Convert booking model to schema, reporting the effective status."""
    return Booking(
        id=booking_model.id,
        user_id=booking_model.user_id,
        excursion_id=booking_model.excursion_id,
        slot_id=booking_model.slot_id,
        ticket_category=booking_model.ticket_category,
        date_time=format_slot_datetime(booking_model.starts_at),
        quantity=booking_model.quantity,
        status=booking_model.effective_status(utc_now()),
        total=float(booking_model.total),
        payment_method=booking_model.payment_method,
        timestamp=booking_model.timestamp,
    )


def _booking_response(booking_model: BookingModel, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=_convert_booking_to_schema(booking_model).model_dump(mode="json")
    )


def _booking_list_response(bookings: list[BookingModel]) -> JSONResponse:
    response_data = BookingList(items=[_convert_booking_to_schema(b) for b in bookings])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/create", response_model=Booking, status_code=201)
async def create_booking(
    request: CreateBookingRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """
    Book tickets on an excursion slot.

    Reserves the tickets atomically; fails with 409 when the slot cannot
    hold the requested quantity.
    """
    booking = await BookingService(db).create_booking(actor, request)

    logger.info(
        "Booking created via API",
        extra={
            "booking_id": booking.id,
            "excursion_id": request.excursion_id,
            "quantity": booking.quantity,
        }
    )

    return _booking_response(booking, status_code=201)


@router.post("/update", response_model=Booking)
async def update_booking(
    request: UpdateBookingRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """Move a pending booking to another slot, category or quantity."""
    booking = await BookingService(db).update_booking(actor, request)
    return _booking_response(booking)


@router.post("/cancel", response_model=Booking)
async def cancel_booking(
    request: CancelBookingRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """
    Cancel a booking.

    Cancelling an already cancelled booking returns it unchanged.
    """
    booking = await BookingService(db).cancel_booking(actor, request.booking_id)
    return _booking_response(booking)


@router.post("/get", response_model=Booking)
async def get_booking(
    request: GetBookingRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """
    Get booking details.

    Visible to its owner, the excursion's guide, managers and admins.
    """
    booking = await BookingService(db).get_booking_for_actor(actor, request.booking_id)

    logger.debug(
        "Booking retrieved",
        extra={"booking_id": request.booking_id, "actor": actor.user_id}
    )

    return _booking_response(booking)


@router.post("/list", response_model=BookingList)
async def list_bookings(
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """List the bookings visible to the caller's role."""
    bookings = await BookingService(db).list_bookings(actor)
    return _booking_list_response(bookings)


@router.post("/list-for-user", response_model=BookingList)
async def list_bookings_for_user(
    request: ListBookingsForUserRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """List the caller's own bookings."""
    bookings = await BookingService(db).list_bookings_for_user(actor, request.user_id)
    return _booking_list_response(bookings)


@router.post("/list-for-guide", response_model=BookingList)
async def list_guide_bookings(
    request: ListGuideBookingsRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """List bookings on the excursions the calling guide leads."""
    bookings = await BookingService(db).list_guide_bookings(actor, request.guide_id)
    return _booking_list_response(bookings)
