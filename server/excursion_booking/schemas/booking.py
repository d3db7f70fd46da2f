"""Booking-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus


class CreateBookingRequest(BaseModel):
    """Request schema for creating a booking."""

    user_id: int = Field(..., description="Booking user; must match the caller")
    excursion_id: int = Field(..., description="Excursion to book")
    ticket_category: str | None = Field(None, max_length=64, description="Ticket category")
    date_time: str | None = Field(None, description="Slot start as 'yyyy-MM-dd HH:mm'")
    quantity: int = Field(1, description="Tickets to book; values <= 0 book one ticket")
    status: BookingStatus | None = Field(None, description="Initial status; only Pending is accepted")
    payment_method: str | None = Field(None, max_length=64, description="Payment method")
    image: str | None = Field(None, max_length=255, description="Image reference")
    total: Decimal | None = Field(None, ge=0, description="Explicit total; price * quantity when omitted")


class UpdateBookingRequest(BaseModel):
    """Request schema for editing a pending booking."""

    booking_id: int = Field(..., description="Booking to edit")
    ticket_category: str | None = Field(None, max_length=64, description="New category; unchanged when omitted")
    date_time: str | None = Field(None, description="New slot start as 'yyyy-MM-dd HH:mm'")
    quantity: int = Field(1, description="New quantity; values <= 0 book one ticket")
    payment_method: str | None = Field(None, max_length=64, description="New payment method")
    total: Decimal | None = Field(None, ge=0, description="Explicit total; price * quantity when omitted")


class CancelBookingRequest(BaseModel):
    """Request schema for cancelling a booking."""

    booking_id: int = Field(..., description="Booking to cancel")


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: int = Field(..., description="Booking to retrieve")


class ListBookingsForUserRequest(BaseModel):
    """Request schema for listing one user's bookings."""

    user_id: int = Field(..., description="Owner of the bookings")


class ListGuideBookingsRequest(BaseModel):
    """Request schema for listing bookings on a guide's excursions."""

    guide_id: int = Field(..., description="Guide assigned to the excursions")


class Booking(BaseModel):
    """Booking response schema."""

    id: int = Field(..., description="Unique booking ID")
    user_id: int = Field(..., description="Booking user")
    excursion_id: int = Field(..., description="Booked excursion")
    slot_id: int | None = Field(None, description="Reserved slot")
    ticket_category: str = Field(..., description="Ticket category")
    date_time: str = Field(..., description="Slot start as 'yyyy-MM-dd HH:mm'")
    quantity: int = Field(..., ge=1, description="Number of tickets")
    status: BookingStatus = Field(..., description="Booking status")
    total: float = Field(..., ge=0, description="Total price")
    payment_method: str = Field(..., description="Payment method")
    timestamp: datetime = Field(..., description="Booking creation time (ISO 8601)")

    model_config = ConfigDict(from_attributes=True)


class BookingList(BaseModel):
    """List of bookings."""

    items: list[Booking] = Field(default_factory=list, description="Bookings")
