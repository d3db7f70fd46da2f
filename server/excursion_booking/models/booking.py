"""Booking model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .excursion import Excursion
    from .slot import TicketSlot
    from .user import User


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "Pending"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


DEFAULT_PAYMENT_METHOD = "NotSpecified"
DEFAULT_BOOKING_IMAGE = "default_image.jpg"


class Booking(Base):
    """A user's reservation of ``quantity`` tickets on one slot."""

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    excursion_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("excursions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    slot_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("ticket_slots.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Denormalized from the slot for display and history
    ticket_category: Mapped[str] = mapped_column(String(64), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True
    )
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False, default=DEFAULT_PAYMENT_METHOD)
    image: Mapped[str] = mapped_column(String(255), nullable=False, default=DEFAULT_BOOKING_IMAGE)

    timestamp: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    # Optimistic concurrency: stale writes raise StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_booking_quantity_positive"),
        CheckConstraint("total >= 0", name="ck_booking_total_non_negative"),
    )

    __mapper_args__ = {"version_id_col": version}

    user: Mapped["User"] = relationship("User")
    excursion: Mapped["Excursion"] = relationship("Excursion", back_populates="bookings")
    slot: Mapped["TicketSlot | None"] = relationship("TicketSlot")

    def effective_status(self, now: datetime) -> BookingStatus:
        """Status as seen by readers: a past pending booking reads as completed."""
        if self.status == BookingStatus.PENDING and self.starts_at < now:
            return BookingStatus.COMPLETED
        return BookingStatus(self.status)

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user_id={self.user_id}, slot_id={self.slot_id}, "
            f"quantity={self.quantity}, status={self.status})>"
        )
