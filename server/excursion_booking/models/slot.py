"""Ticket slot model definition."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .excursion import Excursion


class TicketSlot(Base):
    """Bookable capacity for one excursion at one start time and ticket category."""

    __tablename__ = "ticket_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    excursion_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("excursions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Wall-clock start, minute precision
    starts_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    total: Mapped[int] = mapped_column(Integer, nullable=False)
    sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("excursion_id", "starts_at", "category", name="uq_ticket_slot_excursion_start_category"),
        CheckConstraint("total >= 0", name="ck_ticket_slot_total_non_negative"),
        CheckConstraint("sold >= 0", name="ck_ticket_slot_sold_non_negative"),
        CheckConstraint("sold <= total", name="ck_ticket_slot_sold_lte_total"),
        CheckConstraint("price >= 0", name="ck_ticket_slot_price_non_negative"),
        CheckConstraint("length(currency) = 3", name="ck_ticket_slot_currency_length"),
    )

    excursion: Mapped["Excursion"] = relationship("Excursion", back_populates="slots")

    @property
    def remaining(self) -> int:
        """Raw ``total - sold``; callers clamp and report negatives."""
        return self.total - self.sold

    def __repr__(self) -> str:
        return (
            f"<TicketSlot(id={self.id}, excursion_id={self.excursion_id}, starts_at={self.starts_at}, "
            f"category='{self.category}', sold={self.sold}/{self.total})>"
        )
