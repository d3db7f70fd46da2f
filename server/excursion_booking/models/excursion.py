"""Excursion model definition."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .organization import Organization
    from .slot import TicketSlot
    from .user import User


class Excursion(Base):
    """Excursion entity owning a set of ticketed slots."""

    __tablename__ = "excursions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)

    # Owning organization is required; guide and manager are assigned later
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    guide_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    manager_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    organization: Mapped["Organization"] = relationship("Organization", back_populates="excursions")
    guide: Mapped["User | None"] = relationship("User", foreign_keys=[guide_id])
    manager: Mapped["User | None"] = relationship("User", foreign_keys=[manager_id])
    slots: Mapped[list["TicketSlot"]] = relationship(
        "TicketSlot",
        back_populates="excursion",
        cascade="all, delete-orphan",
        order_by="TicketSlot.starts_at"
    )
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="excursion",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Excursion(id={self.id}, title='{self.title}', "
            f"organization_id={self.organization_id}, guide_id={self.guide_id})>"
        )
