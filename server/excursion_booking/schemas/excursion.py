"""Excursion, slot and availability schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.timeutils import parse_slot_datetime


class SlotInput(BaseModel):
    """A ticket slot as authored together with an excursion."""

    date: str = Field(..., description="Slot date as 'yyyy-MM-dd'")
    time: str = Field(..., description="Slot time as 'HH:mm'")
    category: str = Field("", max_length=64, description="Ticket category")
    total: int = Field(..., ge=0, le=100000, description="Ticket capacity")
    price: Decimal = Field(..., ge=0, description="Price per ticket")
    currency: str = Field("USD", pattern=r"^[A-Z]{3}$", description="ISO 4217 currency code")

    @model_validator(mode="after")
    def check_start(self) -> "SlotInput":
        self.starts_at()
        return self

    def starts_at(self) -> datetime:
        """Combined start time; raises ValueError on a malformed date or time."""
        try:
            return parse_slot_datetime(f"{self.date} {self.time}")
        except ValueError as e:
            raise ValueError("date and time must be 'yyyy-MM-dd' and 'HH:mm'") from e


class CreateExcursionRequest(BaseModel):
    """Request schema for authoring an excursion with its slots."""

    title: str = Field(..., min_length=1, max_length=255, description="Excursion title")
    description: str | None = Field(None, max_length=4000, description="Description")
    city: str | None = Field(None, max_length=128, description="City")
    organization_id: int = Field(..., description="Owning organization")
    guide_id: int | None = Field(None, description="Assigned guide")
    manager_id: int | None = Field(None, description="Assigned manager")
    slots: list[SlotInput] = Field(default_factory=list, description="Ticket slots")


class AddSlotsRequest(BaseModel):
    """Request schema for adding slots to an existing excursion."""

    excursion_id: int = Field(..., description="Excursion to extend")
    slots: list[SlotInput] = Field(..., min_length=1, description="Slots to add")


class GetExcursionRequest(BaseModel):
    """Request schema for fetching an excursion or its availability."""

    excursion_id: int = Field(..., description="Excursion ID")


class Slot(BaseModel):
    """Ticket slot response schema."""

    id: int = Field(..., description="Durable slot ID")
    date: str = Field(..., description="Slot date as 'yyyy-MM-dd'")
    time: str = Field(..., description="Slot time as 'HH:mm'")
    category: str = Field(..., description="Ticket category")
    total: int = Field(..., ge=0, description="Capacity")
    sold: int = Field(..., ge=0, description="Tickets sold")
    remaining: int = Field(..., ge=0, description="Remaining capacity")
    price: float = Field(..., ge=0, description="Price per ticket")
    currency: str = Field(..., description="ISO 4217 currency code")


class AvailabilityEntry(BaseModel):
    """Remaining capacity and price for one category at one start time."""

    count: int = Field(..., ge=0, description="Remaining tickets")
    price: float = Field(..., ge=0, description="Price per ticket")
    currency: str = Field(..., description="ISO 4217 currency code")


AvailabilityView = dict[str, dict[str, AvailabilityEntry]]


class Excursion(BaseModel):
    """Excursion response schema."""

    id: int = Field(..., description="Unique excursion ID")
    title: str = Field(..., description="Title")
    description: str | None = Field(None, description="Description")
    city: str | None = Field(None, description="City")
    organization_id: int = Field(..., description="Owning organization")
    guide_id: int | None = Field(None, description="Assigned guide")
    manager_id: int | None = Field(None, description="Assigned manager")
    slots: list[Slot] = Field(default_factory=list, description="Ticket slots")
    available_tickets_by_date: AvailabilityView = Field(
        default_factory=dict, description="Remaining capacity by start time and category"
    )

    model_config = ConfigDict(from_attributes=True)
