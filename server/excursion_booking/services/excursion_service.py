"""Excursion catalogue: authoring excursions with slots and reading availability."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.dependencies import Actor
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from ..core.timeutils import format_slot_datetime
from ..models.excursion import Excursion
from ..models.organization import Organization
from ..models.slot import TicketSlot
from ..models.user import Role
from ..schemas.excursion import AddSlotsRequest, CreateExcursionRequest, SlotInput
from .availability import project_availability
from .inventory_service import InventoryService
from .user_service import UserService

logger = logging.getLogger(__name__)

EDITOR_ROLES = (Role.MANAGER, Role.ADMIN)


def _slot_key(slot: SlotInput | TicketSlot) -> tuple:
    if isinstance(slot, SlotInput):
        return slot.starts_at(), slot.category
    return slot.starts_at, slot.category


class ExcursionService:
    """Service for excursion-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_service = UserService(db)
        self.inventory_service = InventoryService(db)

    async def _require_editor(self, actor: Actor, organization_id: int) -> None:
        """Managers may only edit their own organization's excursions; admins may edit any."""
        if not actor.has_role(*EDITOR_ROLES):
            raise AuthorizationError(
                detail="Only managers and admins can manage excursions",
                required_roles=[role.value for role in EDITOR_ROLES],
            )
        if actor.role == Role.ADMIN:
            return

        manager = await self.user_service.get_user_by_id_or_raise(actor.user_id)
        if manager.organization_id is None:
            raise PreconditionFailedError(detail="Manager must belong to an organization")
        if manager.organization_id != organization_id:
            raise AuthorizationError(detail="Managers can only manage their own organization's excursions")

    @staticmethod
    def _build_slots(slot_inputs: list[SlotInput]) -> list[TicketSlot]:
        """Convert slot inputs, rejecting duplicate (start, category) pairs."""
        seen: set[tuple] = set()
        slots = []
        for slot_input in slot_inputs:
            key = _slot_key(slot_input)
            if key in seen:
                raise ValidationError(
                    detail=(
                        f"Duplicate slot for {format_slot_datetime(key[0])} "
                        f"in category '{slot_input.category}'"
                    )
                )
            seen.add(key)
            slots.append(
                TicketSlot(
                    starts_at=key[0],
                    category=slot_input.category,
                    total=slot_input.total,
                    sold=0,
                    price=slot_input.price,
                    currency=slot_input.currency,
                )
            )
        return slots

    async def create_excursion(self, actor: Actor, request: CreateExcursionRequest) -> Excursion:
        """
        Create an excursion together with its ticket slots.

        Args:
            actor: Caller; must be a manager of the organization or an admin
            request: Excursion creation request

        Returns:
            Created excursion with slots loaded

        Raises:
            AuthorizationError: If the actor may not manage the organization
            NotFoundError: If the organization does not exist
            ValidationError: If the guide is not a guide or slots repeat
        """
        organization = await self.db.get(Organization, request.organization_id)
        if not organization:
            raise NotFoundError(resource_type="organization", resource_id=str(request.organization_id))

        await self._require_editor(actor, request.organization_id)

        if request.guide_id is not None:
            guide = await self.user_service.get_user_by_id(request.guide_id)
            if not guide or guide.role != Role.GUIDE:
                raise ValidationError(detail=f"User {request.guide_id} is not a guide")

        manager_id = request.manager_id
        if manager_id is None and actor.role == Role.MANAGER:
            manager_id = actor.user_id

        excursion = Excursion(
            title=request.title,
            description=request.description,
            city=request.city,
            organization_id=request.organization_id,
            guide_id=request.guide_id,
            manager_id=manager_id,
            slots=self._build_slots(request.slots),
        )

        try:
            self.db.add(excursion)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Excursion creation failed due to integrity constraint",
                extra={"organization_id": request.organization_id, "error": str(e)}
            )
            raise ConflictError(detail="Excursion creation failed due to constraint violation") from e

        logger.info(
            "Excursion created successfully",
            extra={
                "excursion_id": excursion.id,
                "organization_id": excursion.organization_id,
                "guide_id": excursion.guide_id,
                "slot_count": len(request.slots),
                "actor": actor.user_id,
            }
        )

        return await self.get_excursion_with_slots(excursion.id)

    async def add_slots(self, actor: Actor, request: AddSlotsRequest) -> Excursion:
        """
        Add slots to an existing excursion.

        Raises:
            NotFoundError: If the excursion does not exist
            ValidationError: If the request repeats a slot
            ConflictError: If a slot with the same start and category exists
        """
        excursion = await self.get_excursion_with_slots(request.excursion_id)
        await self._require_editor(actor, excursion.organization_id)

        new_slots = self._build_slots(request.slots)
        existing = {_slot_key(slot) for slot in excursion.slots}
        clashes = [slot for slot in new_slots if _slot_key(slot) in existing]
        if clashes:
            raise ConflictError(
                detail="Slot already exists for this start time and category",
                conflicting_resource={
                    "excursion_id": excursion.id,
                    "date_time": format_slot_datetime(clashes[0].starts_at),
                    "category": clashes[0].category,
                }
            )

        try:
            excursion.slots.extend(new_slots)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(detail="Slot already exists for this start time and category") from e

        logger.info(
            "Slots added to excursion",
            extra={"excursion_id": excursion.id, "slot_count": len(new_slots), "actor": actor.user_id}
        )

        return await self.get_excursion_with_slots(excursion.id)

    async def get_excursion_by_id(self, excursion_id: int) -> Excursion | None:
        """Get excursion by ID."""
        stmt = select(Excursion).where(Excursion.id == excursion_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_excursion_by_id_or_raise(self, excursion_id: int) -> Excursion:
        """Get excursion by ID or raise NotFoundError."""
        excursion = await self.get_excursion_by_id(excursion_id)
        if not excursion:
            logger.warning("Excursion not found", extra={"excursion_id": excursion_id})
            raise NotFoundError(resource_type="excursion", resource_id=str(excursion_id))
        return excursion

    async def get_excursion_with_slots(self, excursion_id: int) -> Excursion:
        """
        Load an excursion with its full slot set and current counters.

        Raises:
            NotFoundError: If the excursion does not exist
        """
        stmt = (
            select(Excursion)
            .options(selectinload(Excursion.slots))
            .where(Excursion.id == excursion_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        excursion = result.scalar_one_or_none()
        if not excursion:
            logger.warning("Excursion not found", extra={"excursion_id": excursion_id})
            raise NotFoundError(resource_type="excursion", resource_id=str(excursion_id))
        return excursion

    async def get_availability(self, excursion_id: int) -> dict[str, dict[str, dict]]:
        """
        Remaining capacity of an excursion by start time and category.

        Raises:
            NotFoundError: If the excursion does not exist
        """
        await self.get_excursion_by_id_or_raise(excursion_id)
        slots = await self.inventory_service.list_slots(excursion_id)
        return project_availability(slots)
