"""Excursion router for catalogue and availability operations."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Actor, CurrentActor, DatabaseSession
from ..core.timeutils import SLOT_DATE_FORMAT, SLOT_TIME_FORMAT
from ..models.excursion import Excursion as ExcursionModel
from ..schemas.common import problem_responses
from ..schemas.excursion import (
    AddSlotsRequest,
    CreateExcursionRequest,
    Excursion,
    GetExcursionRequest,
    Slot,
)
from ..services.availability import project_availability
from ..services.excursion_service import ExcursionService
from ..services.inventory_service import remaining

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/excursion",
    tags=["excursion"],
    responses=problem_responses(400, 401, 403, 404, 409, 412, 422),
)


def _convert_excursion_to_schema(excursion_model: ExcursionModel) -> Excursion:
    """Convert an excursion with loaded slots to schema."""
    slots = [
        Slot(
            id=slot.id,
            date=slot.starts_at.strftime(SLOT_DATE_FORMAT),
            time=slot.starts_at.strftime(SLOT_TIME_FORMAT),
            category=slot.category,
            total=slot.total,
            sold=slot.sold,
            remaining=remaining(slot),
            price=float(slot.price),
            currency=slot.currency,
        )
        for slot in excursion_model.slots
    ]
    return Excursion(
        id=excursion_model.id,
        title=excursion_model.title,
        description=excursion_model.description,
        city=excursion_model.city,
        organization_id=excursion_model.organization_id,
        guide_id=excursion_model.guide_id,
        manager_id=excursion_model.manager_id,
        slots=slots,
        available_tickets_by_date=project_availability(excursion_model.slots),
    )


@router.post("/create", response_model=Excursion, status_code=201)
async def create_excursion(
    request: CreateExcursionRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """
    Create an excursion with its ticket slots.

    Only managers of the owning organization and admins may author excursions.
    """
    excursion = await ExcursionService(db).create_excursion(actor, request)

    logger.info(
        "Excursion created via API",
        extra={"excursion_id": excursion.id, "organization_id": excursion.organization_id}
    )

    return JSONResponse(
        status_code=201,
        content=_convert_excursion_to_schema(excursion).model_dump(mode="json")
    )


@router.post("/add-slots", response_model=Excursion)
async def add_slots(
    request: AddSlotsRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """Add ticket slots to an existing excursion."""
    excursion = await ExcursionService(db).add_slots(actor, request)
    return JSONResponse(
        status_code=200,
        content=_convert_excursion_to_schema(excursion).model_dump(mode="json")
    )


@router.post("/get", response_model=Excursion)
async def get_excursion(
    request: GetExcursionRequest,
    db: AsyncSession = DatabaseSession
) -> JSONResponse:
    """Get an excursion with its slots and availability."""
    excursion = await ExcursionService(db).get_excursion_with_slots(request.excursion_id)
    return JSONResponse(
        status_code=200,
        content=_convert_excursion_to_schema(excursion).model_dump(mode="json")
    )


@router.post("/availability")
async def get_availability(
    request: GetExcursionRequest,
    db: AsyncSession = DatabaseSession
) -> JSONResponse:
    """
    Remaining tickets by start time and category.

    Returns ``{"yyyy-MM-dd HH:mm": {category: {count, price, currency}}}``.
    """
    availability = await ExcursionService(db).get_availability(request.excursion_id)
    return JSONResponse(status_code=200, content=availability)
