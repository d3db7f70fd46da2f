"""Notification router."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Actor, CurrentActor, DatabaseSession
from ..schemas.common import problem_responses
from ..schemas.notification import ListNotificationsRequest, Notification, NotificationList
from ..services.notification_service import NotificationService

router = APIRouter(
    prefix="/v1/notification",
    tags=["notification"],
    responses=problem_responses(401, 403, 422),
)


@router.post("/list-for-user", response_model=NotificationList)
async def list_notifications_for_user(
    request: ListNotificationsRequest,
    db: AsyncSession = DatabaseSession,
    actor: Actor = CurrentActor
) -> JSONResponse:
    """List the caller's notifications, newest first."""
    notifications = await NotificationService(db).list_for_user(actor, request.user_id)
    response_data = NotificationList(
        items=[Notification.model_validate(n) for n in notifications]
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
