"""Notification sink: best-effort messages for booking events."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Actor
from ..core.exceptions import AuthorizationError
from ..core.observability import metrics_collector
from ..core.timeutils import utc_now
from ..models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for appending and reading user notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, user_id: int, message: str, timestamp: datetime | None = None) -> None:
        """Stage a notification in the current session; committing is the caller's job."""
        self.db.add(
            Notification(
                user_id=user_id,
                message=message,
                timestamp=timestamp or utc_now(),
            )
        )

    async def deliver(self, messages: list[tuple[int, str]]) -> bool:
        """
        Append and commit a batch of notifications, never raising.

        Booking state is committed before this is called, so a failure here
        only loses the notifications.

        Args:
            messages: (user_id, message) pairs

        Returns:
            True if the notifications were stored
        """
        timestamp = utc_now()
        try:
            for user_id, message in messages:
                await self.append(user_id, message, timestamp)
            await self.db.commit()
            return True
        except SQLAlchemyError as e:
            await self.db.rollback()
            metrics_collector.record_notification_failure()
            logger.warning(
                "Failed to store notifications",
                extra={
                    "recipients": [user_id for user_id, _ in messages],
                    "error": str(e),
                }
            )
            return False

    async def list_for_user(self, actor: Actor, user_id: int) -> list[Notification]:
        """
        Notifications addressed to a user, newest first.

        Raises:
            AuthorizationError: If the actor asks for someone else's notifications
        """
        if actor.user_id != user_id:
            raise AuthorizationError(detail="You can only read your own notifications")

        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.timestamp.desc(), Notification.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())
