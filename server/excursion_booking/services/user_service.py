"""Read access to users for authorization checks."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..models.user import User

logger = logging.getLogger(__name__)


class UserService:
    """Service for looking up users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_id_or_raise(self, user_id: int) -> User:
        """Get user by ID or raise NotFoundError."""
        user = await self.get_user_by_id(user_id)
        if not user:
            logger.warning("User not found", extra={"user_id": user_id})
            raise NotFoundError(resource_type="user", resource_id=str(user_id))
        return user
