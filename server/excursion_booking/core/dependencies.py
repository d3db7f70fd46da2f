"""FastAPI dependencies for database sessions and authentication."""

from dataclasses import dataclass
from typing import AsyncGenerator, Optional

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import Role
from .config import settings
from .database import get_async_session
from .exceptions import AuthenticationError


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as asserted by the bearer token."""

    user_id: int
    role: Role

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


def decode_actor(token: str) -> Actor:
    """
    Decode a bearer token into an actor.

    Expiry is enforced by PyJWT when the token carries an ``exp`` claim.

    Raises:
        AuthenticationError: If the token is invalid or lacks ``sub``/``role``
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}") from e

    subject = payload.get("sub")
    role = payload.get("role")
    if subject is None or role is None:
        raise AuthenticationError(detail="Invalid token payload")

    try:
        return Actor(user_id=int(subject), role=Role(role))
    except ValueError as e:
        raise AuthenticationError(detail="Invalid token payload") from e


async def get_current_actor(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> Actor:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        Actor: Caller identity and role

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError(detail="Invalid authorization header format")

    return decode_actor(token.strip())


DatabaseSession = Depends(get_db)
CurrentActor = Depends(get_current_actor)
