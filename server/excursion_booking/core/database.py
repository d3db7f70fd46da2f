"""Database configuration and async session management."""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from .config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    """Engine keyword arguments for the configured backend."""
    if settings.is_sqlite:
        # In-memory SQLite must share one connection across sessions
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {"pool_pre_ping": True}


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=False,
    **_engine_options(),
)

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for all models."""


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# Alias for FastAPI dependency injection
get_db = get_async_session


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()


async def check_database(session: AsyncSession | None = None) -> bool:
    """
    Run ``SELECT 1`` against the database.

    Uses ``session`` when given, otherwise a short-lived session of its own.

    Returns:
        True if the database answered
    """
    try:
        if session is not None:
            await session.execute(text("SELECT 1"))
        else:
            async with async_session_factory() as own_session:
                await own_session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database check failed", extra={"error": str(e)})
        return False
