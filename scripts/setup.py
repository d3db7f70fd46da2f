#!/usr/bin/env python3
"""Setup script for the excursion booking API."""

import asyncio
import logging
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from excursion_booking.core.database import async_session_factory
from excursion_booking.core.timeutils import truncate_to_minute, utc_now
from excursion_booking.models import *  # noqa: F403 - register all models

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def setup_database() -> None:
    """Bring the database schema up to date with Alembic."""
    logger.info("Setting up database...")

    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Create an organization, its staff, a customer and one excursion with slots."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing = await db.execute(select(func.count()).select_from(Excursion))
            if existing.scalar() > 0:
                logger.info("Sample data already exists, skipping...")
                return

            organization = Organization(name="Reykjavik Outdoors")
            manager = User(email="manager@example.com", name="Mara Manager", role=Role.MANAGER, organization=organization)
            guide = User(email="guide@example.com", name="Gunnar Guide", role=Role.GUIDE, organization=organization)
            customer = User(email="traveller@example.com", name="Tia Traveller", role=Role.USER)
            db.add_all([organization, manager, guide, customer])
            await db.flush()

            excursion = Excursion(
                title="Northern Lights Adventure",
                description="Experience the Aurora Borealis with expert guides",
                city="Reykjavik",
                organization_id=organization.id,
                guide_id=guide.id,
                manager_id=manager.id,
            )

            base = truncate_to_minute(utc_now()).replace(hour=21, minute=0) + timedelta(days=30)
            for week in range(4):
                starts_at = base + timedelta(days=week * 7)
                excursion.slots.append(
                    TicketSlot(starts_at=starts_at, category="Standard", total=40, sold=0, price=Decimal("299.99"), currency="USD")
                )
                excursion.slots.append(
                    TicketSlot(starts_at=starts_at, category="VIP", total=8, sold=0, price=Decimal("549.00"), currency="USD")
                )

            db.add(excursion)
            await db.commit()
            logger.info(
                "Sample data created successfully!",
                extra={"excursion_id": excursion.id, "guide_id": guide.id, "user_id": customer.id}
            )

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


def main() -> None:
    """Main setup function."""
    logger.info("Starting excursion booking API setup...")

    setup_database()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn excursion_booking.main:app --reload")


if __name__ == "__main__":
    main()
