"""Background worker that persists completion of past bookings."""

from ..core.config import settings
from ..core.database import async_session_factory
from ..core.observability import get_logger
from ..core.timeutils import utc_now
from ..services.booking_service import BookingService
from .base import BaseWorker

logger = get_logger(__name__)


class CompletionSweepWorker(BaseWorker):
    """
    Background worker that marks past pending bookings as completed.

    Reads already report such bookings as completed; this worker makes the
    stored status catch up so that reads never have to write.
    """

    def __init__(
        self,
        interval_seconds: int = settings.completion_sweep_interval_seconds,
        batch_size: int = settings.completion_sweep_batch_size,
    ):
        """
        Initialize the completion sweep worker.

        Args:
            interval_seconds: How often to sweep
            batch_size: Maximum bookings completed per sweep
        """
        super().__init__(name="CompletionSweep", interval_seconds=interval_seconds)
        self.batch_size = batch_size

    async def process(self) -> None:
        """Complete one batch of past pending bookings."""
        async with async_session_factory() as db:
            now = utc_now()
            completed = await BookingService(db).complete_past_bookings(now, self.batch_size)

            if completed > 0:
                logger.info(
                    "past_bookings_completed",
                    completed_count=completed,
                    reference_time=now.isoformat(),
                    worker=self.name,
                )
