"""Background workers for the excursion booking service."""

from .base import BaseWorker
from .completion_worker import CompletionSweepWorker

__all__ = ["BaseWorker", "CompletionSweepWorker"]
