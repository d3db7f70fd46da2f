"""FastAPI routers package."""

from .booking import router as booking_router
from .excursion import router as excursion_router
from .health import router as health_router
from .metrics import router as metrics_router
from .notification import router as notification_router

__all__ = [
    "booking_router",
    "excursion_router",
    "health_router",
    "metrics_router",
    "notification_router",
]
