"""Service layer package."""

from .availability import project_availability
from .booking_service import BookingService
from .excursion_service import ExcursionService
from .inventory_service import InventoryService
from .notification_service import NotificationService
from .user_service import UserService

__all__ = [
    "BookingService",
    "ExcursionService",
    "InventoryService",
    "NotificationService",
    "UserService",
    "project_availability",
]
