"""Models module exporting all database models."""

from .booking import Booking, BookingStatus
from .excursion import Excursion
from .notification import Notification
from .organization import Organization
from .slot import TicketSlot
from .user import Role, User

__all__ = [
    # Accounts
    "Organization",
    "Role",
    "User",

    # Catalogue and inventory
    "Excursion",
    "TicketSlot",

    # Ledger
    "Booking",
    "BookingStatus",

    # Side effects
    "Notification",
]
