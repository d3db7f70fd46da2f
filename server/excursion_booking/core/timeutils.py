"""Wall-clock helpers shared by slots, bookings and the availability view."""

import re
from datetime import datetime, timezone

SLOT_DATETIME_FORMAT = "%Y-%m-%d %H:%M"
SLOT_DATE_FORMAT = "%Y-%m-%d"
SLOT_TIME_FORMAT = "%H:%M"

# strptime alone accepts unpadded fields such as "2030-6-1 9:5"
_SLOT_DATETIME_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}", re.ASCII)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching stored slot times."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_slot_datetime(value: str) -> datetime:
    """
    Parse a ``yyyy-MM-dd HH:mm`` string.

    Raises:
        ValueError: If the string does not match the format exactly
    """
    if not _SLOT_DATETIME_PATTERN.fullmatch(value):
        raise ValueError(f"'{value}' does not match 'yyyy-MM-dd HH:mm'")
    return datetime.strptime(value, SLOT_DATETIME_FORMAT)


def format_slot_datetime(value: datetime) -> str:
    """Format a start time as ``yyyy-MM-dd HH:mm``."""
    return value.strftime(SLOT_DATETIME_FORMAT)


def truncate_to_minute(value: datetime) -> datetime:
    """Drop seconds, microseconds and tzinfo so slot lookups compare exactly."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)
