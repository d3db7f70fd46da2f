"""Availability projection: remaining capacity by start time and category."""

from collections.abc import Iterable

from ..core.timeutils import format_slot_datetime
from ..models.slot import TicketSlot
from .inventory_service import remaining


def category_label(category: str | None, index: int) -> str:
    """Label for a slot category; blank categories get a positional label."""
    if category is None or not category.strip():
        return f"default_{index}"
    return category


def project_availability(slots: Iterable[TicketSlot]) -> dict[str, dict[str, dict]]:
    """
    Build ``{"yyyy-MM-dd HH:mm": {category: {count, price, currency}}}``.

    Slots are grouped by formatted start time, then by their exact category
    label, the same key bookings use to resolve a slot. Exact duplicates have
    their counts summed and keep the first price and currency seen. Counts
    are never negative.

    Args:
        slots: Slots of one excursion

    Returns:
        Nested availability mapping, ordered by start time
    """
    ordered = sorted(slots, key=lambda s: (s.starts_at, s.id or 0))

    view: dict[str, dict[str, dict]] = {}
    positions: dict[str, int] = {}

    for slot in ordered:
        key = format_slot_datetime(slot.starts_at)
        group = view.setdefault(key, {})

        index = positions.get(key, 0)
        positions[key] = index + 1

        label = category_label(slot.category, index)
        count = remaining(slot)

        if label in group:
            group[label]["count"] += count
            continue

        group[label] = {
            "count": count,
            "price": float(slot.price),
            "currency": slot.currency,
        }

    return view
