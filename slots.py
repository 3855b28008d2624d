"""
Half-hour slot grid and week arithmetic.

A day has 48 slots; slot ``i`` starts at ``i // 2`` hours and ``(i % 2) * 30``
minutes. Weeks start on Sunday.
"""
from datetime import date, time, timedelta
from functools import lru_cache

from pydantic import BaseModel

from errors import ValidationError

SLOTS_PER_DAY = 48
SLOT_MINUTES = 30
DAYS_PER_WEEK = 7


class Slot(BaseModel):
    index: int
    label: str


def slot_time(index: int) -> time:
    validate_slot_index(index)
    return time(index // 2, (index % 2) * SLOT_MINUTES)


def slot_label(index: int) -> str:
    """12-hour label, e.g. 0 -> '12:00 AM', 19 -> '9:30 AM', 24 -> '12:00 PM'."""
    t = slot_time(index)
    ampm = "AM" if t.hour < 12 else "PM"
    hour12 = t.hour % 12 or 12
    return f"{hour12}:{t.minute:02d} {ampm}"


@lru_cache(maxsize=1)
def enumerate_slots() -> tuple[Slot, ...]:
    return tuple(Slot(index=i, label=slot_label(i)) for i in range(SLOTS_PER_DAY))


def validate_slot_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValidationError(f"Slot index must be an integer, got {index!r}")
    if index < 0 or index >= SLOTS_PER_DAY:
        raise ValidationError(f"Invalid slot index {index}. Expected 0-{SLOTS_PER_DAY - 1}")
    return index


def week_start(day: date) -> date:
    """Most recent Sunday on or before ``day``."""
    # date.weekday(): Monday=0 ... Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_dates(start: date) -> list[date]:
    return [start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def week_end(start: date) -> date:
    """Exclusive end of the 7-day window starting at ``start``."""
    return start + timedelta(days=DAYS_PER_WEEK)
