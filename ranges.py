"""
Range merger: contiguous same-owner bookings collapse into one Range.

Ranges are pure derivations of the booking set and are recomputed on every
change. They never span midnight.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable

from pydantic import BaseModel

from models import BookingRead

SLOT_HEIGHT = 32  # px per slot row in the rendered grid


class Range(BaseModel):
    booking_date: date
    start: int
    end: int
    owner: str
    key: str  # id of the first booking; stable across re-merges for UI diffing

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def covers(self, slot_index: int) -> bool:
        return self.start <= slot_index <= self.end


def merge_ranges(bookings: Iterable[BookingRead]) -> list[Range]:
    """
    Merge bookings into maximal runs.

    Sorted by (date, slot); a run is extended only by a booking on the same
    date with the same owner at ``end + 1``. Output is ordered, non-overlapping
    and covers exactly the input slots.
    """
    ranges: list[Range] = []
    for b in sorted(bookings, key=lambda b: (b.booking_date, b.slot_index)):
        last = ranges[-1] if ranges else None
        if (
            last is not None
            and last.booking_date == b.booking_date
            and last.owner == b.owner
            and b.slot_index == last.end + 1
        ):
            last.end = b.slot_index
        else:
            ranges.append(
                Range(booking_date=b.booking_date, start=b.slot_index, end=b.slot_index, owner=b.owner, key=b.id)
            )
    return ranges


def ranges_by_day(bookings: Iterable[BookingRead], dates: Iterable[date]) -> dict[date, list[Range]]:
    """One independent merge per date; bookings outside ``dates`` are ignored."""
    per_day: dict[date, list[BookingRead]] = {d: [] for d in dates}
    for b in bookings:
        if b.booking_date in per_day:
            per_day[b.booking_date].append(b)
    return {d: merge_ranges(day_bookings) for d, day_bookings in per_day.items()}


def slot_at_offset(rng: Range, offset_y: float, slot_height: float = SLOT_HEIGHT) -> int:
    """Slot under the pointer, given its vertical offset inside the range's box."""
    if slot_height <= 0:
        raise ValueError("slot_height must be positive")
    index = rng.start + int(offset_y // slot_height)
    return min(max(index, rng.start), rng.end)
