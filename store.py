"""
In-memory view of the bookings of the currently loaded week.

Keyed by (date, slot_index), so the store can never hold two bookings for the
same slot. Listeners are notified after every change.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Iterable

from models import BookingRead
from ranges import Range, ranges_by_day
from slots import week_dates

logger = logging.getLogger(__name__)

SlotKey = tuple[date, int]
Listener = Callable[["BookingStore"], None]


class BookingStore:
    def __init__(self, week_start: date | None = None) -> None:
        self._week_start = week_start
        self._by_key: dict[SlotKey, BookingRead] = {}
        self._listeners: list[Listener] = []
        # Bumped on every week load; responses carry the epoch they were issued under
        self._epoch = 0

    @property
    def week_start(self) -> date | None:
        return self._week_start

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def dates(self) -> list[date]:
        return week_dates(self._week_start) if self._week_start else []

    # --- Subscription ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # --- Lookups ---

    def get(self, day: date, slot_index: int) -> BookingRead | None:
        return self._by_key.get((day, slot_index))

    def bookings(self) -> list[BookingRead]:
        return sorted(self._by_key.values(), key=lambda b: (b.booking_date, b.slot_index))

    def bookings_on(self, day: date) -> list[BookingRead]:
        return [b for b in self.bookings() if b.booking_date == day]

    def owners(self) -> list[str]:
        """Distinct owners in (date, slot) order of first appearance."""
        return list(dict.fromkeys(b.owner for b in self.bookings()))

    def ranges(self) -> dict[date, list[Range]]:
        return ranges_by_day(self._by_key.values(), self.dates)

    def __len__(self) -> int:
        return len(self._by_key)

    # --- Mutations ---

    def load(self, week_start: date, bookings: Iterable[BookingRead]) -> None:
        """Replace the whole store with a freshly listed week."""
        by_key: dict[SlotKey, BookingRead] = {}
        seen_ids: set[str] = set()
        for b in bookings:
            if b.key in by_key or b.id in seen_ids:
                logger.warning("Dropping duplicate booking %s at %s #%s", b.id, b.booking_date, b.slot_index)
                continue
            by_key[b.key] = b
            seen_ids.add(b.id)
        self._week_start = week_start
        self._by_key = by_key
        self._epoch += 1
        self._notify()

    def put(self, booking: BookingRead) -> None:
        self._by_key[booking.key] = booking
        self._notify()

    def remove(self, day: date, slot_index: int) -> BookingRead | None:
        removed = self._by_key.pop((day, slot_index), None)
        if removed is not None:
            self._notify()
        return removed

    def replace_slot(self, day: date, slot_index: int, booking: BookingRead | None) -> None:
        """Overwrite one slot with authoritative state (``None`` = empty)."""
        if booking is None:
            self._by_key.pop((day, slot_index), None)
        else:
            self._by_key[(day, slot_index)] = booking
        self._notify()
