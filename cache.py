"""
Short-lived cache for week listings.

Owned by the persistence layer; every successful write must call
``invalidate()`` so a listing never hides a confirmed create or delete.
"""
import logging
import time
from datetime import date
from typing import Callable

from models import BookingRead

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0


class WeekCache:
    """Week start -> bookings, expiring ``ttl`` seconds after being stored."""

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[date, tuple[float, list[BookingRead]]] = {}
        # Bumped by every invalidate()
        self._generation = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, week_start: date) -> list[BookingRead] | None:
        entry = self._entries.get(week_start)
        if entry is None:
            return None
        stored_at, bookings = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[week_start]
            return None
        return list(bookings)

    def put(self, week_start: date, bookings: list[BookingRead], generation: int | None = None) -> None:
        """
        Store a listing. Pass the ``generation`` read before the query started:
        if a write invalidated the cache meanwhile, the listing may be missing
        it and is dropped.
        """
        if self._ttl <= 0:
            return
        if generation is not None and generation != self._generation:
            logger.debug("Dropping listing of week %s read before the last write", week_start)
            return
        self._entries[week_start] = (self._clock(), list(bookings))

    def invalidate(self) -> None:
        self._generation += 1
        if self._entries:
            logger.debug("Week cache invalidated (%s entries)", len(self._entries))
        self._entries.clear()
