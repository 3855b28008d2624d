"""Week navigation: move the anchor date by whole weeks and reload."""
from __future__ import annotations

import logging
from datetime import date, timedelta

from endpoint import BookingEndpoint
from errors import TransportError, ValidationError
from slots import DAYS_PER_WEEK, week_start
from store import BookingStore

logger = logging.getLogger(__name__)


class WeekNavigator:
    def __init__(self, store: BookingStore, endpoint: BookingEndpoint, anchor: date) -> None:
        self._store = store
        self._endpoint = endpoint
        self._anchor = anchor
        # Only the most recent reload may write to the store
        self._load_token = 0

    @property
    def anchor(self) -> date:
        return self._anchor

    @property
    def week_start(self) -> date:
        return week_start(self._anchor)

    async def move_week(self, direction: int) -> date:
        if direction not in (-1, 1):
            raise ValidationError(f"direction must be -1 or +1, got {direction!r}")
        return await self.go_to(self._anchor + timedelta(days=DAYS_PER_WEEK * direction))

    async def go_to(self, day: date) -> date:
        previous = self._anchor
        self._anchor = day
        # reload() takes the next token before its first await
        token = self._load_token + 1
        try:
            await self.reload()
        except TransportError:
            if token == self._load_token:
                # Back to the week the store actually holds, not an earlier unloaded target
                self._anchor = self._store.week_start or previous
            raise
        return self.week_start

    async def reload(self) -> bool:
        """Load the anchor's week into the store. False when a newer load superseded this one."""
        self._load_token += 1
        token = self._load_token
        start = self.week_start
        bookings = await self._endpoint.list_week(start)
        if token != self._load_token:
            logger.debug("Discarding superseded load of week %s", start)
            return False
        self._store.load(start, bookings)
        logger.debug("Loaded week %s (%s bookings)", start, len(bookings))
        return True
