"""
Sign-up board: one week of the grid plus everything needed to edit it.

Pointer handlers are synchronous; each toggle they trigger runs as its own
task on the running event loop. Failures end up in ``notices`` instead of
changing the store.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date

from actors import ActorList
from drag import Cell, DragSession
from endpoint import BookingEndpoint
from errors import TransportError, ValidationError
from navigator import WeekNavigator
from ranges import SLOT_HEIGHT, Range
from store import BookingStore
from toggle import Outcome, ToggleController

logger = logging.getLogger(__name__)


class SignupBoard:
    def __init__(self, endpoint: BookingEndpoint, today: date, slot_height: float = SLOT_HEIGHT) -> None:
        self.store = BookingStore()
        self.actors = ActorList(self.store)
        self.navigator = WeekNavigator(self.store, endpoint, today)
        self.controller = ToggleController(self.store, endpoint)
        self.drag = DragSession(self._schedule_toggle, slot_height=slot_height)
        self.notices: list[str] = []
        self._tasks: set[asyncio.Task] = set()

    async def open(self) -> None:
        await self._navigate(self.navigator.reload())

    async def move_week(self, direction: int) -> None:
        await self._navigate(self.navigator.move_week(direction))

    def ranges(self) -> dict[date, list[Range]]:
        return self.store.ranges()

    def click(self, cell: Cell) -> None:
        self.drag.pointer_down(cell)
        self.drag.pointer_up()

    async def toggle(self, day: date, slot_index: int) -> Outcome | None:
        """Toggle one slot as the selected actor; None when the request failed or was rejected."""
        actor = self.actors.selected
        try:
            return await self.controller.toggle(day, slot_index, actor)
        except ValidationError as e:
            logger.info("Toggle rejected: %s", e)
            self.notices.append(str(e))
        except TransportError as e:
            logger.warning("Toggle of %s #%s failed: %s", day, slot_index, e)
            self.notices.append(f"Could not update {day} {slot_index}: {e}")
        return None

    async def settle(self) -> None:
        """Wait for every toggle started by pointer events so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        self.controller.close()
        self.drag.pointer_leave()

    def _schedule_toggle(self, day: date, slot_index: int) -> None:
        if not self.actors.selected:
            # Never submit a booking without an owner
            logger.debug("No actor selected; ignoring %s #%s", day, slot_index)
            return
        task = asyncio.get_running_loop().create_task(self.toggle(day, slot_index))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _navigate(self, load) -> None:
        try:
            await load
        except TransportError as e:
            logger.warning("Loading week failed: %s", e)
            self.notices.append(f"Could not load bookings: {e}")
