"""
Drag gesture state machine.

IDLE --pointer_down--> DRAGGING --pointer_up / pointer_leave--> IDLE

While dragging, entering a cell toggles it, but each cell fires at most once
per gesture so jittery movement cannot flicker a slot add/remove/add.
"""
from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Callable

from ranges import SLOT_HEIGHT, Range, slot_at_offset

logger = logging.getLogger(__name__)

Cell = tuple[date, int]


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DragSession:
    def __init__(self, on_toggle: Callable[[date, int], object], slot_height: float = SLOT_HEIGHT) -> None:
        self._on_toggle = on_toggle
        self._slot_height = slot_height
        self._state = DragState.IDLE
        self._visited: list[Cell] = []

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def path(self) -> list[Cell]:
        """Cells toggled so far in the current gesture, in order."""
        return list(self._visited)

    def pointer_down(self, cell: Cell | None = None) -> None:
        self._state = DragState.DRAGGING
        self._visited = []
        if cell is not None:
            self._fire(cell)

    def pointer_enter(self, cell: Cell) -> None:
        if self._state is DragState.DRAGGING:
            self._fire(cell)

    def pointer_up(self) -> None:
        self._end()

    def pointer_leave(self) -> None:
        """Pointer left the whole grid."""
        self._end()

    # Range boxes sit on top of the cells; translate to the slot under the pointer
    def pointer_down_on_range(self, rng: Range, offset_y: float) -> None:
        self.pointer_down(self._cell_in_range(rng, offset_y))

    def pointer_enter_on_range(self, rng: Range, offset_y: float) -> None:
        self.pointer_enter(self._cell_in_range(rng, offset_y))

    def _cell_in_range(self, rng: Range, offset_y: float) -> Cell:
        return (rng.booking_date, slot_at_offset(rng, offset_y, self._slot_height))

    def _fire(self, cell: Cell) -> None:
        if cell in self._visited:
            return
        self._visited.append(cell)
        self._on_toggle(*cell)

    def _end(self) -> None:
        if self._state is DragState.DRAGGING and len(self._visited) > 1:
            logger.debug("Drag gesture toggled %s cells", len(self._visited))
        self._state = DragState.IDLE
        self._visited = []
