"""
Toggle controller: the add/remove policy behind every click and drag step.

- Empty slot: create it for the actor.
- Slot owned by the actor: delete it.
- Slot owned by someone else: leave it alone (first committed writer wins).

The store only changes once the endpoint has confirmed the write. While a
toggle for a slot is in flight, further toggles for that slot are collapsed
into at most one follow-up per actor; responses for a week that is no longer loaded
are dropped.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from endpoint import BookingEndpoint
from errors import ConflictError, NotFoundError, ValidationError
from models import validate_owner
from slots import validate_slot_index, week_start
from store import BookingStore, SlotKey

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    CREATED = "created"
    DELETED = "deleted"
    UNCHANGED = "unchanged"  # owned by another actor
    CONFLICT = "conflict"  # lost a create race; store resynced from the endpoint
    STALE = "stale"  # week changed or controller closed before the response arrived


@dataclass
class _Pending:
    # actor -> toggles requested while in flight; odd means that actor wants one more step
    flips: dict[str, int] = field(default_factory=dict)
    outcomes: dict[str, Outcome] = field(default_factory=dict)
    settled: asyncio.Event = field(default_factory=asyncio.Event)
    error: BaseException | None = None

    def next_actor(self) -> str | None:
        return next((a for a, n in self.flips.items() if n % 2 == 1), None)


class ToggleController:
    def __init__(self, store: BookingStore, endpoint: BookingEndpoint) -> None:
        self._store = store
        self._endpoint = endpoint
        self._pending: dict[SlotKey, _Pending] = {}
        self._closed = False

    @property
    def pending(self) -> frozenset[SlotKey]:
        """Slots with a toggle in flight."""
        return frozenset(self._pending)

    def close(self) -> None:
        """Teardown: in-flight responses will no longer touch the store."""
        self._closed = True

    async def toggle(self, day: date, slot_index: int, actor: str) -> Outcome:
        validate_slot_index(slot_index)
        actor = validate_owner(actor)
        if self._store.week_start is not None and day not in self._store.dates:
            raise ValidationError(f"{day} is not in the loaded week starting {self._store.week_start}")

        key = (day, slot_index)
        pending = self._pending.get(key)
        if pending is not None:
            # Collapse: each extra request flips that actor's desired state once
            pending.flips[actor] = pending.flips.get(actor, 0) + 1
            logger.debug("Toggle %s #%s already in flight; collapsed request from %s", day, slot_index, actor)
            await pending.settled.wait()
            if pending.error is not None:
                raise pending.error
            # Requests that cancelled each other out changed nothing
            return pending.outcomes.get(actor, Outcome.UNCHANGED)

        pending = _Pending()
        self._pending[key] = pending
        try:
            outcome = await self._apply(day, slot_index, actor)
            pending.outcomes[actor] = outcome
            while outcome is not Outcome.STALE:
                queued = pending.next_actor()
                if queued is None:
                    break
                # One policy step per actor, in the order they first asked
                pending.flips[queued] = 0
                outcome = await self._apply(day, slot_index, queued)
                pending.outcomes[queued] = outcome
            if outcome is Outcome.STALE:
                for a, n in pending.flips.items():
                    if n % 2 == 1:
                        pending.outcomes[a] = Outcome.STALE
            return pending.outcomes[actor]
        except BaseException as e:
            pending.error = e
            raise
        finally:
            del self._pending[key]
            pending.settled.set()

    async def _apply(self, day: date, slot_index: int, actor: str) -> Outcome:
        if self._closed:
            return Outcome.STALE
        epoch = self._store.epoch
        existing = self._store.get(day, slot_index)

        if existing is None:
            try:
                booking = await self._endpoint.create(day, slot_index, actor)
            except ConflictError:
                logger.info("Lost race for %s #%s as %s; resyncing", day, slot_index, actor)
                if not self._is_current(epoch):
                    return Outcome.STALE
                return await self._resync(day, slot_index, epoch)
            if not self._is_current(epoch):
                logger.info("Dropping create response for %s #%s: week changed", day, slot_index)
                return Outcome.STALE
            self._store.put(booking)
            return Outcome.CREATED

        if existing.owner != actor:
            return Outcome.UNCHANGED

        try:
            await self._endpoint.delete(existing.id)
        except NotFoundError:
            logger.info("Booking %s already removed", existing.id)
        if not self._is_current(epoch):
            logger.info("Dropping delete response for %s #%s: week changed", day, slot_index)
            return Outcome.STALE
        self._store.remove(day, slot_index)
        return Outcome.DELETED

    async def _resync(self, day: date, slot_index: int, epoch: int) -> Outcome:
        bookings = await self._endpoint.list_week(self._store.week_start or week_start(day))
        if not self._is_current(epoch):
            return Outcome.STALE
        confirmed = next((b for b in bookings if b.key == (day, slot_index)), None)
        self._store.replace_slot(day, slot_index, confirmed)
        return Outcome.CONFLICT

    def _is_current(self, epoch: int) -> bool:
        return not self._closed and self._store.epoch == epoch
