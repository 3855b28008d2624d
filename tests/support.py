from __future__ import annotations

import asyncio
import itertools
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from errors import ConflictError, NotFoundError
from models import BookingRead
from slots import week_end

# Sunday 2024-06-02 .. Saturday 2024-06-08
SUNDAY = date(2024, 6, 2)
MONDAY = date(2024, 6, 3)
TUESDAY = date(2024, 6, 4)
SATURDAY = date(2024, 6, 8)
NEXT_SUNDAY = date(2024, 6, 9)


def booking(day: date, slot_index: int, owner: str, booking_id: str | None = None) -> BookingRead:
    return BookingRead(
        id=booking_id or f"{day.isoformat()}-{slot_index}",
        booking_date=day,
        slot_index=slot_index,
        owner=owner,
    )


def sequential_ids(prefix: str = "b"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def sqlite_engine():
    # One shared in-memory connection so every session sees the same tables
    return create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class FakeEndpoint:
    """In-memory endpoint recording every call. Set ``gate`` to hold calls in flight."""

    def __init__(self, bookings: list[BookingRead] | None = None) -> None:
        self.rows: dict[tuple[date, int], BookingRead] = {b.key: b for b in bookings or []}
        self.calls: list[tuple] = []
        self.gate: asyncio.Event | None = None
        self.fail_with: Exception | None = None
        self._ids = sequential_ids("id")

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def _in_flight(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

    async def list_week(self, week_start: date) -> list[BookingRead]:
        self.calls.append(("list", week_start))
        await self._in_flight()
        end = week_end(week_start)
        return sorted(
            (b for b in self.rows.values() if week_start <= b.booking_date < end),
            key=lambda b: (b.booking_date, b.slot_index),
        )

    async def create(self, day: date, slot_index: int, owner: str) -> BookingRead:
        self.calls.append(("create", day, slot_index, owner))
        await self._in_flight()
        if (day, slot_index) in self.rows:
            raise ConflictError("Slot already booked")
        b = BookingRead(id=self._ids(), booking_date=day, slot_index=slot_index, owner=owner)
        self.rows[b.key] = b
        return b

    async def delete(self, booking_id: str) -> None:
        self.calls.append(("delete", booking_id))
        await self._in_flight()
        for key, b in list(self.rows.items()):
            if b.id == booking_id:
                del self.rows[key]
                return
        raise NotFoundError("Booking not found")
