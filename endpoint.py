"""Persistence endpoint consumed by the booking engine."""
from __future__ import annotations

from datetime import date
from typing import Protocol

from models import BookingRead


class BookingEndpoint(Protocol):
    """
    list_week: all bookings dated within [week_start, week_start + 7 days).
    create: raises ConflictError if (day, slot_index) is already booked.
    delete: raises NotFoundError if the booking is already gone.
    Any endpoint may raise TransportError.
    """

    async def list_week(self, week_start: date) -> list[BookingRead]: ...

    async def create(self, day: date, slot_index: int, owner: str) -> BookingRead: ...

    async def delete(self, booking_id: str) -> None: ...
