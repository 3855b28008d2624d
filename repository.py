"""
SQL-backed booking persistence.

Uniqueness of (booking_date, slot_index) is left to the database constraint:
the insert itself is the existence check, so concurrent creates for one slot
produce exactly one winner and an IntegrityError for everyone else.
"""
import logging
import uuid
from datetime import date
from typing import Callable

from sqlalchemy import delete as sql_delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from cache import WeekCache
from errors import ConflictError, NotFoundError, TransportError
from models import Booking, BookingRead, validate_owner
from slots import validate_slot_index, week_end

logger = logging.getLogger(__name__)


def new_booking_id() -> str:
    return uuid.uuid4().hex


def _to_read(row: Booking) -> BookingRead:
    return BookingRead(id=row.id, booking_date=row.booking_date, slot_index=row.slot_index, owner=row.owner)


class BookingRepository:
    """list_week / create / delete on one AsyncSession."""

    def __init__(
        self,
        session: AsyncSession,
        cache: WeekCache | None = None,
        id_factory: Callable[[], str] = new_booking_id,
    ) -> None:
        self._session = session
        self._cache = cache
        self._id_factory = id_factory

    async def list_week(self, week_start: date) -> list[BookingRead]:
        generation = None
        if self._cache is not None:
            cached = self._cache.get(week_start)
            if cached is not None:
                return cached
            generation = self._cache.generation

        statement = (
            select(Booking)
            .where(Booking.booking_date >= week_start, Booking.booking_date < week_end(week_start))
            .order_by(Booking.booking_date, Booking.slot_index)
        )
        try:
            result = await self._session.execute(statement)
        except SQLAlchemyError as e:
            raise TransportError(f"Could not load bookings: {e}") from e
        bookings = [_to_read(row) for row in result.scalars().all()]

        if self._cache is not None:
            # A write committed while we were reading must not be hidden for a whole TTL
            self._cache.put(week_start, bookings, generation)
        return bookings

    async def create(self, day: date, slot_index: int, owner: str) -> BookingRead:
        validate_slot_index(slot_index)
        owner = validate_owner(owner)
        booking = Booking(id=self._id_factory(), booking_date=day, slot_index=slot_index, owner=owner)
        try:
            self._session.add(booking)
            await self._session.commit()
        except IntegrityError as e:
            # This catches the UniqueConstraint violation
            await self._session.rollback()
            logger.info("Slot %s #%s already booked; rejected create for %s", day, slot_index, owner)
            raise ConflictError(f"Slot {slot_index} on {day} is already booked.") from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise TransportError(f"Could not save booking: {e}") from e

        self._invalidate()
        logger.debug("Booked %s #%s for %s (id=%s)", day, slot_index, owner, booking.id)
        return _to_read(booking)

    async def delete(self, booking_id: str) -> None:
        try:
            result = await self._session.execute(sql_delete(Booking).where(Booking.id == booking_id))
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise TransportError(f"Could not delete booking: {e}") from e
        if result.rowcount == 0:
            raise NotFoundError(f"Booking {booking_id} not found.")

        self._invalidate()
        logger.debug("Deleted booking %s", booking_id)

    def _invalidate(self) -> None:
        if self._cache is not None:
            self._cache.invalidate()


class SessionEndpoint:
    """In-process endpoint: one fresh session per call, shared cache and id factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        cache: WeekCache | None = None,
        id_factory: Callable[[], str] = new_booking_id,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._id_factory = id_factory

    def _repository(self, session: AsyncSession) -> BookingRepository:
        return BookingRepository(session, cache=self._cache, id_factory=self._id_factory)

    async def list_week(self, week_start: date) -> list[BookingRead]:
        async with self._session_factory() as session:
            return await self._repository(session).list_week(week_start)

    async def create(self, day: date, slot_index: int, owner: str) -> BookingRead:
        async with self._session_factory() as session:
            return await self._repository(session).create(day, slot_index, owner)

    async def delete(self, booking_id: str) -> None:
        async with self._session_factory() as session:
            await self._repository(session).delete(booking_id)
