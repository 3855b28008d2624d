import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cache import WeekCache
from config import settings
from database import get_session, init_db
from errors import BookingError, error_to_http
from models import BookingCreate, BookingRead
from ranges import Range, ranges_by_day
from repository import BookingRepository, new_booking_id
from slots import Slot, enumerate_slots, week_dates, week_start

logger = logging.getLogger(__name__)


# Pydantic Schemas for Response
class DaySchedule(BaseModel):
    booking_date: date
    ranges: List[Range]


class WeekGrid(BaseModel):
    week_start: date
    slots: List[Slot]
    days: List[DaySchedule]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level.upper())
    await init_db()
    logger.info("Booking API ready (cache ttl %ss)", settings.cache_ttl_seconds)
    yield


app = FastAPI(title="Weekly Slot Sign-Up", lifespan=lifespan)

# Listing cache and id generation live on the app, not in module globals
app.state.week_cache = WeekCache(ttl=settings.cache_ttl_seconds)
app.state.id_factory = new_booking_id


def get_repository(request: Request, session: AsyncSession = Depends(get_session)) -> BookingRepository:
    return BookingRepository(
        session,
        cache=request.app.state.week_cache,
        id_factory=request.app.state.id_factory,
    )


# --- GET /slots ---
@app.get("/slots", response_model=List[Slot])
async def list_slots():
    return list(enumerate_slots())


# --- GET /bookings ---
@app.get("/bookings", response_model=List[BookingRead])
async def list_bookings(week_start: date, repo: BookingRepository = Depends(get_repository)):
    try:
        return await repo.list_week(week_start)
    except BookingError as e:
        raise error_to_http(e) from e


# --- POST /bookings ---
@app.post("/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(booking_data: BookingCreate, repo: BookingRepository = Depends(get_repository)):
    # Validation (slot bounds, non-empty owner) and the 409 on a taken slot come from the repository
    try:
        return await repo.create(booking_data.booking_date, booking_data.slot_index, booking_data.owner)
    except BookingError as e:
        raise error_to_http(e) from e


# --- DELETE /bookings/{booking_id} ---
@app.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(booking_id: str, repo: BookingRepository = Depends(get_repository)):
    try:
        await repo.delete(booking_id)
    except BookingError as e:
        raise error_to_http(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- GET /week-grid ---
@app.get("/week-grid", response_model=WeekGrid)
async def get_week_grid(target_date: date, repo: BookingRepository = Depends(get_repository)):
    # Step 1: one listing for the whole week (served from the cache when fresh)
    start = week_start(target_date)
    try:
        bookings = await repo.list_week(start)
    except BookingError as e:
        raise error_to_http(e) from e

    # Step 2: merge each day independently; ranges never cross midnight
    dates = week_dates(start)
    per_day = ranges_by_day(bookings, dates)

    return WeekGrid(
        week_start=start,
        slots=list(enumerate_slots()),
        days=[DaySchedule(booking_date=d, ranges=per_day[d]) for d in dates],
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
