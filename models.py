from datetime import date

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from errors import ValidationError


def validate_owner(owner: str | None) -> str:
    """Trimmed owner name; a booking is never attributed to an empty identity."""
    owner = (owner or "").strip()
    if not owner:
        raise ValidationError("Owner must be a non-empty name.")
    return owner


class BookingBase(SQLModel):
    booking_date: date = Field(index=True)
    slot_index: int  # 0 .. 47, half-hour slots from midnight
    owner: str


class Booking(BookingBase, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # CRITICAL: database-level protection against double booking.
        # The insert is the check, so two actors racing for one slot cannot both win.
        UniqueConstraint("booking_date", "slot_index", name="unique_booking_slot"),
    )

    id: str = Field(primary_key=True, max_length=64)


class BookingCreate(BookingBase):
    pass


class BookingRead(BookingBase):
    id: str

    @property
    def key(self) -> tuple[date, int]:
        return (self.booking_date, self.slot_index)
