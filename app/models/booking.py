from datetime import UTC, datetime
from enum import Enum

from pydantic import EmailStr
from sqlalchemy import Column, String, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class BookingType(str, Enum):
    CONSULTATION = "consultation"
    CHECKUP = "checkup"
    TREATMENT = "treatment"
    FOLLOW_UP = "follow_up"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    # A live booking holds one seat of its slot; cancelled bookings hold NULL,
    # which the unique constraint ignores.
    __table_args__ = (UniqueConstraint("slot", "slot_seat", name="uq_bookings_slot_seat"),)

    id: int | None = Field(default=None, primary_key=True)
    type: BookingType = Field(sa_column=Column(String(32), nullable=False, index=True))
    status: BookingStatus = Field(
        default=BookingStatus.PENDING,
        sa_column=Column(String(32), nullable=False, index=True),
    )
    slot: datetime = Field(index=True)  # clinic local time
    slot_seat: int | None = None
    first_name: str
    last_name: str = Field(index=True)
    phone: str
    email: str = Field(index=True)
    message: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now, index=True)
    updated_at: datetime = Field(default_factory=_utc_naive_now)

    def touch(self) -> None:
        self.updated_at = _utc_naive_now()

    def mark_cancelled(self) -> None:
        """Cancel and give the seat back to the slot."""
        self.status = BookingStatus.CANCELLED.value
        self.slot_seat = None
        self.touch()


class BookingDetails(SQLModel):
    """Who is booking and why; everything admission needs besides the slot."""

    type: BookingType
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=3, max_length=32)
    email: EmailStr
    message: str | None = Field(default=None, max_length=2000)


class BookingDetailsUpdate(SQLModel):
    type: BookingType | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, min_length=3, max_length=32)
    email: EmailStr | None = None
    message: str | None = Field(default=None, max_length=2000)


class BookingPublic(SQLModel):
    id: int
    type: BookingType
    status: BookingStatus
    slot: datetime
    first_name: str
    last_name: str
    phone: str
    email: str
    message: str | None = None
    created_at: datetime
    updated_at: datetime
