from collections.abc import Collection
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.booking import Booking, BookingStatus
from app.models.schedule import WeeklySchedule
from app.services.schedule_service import get_schedule, get_unavailable_date_set


@dataclass(frozen=True)
class SlotAvailability:
    start: datetime
    end: datetime
    remaining: int

    @property
    def available(self) -> bool:
        return self.remaining > 0


def default_slot_duration() -> timedelta:
    return timedelta(minutes=settings.slot_duration_minutes)


def _seconds(t: time) -> int:
    return t.hour * 3600 + t.minute * 60 + t.second


def _as_time(seconds: int) -> time:
    return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)


def generate_slots(
    schedule: WeeklySchedule,
    unavailable_dates: Collection[date],
    day: date,
    slot_duration: timedelta,
) -> list[time]:
    """Bookable slot start times for ``day``, strictly increasing.

    Each period yields starts at ``slot_duration`` steps from its opening while
    the slot still ends by its closing. Blackout dates yield nothing.
    """
    step = int(slot_duration.total_seconds())
    if step <= 0:
        raise ValueError("slot_duration must be positive")
    if day in unavailable_dates:
        return []
    slots: list[time] = []
    last = -1
    for period in schedule.periods_for(day):
        current = _seconds(period.opening)
        closing = _seconds(period.closing)
        while current + step <= closing:
            if current > last:
                slots.append(_as_time(current))
                last = current
            current += step
    return slots


def slot_datetimes(day: date, slots: list[time]) -> list[datetime]:
    return [datetime.combine(day, s) for s in slots]


async def get_occupied_seats(session: AsyncSession, slot: datetime) -> set[int]:
    """Seats held by non-cancelled bookings for one slot."""
    result = await session.execute(
        select(Booking.slot_seat).where(
            Booking.slot == slot,
            Booking.status != BookingStatus.CANCELLED.value,
            Booking.slot_seat.is_not(None),
        )
    )
    return {row[0] for row in result.all()}


async def get_booked_counts(
    session: AsyncSession, start_inclusive: datetime, end_exclusive: datetime
) -> dict[datetime, int]:
    result = await session.execute(
        select(Booking.slot, func.count(Booking.id))
        .where(
            Booking.slot >= start_inclusive,
            Booking.slot < end_exclusive,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .group_by(Booking.slot)
    )
    return {row[0]: row[1] for row in result.all()}


async def get_slots_for_date(session: AsyncSession, d: date) -> list[time]:
    schedule = await get_schedule(session)
    unavailable = await get_unavailable_date_set(session, start=d, end=d)
    return generate_slots(schedule, unavailable, d, default_slot_duration())


async def get_day_availability(session: AsyncSession, d: date) -> list[SlotAvailability]:
    """Every generated slot for the date with the seats it has left."""
    starts = slot_datetimes(d, await get_slots_for_date(session, d))
    if not starts:
        return []
    duration = default_slot_duration()
    booked = await get_booked_counts(session, starts[0], starts[-1] + duration)
    capacity = settings.slot_capacity
    return [
        SlotAvailability(start=s, end=s + duration, remaining=max(0, capacity - booked.get(s, 0)))
        for s in starts
    ]
