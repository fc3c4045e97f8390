import logging
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingStatus
from app.models.schedule import (
    SCHEDULE_ROW_ID,
    BusinessHours,
    UnavailableDate,
    WeeklySchedule,
)
from app.services.results import DomainError, Err, ErrorKind, Ok, Result, not_found, validation_error

logger = logging.getLogger(__name__)


async def _get_business_hours(session: AsyncSession) -> BusinessHours | None:
    return await session.get(BusinessHours, SCHEDULE_ROW_ID)


async def ensure_schedule_exists(session: AsyncSession) -> WeeklySchedule:
    """Bootstrap step: store an all-closed schedule if none exists yet. Commits."""
    row = await _get_business_hours(session)
    if row:
        return row.to_schedule()
    row = BusinessHours(id=SCHEDULE_ROW_ID)
    row.apply(WeeklySchedule.closed())
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        # Another worker created it first
        await session.rollback()
        row = await _get_business_hours(session)
        if row is None:
            raise
        return row.to_schedule()
    logger.info("Business hours initialized (all days closed)")
    return WeeklySchedule.closed()


async def get_schedule(session: AsyncSession) -> WeeklySchedule:
    row = await _get_business_hours(session)
    if row is None:
        logger.warning("Business hours not initialized; treating every day as closed")
        return WeeklySchedule.closed()
    return row.to_schedule()


async def update_schedule(
    session: AsyncSession, data: WeeklySchedule | Mapping[str, Any]
) -> Result[WeeklySchedule, DomainError]:
    """Replace the weekly schedule. Existing bookings are left untouched."""
    if isinstance(data, WeeklySchedule):
        schedule = data
    else:
        try:
            schedule = WeeklySchedule.model_validate(data)
        except ValidationError as e:
            return validation_error(
                "Invalid business hours",
                errors=e.errors(include_url=False, include_context=False, include_input=False),
            )
    row = await _get_business_hours(session)
    if row is None:
        row = BusinessHours(id=SCHEDULE_ROW_ID)
    row.apply(schedule)
    session.add(row)
    await session.flush()
    logger.info("Business hours updated")
    return Ok(schedule)


# --- Unavailable dates ---


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


async def get_unavailable_date(session: AsyncSession, day: date) -> UnavailableDate | None:
    result = await session.execute(select(UnavailableDate).where(UnavailableDate.day == day))
    return result.scalar_one_or_none()


async def list_unavailable_dates(
    session: AsyncSession, start: date | None = None, end: date | None = None
) -> list[UnavailableDate]:
    q = select(UnavailableDate).order_by(UnavailableDate.day)
    if start:
        q = q.where(UnavailableDate.day >= start)
    if end:
        q = q.where(UnavailableDate.day <= end)
    result = await session.execute(q)
    return list(result.scalars().all())


async def get_unavailable_date_set(
    session: AsyncSession, start: date | None = None, end: date | None = None
) -> set[date]:
    return {row.day for row in await list_unavailable_dates(session, start=start, end=end)}


async def _live_bookings_on(session: AsyncSession, day: date) -> list[Booking]:
    start, end = _day_bounds(day)
    result = await session.execute(
        select(Booking)
        .where(
            Booking.slot >= start,
            Booking.slot < end,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .order_by(Booking.slot, Booking.id)
        .with_for_update()
    )
    return list(result.scalars().all())


async def _clear_day(
    session: AsyncSession, day: date, cancel_bookings: bool
) -> Err[DomainError] | None:
    """Apply the blackout cascade policy: refuse, or cancel the day's live bookings."""
    live = await _live_bookings_on(session, day)
    if not live:
        return None
    if not cancel_bookings:
        return Err(
            DomainError(
                ErrorKind.DATE_HAS_BOOKINGS,
                f"{day.isoformat()} has {len(live)} active booking(s)",
                {"date": day.isoformat(), "booking_ids": [b.id for b in live]},
            )
        )
    for booking in live:
        booking.mark_cancelled()
        session.add(booking)
    logger.info("Cancelled %d booking(s) on %s (date marked unavailable)", len(live), day)
    return None


async def add_unavailable_date(
    session: AsyncSession,
    day: date,
    reason: str | None = None,
    cancel_bookings: bool = False,
) -> Result[UnavailableDate, DomainError]:
    """Blacklist a date. Adding a date that is already present is a no-op."""
    existing = await get_unavailable_date(session, day)
    if existing:
        return Ok(existing)
    conflict = await _clear_day(session, day, cancel_bookings)
    if conflict:
        return conflict
    row = UnavailableDate(day=day, reason=reason)
    session.add(row)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        existing = await get_unavailable_date(session, day)
        if existing is None:
            raise
        return Ok(existing)
    await session.refresh(row)
    logger.info("Date %s marked unavailable", day)
    return Ok(row)


async def update_unavailable_date(
    session: AsyncSession,
    date_id: int,
    day: date | None = None,
    reason: str | None = None,
    cancel_bookings: bool = False,
) -> Result[UnavailableDate, DomainError]:
    row = await session.get(UnavailableDate, date_id)
    if row is None:
        return not_found("Unavailable date", date_id)
    if day is not None and day != row.day:
        if await get_unavailable_date(session, day):
            return validation_error(f"{day.isoformat()} is already unavailable", date=day.isoformat())
        conflict = await _clear_day(session, day, cancel_bookings)
        if conflict:
            return conflict
        row.day = day
    if reason is not None:
        row.reason = reason
    session.add(row)
    await session.flush()
    await session.refresh(row)
    return Ok(row)


async def remove_unavailable_date(session: AsyncSession, day: date) -> Result[None, DomainError]:
    """Make a date bookable again. Removing an absent date is a no-op."""
    row = await get_unavailable_date(session, day)
    if row:
        await session.delete(row)
        await session.flush()
        logger.info("Date %s available again", day)
    return Ok(None)
