import asyncio
import logging
from datetime import date, datetime, time
from weakref import WeakValueDictionary

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import TRANSIENT_DB_ERRORS
from app.models.booking import (
    Booking,
    BookingDetails,
    BookingDetailsUpdate,
    BookingStatus,
    BookingType,
)
from app.services.results import (
    DomainError,
    Err,
    ErrorKind,
    Ok,
    Result,
    not_found,
    storage_unavailable,
)
from app.services.slot_service import get_occupied_seats, get_slots_for_date

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


class SlotLocks:
    """One asyncio.Lock per slot start, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[datetime, asyncio.Lock] = WeakValueDictionary()

    def get(self, slot_start: datetime) -> asyncio.Lock:
        lock = self._locks.get(slot_start)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[slot_start] = lock
        return lock


_slot_locks = SlotLocks()


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def _free_seat(occupied: set[int], capacity: int) -> int | None:
    for seat in range(capacity):
        if seat not in occupied:
            return seat
    return None


def _slot_taken(slot_start: datetime) -> Err[DomainError]:
    return Err(
        DomainError(
            ErrorKind.SLOT_TAKEN,
            f"Slot {slot_start:%Y-%m-%d %H:%M} is already booked",
            {"slot": slot_start.isoformat()},
        )
    )


async def admit_booking(
    session: AsyncSession,
    slot_time: time,
    day: date,
    details: BookingDetails,
) -> Result[Booking, DomainError]:
    """Book ``slot_time`` on ``day`` as a pending booking, or say why not.

    The offer check, seat check and insert run as one unit that commits on
    success. Timeouts and connection faults are not retried; the caller gets a
    retryable storage error instead.
    """
    try:
        return await asyncio.wait_for(
            _admit(session, slot_time, day, details),
            timeout=settings.admission_timeout_seconds,
        )
    except TRANSIENT_DB_ERRORS as e:
        logger.warning("Admission for %s %s failed: %s", day, slot_time, e)
        await session.rollback()
        return storage_unavailable("Booking could not be completed, please retry")


async def _admit(
    session: AsyncSession,
    slot_time: time,
    day: date,
    details: BookingDetails,
) -> Result[Booking, DomainError]:
    slot_start = datetime.combine(day, slot_time)
    offered = await get_slots_for_date(session, day)
    if slot_time not in offered:
        logger.info("Rejected booking for %s: slot not offered", slot_start)
        return Err(
            DomainError(
                ErrorKind.SLOT_NOT_OFFERED,
                f"{slot_start:%Y-%m-%d %H:%M} is not a bookable slot",
                {"slot": slot_start.isoformat()},
            )
        )

    capacity = max(1, settings.slot_capacity)
    async with _slot_locks.get(slot_start):
        # The unique (slot, slot_seat) constraint catches writers in other
        # processes; re-check and try the next seat when that happens.
        for _ in range(capacity):
            seat = _free_seat(await get_occupied_seats(session, slot_start), capacity)
            if seat is None:
                break
            booking = Booking(
                type=details.type.value,
                status=BookingStatus.PENDING.value,
                slot=slot_start,
                slot_seat=seat,
                first_name=details.first_name,
                last_name=details.last_name,
                phone=details.phone,
                email=str(details.email),
                message=details.message,
            )
            session.add(booking)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info("Seat %d of %s taken concurrently, re-checking", seat, slot_start)
                continue
            logger.info("Booking %s admitted for %s (seat %d)", booking.id, slot_start, seat)
            return Ok(booking)

    logger.info("Rejected booking for %s: slot taken", slot_start)
    return _slot_taken(slot_start)


async def get_booking(session: AsyncSession, booking_id: int) -> Booking | None:
    return await session.get(Booking, booking_id)


async def transition_booking(
    session: AsyncSession, booking_id: int, new_status: BookingStatus
) -> Result[Booking, DomainError]:
    result = await session.execute(
        select(Booking).where(Booking.id == booking_id).with_for_update()
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        return not_found("Booking", booking_id)
    current = BookingStatus(booking.status)
    if not can_transition(current, new_status):
        return Err(
            DomainError(
                ErrorKind.INVALID_TRANSITION,
                f"Cannot change booking {booking_id} from {current.value} to {new_status.value}",
                {"from": current.value, "to": new_status.value},
            )
        )
    if new_status is BookingStatus.CANCELLED:
        booking.mark_cancelled()
    else:
        booking.status = new_status.value
        booking.touch()
    session.add(booking)
    await session.flush()
    logger.info("Booking %s: %s -> %s", booking_id, current.value, new_status.value)
    return Ok(booking)


async def cancel_booking(session: AsyncSession, booking_id: int) -> Result[Booking, DomainError]:
    return await transition_booking(session, booking_id, BookingStatus.CANCELLED)


async def update_booking_details(
    session: AsyncSession, booking_id: int, changes: BookingDetailsUpdate
) -> Result[Booking, DomainError]:
    """Edit contact details or type. Slot and status are changed elsewhere."""
    booking = await get_booking(session, booking_id)
    if booking is None:
        return not_found("Booking", booking_id)
    for key, value in changes.model_dump(exclude_unset=True).items():
        if value is None and key != "message":
            continue
        if key == "type":
            value = BookingType(value).value
        setattr(booking, key, value)
    booking.touch()
    session.add(booking)
    await session.flush()
    return Ok(booking)
