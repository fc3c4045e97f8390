"""Tests for business hours and unavailable date management."""

from datetime import datetime, time

import pytest
from sqlalchemy import func, select

from app.models.booking import Booking, BookingStatus
from app.models.schedule import BusinessHours, Period, UnavailableDate, WeeklySchedule
from app.services.results import Err, ErrorKind, Ok
from app.services.schedule_service import (
    add_unavailable_date,
    ensure_schedule_exists,
    get_schedule,
    get_unavailable_date_set,
    list_unavailable_dates,
    remove_unavailable_date,
    update_schedule,
    update_unavailable_date,
)
from tests.conftest import MONDAY, NEXT_MONDAY, TUESDAY, make_booking


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestBusinessHours:
    @pytest.mark.asyncio
    async def test_get_before_bootstrap_is_closed_and_does_not_write(self, session):
        schedule = await get_schedule(session)
        assert schedule.is_closed()
        assert await _count(session, BusinessHours) == 0

    @pytest.mark.asyncio
    async def test_ensure_creates_single_closed_row(self, session):
        first = await ensure_schedule_exists(session)
        second = await ensure_schedule_exists(session)
        assert first.is_closed() and second.is_closed()
        assert await _count(session, BusinessHours) == 1

    @pytest.mark.asyncio
    async def test_update_persists(self, session, session_maker):
        await ensure_schedule_exists(session)
        result = await update_schedule(
            session, {"wednesday": [{"opening": "10:00", "closing": "14:00"}]}
        )
        assert isinstance(result, Ok)
        await session.commit()

        async with session_maker() as other:
            stored = await get_schedule(other)
        assert stored.wednesday == (Period(opening=time(10), closing=time(14)),)
        assert stored.monday == ()

    @pytest.mark.asyncio
    async def test_update_rejects_overlap(self, session):
        await ensure_schedule_exists(session)
        result = await update_schedule(
            session,
            {
                "monday": [
                    {"opening": "09:00", "closing": "12:00"},
                    {"opening": "11:30", "closing": "13:00"},
                ]
            },
        )
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.details["errors"][0]["loc"][0] == "monday"

    @pytest.mark.asyncio
    async def test_update_rejects_opening_after_closing(self, session):
        result = await update_schedule(
            session, {"friday": [{"opening": "17:00", "closing": "08:00"}]}
        )
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_update_leaves_existing_bookings_alone(self, session, monday_schedule):
        session.add(make_booking(datetime.combine(MONDAY, time(9)), datetime(2029, 12, 1)))
        await session.commit()

        result = await update_schedule(session, WeeklySchedule.closed())
        assert isinstance(result, Ok)
        await session.commit()
        booking = (await session.execute(select(Booking))).scalar_one()
        assert booking.status == BookingStatus.PENDING.value


class TestUnavailableDates:
    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, session):
        first = await add_unavailable_date(session, MONDAY, reason="Holiday")
        second = await add_unavailable_date(session, MONDAY)
        assert isinstance(first, Ok) and isinstance(second, Ok)
        assert first.value.id == second.value.id
        assert await _count(session, UnavailableDate) == 1

    @pytest.mark.asyncio
    async def test_remove_absent_date_is_noop(self, session):
        assert isinstance(await remove_unavailable_date(session, TUESDAY), Ok)

    @pytest.mark.asyncio
    async def test_add_then_remove(self, session):
        await add_unavailable_date(session, MONDAY)
        await add_unavailable_date(session, TUESDAY)
        assert await get_unavailable_date_set(session) == {MONDAY, TUESDAY}

        await remove_unavailable_date(session, MONDAY)
        assert [d.day for d in await list_unavailable_dates(session)] == [TUESDAY]

    @pytest.mark.asyncio
    async def test_list_is_ordered_and_filterable(self, session):
        for day in (NEXT_MONDAY, MONDAY, TUESDAY):
            await add_unavailable_date(session, day)
        assert [d.day for d in await list_unavailable_dates(session)] == [MONDAY, TUESDAY, NEXT_MONDAY]
        assert await get_unavailable_date_set(session, start=TUESDAY, end=TUESDAY) == {TUESDAY}

    @pytest.mark.asyncio
    async def test_add_refused_when_bookings_exist(self, session, monday_schedule):
        session.add(make_booking(datetime.combine(MONDAY, time(9)), datetime(2029, 12, 1)))
        await session.commit()

        result = await add_unavailable_date(session, MONDAY)
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.DATE_HAS_BOOKINGS
        assert len(result.error.details["booking_ids"]) == 1
        assert await get_unavailable_date_set(session) == set()

    @pytest.mark.asyncio
    async def test_add_with_cascade_cancels_bookings(self, session, monday_schedule):
        session.add(make_booking(datetime.combine(MONDAY, time(9)), datetime(2029, 12, 1)))
        session.add(make_booking(datetime.combine(TUESDAY, time(9)), datetime(2029, 12, 1)))
        await session.commit()

        result = await add_unavailable_date(session, MONDAY, cancel_bookings=True)
        assert isinstance(result, Ok)
        await session.commit()

        rows = (await session.execute(select(Booking).order_by(Booking.slot))).scalars().all()
        assert [b.status for b in rows] == [BookingStatus.CANCELLED.value, BookingStatus.PENDING.value]
        assert rows[0].slot_seat is None

    @pytest.mark.asyncio
    async def test_cancelled_bookings_do_not_block(self, session, monday_schedule):
        session.add(
            make_booking(
                datetime.combine(MONDAY, time(9)),
                datetime(2029, 12, 1),
                status=BookingStatus.CANCELLED,
            )
        )
        await session.commit()
        assert isinstance(await add_unavailable_date(session, MONDAY), Ok)

    @pytest.mark.asyncio
    async def test_update_moves_date_and_reason(self, session):
        row = (await add_unavailable_date(session, MONDAY)).value
        result = await update_unavailable_date(session, row.id, day=TUESDAY, reason="Training")
        assert isinstance(result, Ok)
        assert (result.value.day, result.value.reason) == (TUESDAY, "Training")

    @pytest.mark.asyncio
    async def test_update_onto_existing_date_rejected(self, session):
        row = (await add_unavailable_date(session, MONDAY)).value
        await add_unavailable_date(session, TUESDAY)
        result = await update_unavailable_date(session, row.id, day=TUESDAY)
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, session):
        result = await update_unavailable_date(session, 999, reason="x")
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.NOT_FOUND
