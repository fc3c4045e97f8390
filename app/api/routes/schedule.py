from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_current_admin, get_session, get_session_maker
from app.api.errors import unwrap
from app.api.schemas.schedule import (
    UnavailableDateCreate,
    UnavailableDateUpdate,
    WeeklyScheduleIn,
)
from app.core.db import run_read
from app.models.schedule import UnavailableDatePublic, WeeklySchedule
from app.models.user import User
from app.services.schedule_service import (
    add_unavailable_date,
    get_schedule,
    list_unavailable_dates,
    remove_unavailable_date,
    update_schedule,
    update_unavailable_date,
)

router = APIRouter(tags=["schedule"])


@router.get("/schedule", response_model=WeeklySchedule)
async def read_schedule(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> WeeklySchedule:
    """Weekly business hours (public, shown on the booking page)."""
    return await run_read(session_maker, get_schedule)


@router.put("/schedule", response_model=WeeklySchedule)
async def replace_schedule(
    body: WeeklyScheduleIn,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(get_current_admin),
) -> WeeklySchedule:
    return unwrap(await update_schedule(session, body.model_dump()))


@router.get("/unavailable-dates", response_model=list[UnavailableDatePublic])
async def read_unavailable_dates(
    from_date: date | None = Query(None, alias="from"),
    to_date: date | None = Query(None, alias="to"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> list[UnavailableDatePublic]:
    rows = await run_read(
        session_maker, lambda s: list_unavailable_dates(s, start=from_date, end=to_date)
    )
    return [UnavailableDatePublic.model_validate(r) for r in rows]


@router.post(
    "/unavailable-dates",
    response_model=UnavailableDatePublic,
    status_code=status.HTTP_201_CREATED,
)
async def create_unavailable_date(
    body: UnavailableDateCreate,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(get_current_admin),
) -> UnavailableDatePublic:
    row = unwrap(
        await add_unavailable_date(
            session, body.day, reason=body.reason, cancel_bookings=body.cancel_bookings
        )
    )
    return UnavailableDatePublic.model_validate(row)


@router.put("/unavailable-dates/{date_id}", response_model=UnavailableDatePublic)
async def edit_unavailable_date(
    date_id: int,
    body: UnavailableDateUpdate,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(get_current_admin),
) -> UnavailableDatePublic:
    row = unwrap(
        await update_unavailable_date(
            session,
            date_id,
            day=body.day,
            reason=body.reason,
            cancel_bookings=body.cancel_bookings,
        )
    )
    return UnavailableDatePublic.model_validate(row)


@router.delete("/unavailable-dates/{day}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_unavailable_date(
    day: date,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(get_current_admin),
) -> None:
    unwrap(await remove_unavailable_date(session, day))
