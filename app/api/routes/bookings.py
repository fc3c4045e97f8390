from datetime import date, datetime, time

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_current_admin, get_session, get_session_maker
from app.api.errors import unwrap
from app.api.schemas.booking import BookingListResponse, BookingRequest, StatusChangeRequest
from app.core.db import run_read
from app.models.booking import (
    Booking,
    BookingDetails,
    BookingDetailsUpdate,
    BookingPublic,
    BookingStatus,
    BookingType,
)
from app.models.user import User
from app.services.booking_query_service import (
    BookingFilter,
    BookingSort,
    Pagination,
    list_bookings,
)
from app.services.booking_service import (
    admit_booking,
    get_booking,
    transition_booking,
    update_booking_details,
)
from app.services.email_service import send_booking_status_email

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _to_public(b: Booking) -> BookingPublic:
    return BookingPublic.model_validate(b)


def _notify(background_tasks: BackgroundTasks, b: Booking) -> None:
    background_tasks.add_task(
        send_booking_status_email,
        to_email=b.email,
        recipient_name=b.first_name,
        status=BookingStatus(b.status).value,
        slot_start=b.slot,
        booking_type=BookingType(b.type).value,
    )


def _parse_types(raw: str | None) -> frozenset[BookingType]:
    """``type=checkup.treatment`` -> {CHECKUP, TREATMENT}."""
    if not raw:
        return frozenset()
    try:
        return frozenset(BookingType(t) for t in raw.split(".") if t)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown booking type in {raw!r}; expected any of "
            + ", ".join(t.value for t in BookingType),
        )


@router.post("", response_model=BookingPublic, status_code=status.HTTP_201_CREATED)
async def book_slot(
    body: BookingRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
) -> BookingPublic:
    details = BookingDetails.model_validate(body.model_dump(exclude={"date", "slot"}))
    booking = unwrap(await admit_booking(session, body.slot, body.date, details))
    _notify(background_tasks, booking)
    return _to_public(booking)


@router.get("", response_model=BookingListResponse)
async def list_all_bookings(
    page: int = Query(1),
    per_page: int | None = Query(None),
    sort: str | None = Query(None, description="field.direction, e.g. last_name.asc"),
    last_name: str | None = Query(None, alias="lastName"),
    type_param: str | None = Query(None, alias="type", description="dot-separated types"),
    email: str | None = Query(None),
    from_date: date | None = Query(None, alias="from"),
    to_date: date | None = Query(None, alias="to"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
    _: User = Depends(get_current_admin),
) -> BookingListResponse:
    """Admin listing; filters are ANDed, the date range is inclusive on both ends."""
    filters = BookingFilter(
        last_name_contains=last_name or None,
        types=_parse_types(type_param),
        email_contains=email or None,
        created_from=datetime.combine(from_date, time.min) if from_date else None,
        created_to=datetime.combine(to_date, time.max) if to_date else None,
    )
    pagination = Pagination(page=page, per_page=per_page) if per_page else Pagination(page=page)
    result = await run_read(
        session_maker,
        lambda s: list_bookings(s, filters, pagination, BookingSort.parse(sort)),
    )
    return BookingListResponse(
        items=[_to_public(b) for b in result.items],
        total_count=result.total_count,
        page_count=result.page_count,
        page=result.page,
        per_page=result.per_page,
    )


@router.get("/{booking_id}", response_model=BookingPublic)
async def read_booking(
    booking_id: int,
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
    _: User = Depends(get_current_admin),
) -> BookingPublic:
    booking = await run_read(session_maker, lambda s: get_booking(s, booking_id))
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return _to_public(booking)


@router.patch("/{booking_id}", response_model=BookingPublic)
async def edit_booking(
    booking_id: int,
    body: BookingDetailsUpdate,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(get_current_admin),
) -> BookingPublic:
    return _to_public(unwrap(await update_booking_details(session, booking_id, body)))


@router.post("/{booking_id}/status", response_model=BookingPublic)
async def change_booking_status(
    booking_id: int,
    body: StatusChangeRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(get_current_admin),
) -> BookingPublic:
    booking = unwrap(await transition_booking(session, booking_id, body.status))
    _notify(background_tasks, booking)
    return _to_public(booking)
