from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_session_maker
from app.api.schemas.booking import AvailableSlotsResponse, SlotInfo
from app.core.db import run_read
from app.services.slot_service import get_day_availability

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    date_param: date = Query(..., alias="date"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> AvailableSlotsResponse:
    """Return all slots for the given date. Each slot has start, end, and whether seats remain."""
    slots = await run_read(session_maker, lambda s: get_day_availability(s, date_param))
    return AvailableSlotsResponse(
        date=date_param.isoformat(),
        slots=[
            SlotInfo(start=s.start, end=s.end, available=s.available, remaining=s.remaining)
            for s in slots
        ],
    )
