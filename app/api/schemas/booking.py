from datetime import date, datetime, time

from pydantic import BaseModel

from app.models.booking import BookingDetails, BookingPublic, BookingStatus


class SlotInfo(BaseModel):
    start: datetime
    end: datetime
    available: bool
    remaining: int


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD
    slots: list[SlotInfo]


class BookingRequest(BookingDetails):
    date: date
    slot: time


class StatusChangeRequest(BaseModel):
    status: BookingStatus


class BookingListResponse(BaseModel):
    items: list[BookingPublic]
    total_count: int
    page_count: int
    page: int
    per_page: int
