from datetime import date, time

from pydantic import BaseModel


class PeriodIn(BaseModel):
    opening: time
    closing: time


class WeeklyScheduleIn(BaseModel):
    """Raw weekly hours as sent by the admin form; overlap checks happen in the service."""

    monday: list[PeriodIn] = []
    tuesday: list[PeriodIn] = []
    wednesday: list[PeriodIn] = []
    thursday: list[PeriodIn] = []
    friday: list[PeriodIn] = []
    saturday: list[PeriodIn] = []
    sunday: list[PeriodIn] = []


class UnavailableDateCreate(BaseModel):
    day: date
    reason: str | None = None
    cancel_bookings: bool = False  # cancel live bookings on that day instead of refusing


class UnavailableDateUpdate(BaseModel):
    day: date | None = None
    reason: str | None = None
    cancel_bookings: bool = False
