from app.models.user import User, UserCreate, UserPublic
from app.models.schedule import (
    BusinessHours,
    Period,
    UnavailableDate,
    UnavailableDatePublic,
    WeeklySchedule,
)
from app.models.booking import (
    Booking,
    BookingDetails,
    BookingDetailsUpdate,
    BookingPublic,
    BookingStatus,
    BookingType,
)

__all__ = [
    "User",
    "UserCreate",
    "UserPublic",
    "BusinessHours",
    "Period",
    "UnavailableDate",
    "UnavailableDatePublic",
    "WeeklySchedule",
    "Booking",
    "BookingDetails",
    "BookingDetailsUpdate",
    "BookingPublic",
    "BookingStatus",
    "BookingType",
]
