from datetime import UTC, date, datetime, time

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

# Index matches date.weekday(): Monday == 0
WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

SCHEDULE_ROW_ID = 1


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Period(BaseModel):
    """Contiguous opening interval within a weekday, e.g. 09:00-12:00."""

    model_config = ConfigDict(frozen=True)

    opening: time
    closing: time

    @model_validator(mode="after")
    def _opening_before_closing(self) -> "Period":
        if self.opening >= self.closing:
            raise ValueError(
                f"opening {self.opening:%H:%M} must be before closing {self.closing:%H:%M}"
            )
        return self


class WeeklySchedule(BaseModel):
    """Opening periods for each weekday. An empty tuple means closed that day.

    Periods are kept sorted by opening time; overlapping periods are rejected.
    Adjacent periods (one closes as the next opens) are allowed.
    """

    model_config = ConfigDict(frozen=True)

    monday: tuple[Period, ...] = ()
    tuesday: tuple[Period, ...] = ()
    wednesday: tuple[Period, ...] = ()
    thursday: tuple[Period, ...] = ()
    friday: tuple[Period, ...] = ()
    saturday: tuple[Period, ...] = ()
    sunday: tuple[Period, ...] = ()

    @field_validator(*WEEKDAYS)
    @classmethod
    def _sorted_without_overlap(cls, periods: tuple[Period, ...]) -> tuple[Period, ...]:
        ordered = tuple(sorted(periods, key=lambda p: p.opening))
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.opening < prev.closing:
                raise ValueError(
                    f"periods {prev.opening:%H:%M}-{prev.closing:%H:%M} and "
                    f"{cur.opening:%H:%M}-{cur.closing:%H:%M} overlap"
                )
        return ordered

    @classmethod
    def closed(cls) -> "WeeklySchedule":
        return cls()

    def periods_for(self, day: date) -> tuple[Period, ...]:
        return getattr(self, WEEKDAYS[day.weekday()])

    def is_closed(self) -> bool:
        return not any(getattr(self, name) for name in WEEKDAYS)


class BusinessHours(SQLModel, table=True):
    """Single stored row holding the clinic's weekly schedule."""

    __tablename__ = "business_hours"
    id: int = Field(default=SCHEDULE_ROW_ID, primary_key=True)
    monday_periods: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    tuesday_periods: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    wednesday_periods: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    thursday_periods: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    friday_periods: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    saturday_periods: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    sunday_periods: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=_utc_naive_now)

    def to_schedule(self) -> WeeklySchedule:
        return WeeklySchedule.model_validate(
            {name: getattr(self, f"{name}_periods") or [] for name in WEEKDAYS}
        )

    def apply(self, schedule: WeeklySchedule) -> None:
        # Reassign whole lists so the JSON columns are marked dirty
        for name in WEEKDAYS:
            setattr(
                self,
                f"{name}_periods",
                [p.model_dump(mode="json") for p in getattr(schedule, name)],
            )
        self.updated_at = _utc_naive_now()


class UnavailableDate(SQLModel, table=True):
    __tablename__ = "unavailable_dates"
    id: int | None = Field(default=None, primary_key=True)
    day: date = Field(unique=True, index=True)
    reason: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now)


class UnavailableDatePublic(SQLModel):
    id: int
    day: date
    reason: str | None = None
    created_at: datetime
