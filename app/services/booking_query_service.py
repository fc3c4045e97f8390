import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.booking import Booking, BookingType

MAX_OFFSET = 2**63 - 1


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BookingSortField(str, Enum):
    ID = "id"
    TYPE = "type"
    STATUS = "status"
    SLOT = "slot"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    PHONE = "phone"
    EMAIL = "email"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


# Accept the camelCase column names the admin table sends
_SORT_ALIASES = {
    "firstName": BookingSortField.FIRST_NAME,
    "lastName": BookingSortField.LAST_NAME,
    "createdAt": BookingSortField.CREATED_AT,
    "updatedAt": BookingSortField.UPDATED_AT,
}


@dataclass(frozen=True)
class BookingFilter:
    last_name_contains: str | None = None
    types: frozenset[BookingType] = frozenset()
    email_contains: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


@dataclass(frozen=True)
class BookingSort:
    field: BookingSortField = BookingSortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC

    @classmethod
    def parse(cls, raw: str | None) -> "BookingSort":
        """Parse ``field.direction`` (e.g. ``last_name.asc``).

        An unknown or missing field falls back to created_at descending; a
        missing or unknown direction means descending.
        """
        if not raw:
            return cls()
        name, _, direction = raw.partition(".")
        sort_field = _SORT_ALIASES.get(name)
        if sort_field is None:
            try:
                sort_field = BookingSortField(name)
            except ValueError:
                return cls()
        order = SortDirection.ASC if direction == SortDirection.ASC.value else SortDirection.DESC
        return cls(sort_field, order)


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    per_page: int = field(default_factory=lambda: settings.default_per_page)

    @property
    def limit(self) -> int:
        return min(max(1, self.per_page), settings.max_per_page)

    @property
    def offset(self) -> int:
        # Keep within a signed 64-bit SQL integer; such pages are simply empty
        return min(max(0, (self.page - 1) * self.limit), MAX_OFFSET)


@dataclass(frozen=True)
class BookingPage:
    items: list[Booking]
    total_count: int
    page: int
    per_page: int

    @property
    def page_count(self) -> int:
        return math.ceil(self.total_count / self.per_page) if self.per_page else 0


def _conditions(filters: BookingFilter) -> list:
    conds = []
    if filters.last_name_contains:
        conds.append(Booking.last_name.icontains(filters.last_name_contains, autoescape=True))
    if filters.types:
        conds.append(Booking.type.in_(sorted(t.value for t in filters.types)))
    if filters.email_contains:
        conds.append(Booking.email.icontains(filters.email_contains, autoescape=True))
    if filters.created_from:
        conds.append(Booking.created_at >= filters.created_from)
    if filters.created_to:
        conds.append(Booking.created_at <= filters.created_to)
    return conds


async def _use_snapshot(session: AsyncSession) -> None:
    """Pin the session's transaction to one snapshot so the page and its count agree.

    Postgres runs READ COMMITTED by default, where each statement sees its own
    snapshot. Other backends keep their default. Only takes effect when this is
    the session's first statement.
    """
    bind = session.bind
    if bind is not None and bind.dialect.name == "postgresql":
        await session.connection(execution_options={"isolation_level": "REPEATABLE READ"})


async def list_bookings(
    session: AsyncSession,
    filters: BookingFilter | None = None,
    pagination: Pagination | None = None,
    sort: BookingSort | None = None,
) -> BookingPage:
    """One page of bookings plus the filtered total, read in the same transaction."""
    filters = filters or BookingFilter()
    pagination = pagination or Pagination()
    sort = sort or BookingSort()

    conds = _conditions(filters)
    column = getattr(Booking, sort.field.value)
    order = asc if sort.direction is SortDirection.ASC else desc

    items_q = (
        select(Booking)
        .where(*conds)
        # id breaks ties so pages never overlap or skip rows
        .order_by(order(column), order(Booking.id))
        .limit(pagination.limit)
        .offset(pagination.offset)
    )
    count_q = select(func.count(Booking.id)).where(*conds)

    await _use_snapshot(session)
    total = int((await session.execute(count_q)).scalar_one() or 0)
    items: list[Booking] = []
    if pagination.offset < total:
        items = list((await session.execute(items_q)).scalars().all())
    return BookingPage(
        items=items,
        total_count=total,
        page=max(1, pagination.page),
        per_page=pagination.limit,
    )
