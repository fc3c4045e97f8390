"""Shared test fixtures and helpers."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import date, datetime, time, timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import app.models  # noqa: F401 - register tables
from app.core.db import get_session, get_session_maker
from app.core.security import create_access_token, hash_password
from app.models.booking import Booking, BookingDetails, BookingStatus, BookingType
from app.models.schedule import Period, WeeklySchedule
from app.models.user import User
from app.services.schedule_service import ensure_schedule_exists, update_schedule

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
TUESDAY = MONDAY + timedelta(days=1)
NEXT_MONDAY = MONDAY + timedelta(days=7)


def make_details(**overrides) -> BookingDetails:
    data = {
        "type": BookingType.CHECKUP,
        "first_name": "Anna",
        "last_name": "Nowak",
        "phone": "+48 600 100 200",
        "email": "anna@example.com",
        "message": None,
    }
    data.update(overrides)
    return BookingDetails(**data)


def make_booking(
    slot: datetime,
    created_at: datetime,
    booking_type: BookingType = BookingType.CHECKUP,
    last_name: str = "Nowak",
    email: str = "anna@example.com",
    status: BookingStatus = BookingStatus.PENDING,
) -> Booking:
    return Booking(
        type=booking_type.value,
        status=status.value,
        slot=slot,
        slot_seat=None if status is BookingStatus.CANCELLED else 0,
        first_name="Anna",
        last_name=last_name,
        phone="600100200",
        email=email,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def monday_schedule(session) -> WeeklySchedule:
    """Open Mondays 09:00-12:00 only."""
    await ensure_schedule_exists(session)
    schedule = WeeklySchedule(monday=(Period(opening=time(9), closing=time(12)),))
    await update_schedule(session, schedule)
    await session.commit()
    return schedule


@pytest_asyncio.fixture
async def client(session_maker):
    from app.main import app

    async def _get_session():
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_headers(session_maker) -> dict[str, str]:
    async with session_maker() as s:
        admin = User(
            email="admin@clinic.com",
            full_name="Admin",
            hashed_password=hash_password("admin-pass"),
            is_admin=True,
        )
        s.add(admin)
        await s.commit()
        await s.refresh(admin)
    return {"Authorization": f"Bearer {create_access_token(admin.id)}"}
