"""Tests for the read path retry helper."""

import pytest
from sqlalchemy import exc as sa_exc

from app.core.config import settings
from app.core.db import StorageUnavailableError, run_read, sync_database_url


def _fault() -> sa_exc.OperationalError:
    return sa_exc.OperationalError("SELECT 1", {}, Exception("database is locked"))


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(settings, "storage_retry_backoff_seconds", 0)
    monkeypatch.setattr(settings, "storage_read_retries", 3)


class TestRunRead:
    @pytest.mark.asyncio
    async def test_recovers_after_transient_faults(self, session_maker):
        calls = []

        async def read(session):
            calls.append(session)
            if len(calls) < 3:
                raise _fault()
            return "ok"

        assert await run_read(session_maker, read) == "ok"
        assert len(calls) == 3
        # every attempt gets its own session
        assert len({id(s) for s in calls}) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, session_maker):
        calls = 0

        async def read(session):
            nonlocal calls
            calls += 1
            raise _fault()

        with pytest.raises(StorageUnavailableError) as exc_info:
            await run_read(session_maker, read)
        assert calls == 3
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, session_maker):
        calls = 0

        async def read(session):
            nonlocal calls
            calls += 1
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await run_read(session_maker, read)
        assert calls == 1


class TestSyncDatabaseUrl:
    def test_async_drivers_are_stripped(self):
        assert sync_database_url("postgresql+asyncpg://u:p@db/clinic") == "postgresql://u:p@db/clinic"
        assert sync_database_url("sqlite+aiosqlite:///./clinic.db") == "sqlite:///./clinic.db"

    def test_legacy_postgres_scheme_is_normalised(self):
        url = "postgres://u:p@db/clinic?sslmode=require"
        assert sync_database_url(url) == "postgresql://u:p@db/clinic?sslmode=require"
