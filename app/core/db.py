import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any, TypeVar
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Connection-level faults worth retrying on the read path. Constraint
# violations and programming errors are not in this list.
TRANSIENT_DB_ERRORS: tuple[type[BaseException], ...] = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
    TimeoutError,
)


class StorageUnavailableError(Exception):
    """The database could not be reached after the allowed retries."""

    retryable = True


def _async_database_url(url: str) -> str:
    # asyncpg does not accept psycopg params like sslmode/channel_binding.
    # Convert scheme and strip incompatible query params; SSL is enabled via connect_args.
    parsed = urlparse(url)
    if parsed.scheme not in ("postgresql", "postgres"):
        return url
    query = parse_qs(parsed.query, keep_blank_values=True)
    query.pop("sslmode", None)
    query.pop("channel_binding", None)
    new_query = urlencode(query, doseq=True)
    return urlunparse(("postgresql+asyncpg", parsed.netloc, parsed.path, parsed.params, new_query, parsed.fragment))


def sync_database_url(url: str) -> str:
    """URL for the sync drivers Alembic runs on (psycopg2 / sqlite3)."""
    if url.startswith("postgres://"):
        # SQLAlchemy 2 only knows the postgresql:// scheme
        url = "postgresql://" + url[len("postgres://"):]
    return url.replace("+asyncpg", "").replace("+aiosqlite", "")


def _engine_kwargs() -> dict[str, Any]:
    if settings.is_sqlite:
        return {"echo": False}
    kwargs: dict[str, Any] = {
        "echo": settings.env == "development",
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
    }
    if settings.database_ssl:
        kwargs["connect_args"] = {"ssl": True}
    return kwargs


engine = create_async_engine(_async_database_url(settings.database_url), **_engine_kwargs())

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Dependency for routes that open their own sessions (read retries)."""
    return async_session_maker


async def run_read(
    session_maker: async_sessionmaker[AsyncSession],
    fn: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """Run a read-only unit on a fresh session, retrying transient faults with backoff.

    Each attempt gets its own session so a broken connection is never reused.
    Raises StorageUnavailableError once the retries are exhausted.
    """
    attempts = max(1, settings.storage_read_retries)
    for attempt in range(attempts):
        try:
            async with session_maker() as session:
                return await fn(session)
        except TRANSIENT_DB_ERRORS as e:
            logger.warning("Read attempt %d/%d failed: %s", attempt + 1, attempts, e)
            if attempt == attempts - 1:
                raise StorageUnavailableError("Database unavailable, please retry") from e
        # Exponential backoff
        await asyncio.sleep(settings.storage_retry_backoff_seconds * (2**attempt))
    raise StorageUnavailableError("Database unavailable, please retry")


async def init_db() -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
