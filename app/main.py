import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import app.models as _models  # noqa: F401 - register tables
from app.api.errors import RETRY_AFTER_SECONDS
from app.api.routes import auth, bookings, schedule, slots
from app.core.config import settings, _ENV_FILE
from app.core.db import StorageUnavailableError, async_session_maker, init_db
from app.services.auth_service import ensure_admin_user
from app.services.schedule_service import ensure_schedule_exists

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def bootstrap() -> None:
    """Explicit startup step: tables (SQLite only), business hours row, admin user."""
    if settings.is_sqlite:
        await init_db()
    async with async_session_maker() as session:
        try:
            await ensure_schedule_exists(session)
            await ensure_admin_user(session)
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    startup_log()
    try:
        await bootstrap()
    except Exception as e:
        logger.exception("Startup bootstrap failed: %s", e)
    yield


app = FastAPI(
    title="Clinic Booking API",
    description="Backend for the clinic: business hours, unavailable dates, slots, bookings",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(schedule.router, prefix="/api/v1")
app.include_router(slots.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    headers = _cors_headers(request.headers.get("origin"))
    headers["Retry-After"] = RETRY_AFTER_SECONDS
    return JSONResponse(
        status_code=503,
        content={
            "detail": {
                "kind": "storage_unavailable",
                "message": str(exc),
                "details": {},
                "retryable": True,
            }
        },
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and answer with a generic 500; include CORS so the browser sees it."""
    headers = _cors_headers(request.headers.get("origin"))
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"kind": "error", "message": "Internal server error"}},
        headers=headers,
    )


def startup_log() -> None:
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Slots: %d minutes, capacity %d per slot",
        settings.slot_duration_minutes,
        settings.slot_capacity,
    )
    if not settings.admin_email:
        logger.warning("ADMIN_EMAIL not set; no bootstrap admin will be created")
    if not settings.email_enabled:
        logger.warning("SMTP not configured; booking emails are disabled")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
