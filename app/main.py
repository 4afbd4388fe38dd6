import asyncio
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from routers import bookings, slots, stats
from app.config import LOG_LEVEL, SLOT_SWEEP_INTERVAL_SECONDS
from app.db import SessionLocal, init_db
from app.errors import BookingSystemError
from app.sweeper import sweep_periodically

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Hospital Slot Booking API", version="0.1.0")

app.include_router(slots.router, prefix="/slots", tags=["slots"])
app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
app.include_router(stats.router, prefix="/stats", tags=["stats"])

_sweeper_task: asyncio.Task | None = None


@app.exception_handler(BookingSystemError)
async def booking_error_handler(request: Request, exc: BookingSystemError):
    if exc.status_code != 404:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


@app.on_event("startup")
async def on_startup():
    global _sweeper_task
    if os.getenv("SKIP_DB_INIT") != "1":
        init_db()
    if os.getenv("SKIP_SLOT_SWEEPER") != "1":
        _sweeper_task = asyncio.create_task(sweep_periodically(SessionLocal, SLOT_SWEEP_INTERVAL_SECONDS))
        logger.info(f"Slot expiry sweeper started (every {SLOT_SWEEP_INTERVAL_SECONDS:g}s)")


@app.on_event("shutdown")
async def on_shutdown():
    global _sweeper_task
    if _sweeper_task is None:
        return
    _sweeper_task.cancel()
    try:
        await _sweeper_task
    except asyncio.CancelledError:
        logger.info("Slot expiry sweeper stopped")
    _sweeper_task = None


@app.get("/")
def root():
    return {"ok": True, "service": "hospital-slot-booking-api"}
