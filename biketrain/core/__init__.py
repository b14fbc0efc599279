"""Core configuration and infrastructure helpers."""

from .config import (
    ADMIN_TOKEN,
    ALLOWED_CORS_ORIGINS,
    DATABASE_URL,
    DB_RESET,
    LOCATION_TRAIL_LIMIT,
    LOG_LEVEL,
    RIDE_TIMEZONE,
)
from .database import build_engine, engine
from .logging import configure_logging
from .time import epoch_millis, today, utcnow

__all__ = [
    "ADMIN_TOKEN",
    "ALLOWED_CORS_ORIGINS",
    "DATABASE_URL",
    "DB_RESET",
    "LOCATION_TRAIL_LIMIT",
    "LOG_LEVEL",
    "RIDE_TIMEZONE",
    "build_engine",
    "configure_logging",
    "engine",
    "epoch_millis",
    "today",
    "utcnow",
]
