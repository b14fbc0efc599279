"""Application settings and environment helpers."""

from __future__ import annotations

import os
from typing import Iterable, List, Optional

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# Database -------------------------------------------------------------------
DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None
DB_RESET = _env_bool("DB_RESET", False)


# CORS -----------------------------------------------------------------------
# FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
_frontend_origins = _split_csv(os.getenv("FRONTEND_ORIGIN"))
_additional_origins = _split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS"))

_local_dev_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3001",
    "http://127.0.0.1:3001",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_frontend_origins,
        *_additional_origins,
        *_local_dev_origins,
    ]
)


# Administrative actions -----------------------------------------------------
ADMIN_TOKEN: Optional[str] = os.getenv("ADMIN_TOKEN") or None


# Runtime behaviour ----------------------------------------------------------
RIDE_TIMEZONE = os.getenv("RIDE_TIMEZONE", "America/New_York")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOCATION_TRAIL_LIMIT = _env_int("LOCATION_TRAIL_LIMIT", 5000)


__all__ = [
    "ADMIN_TOKEN",
    "ALLOWED_CORS_ORIGINS",
    "DATABASE_URL",
    "DB_RESET",
    "LOCATION_TRAIL_LIMIT",
    "LOG_LEVEL",
    "RIDE_TIMEZONE",
]
