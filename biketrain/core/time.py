"""Clock helpers shared by the store and the realtime engine."""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from .config import RIDE_TIMEZONE

_RIDE_ZONE = ZoneInfo(RIDE_TIMEZONE)


def utcnow() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Calendar date in the configured ride timezone."""
    return datetime.now(_RIDE_ZONE).date()


def epoch_millis() -> int:
    return int(time.time() * 1000)


__all__ = ["epoch_millis", "today", "utcnow"]
