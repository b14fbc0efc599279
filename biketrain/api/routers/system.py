"""System-level API endpoints."""

from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...core import utcnow

router = APIRouter(tags=["system"])

_STARTED = time.monotonic()


@router.get("/health")
def health() -> Dict[str, bool]:
    """Simple readiness probe."""

    return {"ok": True}


@router.get("/api/health")
def api_health() -> JSONResponse:
    """Status with server time and process uptime in seconds."""

    return JSONResponse(
        {
            "status": "ok",
            "timestamp": utcnow().isoformat(),
            "uptime": round(time.monotonic() - _STARTED, 3),
        }
    )


@router.get("/")
def index() -> Dict[str, Any]:
    return {
        "name": "Bike Train API",
        "endpoints": {
            "health": "/api/health",
            "live_rides": "/rides/live",
            "websocket": "/ws",
        },
    }


__all__ = ["router"]
