"""API assembly helpers."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..live import InvalidPayload, PersistenceError, RideError, RouteNotFound
from .routers import ALL_ROUTERS


def _status_for(exc: RideError) -> int:
    if isinstance(exc, RouteNotFound):
        return 404
    if isinstance(exc, InvalidPayload):
        return 400
    if isinstance(exc, PersistenceError):
        return 503
    return 500


async def _ride_error_handler(request: Request, exc: RideError) -> JSONResponse:
    return JSONResponse(status_code=_status_for(exc), content={"detail": exc.message})


def register_routes(app: FastAPI) -> None:
    """Attach all application routers and error handlers to the given app."""

    for router in ALL_ROUTERS:
        app.include_router(router)
    app.add_exception_handler(RideError, _ride_error_handler)


__all__ = ["register_routes"]
