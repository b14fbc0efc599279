"""Aggregate API routers."""

from fastapi import APIRouter

from .admin import router as admin_router
from .realtime import router as realtime_router
from .rides import router as rides_router
from .system import router as system_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    rides_router,
    admin_router,
    realtime_router,
)

__all__ = ["ALL_ROUTERS"]
