"""Shared request dependencies."""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request

from ..live import RideHub
from ..services.rides import RideStore


def get_hub(request: Request) -> RideHub:
    return request.app.state.hub


def get_store(request: Request) -> RideStore:
    return request.app.state.hub.store


def require_admin(
    request: Request, authorization: Optional[str] = Header(default=None)
) -> None:
    """Accept only ``Authorization: Bearer <ADMIN_TOKEN>``."""

    expected = request.app.state.admin_token
    token = (authorization or "").removeprefix("Bearer ").strip()
    if not expected or not token or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


__all__ = ["get_hub", "get_store", "require_admin"]
