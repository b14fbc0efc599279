"""Administrative session controls."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...live import RideHub
from ...services.rides import normalize_access_code
from ..deps import get_hub, require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/sessions")
def list_sessions(hub: RideHub = Depends(get_hub)) -> Dict[str, Any]:
    """Rooms currently held in memory, with member counts by role."""

    rooms = hub.registry.snapshot()
    return {"count": len(rooms), "rooms": rooms}


@router.post("/rides/{access_code}/end")
async def force_end_ride(access_code: str, hub: RideHub = Depends(get_hub)) -> Dict[str, Any]:
    """End a ride on behalf of a leader who never sent an end intent."""

    code = normalize_access_code(access_code)
    completed = await hub.coordinator.force_end(code)
    return {"ok": True, "access_code": code, "completed": completed}


__all__ = ["router"]
