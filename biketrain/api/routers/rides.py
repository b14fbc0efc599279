"""Read-only ride endpoints backing the follower and map views."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from ...core import today
from ...live import RideHub
from ...services.gpx import trail_distance_m, trail_to_gpx
from ...services.rides import RideStore, normalize_access_code, ride_to_dict
from ..deps import get_hub, get_store

router = APIRouter(prefix="/rides", tags=["rides"])


@router.get("/live")
async def list_live_rides(region: Optional[str] = None, hub: RideHub = Depends(get_hub)):
    """List live rides with their in-memory follower counts."""

    region_id = None
    if region:
        found = await run_in_threadpool(hub.store.find_region_by_slug, region)
        if not found:
            raise HTTPException(404, "Region not found")
        region_id = found.id

    rows = await run_in_threadpool(hub.store.list_live_instances, region_id)
    data = []
    for instance, route in rows:
        item = ride_to_dict(instance, route)
        item["follower_count"] = hub.registry.follower_count(route.access_code)
        data.append(item)
    return {"count": len(data), "data": data}


@router.get("/by-code/{access_code}")
async def get_ride_by_code(
    access_code: str, hub: RideHub = Depends(get_hub)
) -> Dict[str, Any]:
    """Today's scheduled or live ride for an access code."""

    code = normalize_access_code(access_code)
    found = await run_in_threadpool(hub.store.find_instance_for_code, code, today())
    if not found:
        raise HTTPException(404, "No active ride found for this code today")
    instance, route = found
    data = ride_to_dict(instance, route)
    data["trail_distance_m"] = trail_distance_m(data["location_trail"])
    data["follower_count"] = hub.registry.follower_count(code)
    return data


@router.get("/{ride_id}/trail.gpx")
async def get_ride_trail(ride_id: int, store: RideStore = Depends(get_store)) -> Response:
    """Export the recorded trail of a ride as GPX."""

    found = await run_in_threadpool(store.get_instance, ride_id)
    if not found:
        raise HTTPException(404, "Ride not found")
    instance, route = found
    name = f"{route.name} {instance.date.isoformat()}" if route else None
    return Response(
        content=trail_to_gpx(instance.location_trail, name=name),
        media_type="application/gpx+xml",
    )


__all__ = ["router"]
