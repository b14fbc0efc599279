"""GPX rendering and distance helpers for recorded trails."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import gpxpy.gpx


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters using the Haversine formula."""

    earth_radius_m = 6_371_000.0
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return earth_radius_m * c


def trail_distance_m(trail: List[Dict[str, Any]]) -> float:
    """Total distance covered by consecutive fixes, rounded to the meter."""

    total = 0.0
    for previous, current in zip(trail, trail[1:]):
        total += haversine_m(previous["lat"], previous["lng"], current["lat"], current["lng"])
    return round(total)


def _fix_time(fix: Dict[str, Any]) -> Optional[datetime]:
    raw = fix.get("timestamp")
    if raw is None:
        return None
    try:
        return datetime.fromtimestamp(int(raw) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def trail_to_gpx(trail: List[Dict[str, Any]], name: Optional[str] = None) -> str:
    """Render a location trail as a single-track GPX document."""

    gpx = gpxpy.gpx.GPX()
    track = gpxpy.gpx.GPXTrack(name=name)
    gpx.tracks.append(track)
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)

    for fix in trail:
        segment.points.append(
            gpxpy.gpx.GPXTrackPoint(
                latitude=fix["lat"],
                longitude=fix["lng"],
                time=_fix_time(fix),
            )
        )

    return gpx.to_xml(version="1.1")


__all__ = ["haversine_m", "trail_distance_m", "trail_to_gpx"]
