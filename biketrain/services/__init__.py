"""Service layer helpers."""

from .gpx import haversine_m, trail_distance_m, trail_to_gpx
from .rides import RideStore, StartOutcome, normalize_access_code, ride_to_dict

__all__ = [
    "RideStore",
    "StartOutcome",
    "haversine_m",
    "normalize_access_code",
    "ride_to_dict",
    "trail_distance_m",
    "trail_to_gpx",
]
