"""Database model exports."""

from .region import Region
from .ride import RideInstance, RideStatus
from .route import Route

__all__ = [
    "Region",
    "RideInstance",
    "RideStatus",
    "Route",
]
