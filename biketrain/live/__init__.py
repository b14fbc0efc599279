"""Live ride sessions: rooms, lifecycle, location relay and watch feed."""

from .errors import InvalidPayload, PersistenceError, RideError, RouteNotFound
from .hub import RideHub
from .lifecycle import LifecycleCoordinator
from .registry import InMemorySessionRegistry, Participant, Role, SessionRegistry
from .relay import LocationRelay
from .resolver import RideInstanceResolver
from .watch import AggregateWatchFeed

__all__ = [
    "AggregateWatchFeed",
    "InMemorySessionRegistry",
    "InvalidPayload",
    "LifecycleCoordinator",
    "LocationRelay",
    "Participant",
    "PersistenceError",
    "RideError",
    "RideHub",
    "RideInstanceResolver",
    "Role",
    "RouteNotFound",
    "SessionRegistry",
]
