"""Wiring of the live-session components and inbound event dispatch."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ..services.rides import RideStore
from .errors import InvalidPayload, RideError
from .events import (
    FOLLOW_START,
    FOLLOW_STOP,
    LOCATION_UPDATE,
    RIDE_END,
    RIDE_ERROR,
    RIDE_START,
    WATCH_ALL,
    WATCH_ALL_ERROR,
    WATCH_ALL_JOINED,
    WATCH_ALL_STOP,
    AccessCodePayload,
    LocationUpdatePayload,
    parse_payload,
)
from .lifecycle import LifecycleCoordinator
from .registry import InMemorySessionRegistry, Participant, SessionRegistry
from .relay import LocationRelay
from .resolver import RideInstanceResolver
from .watch import AggregateWatchFeed

logger = logging.getLogger(__name__)

Handler = Callable[[Participant, Dict[str, Any]], Awaitable[None]]


class RideHub:
    """Owns the registry and the components that act on it.

    Built once per process at startup and closed at shutdown.
    """

    def __init__(self, store: RideStore, registry: Optional[SessionRegistry] = None):
        self.store = store
        self.registry = registry or InMemorySessionRegistry()
        self.resolver = RideInstanceResolver(store)
        self.relay = LocationRelay(self.registry, store)
        self.coordinator = LifecycleCoordinator(self.registry, self.resolver, store)
        self.feed = AggregateWatchFeed(self.registry, store)
        self._handlers: Dict[str, Handler] = {
            LOCATION_UPDATE: self._on_location_update,
            RIDE_START: self._on_ride_start,
            RIDE_END: self._on_ride_end,
            FOLLOW_START: self._on_follow_start,
            FOLLOW_STOP: self._on_follow_stop,
            WATCH_ALL: self._on_watch_all,
            WATCH_ALL_STOP: self._on_watch_all_stop,
        }

    async def dispatch(self, participant: Participant, message: Any) -> None:
        """Route one inbound envelope ``{"event": ..., "data": {...}}``."""

        if not isinstance(message, dict):
            participant.deliver(RIDE_ERROR, {"message": "Malformed message"})
            return
        event = message.get("event")
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            participant.deliver(RIDE_ERROR, {"message": f"Unknown event {event}"})
            return
        await handler(participant, message.get("data") or {})

    def disconnect(self, participant: Participant) -> None:
        self.coordinator.disconnect(participant)

    async def close(self) -> None:
        await self.relay.drain()
        await self.registry.close()

    # Handlers -------------------------------------------------------------

    async def _on_location_update(self, participant: Participant, data: Dict[str, Any]) -> None:
        try:
            update = parse_payload(LocationUpdatePayload, data)
        except InvalidPayload as exc:
            participant.deliver(RIDE_ERROR, {"message": exc.message})
            return
        self.relay.on_location_update(participant, update)

    async def _on_ride_start(self, participant: Participant, data: Dict[str, Any]) -> None:
        try:
            payload = parse_payload(AccessCodePayload, data)
            await self.coordinator.start(participant, payload.accessCode)
        except RideError as exc:
            participant.deliver(RIDE_ERROR, {"message": exc.message})

    async def _on_ride_end(self, participant: Participant, data: Dict[str, Any]) -> None:
        try:
            payload = parse_payload(AccessCodePayload, data)
            await self.coordinator.end(participant, payload.accessCode)
        except RideError as exc:
            participant.deliver(RIDE_ERROR, {"message": exc.message})

    async def _on_follow_start(self, participant: Participant, data: Dict[str, Any]) -> None:
        try:
            payload = parse_payload(AccessCodePayload, data)
        except InvalidPayload as exc:
            participant.deliver(RIDE_ERROR, {"message": exc.message})
            return
        self.coordinator.follow(participant, payload.accessCode)

    async def _on_follow_stop(self, participant: Participant, data: Dict[str, Any]) -> None:
        try:
            payload = parse_payload(AccessCodePayload, data)
        except InvalidPayload as exc:
            participant.deliver(RIDE_ERROR, {"message": exc.message})
            return
        self.coordinator.unfollow(participant, payload.accessCode)

    async def _on_watch_all(self, participant: Participant, data: Dict[str, Any]) -> None:
        try:
            codes = await self.feed.watch_all(participant)
        except RideError as exc:
            participant.deliver(WATCH_ALL_ERROR, {"message": exc.message})
            return
        participant.deliver(WATCH_ALL_JOINED, {"rides": codes})

    async def _on_watch_all_stop(self, participant: Participant, data: Dict[str, Any]) -> None:
        try:
            await self.feed.unwatch_all(participant)
        except RideError as exc:
            participant.deliver(WATCH_ALL_ERROR, {"message": exc.message})


__all__ = ["RideHub"]
