"""Fan-out of leader position fixes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Set

from starlette.concurrency import run_in_threadpool

from ..core import epoch_millis
from ..services.rides import RideStore
from .events import LOCATION_UPDATED, LocationUpdatePayload
from .registry import Participant, SessionRegistry

logger = logging.getLogger(__name__)


class LocationRelay:
    """Broadcasts fixes to the room, then persists them in the background.

    The broadcast never waits on the store. Persistence runs as a detached
    task; its failures are only logged.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        store: RideStore,
        clock: Callable[[], int] = epoch_millis,
    ):
        self.registry = registry
        self.store = store
        self.clock = clock
        self._pending: Set[asyncio.Task] = set()

    def on_location_update(
        self, participant: Participant, update: LocationUpdatePayload
    ) -> Dict[str, Any]:
        code = update.accessCode
        timestamp = self.clock()
        message = {
            "accessCode": code,
            "lat": update.lat,
            "lng": update.lng,
            "accuracy": update.accuracy,
            "timestamp": timestamp,
        }
        delivered = self.registry.broadcast(code, LOCATION_UPDATED, message, exclude=participant)
        logger.debug("Location for %s relayed to %d member(s)", code, delivered)

        fix = {
            "lat": update.lat,
            "lng": update.lng,
            "accuracy": update.accuracy,
            "timestamp": timestamp,
        }
        task = asyncio.create_task(self._persist(code, fix))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return message

    async def _persist(self, code: str, fix: Dict[str, Any]) -> None:
        try:
            updated = await run_in_threadpool(self.store.record_location, code, fix)
        except Exception:
            logger.exception("Failed to persist location for %s", code)
            return
        if not updated:
            logger.debug("No live ride instance for %s; location not stored", code)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for in-flight persistence tasks."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["LocationRelay"]
