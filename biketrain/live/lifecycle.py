"""Session lifecycle: start, end, follow and disconnect handling."""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from ..services.rides import RideStore, StartOutcome, normalize_access_code
from .errors import PersistenceError
from .events import (
    FOLLOWER_JOINED,
    FOLLOWER_LEFT,
    FOLLOW_STARTED,
    RIDE_ENDED,
    RIDE_STARTED,
)
from .registry import Participant, Role, SessionRegistry
from .resolver import RideInstanceResolver

logger = logging.getLogger(__name__)


class LifecycleCoordinator:
    """Drives the idle -> live -> ended cycle for each access code.

    Start and end intents for the same code are serialized in-process; the
    store transaction guards against other processes.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        resolver: RideInstanceResolver,
        store: RideStore,
    ):
        self.registry = registry
        self.resolver = resolver
        self.store = store
        # Entries vanish once no start or end for the code holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock(self, code: str) -> asyncio.Lock:
        lock = self._locks.get(code)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[code] = lock
        return lock

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    async def start(self, participant: Participant, access_code: str) -> StartOutcome:
        code = normalize_access_code(access_code)
        async with self._lock(code):
            outcome = await self.resolver.resolve(code)
        self.registry.join(code, participant, Role.LEADER)
        participant.deliver(RIDE_STARTED, {"accessCode": code})
        logger.info("Ride %s started by %s (%s)", code, participant.id, outcome.action)
        return outcome

    async def end(self, participant: Optional[Participant], access_code: str) -> int:
        """Complete the live instance and tell the room the ride is over.

        The room is notified even when nothing was live or the store failed;
        a store failure is re-raised afterwards for the initiator.
        """

        code = normalize_access_code(access_code)
        store_error: Optional[SQLAlchemyError] = None
        updated = 0
        async with self._lock(code):
            try:
                updated = await run_in_threadpool(self.store.complete_live_instances, code)
            except SQLAlchemyError as exc:
                logger.exception("Failed to complete ride %s", code)
                store_error = exc

        if participant is not None:
            self.registry.leave(code, participant)
        self.registry.broadcast(code, RIDE_ENDED, {"accessCode": code}, exclude=participant)

        if store_error is not None:
            raise PersistenceError(f"Failed to end ride {code}") from store_error
        if updated == 0:
            logger.info("End for %s matched no live ride instance", code)
        else:
            logger.info("Ride %s ended (%d instance(s) completed)", code, updated)
        return updated

    async def force_end(self, access_code: str) -> int:
        """Administrative end with no initiating connection."""

        return await self.end(None, access_code)

    def follow(self, participant: Participant, access_code: str) -> int:
        code = normalize_access_code(access_code)
        self.registry.join(code, participant, Role.FOLLOWER)
        count = self.registry.follower_count(code)
        self.registry.broadcast(
            code,
            FOLLOWER_JOINED,
            {"followerCount": count, "followerId": participant.id},
            exclude=participant,
        )
        participant.deliver(FOLLOW_STARTED, {"accessCode": code, "followerCount": count})
        logger.info("Follower %s joined %s (%d following)", participant.id, code, count)
        return count

    def unfollow(self, participant: Participant, access_code: str) -> int:
        code = normalize_access_code(access_code)
        self.registry.leave(code, participant)
        count = self._announce_left(code, participant)
        logger.info("Follower %s left %s (%d following)", participant.id, code, count)
        return count

    def disconnect(self, participant: Participant) -> None:
        """Drop the participant from every room it occupied."""

        for code, role in self.registry.leave_all(participant):
            if role is Role.FOLLOWER:
                self._announce_left(code, participant)
        logger.info("Client disconnected: %s", participant.id)

    def _announce_left(self, code: str, participant: Participant) -> int:
        count = self.registry.follower_count(code)
        self.registry.broadcast(
            code,
            FOLLOWER_LEFT,
            {"followerCount": count, "followerId": participant.id},
        )
        return count


__all__ = ["LifecycleCoordinator"]
