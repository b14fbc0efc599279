"""Subscribe a client to every live ride at once."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from ..services.rides import RideStore
from .errors import PersistenceError
from .registry import Participant, Role, SessionRegistry

logger = logging.getLogger(__name__)


class AggregateWatchFeed:
    def __init__(self, registry: SessionRegistry, store: RideStore):
        self.registry = registry
        self.store = store

    async def live_codes(self, region_id: Optional[int] = None) -> List[str]:
        try:
            rows = await run_in_threadpool(self.store.list_live_instances, region_id)
        except SQLAlchemyError as exc:
            logger.exception("Failed to list live rides")
            raise PersistenceError("Failed to list live rides") from exc
        codes: List[str] = []
        for _, route in rows:
            if route.access_code not in codes:
                codes.append(route.access_code)
        return codes

    async def watch_all(self, participant: Participant) -> List[str]:
        codes = await self.live_codes()
        for code in codes:
            self.registry.join(code, participant, Role.WATCHER)
        logger.info("%s watching %d live ride(s)", participant.id, len(codes))
        return codes

    async def unwatch_all(self, participant: Participant) -> List[str]:
        """Leave the rooms of rides that are live *now*.

        Rooms joined at watch time whose rides have since ended are not left.
        Rooms held as leader or follower are kept.
        """

        codes = await self.live_codes()
        for code in codes:
            if self.registry.role_of(code, participant) is Role.WATCHER:
                self.registry.leave(code, participant)
        logger.info("%s stopped watching %d live ride(s)", participant.id, len(codes))
        return codes


__all__ = ["AggregateWatchFeed"]
