"""Pick the persistent ride instance a start intent should make live."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from ..core import today
from ..services.rides import RideStore, StartOutcome, normalize_access_code
from .errors import PersistenceError, RouteNotFound

logger = logging.getLogger(__name__)


class RideInstanceResolver:
    """Resolves an access code to the instance that should be live.

    Priority: an already-live instance (rejoin), the scheduled instance
    nearest today, a completed instance dated today (restart), otherwise a
    new instance for today. The whole sequence is one store transaction.
    """

    def __init__(self, store: RideStore, clock: Callable[[], date] = today):
        self.store = store
        self.clock = clock

    async def resolve(self, access_code: str) -> StartOutcome:
        code = normalize_access_code(access_code)
        try:
            outcome = await run_in_threadpool(self.store.start_instance, code, self.clock())
        except SQLAlchemyError as exc:
            logger.exception("Failed to resolve ride instance for %s", code)
            raise PersistenceError(f"Failed to start ride {code}") from exc

        if outcome is None:
            logger.info("Start rejected, unknown access code %s", code)
            raise RouteNotFound(code)

        logger.info(
            "Resolved %s to ride instance %s (%s)",
            code,
            outcome.instance.id,
            outcome.action,
        )
        return outcome


__all__ = ["RideInstanceResolver"]
