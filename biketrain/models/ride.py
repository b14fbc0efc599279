"""Database model for dated ride instances."""

from __future__ import annotations

import json
import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Index, text
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class RideStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"


_LIVE_ONLY = text("status = 'live'")


class RideInstance(SQLModel, table=True):
    """One occurrence of a route on a calendar date."""

    __tablename__ = "ride_instance"
    # At most one live instance per route.
    __table_args__ = (
        Index(
            "ux_ride_instance_one_live",
            "route_id",
            unique=True,
            sqlite_where=_LIVE_ONLY,
            postgresql_where=_LIVE_ONLY,
        ),
    )

    id: Optional[int] = ORMField(default=None, primary_key=True)
    route_id: int = ORMField(index=True, foreign_key="route.id")
    date: dt.date
    status: str = ORMField(default=RideStatus.SCHEDULED.value, index=True)
    started_at: Optional[dt.datetime] = None
    ended_at: Optional[dt.datetime] = None
    current_location_json: Optional[str] = None
    location_trail_json: str = "[]"
    region_id: Optional[int] = ORMField(default=None, foreign_key="region.id")
    created_at: dt.datetime = ORMField(default_factory=utcnow)

    @property
    def current_location(self) -> Optional[Dict[str, Any]]:
        if not self.current_location_json:
            return None
        return json.loads(self.current_location_json)

    @property
    def location_trail(self) -> List[Dict[str, Any]]:
        return json.loads(self.location_trail_json or "[]")


__all__ = ["RideInstance", "RideStatus"]
