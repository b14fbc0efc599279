"""Realtime event names and inbound payload schemas."""

from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..services.rides import normalize_access_code
from .errors import InvalidPayload

# Inbound
LOCATION_UPDATE = "location:update"
RIDE_START = "ride:start"
RIDE_END = "ride:end"
FOLLOW_START = "follow:start"
FOLLOW_STOP = "follow:stop"
WATCH_ALL = "watch:all"
WATCH_ALL_STOP = "watch:all:stop"

# Outbound
LOCATION_UPDATED = "location:updated"
RIDE_STARTED = "ride:started"
RIDE_ERROR = "ride:error"
RIDE_ENDED = "ride:ended"
FOLLOWER_JOINED = "follower:joined"
FOLLOWER_LEFT = "follower:left"
FOLLOW_STARTED = "follow:started"
WATCH_ALL_JOINED = "watch:all:joined"
WATCH_ALL_ERROR = "watch:all:error"


class AccessCodePayload(BaseModel):
    accessCode: str = Field(min_length=1)

    @field_validator("accessCode")
    @classmethod
    def _normalize(cls, value: str) -> str:
        code = normalize_access_code(value)
        if not code:
            raise ValueError("accessCode is required")
        return code


class LocationUpdatePayload(AccessCodePayload):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)


_Payload = TypeVar("_Payload", bound=BaseModel)


def parse_payload(model: Type[_Payload], data: Any) -> _Payload:
    """Validate ``data`` against ``model`` or raise ``InvalidPayload``."""

    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
        raise InvalidPayload(f"Invalid {field}: {first.get('msg')}") from exc


__all__ = [
    "AccessCodePayload",
    "FOLLOWER_JOINED",
    "FOLLOWER_LEFT",
    "FOLLOW_START",
    "FOLLOW_STARTED",
    "FOLLOW_STOP",
    "LOCATION_UPDATE",
    "LOCATION_UPDATED",
    "LocationUpdatePayload",
    "RIDE_END",
    "RIDE_ENDED",
    "RIDE_ERROR",
    "RIDE_START",
    "RIDE_STARTED",
    "WATCH_ALL",
    "WATCH_ALL_ERROR",
    "WATCH_ALL_JOINED",
    "WATCH_ALL_STOP",
    "parse_payload",
]
