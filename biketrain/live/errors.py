"""Errors raised by the live-session engine."""

from __future__ import annotations


class RideError(Exception):
    """Base class for failures reported back to a realtime client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RouteNotFound(RideError):
    def __init__(self, access_code: str):
        super().__init__(f"No route found for access code {access_code}")
        self.access_code = access_code


class PersistenceError(RideError):
    """The ride store failed while handling an intent."""


class InvalidPayload(RideError):
    """An inbound event did not match its expected shape."""


__all__ = ["InvalidPayload", "PersistenceError", "RideError", "RouteNotFound"]
