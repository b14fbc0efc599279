"""Logging setup for the API process."""

from __future__ import annotations

import logging
from typing import Optional

from .config import LOG_LEVEL

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_handler: Optional[logging.Handler] = None


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Install one stream handler on the root logger (idempotent)."""

    global _handler
    root = logging.getLogger()
    root.setLevel(level)
    if _handler is not None and _handler in root.handlers:
        return
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(_handler)


__all__ = ["configure_logging"]
