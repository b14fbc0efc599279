"""Database engine configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from .config import DATABASE_URL

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_DATA_DIR = _PROJECT_ROOT / "data"


def build_engine(url: Optional[str] = None) -> Engine:
    """Create an engine for ``url``, defaulting to the SQLite file under data/."""

    if not url:
        _DATA_DIR.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{_DATA_DIR / 'app.db'}"
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


engine = build_engine(DATABASE_URL)


__all__ = ["build_engine", "engine"]
