"""Database model for routes."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class Route(SQLModel, table=True):
    """A recurring ride path, addressed publicly by its access code."""

    id: Optional[int] = ORMField(default=None, primary_key=True)
    access_code: str = ORMField(index=True, unique=True, max_length=4)
    name: str
    region_id: Optional[int] = ORMField(default=None, foreign_key="region.id")
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["Route"]
