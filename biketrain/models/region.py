"""Database model for service regions."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field as ORMField, SQLModel


class Region(SQLModel, table=True):
    """City or area a route belongs to."""

    id: Optional[int] = ORMField(default=None, primary_key=True)
    slug: str = ORMField(index=True, unique=True)
    name: str


__all__ = ["Region"]
