from __future__ import annotations

import pytest
from sqlmodel import Session, SQLModel

from biketrain.core import build_engine
from biketrain.models import Region, Route
from biketrain.services.rides import RideStore

from .helpers import make_route


@pytest.fixture
def engine(tmp_path):
    db_engine = build_engine(f"sqlite:///{tmp_path / 'rides.db'}")
    SQLModel.metadata.create_all(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def store(engine):
    return RideStore(engine)


@pytest.fixture
def region(engine) -> Region:
    with Session(engine) as session:
        region = Region(slug="philly", name="Philadelphia")
        session.add(region)
        session.commit()
        session.refresh(region)
        return region


@pytest.fixture
def route(engine, region) -> Route:
    return make_route(engine, "ABCD", region.id)
