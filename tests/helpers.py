"""Shared builders for tests."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from biketrain.live import Participant
from biketrain.models import RideInstance, RideStatus, Route


def make_route(engine, code: str, region_id: Optional[int] = None) -> Route:
    with Session(engine) as session:
        route = Route(access_code=code, name=f"Route {code}", region_id=region_id)
        session.add(route)
        session.commit()
        session.refresh(route)
        return route


def add_instance(
    engine,
    route: Route,
    on: date,
    status: RideStatus = RideStatus.SCHEDULED,
    **fields: Any,
) -> RideInstance:
    with Session(engine) as session:
        instance = RideInstance(
            route_id=route.id,
            date=on,
            status=status.value,
            region_id=route.region_id,
            **fields,
        )
        session.add(instance)
        session.commit()
        session.refresh(instance)
        return instance


def load_instance(engine, instance_id: int) -> RideInstance:
    with Session(engine) as session:
        return session.get(RideInstance, instance_id)


def instances_for(engine, route: Route) -> List[RideInstance]:
    with Session(engine) as session:
        return list(
            session.exec(
                select(RideInstance)
                .where(RideInstance.route_id == route.id)
                .order_by(RideInstance.id)
            ).all()
        )


class Recorder:
    """Async sender that keeps every outbound envelope."""

    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []

    async def __call__(self, message: Dict[str, Any]) -> None:
        self.messages.append(message)

    def events(self) -> List[str]:
        return [message["event"] for message in self.messages]

    def data(self, event: str) -> List[Dict[str, Any]]:
        return [message["data"] for message in self.messages if message["event"] == event]


def connect(participant_id: str) -> tuple[Participant, Recorder]:
    """Create a started participant; call inside a running event loop."""

    recorder = Recorder()
    participant = Participant(recorder, participant_id=participant_id)
    participant.start()
    return participant, recorder
