"""Ride instance persistence used by the live-session engine."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core import LOCATION_TRAIL_LIMIT, utcnow
from ..models import Region, RideInstance, RideStatus, Route

logger = logging.getLogger(__name__)


def normalize_access_code(code: Any) -> str:
    """Access codes are case-insensitive; rooms and lookups use upper-case."""

    return str(code or "").strip().upper()


@dataclass
class StartOutcome:
    """Result of resolving a start intent against the store."""

    instance: RideInstance
    route: Route
    action: str  # "rejoined", "scheduled", "restarted" or "created"

    @property
    def mutated(self) -> bool:
        return self.action != "rejoined"


class RideStore:
    """Persistent-store collaborator for routes and ride instances.

    Every public method opens its own session. Methods are synchronous; the
    realtime engine runs them in a worker thread.
    """

    def __init__(self, engine: Engine, trail_limit: int = LOCATION_TRAIL_LIMIT):
        self.engine = engine
        self.trail_limit = trail_limit

    # Lookups --------------------------------------------------------------

    def find_route_by_access_code(self, code: str) -> Optional[Route]:
        with Session(self.engine) as session:
            return self._route(session, normalize_access_code(code))

    def find_live_instance(self, route_id: int) -> Optional[RideInstance]:
        with Session(self.engine) as session:
            return self._live(session, route_id)

    def find_scheduled_instance_nearest_today(
        self, route_id: int, on: date
    ) -> Optional[RideInstance]:
        with Session(self.engine) as session:
            return self._scheduled_nearest(session, route_id, on)

    def find_completed_instance_today(
        self, route_id: int, on: date
    ) -> Optional[RideInstance]:
        with Session(self.engine) as session:
            return self._completed_on(session, route_id, on)

    def find_instance_for_code(
        self, code: str, on: date
    ) -> Optional[Tuple[RideInstance, Route]]:
        """Today's scheduled or live instance for an access code."""

        with Session(self.engine) as session:
            route = self._route(session, normalize_access_code(code))
            if route is None:
                return None
            instance = session.exec(
                select(RideInstance)
                .where(
                    RideInstance.route_id == route.id,
                    RideInstance.date == on,
                    RideInstance.status.in_(
                        [RideStatus.SCHEDULED.value, RideStatus.LIVE.value]
                    ),
                )
                .order_by(RideInstance.id)
            ).first()
            if instance is None:
                return None
            return instance, route

    def get_instance(self, instance_id: int) -> Optional[Tuple[RideInstance, Route]]:
        with Session(self.engine) as session:
            instance = session.get(RideInstance, instance_id)
            if instance is None:
                return None
            return instance, session.get(Route, instance.route_id)

    def list_live_instances(
        self, region_id: Optional[int] = None
    ) -> List[Tuple[RideInstance, Route]]:
        with Session(self.engine) as session:
            query = (
                select(RideInstance, Route)
                .join(Route, Route.id == RideInstance.route_id)
                .where(RideInstance.status == RideStatus.LIVE.value)
                .order_by(RideInstance.id)
            )
            if region_id is not None:
                query = query.where(RideInstance.region_id == region_id)
            return list(session.exec(query).all())

    def find_region_by_slug(self, slug: str) -> Optional[Region]:
        with Session(self.engine) as session:
            return session.exec(select(Region).where(Region.slug == slug)).first()

    # Mutations ------------------------------------------------------------

    def create_live_instance(
        self, route_id: int, region_id: Optional[int], on: date
    ) -> RideInstance:
        with Session(self.engine) as session:
            instance = self._create_live(session, route_id, region_id, on)
            session.commit()
            session.refresh(instance)
            return instance

    def transition_to_live(self, instance_id: int) -> bool:
        with Session(self.engine) as session:
            instance = self._lock_instance(session, instance_id)
            if instance is None or instance.status == RideStatus.LIVE.value:
                return False
            self._mark_live(session, instance)
            session.commit()
            return True

    def transition_to_completed(self, instance_id: int) -> bool:
        with Session(self.engine) as session:
            instance = self._lock_instance(session, instance_id)
            if instance is None or instance.status != RideStatus.LIVE.value:
                return False
            self._mark_completed(session, instance)
            session.commit()
            return True

    def schedule_instance(self, route_id: int, on: date) -> RideInstance:
        """Schedule ``route_id`` for ``on``; returns the existing row if present."""

        with Session(self.engine) as session:
            existing = session.exec(
                select(RideInstance).where(
                    RideInstance.route_id == route_id, RideInstance.date == on
                )
            ).first()
            if existing is not None:
                return existing
            route = session.get(Route, route_id)
            if route is None:
                raise ValueError(f"Unknown route {route_id}")
            instance = RideInstance(
                route_id=route_id,
                date=on,
                status=RideStatus.SCHEDULED.value,
                region_id=route.region_id,
            )
            session.add(instance)
            session.commit()
            session.refresh(instance)
            return instance

    def start_instance(self, code: str, on: date) -> Optional[StartOutcome]:
        """Pick or create the instance that goes live for ``code``.

        Runs in one transaction with the route row locked. Returns ``None``
        when no route carries the access code.
        """

        code = normalize_access_code(code)
        with Session(self.engine) as session:
            route = session.exec(
                select(Route).where(Route.access_code == code).with_for_update()
            ).first()
            if route is None:
                return None

            live = self._live(session, route.id)
            if live is not None:
                return StartOutcome(live, route, "rejoined")

            candidate = self._scheduled_nearest(session, route.id, on)
            action = "scheduled"
            if candidate is None:
                candidate = self._completed_on(session, route.id, on)
                action = "restarted"

            try:
                if candidate is not None:
                    self._mark_live(session, candidate)
                    instance = candidate
                else:
                    instance = self._create_live(session, route.id, route.region_id, on)
                    action = "created"
                session.commit()
            except IntegrityError:
                # Another writer made a row live first; treat as a rejoin.
                session.rollback()
                live = self._live(session, route.id)
                if live is None:
                    raise
                session.refresh(route)
                return StartOutcome(live, route, "rejoined")

            session.refresh(instance)
            session.refresh(route)
            return StartOutcome(instance, route, action)

    def complete_live_instances(self, code: str) -> int:
        """Complete every live instance of the route; returns rows updated."""

        code = normalize_access_code(code)
        with Session(self.engine) as session:
            route = session.exec(
                select(Route).where(Route.access_code == code).with_for_update()
            ).first()
            if route is None:
                return 0
            rows = self._live_rows(session, route.id)
            for instance in rows:
                self._mark_completed(session, instance)
            session.commit()
            return len(rows)

    def append_location(self, route_id: int, fix: Dict[str, Any]) -> int:
        """Fold ``fix`` into the live instance(s) of the route."""

        with Session(self.engine) as session:
            rows = self._live_rows(session, route_id, lock=True)
            if len(rows) > 1:
                logger.warning(
                    "route %s has %d live instances; updating all of them",
                    route_id,
                    len(rows),
                )
            for instance in rows:
                trail = instance.location_trail
                trail.append(fix)
                if len(trail) > self.trail_limit:
                    trail = trail[-self.trail_limit :]
                instance.location_trail_json = json.dumps(trail)
                instance.current_location_json = json.dumps(
                    {"lat": fix["lat"], "lng": fix["lng"], "timestamp": fix["timestamp"]}
                )
                session.add(instance)
            session.commit()
            return len(rows)

    def record_location(self, code: str, fix: Dict[str, Any]) -> int:
        route = self.find_route_by_access_code(code)
        if route is None:
            return 0
        return self.append_location(route.id, fix)

    # Session-scoped helpers ----------------------------------------------

    @staticmethod
    def _route(session: Session, code: str) -> Optional[Route]:
        return session.exec(select(Route).where(Route.access_code == code)).first()

    @staticmethod
    def _live_rows(
        session: Session, route_id: int, lock: bool = False
    ) -> List[RideInstance]:
        query = (
            select(RideInstance)
            .where(
                RideInstance.route_id == route_id,
                RideInstance.status == RideStatus.LIVE.value,
            )
            .order_by(RideInstance.id)
        )
        if lock:
            query = query.with_for_update()
        return list(session.exec(query).all())

    def _live(self, session: Session, route_id: int) -> Optional[RideInstance]:
        rows = self._live_rows(session, route_id)
        if len(rows) > 1:
            logger.warning(
                "route %s has %d live instances; using instance %s",
                route_id,
                len(rows),
                rows[0].id,
            )
        return rows[0] if rows else None

    @staticmethod
    def _scheduled_nearest(
        session: Session, route_id: int, on: date
    ) -> Optional[RideInstance]:
        rows = session.exec(
            select(RideInstance).where(
                RideInstance.route_id == route_id,
                RideInstance.status == RideStatus.SCHEDULED.value,
            )
        ).all()
        if not rows:
            return None
        # Closest to today wins; ties go to the earlier date.
        return min(rows, key=lambda row: (abs((row.date - on).days), row.date))

    @staticmethod
    def _completed_on(
        session: Session, route_id: int, on: date
    ) -> Optional[RideInstance]:
        return session.exec(
            select(RideInstance)
            .where(
                RideInstance.route_id == route_id,
                RideInstance.status == RideStatus.COMPLETED.value,
                RideInstance.date == on,
            )
            .order_by(RideInstance.id.desc())
        ).first()

    @staticmethod
    def _lock_instance(session: Session, instance_id: int) -> Optional[RideInstance]:
        return session.exec(
            select(RideInstance).where(RideInstance.id == instance_id).with_for_update()
        ).first()

    @staticmethod
    def _create_live(
        session: Session, route_id: int, region_id: Optional[int], on: date
    ) -> RideInstance:
        instance = RideInstance(
            route_id=route_id,
            date=on,
            status=RideStatus.LIVE.value,
            started_at=utcnow(),
            region_id=region_id,
        )
        session.add(instance)
        session.flush()
        return instance

    @staticmethod
    def _mark_live(session: Session, instance: RideInstance) -> None:
        instance.status = RideStatus.LIVE.value
        instance.started_at = utcnow()
        instance.ended_at = None
        instance.current_location_json = None
        instance.location_trail_json = "[]"
        session.add(instance)
        session.flush()

    @staticmethod
    def _mark_completed(session: Session, instance: RideInstance) -> None:
        instance.status = RideStatus.COMPLETED.value
        instance.ended_at = utcnow()
        instance.current_location_json = None
        instance.location_trail_json = "[]"
        session.add(instance)


def ride_to_dict(instance: RideInstance, route: Optional[Route] = None) -> Dict[str, Any]:
    """Serialise a ride instance to an API-friendly dict."""

    return {
        "id": instance.id,
        "route_id": instance.route_id,
        "access_code": route.access_code if route else None,
        "route_name": route.name if route else None,
        "date": instance.date.isoformat(),
        "status": instance.status,
        "started_at": instance.started_at.isoformat() if instance.started_at else None,
        "ended_at": instance.ended_at.isoformat() if instance.ended_at else None,
        "current_location": instance.current_location,
        "location_trail": instance.location_trail,
        "region_id": instance.region_id,
    }


__all__ = ["RideStore", "StartOutcome", "normalize_access_code", "ride_to_dict"]
