"""In-memory room membership for live ride sessions."""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

Sender = Callable[[Dict[str, Any]], Awaitable[None]]


class Role(str, Enum):
    LEADER = "leader"
    FOLLOWER = "follower"
    WATCHER = "watcher"


class Participant:
    """One connected client.

    Outbound events go through a FIFO queue drained by a single writer task,
    so queuing is synchronous and delivery keeps per-connection order.
    """

    def __init__(self, send: Sender, participant_id: Optional[str] = None):
        self.id = participant_id or uuid.uuid4().hex
        self._send = send
        self._outbox: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None
        self.closed = False

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain(), name=f"writer-{self.id}")

    def deliver(self, event: str, data: Dict[str, Any]) -> bool:
        if self.closed:
            return False
        self._outbox.put_nowait({"event": event, "data": data})
        return True

    async def flush(self) -> None:
        """Wait until every queued event has been handed to the transport."""

        await self._outbox.join()

    async def close(self) -> None:
        self.closed = True
        writer, self._writer = self._writer, None
        if writer is None or writer.done():
            return
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass

    async def _drain(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                if not self.closed:
                    await self._send(message)
            except Exception:
                logger.debug("Dropping outbound events for %s", self.id, exc_info=True)
                self.closed = True
            finally:
                self._outbox.task_done()

    def __repr__(self) -> str:
        return f"Participant({self.id!r})"


class SessionRegistry(ABC):
    """Room membership keyed by access code.

    A multi-process deployment can back this interface with a shared
    pub/sub service; callers only depend on these methods.
    """

    @abstractmethod
    def join(self, code: str, participant: Participant, role: Role) -> bool:
        """Admit ``participant``; a repeat join is a no-op and keeps the held role."""

    @abstractmethod
    def leave(self, code: str, participant: Participant) -> Optional[Role]:
        """Remove ``participant``; returns the role it held, if any."""

    @abstractmethod
    def leave_all(self, participant: Participant) -> List[Tuple[str, Role]]:
        """Remove ``participant`` from every room it occupies."""

    @abstractmethod
    def member_count(self, code: str) -> int:
        ...

    @abstractmethod
    def role_count(self, code: str, role: Role) -> int:
        ...

    @abstractmethod
    def broadcast(
        self,
        code: str,
        event: str,
        data: Dict[str, Any],
        exclude: Optional[Participant] = None,
    ) -> int:
        """Queue ``event`` for every member except ``exclude``."""

    @abstractmethod
    def rooms_of(self, participant: Participant) -> Set[str]:
        ...

    @abstractmethod
    def snapshot(self) -> Dict[str, Dict[str, int]]:
        """Per-room counts by role, for diagnostics."""

    @abstractmethod
    async def close(self) -> None:
        ...

    @abstractmethod
    def role_of(self, code: str, participant: Participant) -> Optional[Role]:
        ...

    def follower_count(self, code: str) -> int:
        """Room size minus one for the assumed leader, never below zero."""

        return max(self.member_count(code) - 1, 0)


class InMemorySessionRegistry(SessionRegistry):
    """Single-process registry; rooms exist only while they have members."""

    def __init__(self) -> None:
        self._rooms: Dict[str, Dict[str, Tuple[Participant, Role]]] = {}
        self._memberships: Dict[str, Set[str]] = {}

    def join(self, code: str, participant: Participant, role: Role) -> bool:
        room = self._rooms.setdefault(code, {})
        if participant.id in room:
            return False
        room[participant.id] = (participant, role)
        self._memberships.setdefault(participant.id, set()).add(code)
        return True

    def leave(self, code: str, participant: Participant) -> Optional[Role]:
        room = self._rooms.get(code)
        if room is None or participant.id not in room:
            return None
        _, role = room.pop(participant.id)
        if not room:
            del self._rooms[code]
        codes = self._memberships.get(participant.id)
        if codes is not None:
            codes.discard(code)
            if not codes:
                del self._memberships[participant.id]
        return role

    def leave_all(self, participant: Participant) -> List[Tuple[str, Role]]:
        left: List[Tuple[str, Role]] = []
        for code in sorted(self._memberships.get(participant.id, set())):
            role = self.leave(code, participant)
            if role is not None:
                left.append((code, role))
        return left

    def member_count(self, code: str) -> int:
        return len(self._rooms.get(code, {}))

    def role_count(self, code: str, role: Role) -> int:
        return sum(1 for _, held in self._rooms.get(code, {}).values() if held is role)

    def broadcast(
        self,
        code: str,
        event: str,
        data: Dict[str, Any],
        exclude: Optional[Participant] = None,
    ) -> int:
        delivered = 0
        for participant, _ in list(self._rooms.get(code, {}).values()):
            if exclude is not None and participant.id == exclude.id:
                continue
            if participant.deliver(event, data):
                delivered += 1
        return delivered

    def rooms_of(self, participant: Participant) -> Set[str]:
        return set(self._memberships.get(participant.id, set()))

    def role_of(self, code: str, participant: Participant) -> Optional[Role]:
        member = self._rooms.get(code, {}).get(participant.id)
        return member[1] if member is not None else None

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        summary: Dict[str, Dict[str, int]] = {}
        for code, room in self._rooms.items():
            counts = {role.value: 0 for role in Role}
            for _, role in room.values():
                counts[role.value] += 1
            counts["members"] = len(room)
            summary[code] = counts
        return summary

    async def close(self) -> None:
        participants = {
            participant.id: participant
            for room in self._rooms.values()
            for participant, _ in room.values()
        }
        self._rooms.clear()
        self._memberships.clear()
        for participant in participants.values():
            await participant.close()


__all__ = [
    "InMemorySessionRegistry",
    "Participant",
    "Role",
    "SessionRegistry",
]
