"""WebSocket endpoint carrying the realtime ride events."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ...live import RideHub
from ...live.events import RIDE_ERROR
from ...live.registry import Participant

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def ride_socket(websocket: WebSocket) -> None:
    """One connection per client; events are handled in arrival order."""

    hub: RideHub = websocket.app.state.hub
    await websocket.accept()
    participant = Participant(websocket.send_json)
    participant.start()
    logger.info("Client connected: %s", participant.id)

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                participant.deliver(RIDE_ERROR, {"message": "Malformed message"})
                continue
            try:
                message = json.loads(raw)
            except ValueError:
                participant.deliver(RIDE_ERROR, {"message": "Malformed message"})
                continue
            await hub.dispatch(participant, message)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(participant)
        await participant.close()


__all__ = ["router"]
