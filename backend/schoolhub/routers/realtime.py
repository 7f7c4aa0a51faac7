"""WebSocket endpoint for realtime notifications and messages."""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from ..auth.service import AuthService
from ..database import get_db_session
from ..errors import Unauthenticated
from ..realtime import EVENTS, RoomHub, get_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def _authenticate(token: Optional[str]) -> Optional[str]:
    try:
        with get_db_session() as db:
            return AuthService(db).user_from_token(token).id
    except Unauthenticated:
        return None


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    hub: RoomHub = Depends(get_hub),
):
    """Join the caller's own room and relay client events to their ``to`` room.

    Frames are JSON objects ``{"event": ..., "data": ...}``.
    """
    user_id = _authenticate(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await hub.join(user_id, websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug(f"Ignoring malformed frame from {user_id}")
                continue
            if not isinstance(frame, dict):
                continue
            event, data = frame.get("event"), frame.get("data")

            if event == "join":
                # Sockets may only sit in their own room
                if data == user_id:
                    await hub.join(user_id, websocket)
                continue
            if event in EVENTS and isinstance(data, dict) and data.get("to"):
                await hub.broadcast(str(data["to"]), event, data)
    except WebSocketDisconnect:
        logger.info(f"Socket for {user_id} disconnected")
    finally:
        await hub.leave_all(websocket)
