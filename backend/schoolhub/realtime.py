"""Realtime push: sockets grouped in per-user rooms.

Delivery is at-most-once. Nothing is queued for rooms without a connected
socket; persisted notifications remain the record of what was sent.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Dict, List, Set

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

EVENTS = ("notification", "message")


class RoomHub:
    """Tracks which sockets are joined to which room and fans events out."""

    def __init__(self) -> None:
        # room id -> connected sockets
        self._rooms: Dict[str, List[WebSocket]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    async def join(self, room: str, websocket: WebSocket) -> None:
        async with self._lock:
            if websocket not in self._rooms[room]:
                self._rooms[room].append(websocket)
        logger.info(f"Socket joined room {room} ({len(self._rooms[room])} connected)")

    async def leave(self, room: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._rooms.get(room)
            if not sockets:
                return
            if websocket in sockets:
                sockets.remove(websocket)
            if not sockets:
                del self._rooms[room]
        logger.info(f"Socket left room {room}")

    async def leave_all(self, websocket: WebSocket) -> None:
        async with self._lock:
            rooms = [room for room, sockets in self._rooms.items() if websocket in sockets]
        for room in rooms:
            await self.leave(room, websocket)

    def connected(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def broadcast(self, room: str, event: str, data: Dict[str, Any]) -> int:
        """Send ``event`` to every socket in ``room``; returns how many received it."""
        async with self._lock:
            sockets = list(self._rooms.get(room, ()))
        if not sockets:
            logger.debug(f"No sockets in room {room}; dropping {event}")
            return 0

        message = json.dumps({"event": event, "data": data}, default=str)
        delivered = 0
        disconnected: List[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_text(message)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"Dropping socket in room {room}: {e}")
                disconnected.append(websocket)

        for websocket in disconnected:
            await self.leave(room, websocket)
        return delivered

    def emit(self, room: str, event: str, data: Dict[str, Any]) -> bool:
        """Schedule a broadcast from synchronous code running on the event loop.

        Returns False when there is no running loop, in which case the event
        is dropped.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop; {event} for room {room} not pushed")
            return False
        task = loop.create_task(self.broadcast(room, event, data))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True


hub = RoomHub()


def get_hub() -> RoomHub:
    return hub
