"""WebSocket connection registry and chat event fan-out."""

from typing import Any, Dict, Iterable, Set
from uuid import UUID

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from loguru import logger


class ConnectionManager:
    """Tracks open sockets per user and per chat room."""

    def __init__(self):
        self.user_sockets: Dict[UUID, Set[WebSocket]] = {}
        self.rooms: Dict[UUID, Set[WebSocket]] = {}

    def connect(self, user_id: UUID, websocket: WebSocket) -> None:
        self.user_sockets.setdefault(user_id, set()).add(websocket)

    def disconnect(self, user_id: UUID, websocket: WebSocket) -> None:
        """Forget a socket everywhere it is registered."""
        sockets = self.user_sockets.get(user_id)
        if sockets is not None:
            sockets.discard(websocket)
            if not sockets:
                self.user_sockets.pop(user_id, None)

        for chat_id in list(self.rooms):
            self.leave(chat_id, websocket)

    def join(self, chat_id: UUID, websocket: WebSocket) -> None:
        self.rooms.setdefault(chat_id, set()).add(websocket)

    def leave(self, chat_id: UUID, websocket: WebSocket) -> None:
        members = self.rooms.get(chat_id)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            self.rooms.pop(chat_id, None)

    def connection_count(self, user_id: UUID) -> int:
        return len(self.user_sockets.get(user_id, set()))

    def _drop(self, websocket: WebSocket) -> None:
        for user_id in [uid for uid, sockets in self.user_sockets.items() if websocket in sockets]:
            self.disconnect(user_id, websocket)
        for chat_id in list(self.rooms):
            self.leave(chat_id, websocket)

    async def _send(self, websocket: WebSocket, payload: Dict[str, Any]) -> bool:
        try:
            await websocket.send_json(payload)
            return True
        except Exception as exc:
            logger.debug(f"Dropping dead WebSocket: {exc}")
            self._drop(websocket)
            return False

    async def emit_to_room(self, chat_id: UUID, event: str, data: Any) -> int:
        """Send an event to every socket in a chat room. Returns deliveries."""
        payload = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        for websocket in list(self.rooms.get(chat_id, set())):
            if await self._send(websocket, payload):
                delivered += 1
        return delivered

    async def emit_to_users(self, user_ids: Iterable[UUID], event: str, data: Any) -> int:
        """Send an event to every socket of the given users. Returns deliveries."""
        payload = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        for user_id in set(user_ids):
            for websocket in list(self.user_sockets.get(user_id, set())):
                if await self._send(websocket, payload):
                    delivered += 1
        return delivered


manager = ConnectionManager()
