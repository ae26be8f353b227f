"""In-process fan-out of sync frames between WebSocket peers."""

from __future__ import annotations

import logging

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class RelayHub:
    """Tracks connected peers per asset and forwards frames between them."""

    def __init__(self) -> None:
        self._rooms: dict[str, dict[WebSocket, str]] = {}

    def join(self, asset_id: str, ws: WebSocket, user_id: str) -> int:
        """Register ``ws`` in the room of ``asset_id``; returns the other peers' count."""
        room = self._rooms.setdefault(asset_id, {})
        room[ws] = user_id
        logger.info("Relay join: %s on %s (total: %d)", user_id, asset_id, len(room))
        return len(room) - 1

    def leave(self, asset_id: str, ws: WebSocket) -> None:
        room = self._rooms.get(asset_id)
        if room is None:
            return
        user_id = room.pop(ws, None)
        if not room:
            del self._rooms[asset_id]
        logger.info("Relay leave: %s on %s", user_id, asset_id)

    def room_size(self, asset_id: str) -> int:
        return len(self._rooms.get(asset_id, {}))

    def user_of(self, asset_id: str, ws: WebSocket) -> str | None:
        return self._rooms.get(asset_id, {}).get(ws)

    def has_user(self, asset_id: str, user_id: str) -> bool:
        """Whether ``user_id`` still has a socket in the room."""
        return user_id in self._rooms.get(asset_id, {}).values()

    async def broadcast(self, asset_id: str, data: str, sender: WebSocket | None = None) -> int:
        """Send ``data`` to every peer in the room except ``sender``.

        Peers whose socket fails are dropped. Returns the delivery count.
        """
        delivered = 0
        dead: list[WebSocket] = []
        for ws in list(self._rooms.get(asset_id, {})):
            if ws is sender:
                continue
            try:
                await ws.send_text(data)
            except (WebSocketDisconnect, RuntimeError):
                dead.append(ws)
            else:
                delivered += 1
        for ws in dead:
            self.leave(asset_id, ws)
        return delivered
