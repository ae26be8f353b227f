"""WebSocket transport speaking to the cuesync relay server."""

from __future__ import annotations

import asyncio
import json
import logging

import pydantic
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from cuesync.models.sync import SyncEvent
from cuesync.sync.transport import InboundHandler, LossHandler

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """Client side of ``/ws/review/{asset_id}``.

    Handshake: send ``{"type": "hello", "user_id": ...}`` and wait for
    ``{"type": "welcome"}``. Afterwards every text frame is a serialized
    ``SyncEvent``.
    """

    def __init__(self, url: str, user_id: str) -> None:
        self._url = url
        self._user_id = user_id
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._on_event: InboundHandler | None = None
        self._on_lost: LossHandler | None = None
        self._closing = False

    async def open(self, on_event: InboundHandler, on_lost: LossHandler) -> None:
        self._on_event = on_event
        self._on_lost = on_lost
        self._closing = False
        try:
            self._ws = await connect(self._url)
        except (OSError, WebSocketException) as exc:
            raise ConnectionError(f"Cannot reach relay {self._url}: {exc}") from exc

    async def handshake(self) -> None:
        ws = self._require_ws()
        try:
            await ws.send(json.dumps({"type": "hello", "user_id": self._user_id}))
            reply = json.loads(await ws.recv())
        except (ConnectionClosed, json.JSONDecodeError) as exc:
            raise ConnectionError(f"Relay handshake failed: {exc}") from exc
        if reply.get("type") != "welcome":
            raise ConnectionError(f"Unexpected handshake reply: {reply!r}")
        logger.info("Relay handshake complete (%s peers)", reply.get("peers", 0))
        self._reader = asyncio.create_task(self._read_loop())

    async def send(self, event: SyncEvent) -> None:
        ws = self._require_ws()
        try:
            await ws.send(event.model_dump_json())
        except ConnectionClosed as exc:
            raise ConnectionError(f"Relay connection closed: {exc}") from exc

    async def close(self) -> None:
        self._closing = True
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    async def _read_loop(self) -> None:
        ws = self._require_ws()
        error: Exception | None = None
        try:
            async for message in ws:
                try:
                    event = SyncEvent.model_validate_json(message)
                except pydantic.ValidationError:
                    logger.warning("Dropping malformed relay frame")
                    continue
                if self._on_event is not None:
                    self._on_event(event)
        except ConnectionClosed as exc:
            error = exc
        if not self._closing and self._on_lost is not None:
            self._on_lost(error)

    def _require_ws(self) -> ClientConnection:
        if self._ws is None:
            raise ConnectionError("transport is not open")
        return self._ws
