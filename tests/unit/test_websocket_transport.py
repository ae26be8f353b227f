"""Unit tests for WebSocketTransport with a fake connection."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError

from cuesync.models.presence import CursorSample
from cuesync.models.sync import SyncEvent
from cuesync.sync.websocket import WebSocketTransport


class _FakeConnection:
    """Minimal stand-in for a websockets client connection."""

    def __init__(
        self,
        reply: dict,
        frames: list[str] | None = None,
        fail: bool = False,
        hang: bool = False,
    ) -> None:
        self.reply = reply
        self.frames = frames or []
        self.fail = fail
        self.hang = hang
        self.sent: list[str] = []
        self.closed = False

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def recv(self) -> str:
        return json.dumps(self.reply)

    async def close(self) -> None:
        self.closed = True

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for frame in self.frames:
            yield frame
        if self.fail:
            raise ConnectionClosedError(None, None)
        if self.hang:
            await asyncio.Event().wait()


def _event() -> SyncEvent:
    return SyncEvent.cursor_moved(
        CursorSample(user_id="ben", x=0.1, y=0.2, color="#000", name="Ben", timestamp=2.0)
    )


class TestWebSocketTransport:
    @pytest.mark.asyncio
    async def test_handshake_and_inbound_frames(self):
        event = _event()
        conn = _FakeConnection({"type": "welcome", "peers": 1}, [event.model_dump_json(), "{bad"])
        received: list[SyncEvent] = []
        lost: list[Exception | None] = []
        transport = WebSocketTransport("ws://relay/ws/review/a1", "ana")

        with patch("cuesync.sync.websocket.connect", new_callable=AsyncMock, return_value=conn):
            await transport.open(received.append, lost.append)
            await transport.handshake()
            await asyncio.sleep(0.01)

        assert json.loads(conn.sent[0]) == {"type": "hello", "user_id": "ana"}
        assert [e.id for e in received] == [event.id]
        # server closed the stream normally
        assert lost == [None]

    @pytest.mark.asyncio
    async def test_unexpected_reply_fails_handshake(self):
        conn = _FakeConnection({"type": "error"})
        transport = WebSocketTransport("ws://relay/ws/review/a1", "ana")

        with patch("cuesync.sync.websocket.connect", new_callable=AsyncMock, return_value=conn):
            await transport.open(lambda e: None, lambda e: None)
            with pytest.raises(ConnectionError):
                await transport.handshake()

    @pytest.mark.asyncio
    async def test_unreachable_relay(self):
        transport = WebSocketTransport("ws://relay/ws/review/a1", "ana")

        with patch(
            "cuesync.sync.websocket.connect",
            new_callable=AsyncMock,
            side_effect=OSError("connection refused"),
        ), pytest.raises(ConnectionError):
            await transport.open(lambda e: None, lambda e: None)

    @pytest.mark.asyncio
    async def test_send_and_close(self):
        conn = _FakeConnection({"type": "welcome"}, fail=False)
        lost: list[Exception | None] = []
        transport = WebSocketTransport("ws://relay/ws/review/a1", "ana")

        with patch("cuesync.sync.websocket.connect", new_callable=AsyncMock, return_value=conn):
            await transport.open(lambda e: None, lost.append)
            await transport.send(_event())
            await transport.close()

        assert SyncEvent.model_validate_json(conn.sent[-1]).origin_user_id == "ben"
        assert conn.closed
        assert lost == []
        with pytest.raises(ConnectionError):
            await transport.send(_event())

    @pytest.mark.asyncio
    async def test_dropped_connection_reports_loss(self):
        conn = _FakeConnection({"type": "welcome"}, fail=True)
        lost: list[Exception | None] = []
        transport = WebSocketTransport("ws://relay/ws/review/a1", "ana")

        with patch("cuesync.sync.websocket.connect", new_callable=AsyncMock, return_value=conn):
            await transport.open(lambda e: None, lost.append)
            await transport.handshake()
            await asyncio.sleep(0.01)

        assert len(lost) == 1
        assert isinstance(lost[0], ConnectionClosedError)

    @pytest.mark.asyncio
    async def test_close_waits_for_reader(self):
        conn = _FakeConnection({"type": "welcome"}, hang=True)
        lost: list[Exception | None] = []
        transport = WebSocketTransport("ws://relay/ws/review/a1", "ana")

        with patch("cuesync.sync.websocket.connect", new_callable=AsyncMock, return_value=conn):
            await transport.open(lambda e: None, lost.append)
            await transport.handshake()
            await asyncio.sleep(0)
            reader = transport._reader
            await transport.close()

        assert reader is not None
        assert reader.cancelled()
        assert conn.closed
        assert lost == []
