"""Transport contract of the realtime channel and an in-memory transport.

A transport moves serialized ``SyncEvent``s between peers. Failures are
reported as ``ConnectionError`` (from ``open``/``handshake``/``send``)
or through the ``on_lost`` callback once the link is up.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from cuesync.models.sync import SyncEvent

logger = logging.getLogger(__name__)

InboundHandler = Callable[[SyncEvent], None]
LossHandler = Callable[[Exception | None], None]


class Transport(Protocol):
    """Interface every sync transport implements."""

    async def open(self, on_event: InboundHandler, on_lost: LossHandler) -> None:
        """Establish the link and register delivery callbacks."""
        ...

    async def handshake(self) -> None:
        """Complete the protocol handshake; may never return on a stalled peer."""
        ...

    async def send(self, event: SyncEvent) -> None:
        """Send an event to the other peers."""
        ...

    async def close(self) -> None:
        """Tear the link down. Idempotent."""
        ...


class InMemoryHub:
    """Deterministic in-process relay connecting ``InMemoryTransport``s.

    Deliveries are scheduled with ``loop.call_soon`` in FIFO order so a
    publisher never re-enters its subscribers; ``flush`` waits for them.
    """

    def __init__(self, *, stall_handshakes: bool = False) -> None:
        self.stall_handshakes = stall_handshakes
        self._peers: list[InMemoryTransport] = []
        self._inflight = 0

    @property
    def peers(self) -> list[InMemoryTransport]:
        return list(self._peers)

    def transport(self, user_id: str) -> InMemoryTransport:
        return InMemoryTransport(self, user_id)

    def inject(self, event: SyncEvent, exclude: InMemoryTransport | None = None) -> None:
        """Deliver ``event`` to every attached peer except ``exclude``."""
        for peer in list(self._peers):
            if peer is not exclude:
                self._schedule(peer, event)

    def drop(self, transport: InMemoryTransport) -> None:
        """Simulate the link of ``transport`` going away."""
        if transport in self._peers:
            self._peers.remove(transport)
            transport._lost(ConnectionError("link dropped"))

    async def flush(self) -> None:
        """Wait until every scheduled delivery has run."""
        while self._inflight:
            await asyncio.sleep(0)

    def _attach(self, transport: InMemoryTransport) -> None:
        if transport not in self._peers:
            self._peers.append(transport)

    def _detach(self, transport: InMemoryTransport) -> None:
        if transport in self._peers:
            self._peers.remove(transport)

    def _schedule(self, peer: InMemoryTransport, event: SyncEvent) -> None:
        # Each peer gets its own copy, as if it had been deserialized
        copy = SyncEvent.model_validate_json(event.model_dump_json())
        self._inflight += 1

        def _deliver() -> None:
            self._inflight -= 1
            peer._deliver(copy)

        asyncio.get_running_loop().call_soon(_deliver)


class InMemoryTransport:
    """One peer's link to an ``InMemoryHub``."""

    def __init__(self, hub: InMemoryHub, user_id: str) -> None:
        self._hub = hub
        self.user_id = user_id
        self._on_event: InboundHandler | None = None
        self._on_lost: LossHandler | None = None
        self._open = False
        self.sent: list[SyncEvent] = []

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self, on_event: InboundHandler, on_lost: LossHandler) -> None:
        self._on_event = on_event
        self._on_lost = on_lost
        self._open = True
        self._hub._attach(self)

    async def handshake(self) -> None:
        if self._hub.stall_handshakes:
            await asyncio.Event().wait()

    async def send(self, event: SyncEvent) -> None:
        if not self._open:
            raise ConnectionError("transport is closed")
        self.sent.append(event)
        self._hub.inject(event, exclude=self)

    async def close(self) -> None:
        self._open = False
        self._hub._detach(self)

    def _deliver(self, event: SyncEvent) -> None:
        if self._open and self._on_event is not None:
            self._on_event(event)

    def _lost(self, exc: Exception | None) -> None:
        self._open = False
        if self._on_lost is not None:
            self._on_lost(exc)
