"""Realtime sync channel: connection state machine and event delivery."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable, Iterable

from cuesync.config import settings
from cuesync.errors import ChannelError, ChannelErrorKind
from cuesync.models.sync import ChannelStatus, SyncEvent, SyncEventType
from cuesync.observers import ObserverList, Subscription
from cuesync.sync.transport import Transport

logger = logging.getLogger(__name__)

EventHandler = Callable[[SyncEvent], None]

# Event ids remembered per subscriber for at-most-once delivery
_SEEN_LIMIT = 4096


class _Subscriber:
    def __init__(self, handler: EventHandler, types: frozenset[SyncEventType] | None) -> None:
        self.handler = handler
        self.types = types
        self._seen: OrderedDict[str, None] = OrderedDict()

    def first_delivery(self, event_id: str) -> bool:
        if event_id in self._seen:
            self._seen.move_to_end(event_id)
            return False
        self._seen[event_id] = None
        if len(self._seen) > _SEEN_LIMIT:
            self._seen.popitem(last=False)
        return True


class SyncChannel:
    """Delivers ``SyncEvent``s between collaborators over a pluggable transport.

    States: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED.
    ``publish`` never queues: while not connected it raises
    ``ChannelError(NOT_CONNECTED)`` and the caller decides what to do.
    Inbound events reach each subscriber at most once per event id.
    """

    def __init__(self, transport: Transport, *, handshake_timeout: float | None = None) -> None:
        self._transport = transport
        self._handshake_timeout = (
            settings.handshake_timeout if handshake_timeout is None else handshake_timeout
        )
        self._status = ChannelStatus.DISCONNECTED
        self.last_error: ChannelErrorKind | None = None
        self._subscribers: list[_Subscriber] = []
        self._status_observers: ObserverList[ChannelStatus] = ObserverList("channel status")

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status is ChannelStatus.CONNECTED

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Open the transport and complete the handshake.

        Returns:
            True once connected. False on handshake timeout or transport
            failure; ``last_error`` tells which, and the channel is
            DISCONNECTED again so the caller may retry.
        """
        if self._status is ChannelStatus.CONNECTED:
            return True
        if self._status is ChannelStatus.CONNECTING:
            logger.debug("connect() ignored: handshake already in progress")
            return False

        self.last_error = None
        self._set_status(ChannelStatus.CONNECTING)
        try:
            await asyncio.wait_for(self._open_and_handshake(), timeout=self._handshake_timeout)
        except asyncio.TimeoutError:
            logger.warning("Channel handshake timed out after %gs", self._handshake_timeout)
            await self._close_transport()
            self.last_error = ChannelErrorKind.HANDSHAKE_TIMEOUT
            self._set_status(ChannelStatus.DISCONNECTED)
            return False
        except ConnectionError as exc:
            logger.warning("Channel connect failed: %s", exc)
            await self._close_transport()
            self.last_error = ChannelErrorKind.TRANSPORT_LOST
            self._set_status(ChannelStatus.DISCONNECTED)
            return False

        if self._status is not ChannelStatus.CONNECTING:
            # The link dropped while the handshake was finishing
            return False
        self._set_status(ChannelStatus.CONNECTED)
        return True

    async def _open_and_handshake(self) -> None:
        await self._transport.open(self._on_inbound, self._on_transport_lost)
        await self._transport.handshake()

    async def disconnect(self) -> None:
        """Close the transport. Idempotent."""
        if self._status is ChannelStatus.DISCONNECTED:
            return
        await self._close_transport()
        self.last_error = None
        self._set_status(ChannelStatus.DISCONNECTED)

    async def _close_transport(self) -> None:
        try:
            await self._transport.close()
        except ConnectionError:
            logger.debug("Transport close failed", exc_info=True)

    async def __aenter__(self) -> SyncChannel:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Publish / subscribe
    # ------------------------------------------------------------------

    async def publish(self, event: SyncEvent) -> None:
        """Send a locally originated event.

        Raises:
            ChannelError: NOT_CONNECTED when not connected, TRANSPORT_LOST
                when the transport fails while sending
        """
        if self._status is not ChannelStatus.CONNECTED:
            raise ChannelError(
                ChannelErrorKind.NOT_CONNECTED,
                f"Cannot publish {event.type.value}: channel is {self._status.value}",
            )
        try:
            await self._transport.send(event)
        except ConnectionError as exc:
            self._on_transport_lost(exc)
            raise ChannelError(ChannelErrorKind.TRANSPORT_LOST, str(exc)) from exc

    def subscribe(
        self,
        handler: EventHandler,
        types: Iterable[SyncEventType] | None = None,
    ) -> Subscription:
        """Receive inbound events, optionally only of the given types."""
        subscriber = _Subscriber(handler, frozenset(types) if types is not None else None)
        self._subscribers.append(subscriber)

        def _release() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return Subscription(_release)

    def subscribe_status(self, callback: Callable[[ChannelStatus], None]) -> Subscription:
        return self._status_observers.add(callback)

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_inbound(self, event: SyncEvent) -> None:
        if self._status is not ChannelStatus.CONNECTED:
            logger.debug("Dropping %s received while %s", event.type.value, self._status.value)
            return
        for subscriber in list(self._subscribers):
            if subscriber.types is not None and event.type not in subscriber.types:
                continue
            if not subscriber.first_delivery(event.id):
                continue
            try:
                subscriber.handler(event)
            except Exception:
                logger.exception("Subscriber failed on %s event %s", event.type.value, event.id)

    def _on_transport_lost(self, exc: Exception | None) -> None:
        if self._status is ChannelStatus.DISCONNECTED:
            return
        logger.warning("Channel transport lost: %s", exc or "closed by peer")
        self.last_error = ChannelErrorKind.TRANSPORT_LOST
        self._set_status(ChannelStatus.DISCONNECTED)

    def _set_status(self, status: ChannelStatus) -> None:
        if status is self._status:
            return
        logger.info("Channel %s -> %s", self._status.value, status.value)
        self._status = status
        self._status_observers.notify(status)
