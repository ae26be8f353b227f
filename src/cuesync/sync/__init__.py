"""Realtime synchronization."""

from cuesync.sync.applier import SyncEventApplier
from cuesync.sync.channel import SyncChannel
from cuesync.sync.transport import InMemoryHub, InMemoryTransport, Transport

__all__ = [
    "InMemoryHub",
    "InMemoryTransport",
    "SyncChannel",
    "SyncEventApplier",
    "Transport",
]
