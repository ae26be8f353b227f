"""Services module for cuesync."""

from cuesync.services.interfaces import AssetStore, MediaBackend
from cuesync.services.media import FFprobeMediaBackend
from cuesync.services.store import InMemoryAssetStore

__all__ = [
    "AssetStore",
    "MediaBackend",
    "FFprobeMediaBackend",
    "InMemoryAssetStore",
]
