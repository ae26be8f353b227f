"""Data models for cuesync."""

from cuesync.models.annotation import AnnotationStroke, DrawingTool, Point
from cuesync.models.asset import Asset, MediaType
from cuesync.models.comment import SENTINEL_GENERAL, Attachment, Comment
from cuesync.models.playback import MediaMetadata, PlaybackState, Quality, TimeFormat
from cuesync.models.presence import CursorSample, Identity, PresenceEntry, PresenceStatus
from cuesync.models.sync import ChannelStatus, PlaybackSyncPayload, SyncEvent, SyncEventType

__all__ = [
    # Playback
    "MediaMetadata",
    "PlaybackState",
    "Quality",
    "TimeFormat",
    # Comments
    "SENTINEL_GENERAL",
    "Attachment",
    "Comment",
    # Annotation
    "AnnotationStroke",
    "DrawingTool",
    "Point",
    # Presence
    "CursorSample",
    "Identity",
    "PresenceEntry",
    "PresenceStatus",
    # Sync
    "ChannelStatus",
    "PlaybackSyncPayload",
    "SyncEvent",
    "SyncEventType",
    # Assets
    "Asset",
    "MediaType",
]
