"""Realtime synchronization models."""

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from cuesync.models.comment import Comment
from cuesync.models.presence import CursorSample, PresenceEntry


class SyncEventType(str, Enum):
    """Kinds of events carried by the realtime channel."""

    COMMENT_ADDED = "comment_added"
    COMMENT_DELETED = "comment_deleted"
    PRESENCE_CHANGED = "presence_changed"
    CURSOR_MOVED = "cursor_moved"
    PLAYBACK_SYNC = "playback_sync"
    USER_LEFT = "user_left"


class ChannelStatus(str, Enum):
    """Connection state of a ``SyncChannel``."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class PlaybackSyncPayload(BaseModel):
    """Transport position shared by a collaborator."""

    current_time: float = Field(..., ge=0.0)
    is_playing: bool
    rate: float = Field(1.0, gt=0.0)


class SyncEvent(BaseModel):
    """A single event on the realtime channel.

    ``id`` identifies the logical event (redeliveries share it);
    ``timestamp`` is the origin's logical clock, monotonic per origin.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: SyncEventType
    payload: dict[str, Any] = Field(default_factory=dict)
    origin_user_id: str
    timestamp: float

    @classmethod
    def comment_added(cls, comment: Comment, origin_user_id: str, timestamp: float) -> "SyncEvent":
        return cls(
            type=SyncEventType.COMMENT_ADDED,
            payload={"comment": comment.model_dump(mode="json")},
            origin_user_id=origin_user_id,
            timestamp=timestamp,
        )

    @classmethod
    def comment_deleted(cls, comment_id: str, origin_user_id: str, timestamp: float) -> "SyncEvent":
        return cls(
            type=SyncEventType.COMMENT_DELETED,
            payload={"comment_id": comment_id},
            origin_user_id=origin_user_id,
            timestamp=timestamp,
        )

    @classmethod
    def presence_changed(cls, entry: PresenceEntry, timestamp: float) -> "SyncEvent":
        return cls(
            type=SyncEventType.PRESENCE_CHANGED,
            payload={"entry": entry.model_dump(mode="json")},
            origin_user_id=entry.user_id,
            timestamp=timestamp,
        )

    @classmethod
    def cursor_moved(cls, sample: CursorSample) -> "SyncEvent":
        return cls(
            type=SyncEventType.CURSOR_MOVED,
            payload=sample.model_dump(mode="json"),
            origin_user_id=sample.user_id,
            timestamp=sample.timestamp,
        )

    @classmethod
    def playback_sync(
        cls, payload: PlaybackSyncPayload, origin_user_id: str, timestamp: float
    ) -> "SyncEvent":
        return cls(
            type=SyncEventType.PLAYBACK_SYNC,
            payload=payload.model_dump(mode="json"),
            origin_user_id=origin_user_id,
            timestamp=timestamp,
        )

    @classmethod
    def user_left(cls, user_id: str, timestamp: float) -> "SyncEvent":
        return cls(
            type=SyncEventType.USER_LEFT,
            payload={"user_id": user_id},
            origin_user_id=user_id,
            timestamp=timestamp,
        )
