"""Comment models."""

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from cuesync.models.annotation import AnnotationStroke

# Timestamp of a comment that is not bound to a moment in the media.
SENTINEL_GENERAL = -1.0


class Attachment(BaseModel):
    """File attached to a comment."""

    url: str
    mime_type: str
    name: str


class Comment(BaseModel):
    """A review comment, optionally bound to a media time.

    Comments form a forest with one level of replies: ``parent_id``
    always points at a top-level comment.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    asset_id: str | None = None
    timestamp: float = Field(SENTINEL_GENERAL, description="Media time in seconds or -1")
    text: str
    author_id: str
    author_name: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    parent_id: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    is_internal: bool = False
    has_drawing: bool = False
    strokes: list[AnnotationStroke] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, value: float) -> float:
        """Accept the general sentinel or a non-negative time."""
        if value != SENTINEL_GENERAL and value < 0:
            raise ValueError("timestamp must be >= 0 or the general sentinel (-1)")
        return value

    @property
    def is_general(self) -> bool:
        return self.timestamp == SENTINEL_GENERAL

    @property
    def is_reply(self) -> bool:
        return self.parent_id is not None
