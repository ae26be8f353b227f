"""Asset reference models."""

from enum import Enum

from pydantic import BaseModel, Field


class MediaType(str, Enum):
    """Kind of asset under review."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    DOCUMENT = "document"


class Asset(BaseModel):
    """An asset as returned by the external asset store."""

    id: str
    project_id: str
    name: str
    media_type: MediaType = MediaType.VIDEO
    source: str = Field(..., description="Path or URL of the media")
    frame_rate: float | None = Field(None, gt=0.0, description="Known constant frame rate")

    @property
    def is_timed(self) -> bool:
        """Check if comments on this asset can be bound to a media time."""
        return self.media_type in (MediaType.VIDEO, MediaType.AUDIO)
