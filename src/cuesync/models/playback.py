"""Playback-related data models."""

from enum import Enum

from pydantic import BaseModel, Field

from cuesync.errors import MediaErrorKind


class Quality(str, Enum):
    """Advisory display quality tier."""

    Q1080 = "1080p"
    Q720 = "720p"
    Q540 = "540p"
    Q360 = "360p"


class TimeFormat(str, Enum):
    """How playback time is rendered."""

    TIMECODE = "timecode"
    FRAMES = "frames"
    SECONDS = "seconds"


class MediaMetadata(BaseModel):
    """Metadata reported by a media backend once a source is probed."""

    duration: float = Field(0.0, ge=0.0, description="Duration in seconds (0 for stills)")
    width: int | None = Field(None, description="Native width in pixels")
    height: int | None = Field(None, description="Native height in pixels")
    frame_rate: float | None = Field(None, description="Constant frame rate, if known")

    @property
    def resolution(self) -> str | None:
        """Return resolution string (e.g., '1920x1080')."""
        if self.width and self.height:
            return f"{self.width}x{self.height}"
        return None


class PlaybackState(BaseModel):
    """Transport state of a single media element.

    Owned by ``PlaybackController``. Everyone else receives copies.
    """

    source: str | None = Field(None, description="Currently loaded source")
    current_time: float = Field(0.0, ge=0.0, description="Position in seconds")
    duration: float = Field(0.0, ge=0.0, description="Duration in seconds, 0 until metadata loads")
    is_playing: bool = False
    volume: float = Field(1.0, ge=0.0, le=1.0)
    muted_volume: float | None = Field(
        None, description="Volume remembered when muting, restored on unmute"
    )
    rate: float = Field(1.0, gt=0.0, description="Playback rate")
    loop: bool = False
    frame_rate: float | None = None

    video_loaded: bool = False
    video_error: MediaErrorKind | None = None
    error_message: str | None = None

    quality: Quality = Quality.Q1080
    max_quality: Quality = Quality.Q1080
    available_qualities: list[Quality] = Field(default_factory=lambda: [Quality.Q1080])

    @property
    def is_muted(self) -> bool:
        return self.volume == 0.0

    @property
    def progress_percent(self) -> float:
        """Playhead position as a percentage, 0 while duration is unknown."""
        if self.duration <= 0:
            return 0.0
        return min(100.0, self.current_time / self.duration * 100.0)
