"""Timeline geometry: marker grouping, pointer mapping, frame quantization.

Every function here degrades to a defined value when the duration is
unknown (0) instead of dividing by zero.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from cuesync.config import settings
from cuesync.models.comment import SENTINEL_GENERAL, Comment
from cuesync.models.playback import TimeFormat

# Guards floor() against binary error, e.g. (n / fps) * fps == n - 1e-13
_FRAME_EPSILON = 1e-6


@dataclass
class MarkerGroup:
    """Comments close enough in time to render as one timeline marker."""

    anchor_time: float
    comments: list[Comment] = field(default_factory=list)
    position_percent: float = 0.0

    @property
    def count(self) -> int:
        return len(self.comments)

    @property
    def comment_ids(self) -> list[str]:
        return [c.id for c in self.comments]


def position_percent(time: float, duration: float) -> float:
    """Position of ``time`` on a timeline as a percentage in [0, 100]."""
    if duration <= 0:
        return 0.0
    return max(0.0, min(100.0, time / duration * 100.0))


def time_from_pointer(px: float, timeline_width_px: float, duration: float) -> float:
    """Convert a horizontal pointer offset into a clamped media time.

    Single source of truth for click-to-seek and hover previews.
    """
    if timeline_width_px <= 0 or duration <= 0:
        return 0.0
    ratio = max(0.0, min(1.0, px / timeline_width_px))
    return max(0.0, min(duration, ratio * duration))


def quantize(time: float, frame_rate: float | None) -> float:
    """Snap ``time`` down to its frame boundary: floor(t * fps) / fps.

    Idempotent. Unknown frame rates and the general sentinel pass through
    unchanged.
    """
    if time == SENTINEL_GENERAL or time < 0:
        return time
    if not frame_rate or frame_rate <= 0 or not math.isfinite(frame_rate):
        return time
    return math.floor(time * frame_rate + _FRAME_EPSILON) / frame_rate


def _time_key(comment: Comment) -> tuple[float, float, str]:
    return (comment.timestamp, comment.created_at.timestamp(), comment.id)


def markers_for(
    comments: Iterable[Comment],
    duration: float,
    window: float | None = None,
) -> list[MarkerGroup]:
    """Group timestamped top-level comments into timeline markers.

    Comments are chained in time order: a comment joins the previous group
    when it lies within ``window`` seconds of that group's last member.
    Any two comments closer than the window therefore share a group,
    whatever the input order. General comments and replies are excluded.
    """
    window = settings.marker_window if window is None else window
    timed = sorted(
        (c for c in comments if not c.is_general and not c.is_reply),
        key=_time_key,
    )

    groups: list[MarkerGroup] = []
    for comment in timed:
        if groups and comment.timestamp - groups[-1].comments[-1].timestamp < window:
            groups[-1].comments.append(comment)
            continue
        groups.append(
            MarkerGroup(
                anchor_time=comment.timestamp,
                comments=[comment],
                position_percent=position_percent(comment.timestamp, duration),
            )
        )
    return groups


def comments_near(
    comments: Iterable[Comment],
    time: float,
    window: float | None = None,
) -> list[Comment]:
    """Top-level timestamped comments within ``window`` seconds of ``time``."""
    window = settings.marker_window if window is None else window
    near = [
        c
        for c in comments
        if not c.is_general and not c.is_reply and abs(c.timestamp - time) < window
    ]
    return sorted(near, key=_time_key)


def format_time(
    seconds: float,
    mode: TimeFormat = TimeFormat.SECONDS,
    frame_rate: float | None = None,
) -> str:
    """Render a media time for display.

    - timecode: ``HH:MM:SS.d`` (tenths)
    - frames: ``<n>f``
    - seconds: ``m:ss``
    """
    seconds = max(0.0, seconds)
    if mode is TimeFormat.FRAMES:
        fps = frame_rate or settings.default_frame_rate
        return f"{math.floor(seconds * fps + _FRAME_EPSILON)}f"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if mode is TimeFormat.TIMECODE:
        tenths = int((seconds % 1) * 10)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}.{tenths}"
    return f"{int(seconds // 60)}:{secs:02d}"


def format_video_time(timestamp: float) -> str:
    """Render a comment time as ``mm:ss``, or ``General`` for unbound comments."""
    if timestamp == SENTINEL_GENERAL:
        return "General"
    total = int(max(0.0, timestamp))
    return f"{total // 60:02d}:{total % 60:02d}"
