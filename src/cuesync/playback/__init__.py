"""Playback transport control."""

from cuesync.playback.controller import PlaybackController
from cuesync.playback.quality import max_quality_for, qualities_up_to

__all__ = ["PlaybackController", "max_quality_for", "qualities_up_to"]
