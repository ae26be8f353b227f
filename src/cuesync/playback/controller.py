"""Playback controller owning the transport state of one media element."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable

from cuesync.config import settings
from cuesync.errors import (
    MediaError,
    MediaErrorKind,
    ValidationError,
    ValidationErrorKind,
)
from cuesync.models.playback import MediaMetadata, PlaybackState, Quality
from cuesync.observers import ObserverList, Subscription
from cuesync.playback.quality import max_quality_for, qualities_up_to
from cuesync.services.interfaces import MediaBackend

logger = logging.getLogger(__name__)

# Volume restored when unmuting with nothing remembered
_UNMUTE_FALLBACK_VOLUME = 0.5


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PlaybackController:
    """Owns a ``PlaybackState`` and mutates it only through its operations.

    Loading is asynchronous and guarded by a metadata watchdog; failures
    end up in ``state.video_error`` instead of being raised. While playing,
    a self-cancelling asyncio task samples the position every
    ``tick_interval`` seconds and notifies time subscribers.
    """

    def __init__(
        self,
        backend: MediaBackend,
        *,
        metadata_timeout: float | None = None,
        tick_interval: float | None = None,
    ) -> None:
        self._backend = backend
        self._metadata_timeout = (
            settings.metadata_timeout if metadata_timeout is None else metadata_timeout
        )
        self._tick_interval = settings.tick_interval if tick_interval is None else tick_interval
        self._state = PlaybackState()
        self._pending_seek: float | None = None
        self._ticker: asyncio.Task[None] | None = None
        self._load_generation = 0
        self._time_observers: ObserverList[float] = ObserverList("playback time")
        self._state_observers: ObserverList[PlaybackState] = ObserverList("playback state")

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        """Read-only snapshot of the transport state."""
        return self._state.model_copy(deep=True)

    @property
    def current_time(self) -> float:
        return self._state.current_time

    @property
    def duration(self) -> float:
        return self._state.duration

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def metadata_known(self) -> bool:
        return self._state.video_loaded

    @property
    def pending_seek(self) -> float | None:
        """Seek target queued until metadata arrives."""
        return self._pending_seek

    def subscribe_time(self, callback: Callable[[float], None]) -> Subscription:
        """Receive every position change (ticks and seeks)."""
        return self._time_observers.add(callback)

    def subscribe_state(self, callback: Callable[[PlaybackState], None]) -> Subscription:
        """Receive a snapshot after every transport change other than ticks."""
        return self._state_observers.add(callback)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, source: str) -> PlaybackState:
        """Reset all playback state and acquire metadata for ``source``.

        A newer ``load`` supersedes one still in flight; the superseded
        call returns without touching state.

        Returns:
            Snapshot of the state after the attempt. Check ``video_error``
            for failures.
        """
        self._stop_ticker()
        self._load_generation += 1
        generation = self._load_generation
        self._pending_seek = None
        self._state = PlaybackState(source=source)
        self._notify_state()
        logger.info("Loading media: %s", source)

        try:
            metadata = await asyncio.wait_for(
                self._backend.probe(source), timeout=self._metadata_timeout
            )
        except asyncio.TimeoutError:
            self._fail(
                generation,
                MediaError(
                    MediaErrorKind.TIMEOUT,
                    f"Metadata not available after {self._metadata_timeout:g}s",
                ),
            )
        except MediaError as exc:
            self._fail(generation, exc)
        except OSError as exc:
            self._fail(generation, MediaError(MediaErrorKind.NETWORK, str(exc)))
        except asyncio.CancelledError:
            self._fail(generation, MediaError(MediaErrorKind.ABORTED, "Load cancelled"))
            raise
        else:
            if generation == self._load_generation:
                self._apply_metadata(metadata)
            else:
                logger.debug("Discarding metadata of superseded load: %s", source)

        return self.state

    async def retry(self) -> PlaybackState:
        """Load the current source again (e.g. after a failure)."""
        if self._state.source is None:
            return self.state
        logger.info("Retrying media load: %s", self._state.source)
        return await self.load(self._state.source)

    def _fail(self, generation: int, error: MediaError) -> None:
        if generation != self._load_generation:
            return
        logger.warning("Media load failed (%s): %s", error.kind.value, error)
        self._state.video_loaded = False
        self._state.video_error = error.kind
        self._state.error_message = str(error)
        self._notify_state()

    def _apply_metadata(self, metadata: MediaMetadata) -> None:
        max_quality = max_quality_for(metadata.height)
        self._state.duration = metadata.duration
        self._state.frame_rate = metadata.frame_rate
        self._state.max_quality = max_quality
        self._state.quality = max_quality
        self._state.available_qualities = qualities_up_to(max_quality)
        self._state.video_loaded = True
        self._state.video_error = None
        self._state.error_message = None
        logger.info(
            "Media ready: duration=%.3fs max_quality=%s", metadata.duration, max_quality.value
        )

        if self._pending_seek is not None:
            target, self._pending_seek = self._pending_seek, None
            self._state.current_time = _clamp(target, 0.0, self._state.duration)
        self._notify_state()
        self._time_observers.notify(self._state.current_time)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def play(self) -> bool:
        """Start playback. Returns False when already playing or not playable."""
        if self._state.is_playing:
            return False
        if not self._state.video_loaded or self._state.duration <= 0:
            logger.debug("play() ignored: media not playable")
            return False
        if self._state.current_time >= self._state.duration:
            self._state.current_time = 0.0
        self._state.is_playing = True
        self._ticker = asyncio.get_running_loop().create_task(self._run_ticker())
        self._notify_state()
        return True

    def pause(self) -> bool:
        """Pause playback. Returns False when already paused."""
        if not self._state.is_playing:
            return False
        self._state.is_playing = False
        self._stop_ticker()
        self._notify_state()
        return True

    def toggle_play(self) -> bool:
        """Toggle play/pause; returns the resulting ``is_playing``."""
        if self._state.is_playing:
            self.pause()
        else:
            self.play()
        return self._state.is_playing

    def seek(self, time: float) -> float:
        """Move the playhead to ``time`` clamped into ``[0, duration]``.

        Before metadata is known the target is queued and applied once it
        arrives.

        Raises:
            ValidationError: If ``time`` is not a finite number
        """
        if not math.isfinite(time):
            raise ValidationError(
                ValidationErrorKind.INVALID_SEEK_TARGET, f"Seek target is not finite: {time}"
            )
        if not self.metadata_known:
            self._pending_seek = max(0.0, time)
            return self._state.current_time
        self._state.current_time = _clamp(time, 0.0, self._state.duration)
        self._time_observers.notify(self._state.current_time)
        return self._state.current_time

    def seek_strict(self, time: float) -> float:
        """Like ``seek`` but reject targets outside ``[0, duration]``.

        Raises:
            ValidationError: If the target is out of range once duration
                is known
        """
        if self.metadata_known and not 0.0 <= time <= self._state.duration:
            raise ValidationError(
                ValidationErrorKind.INVALID_SEEK_TARGET,
                f"Seek target {time} outside [0, {self._state.duration}]",
            )
        return self.seek(time)

    def step_frame(self, frames: int = 1, frame_rate: float | None = None) -> float:
        """Move by whole frames (negative steps go back)."""
        fps = frame_rate or self._state.frame_rate or settings.default_frame_rate
        return self.seek(self._state.current_time + frames / fps)

    def set_rate(self, rate: float) -> None:
        if not math.isfinite(rate) or rate <= 0:
            raise ValidationError(ValidationErrorKind.INVALID_VALUE, f"Invalid rate: {rate}")
        self._state.rate = rate
        self._notify_state()

    def set_volume(self, volume: float) -> None:
        """Set volume clamped to [0, 1].

        A non-zero volume ends a mute. Setting 0 while muted keeps the
        remembered volume.
        """
        volume = _clamp(volume, 0.0, 1.0)
        self._state.volume = volume
        if volume > 0:
            self._state.muted_volume = None
        self._notify_state()

    def toggle_mute(self) -> bool:
        """Mute or unmute; returns True when muted afterwards."""
        if self._state.is_muted:
            restored = self._state.muted_volume or _UNMUTE_FALLBACK_VOLUME
            self._state.volume = restored
            self._state.muted_volume = None
        else:
            self._state.muted_volume = self._state.volume
            self._state.volume = 0.0
        self._notify_state()
        return self._state.is_muted

    def set_loop(self, loop: bool) -> None:
        self._state.loop = loop
        self._notify_state()

    def set_quality(self, quality: Quality) -> None:
        if quality not in self._state.available_qualities:
            raise ValidationError(
                ValidationErrorKind.INVALID_VALUE,
                f"Quality {quality.value} not available (max {self._state.max_quality.value})",
            )
        self._state.quality = quality
        self._notify_state()

    # ------------------------------------------------------------------
    # Time sampling
    # ------------------------------------------------------------------

    def advance(self, elapsed: float) -> float:
        """Advance the playhead by ``elapsed`` wall seconds while playing.

        Called by the tick loop; reaching the end wraps when looping and
        pauses otherwise.
        """
        if not self._state.is_playing or elapsed <= 0:
            return self._state.current_time

        duration = self._state.duration
        position = self._state.current_time + elapsed * self._state.rate
        if position >= duration:
            if self._state.loop:
                position = position % duration
            else:
                position = duration
                self._state.is_playing = False
                self._stop_ticker()
                self._notify_state()

        self._state.current_time = position
        self._time_observers.notify(position)
        return position

    async def _run_ticker(self) -> None:
        loop = asyncio.get_running_loop()
        last = loop.time()
        while self._state.is_playing:
            await asyncio.sleep(self._tick_interval)
            now = loop.time()
            self.advance(now - last)
            last = now

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is None or ticker.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # advance() may stop playback from inside the ticker itself
        if ticker is not current:
            ticker.cancel()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop sampling, discard any in-flight load and drop observers."""
        self._load_generation += 1
        self._state.is_playing = False
        self._stop_ticker()
        self._time_observers.clear()
        self._state_observers.clear()

    def _notify_state(self) -> None:
        self._state_observers.notify(self.state)
