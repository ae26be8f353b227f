"""Unit tests for PlaybackController."""

from __future__ import annotations

import asyncio
import math

import pytest

from cuesync.config import settings
from cuesync.errors import MediaError, MediaErrorKind, ValidationError, ValidationErrorKind
from cuesync.models.playback import MediaMetadata, Quality
from cuesync.playback.controller import PlaybackController
from cuesync.playback.quality import max_quality_for, qualities_up_to


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

class _FakeBackend:
    """Media backend returning canned metadata, optionally slow or failing."""

    def __init__(
        self,
        metadata: MediaMetadata | None = None,
        *,
        error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        self.metadata = metadata or MediaMetadata(
            duration=120.0, width=1920, height=1080, frame_rate=30.0
        )
        self.error = error
        self.hang = hang
        self.calls: list[str] = []

    async def probe(self, source: str) -> MediaMetadata:
        self.calls.append(source)
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return self.metadata


async def _loaded(metadata: MediaMetadata | None = None, **kwargs) -> PlaybackController:
    controller = PlaybackController(_FakeBackend(metadata), **kwargs)
    await controller.load("/media/review.mp4")
    return controller


# ---------------------------------------------------------------------------
# Quality tiers
# ---------------------------------------------------------------------------

class TestQualityTiers:
    @pytest.mark.parametrize(
        ("height", "expected"),
        [
            (2160, Quality.Q1080),
            (1080, Quality.Q1080),
            (720, Quality.Q720),
            (719, Quality.Q540),
            (540, Quality.Q540),
            (480, Quality.Q360),
            (None, Quality.Q360),
        ],
    )
    def test_max_quality_for_height(self, height, expected):
        assert max_quality_for(height) == expected

    def test_qualities_up_to_lists_lower_tiers(self):
        assert qualities_up_to(Quality.Q720) == [Quality.Q720, Quality.Q540, Quality.Q360]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoad:
    @pytest.mark.asyncio
    async def test_load_applies_metadata(self):
        controller = await _loaded(
            MediaMetadata(duration=42.5, width=1280, height=720, frame_rate=25.0)
        )
        state = controller.state

        assert state.video_loaded is True
        assert state.video_error is None
        assert state.duration == 42.5
        assert state.frame_rate == 25.0
        assert state.max_quality == Quality.Q720
        assert state.quality == Quality.Q720
        assert state.available_qualities == [Quality.Q720, Quality.Q540, Quality.Q360]
        assert controller.metadata_known

    @pytest.mark.asyncio
    async def test_unreachable_source_times_out(self):
        """A probe that never answers surfaces TIMEOUT and video_loaded=False."""
        controller = PlaybackController(_FakeBackend(hang=True), metadata_timeout=0.05)

        state = await controller.load("https://cdn.example.com/missing.mp4")

        assert state.video_error == MediaErrorKind.TIMEOUT
        assert state.video_loaded is False
        assert state.duration == 0.0

    def test_default_watchdog_is_five_seconds(self):
        assert settings.metadata_timeout == 5.0
        controller = PlaybackController(_FakeBackend())
        assert controller._metadata_timeout == 5.0

    @pytest.mark.asyncio
    async def test_backend_error_is_recorded_not_raised(self):
        backend = _FakeBackend(error=MediaError(MediaErrorKind.FORMAT_UNSUPPORTED, "bad codec"))
        controller = PlaybackController(backend)

        state = await controller.load("/media/clip.xyz")

        assert state.video_error == MediaErrorKind.FORMAT_UNSUPPORTED
        assert state.error_message == "bad codec"
        assert not state.video_loaded

    @pytest.mark.asyncio
    async def test_os_error_maps_to_network(self):
        controller = PlaybackController(_FakeBackend(error=ConnectionResetError("reset")))

        state = await controller.load("https://cdn.example.com/a.mp4")

        assert state.video_error == MediaErrorKind.NETWORK

    @pytest.mark.asyncio
    async def test_cancelled_load_is_aborted(self):
        controller = PlaybackController(_FakeBackend(hang=True), metadata_timeout=10)
        task = asyncio.create_task(controller.load("/media/a.mp4"))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert controller.state.video_error == MediaErrorKind.ABORTED

    @pytest.mark.asyncio
    async def test_new_load_resets_state(self):
        controller = await _loaded()
        controller.seek(30.0)
        controller.set_rate(2.0)

        backend_state = await controller.load("/media/other.mp4")

        assert backend_state.source == "/media/other.mp4"
        assert backend_state.current_time == 0.0
        assert backend_state.rate == 1.0

    @pytest.mark.asyncio
    async def test_superseded_load_is_discarded(self):
        slow = _FakeBackend(MediaMetadata(duration=10.0))
        controller = PlaybackController(slow)

        gate = asyncio.Event()
        original_probe = slow.probe

        async def gated_probe(source: str) -> MediaMetadata:
            if source == "/media/first.mp4":
                await gate.wait()
                return MediaMetadata(duration=999.0)
            return await original_probe(source)

        slow.probe = gated_probe
        first = asyncio.create_task(controller.load("/media/first.mp4"))
        await asyncio.sleep(0)
        await controller.load("/media/second.mp4")
        gate.set()
        await first

        assert controller.state.source == "/media/second.mp4"
        assert controller.duration == 10.0

    @pytest.mark.asyncio
    async def test_retry_reloads_current_source(self):
        backend = _FakeBackend(error=MediaError(MediaErrorKind.NETWORK, "offline"))
        controller = PlaybackController(backend)
        await controller.load("/media/a.mp4")
        assert controller.state.video_error == MediaErrorKind.NETWORK

        backend.error = None
        state = await controller.retry()

        assert state.video_loaded
        assert backend.calls == ["/media/a.mp4", "/media/a.mp4"]

    @pytest.mark.asyncio
    async def test_retry_without_source_is_noop(self):
        backend = _FakeBackend()
        controller = PlaybackController(backend)

        await controller.retry()

        assert backend.calls == []


# ---------------------------------------------------------------------------
# Seeking
# ---------------------------------------------------------------------------

class TestSeek:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [-5.0, 0.0, 0.5, 59.99, 120.0, 500.0])
    async def test_seek_clamps_into_duration(self, target):
        controller = await _loaded()

        controller.seek(target)

        assert controller.current_time == max(0.0, min(120.0, target))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [math.nan, math.inf, -math.inf])
    async def test_non_finite_target_rejected(self, target):
        controller = await _loaded()

        with pytest.raises(ValidationError) as exc_info:
            controller.seek(target)

        assert exc_info.value.kind == ValidationErrorKind.INVALID_SEEK_TARGET

    @pytest.mark.asyncio
    async def test_seek_before_metadata_is_queued(self):
        controller = PlaybackController(_FakeBackend())

        controller.seek(200.0)
        assert controller.pending_seek == 200.0
        assert controller.current_time == 0.0

        await controller.load("/media/a.mp4")
        # load() resets the queue; a seek issued during loading survives
        assert controller.current_time == 0.0

    @pytest.mark.asyncio
    async def test_seek_during_load_applies_on_metadata(self):
        backend = _FakeBackend()
        gate = asyncio.Event()
        original = backend.probe

        async def gated(source: str) -> MediaMetadata:
            await gate.wait()
            return await original(source)

        backend.probe = gated
        controller = PlaybackController(backend)
        task = asyncio.create_task(controller.load("/media/a.mp4"))
        await asyncio.sleep(0)

        controller.seek(200.0)
        gate.set()
        await task

        assert controller.pending_seek is None
        assert controller.current_time == 120.0

    @pytest.mark.asyncio
    async def test_seek_strict_rejects_out_of_range(self):
        controller = await _loaded()

        with pytest.raises(ValidationError):
            controller.seek_strict(121.0)
        assert controller.seek_strict(60.0) == 60.0

    @pytest.mark.asyncio
    async def test_seek_notifies_time_subscribers(self):
        controller = await _loaded()
        seen: list[float] = []
        controller.subscribe_time(seen.append)

        controller.seek(12.5)

        assert seen == [12.5]

    @pytest.mark.asyncio
    async def test_step_frame_moves_by_frame_duration(self):
        controller = await _loaded()
        controller.seek(1.0)

        controller.step_frame(3)
        assert controller.current_time == pytest.approx(1.1)

        controller.step_frame(-30)
        assert controller.current_time == pytest.approx(0.1)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class TestTransport:
    @pytest.mark.asyncio
    async def test_play_requires_metadata(self):
        controller = PlaybackController(_FakeBackend())

        assert controller.play() is False
        assert not controller.is_playing

    @pytest.mark.asyncio
    async def test_play_pause_toggle(self):
        controller = await _loaded()
        try:
            assert controller.play() is True
            assert controller.play() is False
            assert controller.toggle_play() is False
            assert controller.pause() is False
        finally:
            controller.close()

    @pytest.mark.asyncio
    async def test_play_at_end_restarts(self):
        controller = await _loaded()
        controller.seek(120.0)
        try:
            controller.play()
            assert controller.current_time == 0.0
        finally:
            controller.close()

    @pytest.mark.asyncio
    async def test_ticker_advances_time(self):
        controller = await _loaded(tick_interval=0.005)
        ticks: list[float] = []
        controller.subscribe_time(ticks.append)
        try:
            controller.play()
            await asyncio.sleep(0.05)
        finally:
            controller.close()

        assert ticks
        assert ticks == sorted(ticks)
        assert 0.0 < controller.current_time < 1.0

    @pytest.mark.asyncio
    async def test_advance_applies_rate(self):
        controller = await _loaded()
        controller.set_rate(2.0)
        controller.play()
        try:
            controller.advance(1.5)
            assert controller.current_time == pytest.approx(3.0)
        finally:
            controller.close()

    @pytest.mark.asyncio
    async def test_advance_pauses_at_end(self):
        controller = await _loaded()
        controller.seek(119.0)
        controller.play()

        controller.advance(5.0)

        assert controller.current_time == 120.0
        assert not controller.is_playing

    @pytest.mark.asyncio
    async def test_advance_wraps_when_looping(self):
        controller = await _loaded()
        controller.set_loop(True)
        controller.seek(119.0)
        controller.play()
        try:
            controller.advance(3.0)
            assert controller.current_time == pytest.approx(2.0)
            assert controller.is_playing
        finally:
            controller.close()

    @pytest.mark.asyncio
    async def test_advance_ignored_while_paused(self):
        controller = await _loaded()
        controller.seek(10.0)

        assert controller.advance(5.0) == 10.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rate", [0.0, -1.0, math.nan])
    async def test_invalid_rate_rejected(self, rate):
        controller = await _loaded()

        with pytest.raises(ValidationError) as exc_info:
            controller.set_rate(rate)

        assert exc_info.value.kind == ValidationErrorKind.INVALID_VALUE

    @pytest.mark.asyncio
    async def test_state_subscribers_receive_snapshots(self):
        controller = await _loaded()
        states = []
        sub = controller.subscribe_state(states.append)

        controller.set_loop(True)
        sub.unsubscribe()
        controller.set_loop(False)

        assert len(states) == 1
        assert states[0].loop is True
        states[0].loop = False
        assert controller.state.loop is False

    @pytest.mark.asyncio
    async def test_quality_must_be_available(self):
        controller = await _loaded(MediaMetadata(duration=10.0, width=960, height=540))

        controller.set_quality(Quality.Q360)
        assert controller.state.quality == Quality.Q360
        with pytest.raises(ValidationError):
            controller.set_quality(Quality.Q1080)


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------

class TestVolume:
    @pytest.mark.asyncio
    async def test_volume_is_clamped(self):
        controller = await _loaded()

        controller.set_volume(1.7)
        assert controller.state.volume == 1.0
        controller.set_volume(-0.2)
        assert controller.state.volume == 0.0

    @pytest.mark.asyncio
    async def test_mute_restores_previous_volume(self):
        controller = await _loaded()
        controller.set_volume(0.8)

        assert controller.toggle_mute() is True
        assert controller.state.volume == 0.0
        assert controller.state.muted_volume == 0.8

        assert controller.toggle_mute() is False
        assert controller.state.volume == 0.8

    @pytest.mark.asyncio
    async def test_unmute_without_memory_uses_half_volume(self):
        controller = await _loaded()
        controller.set_volume(0.0)

        assert controller.toggle_mute() is False
        assert controller.state.volume == 0.5
