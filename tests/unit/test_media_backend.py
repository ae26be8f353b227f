"""Unit tests for FFprobeMediaBackend."""

from __future__ import annotations

import json
import subprocess
import sys
import time
from unittest.mock import AsyncMock, patch

import pytest

from cuesync.errors import MediaError, MediaErrorKind
from cuesync.services.media import FFprobeMediaBackend, _parse_duration, _parse_frame_rate


def _completed(stdout: str = "", stderr: str = "", returncode: int = 0):
    return subprocess.CompletedProcess(
        args=["ffprobe"], returncode=returncode, stdout=stdout, stderr=stderr
    )


def _probe_json(duration="12.5", height=720, rate="30000/1001", video=True) -> str:
    streams = [{"codec_type": "audio", "sample_rate": "48000"}]
    if video:
        streams.insert(
            0, {"codec_type": "video", "width": 1280, "height": height, "r_frame_rate": rate}
        )
    return json.dumps({"streams": streams, "format": {"duration": duration}})


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

class TestParsing:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("30/1", 30.0), ("25/1", 25.0), ("0/0", None), ("abc", None), (None, None)],
    )
    def test_parse_frame_rate(self, value, expected):
        assert _parse_frame_rate(value) == expected

    def test_parse_ntsc_frame_rate(self):
        assert _parse_frame_rate("30000/1001") == pytest.approx(29.97, abs=0.01)

    @pytest.mark.parametrize(("value", "expected"), [("4.2", 4.2), ("N/A", 0.0), (None, 0.0)])
    def test_parse_duration(self, value, expected):
        assert _parse_duration(value) == expected


# ---------------------------------------------------------------------------
# probe()
# ---------------------------------------------------------------------------

class TestProbe:
    @pytest.mark.asyncio
    async def test_probe_reads_video_stream(self, tmp_path):
        media = tmp_path / "clip.mp4"
        media.write_bytes(b"\x00")
        backend = FFprobeMediaBackend(ffprobe_path="ffprobe")

        with patch(
            "asyncio.to_thread", new_callable=AsyncMock, return_value=_completed(_probe_json())
        ) as to_thread:
            metadata = await backend.probe(str(media))

        assert metadata.duration == 12.5
        assert metadata.width == 1280
        assert metadata.height == 720
        assert metadata.frame_rate == pytest.approx(29.97, abs=0.01)
        cmd = to_thread.call_args.args[1]
        assert cmd[0] == "ffprobe"
        assert cmd[-1] == str(media)

    @pytest.mark.asyncio
    async def test_audio_only_has_no_frame_rate(self, tmp_path):
        media = tmp_path / "voice.wav"
        media.write_bytes(b"\x00")

        with patch(
            "asyncio.to_thread",
            new_callable=AsyncMock,
            return_value=_completed(_probe_json(video=False)),
        ):
            metadata = await FFprobeMediaBackend().probe(str(media))

        assert metadata.frame_rate is None
        assert metadata.height is None

    @pytest.mark.asyncio
    async def test_missing_local_file(self, tmp_path):
        to_thread = AsyncMock()
        with patch("asyncio.to_thread", to_thread), pytest.raises(MediaError) as exc_info:
            await FFprobeMediaBackend().probe(str(tmp_path / "nope.mp4"))

        assert exc_info.value.kind == MediaErrorKind.NOT_FOUND
        to_thread.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("stderr", "kind"),
        [
            ("HTTP error 404 Not Found", MediaErrorKind.NOT_FOUND),
            ("Connection refused", MediaErrorKind.NETWORK),
            ("Invalid data found when processing input", MediaErrorKind.FORMAT_UNSUPPORTED),
        ],
    )
    async def test_url_failures_are_classified(self, stderr, kind):
        with patch(
            "asyncio.to_thread",
            new_callable=AsyncMock,
            return_value=_completed(stderr=stderr, returncode=1),
        ), pytest.raises(MediaError) as exc_info:
            await FFprobeMediaBackend().probe("https://cdn.example.com/a.mp4")

        assert exc_info.value.kind == kind

    @pytest.mark.asyncio
    async def test_no_streams_is_unsupported(self, tmp_path):
        media = tmp_path / "notes.txt"
        media.write_text("hello")

        with patch(
            "asyncio.to_thread",
            new_callable=AsyncMock,
            return_value=_completed(json.dumps({"streams": [], "format": {}})),
        ), pytest.raises(MediaError) as exc_info:
            await FFprobeMediaBackend().probe(str(media))

        assert exc_info.value.kind == MediaErrorKind.FORMAT_UNSUPPORTED

    @pytest.mark.asyncio
    async def test_missing_ffprobe_binary(self, tmp_path):
        media = tmp_path / "clip.mp4"
        media.write_bytes(b"\x00")

        with patch(
            "asyncio.to_thread", new_callable=AsyncMock, side_effect=FileNotFoundError("ffprobe")
        ), pytest.raises(MediaError) as exc_info:
            await FFprobeMediaBackend(ffprobe_path="/opt/none/ffprobe").probe(str(media))

        assert exc_info.value.kind == MediaErrorKind.FORMAT_UNSUPPORTED

    @pytest.mark.asyncio
    async def test_ffprobe_runs_with_timeout(self, tmp_path):
        media = tmp_path / "clip.mp4"
        media.write_bytes(b"\x00")

        with patch(
            "asyncio.to_thread",
            new_callable=AsyncMock,
            side_effect=subprocess.TimeoutExpired(cmd="ffprobe", timeout=2.5),
        ) as to_thread, pytest.raises(MediaError) as exc_info:
            await FFprobeMediaBackend(timeout=2.5).probe(str(media))

        assert exc_info.value.kind == MediaErrorKind.TIMEOUT
        assert to_thread.call_args.kwargs["timeout"] == 2.5

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
    async def test_hung_ffprobe_is_killed(self, tmp_path):
        media = tmp_path / "clip.mp4"
        media.write_bytes(b"\x00")
        hung = tmp_path / "ffprobe"
        hung.write_text("#!/bin/sh\nexec sleep 30\n")
        hung.chmod(0o755)
        backend = FFprobeMediaBackend(ffprobe_path=str(hung), timeout=0.2)

        started = time.monotonic()
        with pytest.raises(MediaError) as exc_info:
            await backend.probe(str(media))

        assert exc_info.value.kind == MediaErrorKind.TIMEOUT
        assert time.monotonic() - started < 5
