"""Media backend implementation using ffprobe."""

import asyncio
import json
import logging
import subprocess
from pathlib import Path

from cuesync.config import settings
from cuesync.errors import MediaError, MediaErrorKind
from cuesync.models.playback import MediaMetadata

logger = logging.getLogger(__name__)

_URL_SCHEMES = ("http://", "https://", "rtmp://", "rtsp://")

# ffprobe stderr fragments that indicate the network, not the file, failed
_NETWORK_HINTS = (
    "connection refused",
    "connection reset",
    "timed out",
    "failed to resolve",
    "network is unreachable",
    "i/o error",
)


def _parse_frame_rate(value: str | None) -> float | None:
    """Parse ffprobe rates such as '30/1' or '30000/1001'."""
    if not value or "/" not in value:
        return None
    num, den = value.split("/", 1)
    try:
        num_f, den_f = float(num), float(den)
    except ValueError:
        return None
    if den_f == 0 or num_f == 0:
        return None
    return num_f / den_f


def _parse_duration(value: object) -> float:
    """Parse a duration field, 0 for stills ('N/A' or missing)."""
    try:
        return max(0.0, float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


class FFprobeMediaBackend:
    """ffprobe-based metadata acquisition.

    ffprobe runs in a worker thread so the event loop is never blocked.
    The process is killed after ``timeout`` seconds, which defaults to the
    metadata timeout of the playback watchdog.
    """

    def __init__(self, ffprobe_path: str | None = None, timeout: float | None = None) -> None:
        self._ffprobe = ffprobe_path or settings.ffprobe_path
        self._timeout = settings.metadata_timeout if timeout is None else timeout

    async def probe(self, source: str) -> MediaMetadata:
        """Extract media metadata using ffprobe.

        Args:
            source: Local path or URL of the media

        Returns:
            MediaMetadata with duration, resolution and frame rate

        Raises:
            MediaError: NOT_FOUND for missing files, NETWORK for unreachable
                URLs, FORMAT_UNSUPPORTED when ffprobe cannot decode the source,
                TIMEOUT when ffprobe had to be killed
        """
        is_url = source.lower().startswith(_URL_SCHEMES)
        if not is_url and not Path(source).exists():
            raise MediaError(MediaErrorKind.NOT_FOUND, f"Media not found: {source}")

        cmd = [
            self._ffprobe,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            source,
        ]

        try:
            result = await asyncio.to_thread(
                subprocess.run, cmd, capture_output=True, text=True, timeout=self._timeout
            )
        except subprocess.TimeoutExpired as exc:
            raise MediaError(
                MediaErrorKind.TIMEOUT, f"ffprobe gave up on {source} after {self._timeout:g}s"
            ) from exc
        except FileNotFoundError as exc:
            raise MediaError(
                MediaErrorKind.FORMAT_UNSUPPORTED, f"ffprobe not available: {self._ffprobe}"
            ) from exc

        if result.returncode != 0:
            raise self._classify_failure(source, is_url, result.stderr)

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise MediaError(
                MediaErrorKind.FORMAT_UNSUPPORTED, f"Unreadable ffprobe output for {source}"
            ) from exc

        streams = data.get("streams", [])
        if not streams:
            raise MediaError(
                MediaErrorKind.FORMAT_UNSUPPORTED, f"No decodable streams in {source}"
            )

        width = None
        height = None
        frame_rate = None
        for stream in streams:
            if stream.get("codec_type") == "video" and width is None:
                width = stream.get("width")
                height = stream.get("height")
                frame_rate = _parse_frame_rate(stream.get("r_frame_rate"))

        duration = _parse_duration(data.get("format", {}).get("duration"))
        logger.info("Probed %s: duration=%.3fs height=%s fps=%s", source, duration, height, frame_rate)

        return MediaMetadata(
            duration=duration,
            width=width,
            height=height,
            frame_rate=frame_rate,
        )

    @staticmethod
    def _classify_failure(source: str, is_url: bool, stderr: str) -> MediaError:
        message = stderr.strip().splitlines()[-1] if stderr.strip() else "ffprobe failed"
        lowered = stderr.lower()
        if is_url and ("404" in lowered or "not found" in lowered):
            return MediaError(MediaErrorKind.NOT_FOUND, f"{source}: {message}")
        if is_url and any(hint in lowered for hint in _NETWORK_HINTS):
            return MediaError(MediaErrorKind.NETWORK, f"{source}: {message}")
        return MediaError(MediaErrorKind.FORMAT_UNSUPPORTED, f"{source}: {message}")
