"""
Media probing using FFprobe.

The prober is an I/O boundary, not a library call: we shell out to the
ffprobe binary and parse its JSON. Keeping it behind the MediaProber
protocol means routes and tests never need a real binary.

Any failure (binary missing, non-zero exit, unparsable output, no video
stream) raises ProbeError. Garbage output is never reported as an
"other" orientation.
"""

import asyncio
import json
import logging
import subprocess
from typing import Any, Optional, Protocol

from src.core.media.models import MediaStream, ProbeResult

logger = logging.getLogger(__name__)


class ProbeError(Exception):
    """Raised when a file cannot be probed."""
    pass


class MediaProber(Protocol):
    """Protocol for media inspection."""

    async def probe(self, path: str) -> ProbeResult:
        """Return stream information for the file at path."""
        ...

    def is_available(self) -> bool:
        """Whether probing can run at all (used by readiness checks)."""
        ...


def parse_probe_output(output: str) -> ProbeResult:
    """
    Parse ffprobe ``-print_format json -show_streams`` output.

    Expected shape:
        {"streams": [{"codec_type": "video", "width": 1920, "height": 1080}, ...]}
    """
    if not output or not output.strip():
        raise ProbeError("FFprobe produced no output")

    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ProbeError(f"FFprobe output is not JSON: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("streams"), list):
        raise ProbeError("FFprobe output has no stream list")

    streams = []
    for raw in data["streams"]:
        if not isinstance(raw, dict):
            raise ProbeError("FFprobe stream entry is not an object")
        streams.append(MediaStream(
            codec_type=str(raw.get("codec_type", "")),
            width=_as_dimension(raw.get("width")),
            height=_as_dimension(raw.get("height")),
        ))

    return ProbeResult(streams=tuple(streams))


def _as_dimension(value: Any) -> Optional[int]:
    # bool is an int subclass; a JSON true is not a width
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class FFprobeMediaProber:
    """
    Media prober backed by the ffprobe binary.

    The subprocess call is pushed to a worker thread so a slow probe does
    not stall the event loop for other requests.
    """

    def __init__(
        self,
        ffprobe_path: str = "ffprobe",
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._ffprobe = ffprobe_path
        self._timeout = timeout_seconds

    def build_command(self, path: str) -> list[str]:
        return [
            self._ffprobe,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            path,
        ]

    async def probe(self, path: str) -> ProbeResult:
        cmd = self.build_command(path)

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError:
            raise ProbeError(f"FFprobe not found at {self._ffprobe}")
        except subprocess.TimeoutExpired:
            raise ProbeError(f"FFprobe timed out after {self._timeout}s")
        except OSError as e:
            raise ProbeError(f"FFprobe could not be started: {e}")

        if result.returncode != 0:
            logger.warning(
                "FFprobe exited with an error",
                extra={
                    "path": path,
                    "returncode": result.returncode,
                    "stderr": (result.stderr or "")[:500],
                }
            )
            raise ProbeError(f"FFprobe failed with exit code {result.returncode}")

        probe_result = parse_probe_output(result.stdout)

        logger.debug(
            "Probed media file",
            extra={"path": path, "stream_count": len(probe_result.streams)}
        )

        return probe_result

    def is_available(self) -> bool:
        """Whether the ffprobe binary can be executed."""
        try:
            result = subprocess.run(
                [self._ffprobe, "-version"],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0


class MockMediaProber:
    """
    Mock prober for local development without FFmpeg.

    Reports a single stream with fixed dimensions (1920x1080 by default).
    """

    def __init__(self, width: int = 1920, height: int = 1080) -> None:
        self.width = width
        self.height = height
        self.probed_paths: list[str] = []
        logger.info("Initialized mock media prober")

    async def probe(self, path: str) -> ProbeResult:
        self.probed_paths.append(path)
        return ProbeResult(streams=(
            MediaStream(codec_type="video", width=self.width, height=self.height),
        ))

    def is_available(self) -> bool:
        return True


def create_media_prober(
    mock_mode: bool = False,
    ffprobe_path: str = "ffprobe",
    timeout_seconds: Optional[float] = None,
) -> MediaProber:
    """
    Factory function for media prober.

    Args:
        mock_mode: If True, return mock prober (no FFmpeg required)
        ffprobe_path: Path to the ffprobe binary
        timeout_seconds: Optional hard limit on a single probe
    """
    if mock_mode:
        return MockMediaProber()

    return FFprobeMediaProber(ffprobe_path=ffprobe_path, timeout_seconds=timeout_seconds)
