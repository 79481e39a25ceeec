"""
Media inspection, normalization and classification for uploaded videos.

``FFmpegMediaProcessor`` wraps the two external tools the video pipeline
needs:

- ``inspect``: ``ffprobe -v error -print_format json -show_streams`` and
  return the first stream's ``display_aspect_ratio``
- ``normalize``: ``ffmpeg -c copy -movflags faststart`` remux into
  ``<path>.processing`` so the moov atom precedes the media data

Both run through ``subprocess.run`` in a worker thread with a timeout;
``subprocess.run`` kills the child when the timeout expires. Output is
captured as bytes: ffmpeg echoes container metadata to stderr in whatever
encoding the file carries.

``classify_aspect_ratio`` maps the probed ratio to the storage key prefix.
"""

import asyncio
import json
import logging
import subprocess

from enum import Enum
from pathlib import Path
from typing import Protocol

from tubely.config import Settings
from tubely.exceptions import (
    NoStreamsFound,
    ProbeExecutionError,
    ProbeOutputError,
    TranscodeExecutionError,
)


logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processing"


# =============================================================================
# Classification
# =============================================================================


class VideoCategory(str, Enum):
    """Storage key prefix for a published video."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


_ASPECT_RATIO_CATEGORIES: dict[str, VideoCategory] = {
    "16:9": VideoCategory.LANDSCAPE,
    "9:16": VideoCategory.PORTRAIT,
}


def classify_aspect_ratio(aspect_ratio: str) -> VideoCategory:
    """
    Map a display aspect ratio string to a category.

    Matching is exact: ``"16:9"`` is landscape, ``"9:16"`` is portrait and
    every other value, including ``""`` and ``"1.78:1"``, is other.
    """
    return _ASPECT_RATIO_CATEGORIES.get(aspect_ratio, VideoCategory.OTHER)


# =============================================================================
# Processor
# =============================================================================


class MediaProcessor(Protocol):
    async def inspect(self, path: Path) -> str:
        """Return the display aspect ratio of the first stream in ``path``."""
        ...

    async def normalize(self, path: Path) -> Path:
        """Write a fast-start copy of ``path`` and return its location."""
        ...


class FFmpegMediaProcessor:
    """
    MediaProcessor backed by the ffprobe and ffmpeg binaries.

    Example:
        ```python
        processor = FFmpegMediaProcessor.from_settings(settings)
        ratio = await processor.inspect(staged.path)
        processed = await processor.normalize(staged.path)
        ```
    """

    def __init__(
        self,
        ffprobe_path: str = "ffprobe",
        ffmpeg_path: str = "ffmpeg",
        timeout_seconds: float = 300.0,
    ) -> None:
        self.ffprobe_path = ffprobe_path
        self.ffmpeg_path = ffmpeg_path
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "FFmpegMediaProcessor":
        return cls(
            ffprobe_path=settings.ffprobe_path,
            ffmpeg_path=settings.ffmpeg_path,
            timeout_seconds=settings.media_command_timeout_seconds,
        )

    async def _run(self, command: list[str]) -> subprocess.CompletedProcess:
        def run() -> subprocess.CompletedProcess:
            return subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=self.timeout_seconds,
                check=False,
            )

        return await asyncio.to_thread(run)

    @staticmethod
    def _stderr_text(result: subprocess.CompletedProcess) -> str:
        return (result.stderr or b"").decode("utf-8", errors="replace")

    async def inspect(self, path: Path) -> str:
        """
        Probe ``path`` and return ``streams[0].display_aspect_ratio``.

        Returns an empty string when the first stream has no such field.

        Raises:
            ProbeExecutionError: ffprobe could not start, failed, or timed out
            ProbeOutputError: stdout is not a JSON object with a ``streams`` list
            NoStreamsFound: the stream list is empty
        """
        command = [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]

        try:
            result = await self._run(command)
        except subprocess.TimeoutExpired as e:
            logger.error("ffprobe timed out", extra={"path": str(path), "timeout": e.timeout})
            raise ProbeExecutionError("Could not get video aspect ratio") from e
        except OSError as e:
            logger.error("ffprobe could not be started", extra={"error": str(e)})
            raise ProbeExecutionError("Could not get video aspect ratio") from e

        if result.returncode != 0:
            logger.error(
                "ffprobe failed",
                extra={
                    "path": str(path),
                    "returncode": result.returncode,
                    "stderr": self._stderr_text(result),
                },
            )
            raise ProbeExecutionError("Could not get video aspect ratio")

        try:
            output = json.loads(result.stdout)
        except ValueError as e:
            raise ProbeOutputError("Could not parse ffprobe output") from e

        streams = output.get("streams") if isinstance(output, dict) else None
        if not isinstance(streams, list):
            raise ProbeOutputError("Could not parse ffprobe output")
        if not streams:
            raise NoStreamsFound("No video streams found")

        first = streams[0]
        if not isinstance(first, dict):
            raise ProbeOutputError("Could not parse ffprobe output")

        aspect_ratio = first.get("display_aspect_ratio", "")
        logger.debug("Probed video", extra={"path": str(path), "aspect_ratio": aspect_ratio})
        return str(aspect_ratio)

    async def normalize(self, path: Path) -> Path:
        """
        Remux ``path`` for fast start without re-encoding.

        The input is left untouched; the output is ``<path>.processing``.

        Raises:
            TranscodeExecutionError: ffmpeg could not start, failed, or timed out
        """
        output_path = Path(f"{path}{PROCESSED_SUFFIX}")
        command = [
            self.ffmpeg_path,
            "-i",
            str(path),
            "-c",
            "copy",
            "-movflags",
            "faststart",
            "-f",
            "mp4",
            str(output_path),
        ]

        try:
            result = await self._run(command)
        except subprocess.TimeoutExpired as e:
            logger.error("ffmpeg timed out", extra={"path": str(path), "timeout": e.timeout})
            raise TranscodeExecutionError("Could not process video") from e
        except OSError as e:
            logger.error("ffmpeg could not be started", extra={"error": str(e)})
            raise TranscodeExecutionError("Could not process video") from e

        if result.returncode != 0:
            logger.error(
                "ffmpeg failed",
                extra={
                    "path": str(path),
                    "returncode": result.returncode,
                    "stderr": self._stderr_text(result),
                },
            )
            raise TranscodeExecutionError("Could not process video")

        return output_path
