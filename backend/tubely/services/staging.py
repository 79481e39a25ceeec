"""
Staging Store for uploaded media.

Uploaded streams are copied to a uniquely named file in a scratch directory
so external tools (ffprobe, ffmpeg) can work on a real path. Every staged
file, and every file derived from it, is removed when the ``stage_upload``
context exits, whether the pipeline succeeded or raised.

Example:
    ```python
    async with stage_upload(upload_file, "tubely-upload.mp4") as staged:
        processed = staged.derived_path(".processing")
        ...
    # both files are gone here
    ```
"""

import logging
import os
import tempfile

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Protocol

import aiofiles
import aiofiles.os

from tubely.exceptions import StagingIOError


logger = logging.getLogger(__name__)

STAGING_PREFIX = "tubely-"

# Copy granularity for uploaded streams (1 MiB)
CHUNK_SIZE = 1024 * 1024


class AsyncReadable(Protocol):
    """Anything with an async ``read(size)``, such as Starlette's ``UploadFile``."""

    async def read(self, size: int = -1) -> bytes: ...


class StagedFile:
    """
    A staged upload on local disk.

    Attributes:
        path: Location of the staged copy
        size: Number of bytes written
    """

    def __init__(self, path: Path, size: int = 0) -> None:
        self.path = path
        self.size = size
        self._derived: list[Path] = []

    def derived_path(self, suffix: str) -> Path:
        """Return ``<path><suffix>`` and register it for cleanup."""
        derived = Path(f"{self.path}{suffix}")
        self.adopt(derived)
        return derived

    def adopt(self, path: Path) -> None:
        """Register an extra file produced from this one for cleanup."""
        if path != self.path and path not in self._derived:
            self._derived.append(path)

    async def read_all(self) -> bytes:
        """Return the staged content from the first byte."""
        return await read_file(self.path)

    @property
    def owned_paths(self) -> list[Path]:
        return [self.path, *self._derived]


async def read_file(path: Path) -> bytes:
    """
    Read a whole scratch file.

    Raises:
        StagingIOError: If the file cannot be read.
    """
    try:
        async with aiofiles.open(path, "rb") as f:
            await f.seek(0)
            return await f.read()
    except OSError as e:
        logger.error("Failed to read staged file", extra={"path": str(path), "error": str(e)})
        raise StagingIOError("Could not read file") from e


async def _remove_quietly(path: Path) -> None:
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to remove staged file", extra={"path": str(path), "error": str(e)})


@asynccontextmanager
async def stage_upload(
    source: AsyncReadable,
    name_hint: str,
    directory: Path | None = None,
) -> AsyncIterator[StagedFile]:
    """
    Copy ``source`` to a new temporary file and yield it as a ``StagedFile``.

    Args:
        source: Stream to copy, read in 1 MiB chunks
        name_hint: Name whose suffix (e.g. ``.mp4``) is kept on the temp file
        directory: Scratch directory; the system temp dir when None

    Raises:
        StagingIOError: If the temp file cannot be created or written.
    """
    suffix = Path(name_hint).suffix

    try:
        fd, raw_path = tempfile.mkstemp(prefix=STAGING_PREFIX, suffix=suffix, dir=directory)
        os.close(fd)
    except OSError as e:
        logger.error("Failed to create staging file", extra={"error": str(e)})
        raise StagingIOError("Could not create temp file") from e

    staged = StagedFile(Path(raw_path))
    try:
        try:
            async with aiofiles.open(staged.path, "wb") as out:
                while chunk := await source.read(CHUNK_SIZE):
                    await out.write(chunk)
                    staged.size += len(chunk)
        except OSError as e:
            logger.error(
                "Failed to write staging file",
                extra={"path": str(staged.path), "error": str(e)},
            )
            raise StagingIOError("Could not write file to disk") from e

        logger.debug("Staged upload", extra={"path": str(staged.path), "size": staged.size})
        yield staged
    finally:
        for path in staged.owned_paths:
            await _remove_quietly(path)
