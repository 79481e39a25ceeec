"""
Staging store tests.

Checks that ``stage_upload`` copies the stream faithfully and that every
staged or derived file is gone once the context exits, on success and on
error.
"""

import io

from pathlib import Path

import pytest

from tubely.exceptions import StagingIOError
from tubely.services.staging import CHUNK_SIZE, STAGING_PREFIX, read_file, stage_upload


class BytesSource:
    """Async reader over an in-memory buffer that records each chunk size asked for."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)
        self.requested: list[int] = []

    async def read(self, size: int = -1) -> bytes:
        self.requested.append(size)
        return self._buffer.read(size)


class FailingSource:
    async def read(self, size: int = -1) -> bytes:
        raise OSError("connection reset")


class TestStageUpload:
    async def test_round_trip(self, staging_dir: Path) -> None:
        data = bytes(range(256)) * 4096 + b"tail"

        async with stage_upload(BytesSource(data), "clip.mp4", staging_dir) as staged:
            assert staged.size == len(data)
            assert staged.path.parent == staging_dir
            assert staged.path.name.startswith(STAGING_PREFIX)
            assert staged.path.suffix == ".mp4"
            assert await staged.read_all() == data

    async def test_reads_in_chunks(self, staging_dir: Path) -> None:
        source = BytesSource(b"x" * (CHUNK_SIZE + 10))

        async with stage_upload(source, "clip.mp4", staging_dir) as staged:
            assert staged.size == CHUNK_SIZE + 10

        assert set(source.requested) == {CHUNK_SIZE}

    async def test_empty_stream(self, staging_dir: Path) -> None:
        async with stage_upload(BytesSource(b""), "clip.mp4", staging_dir) as staged:
            assert staged.size == 0
            assert staged.path.exists()

    async def test_cleanup_on_success(self, staging_dir: Path) -> None:
        async with stage_upload(BytesSource(b"data"), "clip.mp4", staging_dir) as staged:
            derived = staged.derived_path(".processing")
            derived.write_bytes(b"processed")
            extra = staging_dir / "extra.bin"
            extra.write_bytes(b"extra")
            staged.adopt(extra)

        assert not staged.path.exists()
        assert not derived.exists()
        assert list(staging_dir.iterdir()) == []

    async def test_cleanup_on_error(self, staging_dir: Path) -> None:
        with pytest.raises(RuntimeError):
            async with stage_upload(BytesSource(b"data"), "clip.mp4", staging_dir) as staged:
                staged.derived_path(".processing").write_bytes(b"processed")
                raise RuntimeError("probe failed")

        assert list(staging_dir.iterdir()) == []

    async def test_unwritten_derived_path_is_tolerated(self, staging_dir: Path) -> None:
        async with stage_upload(BytesSource(b"data"), "clip.mp4", staging_dir) as staged:
            staged.derived_path(".processing")

        assert list(staging_dir.iterdir()) == []

    async def test_derived_path_naming(self, staging_dir: Path) -> None:
        async with stage_upload(BytesSource(b"data"), "clip.mp4", staging_dir) as staged:
            derived = staged.derived_path(".processing")

            assert derived == Path(f"{staged.path}.processing")
            assert staged.owned_paths == [staged.path, derived]

    async def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(StagingIOError) as exc_info:
            async with stage_upload(BytesSource(b"data"), "clip.mp4", tmp_path / "missing"):
                pytest.fail("staging into a missing directory succeeded")

        assert exc_info.value.message == "Could not create temp file"
        assert exc_info.value.status_code == 500

    async def test_source_failure(self, staging_dir: Path) -> None:
        with pytest.raises(StagingIOError) as exc_info:
            async with stage_upload(FailingSource(), "clip.mp4", staging_dir):
                pytest.fail("failed copy was yielded")

        assert exc_info.value.message == "Could not write file to disk"
        assert list(staging_dir.iterdir()) == []


class TestReadFile:
    async def test_reads_whole_file(self, tmp_path: Path) -> None:
        path = tmp_path / "blob.bin"
        path.write_bytes(b"abc" * 1000)

        assert await read_file(path) == b"abc" * 1000

    async def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(StagingIOError):
            await read_file(tmp_path / "missing.bin")
