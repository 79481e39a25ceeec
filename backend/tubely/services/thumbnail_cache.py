"""
In-process thumbnail cache.

Holds the most recent thumbnail bytes per video so ``GET /thumbnails/{id}``
can serve them without touching disk. One instance lives on ``app.state``
for the lifetime of the process.

Writers for the same video serialize on a per-video ``asyncio.Lock``
obtained through ``locked``; the upload pipeline holds it across
insert, record update and rollback so a failed request can never remove
an entry written by a concurrent successful one. A lock is discarded once
no request holds or waits on it.
"""

import asyncio

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Thumbnail:
    data: bytes
    media_type: str


class ThumbnailCache:
    """
    Map of video id to ``Thumbnail`` with per-key write locks.

    Example:
        ```python
        async with cache.locked(video_id):
            cache.put(video_id, Thumbnail(data, "image/png"))
        thumbnail = cache.get(video_id)
        ```
    """

    def __init__(self) -> None:
        self._entries: dict[UUID, Thumbnail] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}
        # holders plus waiters per lock; the lock is dropped when this reaches zero
        self._lock_users: dict[UUID, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, video_id: object) -> bool:
        return video_id in self._entries

    @asynccontextmanager
    async def locked(self, video_id: UUID) -> AsyncIterator[None]:
        """Hold the write lock for ``video_id``."""
        lock = self._locks.setdefault(video_id, asyncio.Lock())
        self._lock_users[video_id] = self._lock_users.get(video_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[video_id] -= 1
            if not self._lock_users[video_id]:
                del self._lock_users[video_id]
                del self._locks[video_id]

    def get(self, video_id: UUID) -> Thumbnail | None:
        return self._entries.get(video_id)

    def put(self, video_id: UUID, thumbnail: Thumbnail) -> None:
        self._entries[video_id] = thumbnail

    def remove(self, video_id: UUID) -> None:
        """Drop the entry for ``video_id`` if present."""
        self._entries.pop(video_id, None)
