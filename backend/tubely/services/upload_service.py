"""
Tubely Upload Service Module

This module implements the two upload pipelines behind the HTTP endpoints:

Thumbnail pipeline:
    ownership check -> read image (already size-bounded by intake)
    -> persist under the asset root -> cache insert + record update
    (rolled back together on failure, under the per-video cache lock)

Video pipeline:
    ownership check -> stage to scratch disk -> fast-start remux
    -> probe aspect ratio of the original -> classify -> publish to S3
    -> record update (published object deleted best-effort on failure)

Both pipelines finish with the record updater, which re-reads the record
and re-checks ownership immediately before writing so a concurrent change
of ownership is never overwritten.
"""

import logging

from collections.abc import Callable
from pathlib import Path
from uuid import UUID

import aiofiles
import aiofiles.os

from tubely.config import Settings
from tubely.core.auth import load_owned_video
from tubely.core.database import VideoStore
from tubely.core.storage import StorageClient
from tubely.exceptions import PersistenceError, PublishError, ThumbnailStorageError, TubelyError
from tubely.models.video import Video
from tubely.services.media_processor import (
    PROCESSED_SUFFIX,
    MediaProcessor,
    classify_aspect_ratio,
)
from tubely.services.staging import AsyncReadable, read_file, stage_upload
from tubely.services.thumbnail_cache import Thumbnail, ThumbnailCache
from tubely.utils.file_validator import build_asset_filename
from tubely.utils.logger import add_log_context


# Configure module logger
logger = logging.getLogger(__name__)

# Name hint for staged videos; only its suffix is kept
VIDEO_STAGING_NAME = "tubely-upload.mp4"


class UploadService:
    """
    Orchestrates thumbnail and video uploads for a single video record.

    Attributes:
        store: Record store holding video records
        storage: Object storage client used to publish videos
        processor: Media inspector/normalizer
        thumbnails: Process-wide thumbnail cache
        settings: Application settings (asset root, staging dir, port)

    Example:
        ```python
        service = UploadService(store, storage, processor, thumbnails, settings)
        video = await service.upload_video(video_id, user_id, upload_file, "video/mp4")
        print(video.video_url)
        ```
    """

    def __init__(
        self,
        store: VideoStore,
        storage: StorageClient,
        processor: MediaProcessor,
        thumbnails: ThumbnailCache,
        settings: Settings,
    ) -> None:
        self.store = store
        self.storage = storage
        self.processor = processor
        self.thumbnails = thumbnails
        self.settings = settings

    # =========================================================================
    # Thumbnail pipeline
    # =========================================================================

    async def upload_thumbnail(
        self,
        video_id: UUID,
        principal_id: UUID,
        source: AsyncReadable,
        media_type: str,
    ) -> Video:
        """
        Store a thumbnail for ``video_id`` and point the record at it.

        The image is written to ``<assets_root>/<random>.<ext>`` and cached
        in memory. If the record update fails, both the cache entry and the
        file are removed before the error propagates.

        Args:
            video_id: Target video
            principal_id: Authenticated user
            source: Image stream
            media_type: Validated ``image/*`` media type

        Returns:
            Video: The updated record.

        Raises:
            RecordNotFound, NotAuthorized: Record missing or not owned
            ThumbnailStorageError: The image could not be read or written
            PersistenceError: The record update failed
        """
        ctx_logger = add_log_context(logger, video_id=str(video_id), user_id=str(principal_id))

        await load_owned_video(self.store, video_id, principal_id)

        try:
            data = await source.read()
        except OSError as e:
            raise ThumbnailStorageError("Unable to read file") from e

        filename = build_asset_filename(media_type)
        asset_path = Path(self.settings.assets_root) / filename
        await self._write_asset(asset_path, data)
        thumbnail_url = f"{self.settings.assets_base_url}/{filename}"

        async with self.thumbnails.locked(video_id):
            self.thumbnails.put(video_id, Thumbnail(data=data, media_type=media_type))
            try:
                video = await self._update_record(
                    video_id, principal_id, lambda v: v.set_thumbnail_url(thumbnail_url)
                )
            except Exception:
                self.thumbnails.remove(video_id)
                await self._discard_asset(asset_path)
                ctx_logger.warning("Thumbnail rolled back", extra={"asset": filename})
                raise

        ctx_logger.info(
            "Thumbnail stored",
            extra={"asset": filename, "size": len(data), "media_type": media_type},
        )
        return video

    async def _write_asset(self, path: Path, data: bytes) -> None:
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Failed to write thumbnail", extra={"path": str(path), "error": str(e)})
            raise ThumbnailStorageError("Unable to write file to disk") from e

    async def _discard_asset(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove thumbnail", extra={"path": str(path), "error": str(e)})

    # =========================================================================
    # Video pipeline
    # =========================================================================

    async def upload_video(
        self,
        video_id: UUID,
        principal_id: UUID,
        source: AsyncReadable,
        media_type: str,
    ) -> Video:
        """
        Process and publish a video for ``video_id``.

        The upload is staged to disk, remuxed for fast start, classified by
        the original file's display aspect ratio and published under
        ``<category>/<random>.mp4``. Staged and remuxed files are removed on
        every exit path.

        Args:
            video_id: Target video
            principal_id: Authenticated user
            source: Video stream
            media_type: Validated media type (``video/mp4``)

        Returns:
            Video: The updated record with ``video_url`` set.

        Raises:
            RecordNotFound, NotAuthorized: Record missing or not owned
            StagingIOError: Scratch disk failure
            ProbeExecutionError, ProbeOutputError, NoStreamsFound: Inspection failed
            TranscodeExecutionError: Remux failed
            PublishError: S3 rejected the upload
            PersistenceError: The record update failed
        """
        ctx_logger = add_log_context(logger, video_id=str(video_id), user_id=str(principal_id))

        await load_owned_video(self.store, video_id, principal_id)

        async with stage_upload(source, VIDEO_STAGING_NAME, self.settings.staging_dir) as staged:
            staged.derived_path(PROCESSED_SUFFIX)
            processed_path = await self.processor.normalize(staged.path)
            staged.adopt(processed_path)

            aspect_ratio = await self.processor.inspect(staged.path)
            category = classify_aspect_ratio(aspect_ratio)

            key = f"{category.value}/{build_asset_filename(media_type)}"
            payload = await read_file(processed_path)
            await self.storage.put_object(key, payload, media_type)

        video_url = self.storage.public_url(key)
        try:
            video = await self._update_record(
                video_id, principal_id, lambda v: v.set_video_url(video_url)
            )
        except Exception:
            await self._retract_published(key)
            raise

        ctx_logger.info(
            "Video published",
            extra={
                "key": key,
                "aspect_ratio": aspect_ratio,
                "category": category.value,
                "size": len(payload),
            },
        )
        return video

    async def _retract_published(self, key: str) -> None:
        try:
            await self.storage.delete_object(key)
        except PublishError:
            logger.exception("Failed to delete orphaned object", extra={"key": key})

    # =========================================================================
    # Record updater
    # =========================================================================

    async def _update_record(
        self,
        video_id: UUID,
        principal_id: UUID,
        apply: Callable[[Video], None],
    ) -> Video:
        """
        Re-read the record, re-check ownership, apply a change and persist it.

        Raises:
            RecordNotFound: The record disappeared
            NotAuthorized: Ownership changed since the request started
            PersistenceError: The store rejected the write
        """
        video = await load_owned_video(self.store, video_id, principal_id)
        apply(video)

        try:
            await self.store.update_video(video)
        except PersistenceError:
            raise
        except TubelyError as e:
            raise PersistenceError("Couldn't update video") from e

        return video
