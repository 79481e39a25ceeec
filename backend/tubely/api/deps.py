"""
Dependency providers for the upload endpoints.

Each collaborator of ``UploadService`` comes from its own provider so tests
can swap any one of them through ``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from tubely.config import Settings, get_settings
from tubely.core.database import MongoVideoStore, VideoStore, get_db_client
from tubely.core.storage import StorageClient, get_storage_client
from tubely.services.media_processor import FFmpegMediaProcessor, MediaProcessor
from tubely.services.thumbnail_cache import ThumbnailCache
from tubely.services.upload_service import UploadService


def get_video_store() -> VideoStore:
    """Record store over the ``videos`` collection of the connected database."""
    return MongoVideoStore(get_db_client().get_videos_collection())


def get_storage(settings: Settings = Depends(get_settings)) -> StorageClient:
    return get_storage_client(settings)


def get_media_processor(settings: Settings = Depends(get_settings)) -> MediaProcessor:
    return FFmpegMediaProcessor.from_settings(settings)


def get_thumbnail_cache(request: Request) -> ThumbnailCache:
    """The application-wide cache created in the lifespan."""
    return request.app.state.thumbnail_cache


def get_upload_service(
    store: VideoStore = Depends(get_video_store),
    storage: StorageClient = Depends(get_storage),
    processor: MediaProcessor = Depends(get_media_processor),
    thumbnails: ThumbnailCache = Depends(get_thumbnail_cache),
    settings: Settings = Depends(get_settings),
) -> UploadService:
    return UploadService(store, storage, processor, thumbnails, settings)
