"""
Tubely MongoDB Record Store Module

This module provides the video record store used by the upload pipelines:
- ``VideoStore``: the two-method interface the pipelines depend on
- ``MongoVideoStore``: Motor-backed implementation over the ``videos`` collection
- ``DatabaseClient``: connection lifecycle with retry/backoff
- ``init_db`` / ``close_db`` / ``get_db_client``: FastAPI lifespan helpers

All database operations are async (Motor) so request handlers never block
on MongoDB I/O.
"""

import asyncio
import logging

from typing import Protocol
from uuid import UUID

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pydantic import ValidationError
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from tubely.config import Settings
from tubely.exceptions import PersistenceError, RecordStoreError
from tubely.models.video import Video


# Configure module logger for structured logging
logger = logging.getLogger(__name__)

VIDEOS_COLLECTION = "videos"


# =============================================================================
# Record Store Interface
# =============================================================================


class VideoStore(Protocol):
    """Persistence operations required by the upload pipelines."""

    async def get_video(self, video_id: UUID) -> Video | None:
        """Return the record for ``video_id`` or None when it does not exist."""
        ...

    async def update_video(self, video: Video) -> None:
        """Persist ``video``, replacing the stored record."""
        ...


class MongoVideoStore:
    """
    VideoStore backed by a Motor collection.

    Example usage:
        ```python
        store = MongoVideoStore(get_db_client().get_videos_collection())
        video = await store.get_video(video_id)
        ```
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection

    async def get_video(self, video_id: UUID) -> Video | None:
        """
        Fetch a video record.

        Raises:
            RecordStoreError: If MongoDB fails or the stored document is invalid.
        """
        try:
            document = await self._collection.find_one({"_id": str(video_id)})
        except PyMongoError as e:
            logger.exception("Failed to fetch video record", extra={"video_id": str(video_id)})
            raise RecordStoreError("Couldn't get video") from e

        if document is None:
            return None

        try:
            return Video.from_document(document)
        except ValidationError as e:
            logger.exception("Stored video record is invalid", extra={"video_id": str(video_id)})
            raise RecordStoreError("Couldn't get video") from e

    async def update_video(self, video: Video) -> None:
        """
        Replace the stored record with ``video``.

        Raises:
            PersistenceError: If MongoDB fails or no record matched.
        """
        document = video.to_document()
        try:
            result = await self._collection.replace_one({"_id": document["_id"]}, document)
        except PyMongoError as e:
            logger.exception("Failed to update video record", extra={"video_id": str(video.id)})
            raise PersistenceError("Couldn't update video") from e

        if result.matched_count == 0:
            logger.error("Video record vanished before update", extra={"video_id": str(video.id)})
            raise PersistenceError("Couldn't update video")

    async def create_video(self, video: Video) -> Video:
        """Insert a new record. Used by the seeding script and integration setups."""
        try:
            await self._collection.insert_one(video.to_document())
        except PyMongoError as e:
            logger.exception("Failed to create video record", extra={"video_id": str(video.id)})
            raise PersistenceError("Couldn't create video") from e
        return video


# =============================================================================
# Connection Lifecycle
# =============================================================================


class DatabaseClient:
    """
    Async MongoDB client wrapper with connection pooling and lifecycle management.

    Attributes:
        _mongodb_uri: MongoDB connection URI
        _db_name: Database name to connect to
        _min_pool_size: Minimum number of connections in pool
        _max_pool_size: Maximum number of connections in pool
        _client: Motor async MongoDB client instance
        _database: Motor async database instance

    Example usage:
        ```python
        db_client = DatabaseClient(settings)
        await db_client.connect()
        store = MongoVideoStore(db_client.get_videos_collection())
        await db_client.close()
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self._mongodb_uri = settings.mongodb_uri
        self._db_name = settings.mongodb_db_name
        self._min_pool_size = settings.mongodb_min_pool_size
        self._max_pool_size = settings.mongodb_max_pool_size
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None

    async def connect(self, max_retries: int = 3) -> bool:
        """
        Establish MongoDB connection with retry logic and exponential backoff.

        Each attempt creates the Motor client and verifies it with a ``ping``.
        Delays between attempts double starting at one second.

        Returns:
            bool: True if connection successful, False after all retries failed.
        """
        retry_delay = 1.0

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(
                    "Attempting MongoDB connection",
                    extra={"attempt": attempt, "max_retries": max_retries, "db": self._db_name},
                )

                self._client = AsyncIOMotorClient(
                    self._mongodb_uri,
                    minPoolSize=self._min_pool_size,
                    maxPoolSize=self._max_pool_size,
                    serverSelectionTimeoutMS=5000,
                )
                self._database = self._client[self._db_name]

                await self._client.admin.command("ping")

                logger.info("Connected to MongoDB", extra={"db": self._db_name})
                return True

            except (ServerSelectionTimeoutError, ConnectionFailure):
                logger.exception(f"MongoDB connection failure (attempt {attempt}/{max_retries})")
                if attempt < max_retries:
                    logger.warning(f"Retrying in {retry_delay} seconds...")
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2

        logger.error(
            f"Failed to connect to MongoDB after {max_retries} attempts. "
            "Check connection URI and server availability."
        )
        return False

    async def close(self) -> None:
        """Close the Motor client. Safe to call when not connected."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None
            logger.info(f"MongoDB connection closed for database: {self._db_name}")

    def get_database(self) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        if self._database is None:
            raise RuntimeError(
                "MongoDB database not available. Call connect() first or check connection status."
            )
        return self._database

    def get_videos_collection(self) -> AsyncIOMotorCollection:
        """
        Get the videos collection.

        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        return self.get_database()[VIDEOS_COLLECTION]

    async def create_indexes(self) -> None:
        """Create indexes used by record lookups (owner listing, recency)."""
        videos = self.get_database()[VIDEOS_COLLECTION]
        await videos.create_index("user_id")
        await videos.create_index([("user_id", 1), ("created_at", -1)])
        logger.info(f"Created indexes on {VIDEOS_COLLECTION} collection")


# Container class for database client singleton to avoid global statements
class _DatabaseClientContainer:
    client: DatabaseClient | None = None


_container = _DatabaseClientContainer()


async def init_db(settings: Settings | None = None) -> DatabaseClient:
    """
    Initialize the global database client singleton.

    Connects to MongoDB and creates indexes. Called from the FastAPI lifespan.

    Raises:
        RuntimeError: If connection to MongoDB fails after all retries.
    """
    if _container.client is not None:
        logger.warning("Database client already initialized, returning existing instance")
        return _container.client

    if settings is None:
        settings = Settings()

    client = DatabaseClient(settings)
    if not await client.connect():
        raise RuntimeError(
            "Failed to establish MongoDB connection. "
            "Check mongodb_uri configuration and server availability."
        )

    await client.create_indexes()
    _container.client = client

    logger.info("MongoDB database client initialization complete")
    return client


async def close_db() -> None:
    """Close the global database client connection."""
    if _container.client is not None:
        await _container.client.close()
        _container.client = None


def get_db_client() -> DatabaseClient:
    """
    Get the global database client singleton instance.

    Raises:
        RuntimeError: If database client has not been initialized.
    """
    if _container.client is None:
        raise RuntimeError(
            "Database client not initialized. Call init_db() first during application startup."
        )
    return _container.client
