"""
Tubely S3-Compatible Object Storage Client

This module publishes processed videos to S3-compatible object storage using
boto3. The client works against AWS S3 or MinIO depending on whether an
endpoint URL is configured.

Key Features:
- Single-call ``put_object`` publish of an in-memory payload
- Public URL construction from the distribution base URL and object key
- Best-effort ``delete_object`` for compensating a failed record update
- Blocking boto3 calls executed in worker threads via ``async_wrap``

Failures from botocore (``ClientError`` / ``BotoCoreError``) surface as
``PublishError`` so the pipeline never mutates the video record after a
failed publish.
"""

import asyncio
import logging

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import boto3

from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings
from tubely.exceptions import PublishError


# Configure module-level logger
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Singleton container for storage client instance
_singleton_container: dict[str, "StorageClient"] = {}


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator to run a blocking boto3 call in a worker thread.

    Args:
        func: The synchronous function to wrap

    Returns:
        An async function that executes the original via ``asyncio.to_thread``
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


class StorageClient:
    """
    S3-compatible storage client for published videos.

    Attributes:
        s3_client: Initialized boto3 S3 client
        bucket_name: Target bucket for all operations
        distribution_url: Base URL under which published keys are served

    Example usage:
        ```python
        storage = get_storage_client(settings)
        await storage.put_object("landscape/abc.mp4", payload, "video/mp4")
        url = storage.public_url("landscape/abc.mp4")
        ```
    """

    def __init__(self, settings: Settings, s3_client: Any | None = None) -> None:
        """
        Initialize the S3 storage client.

        When ``settings.s3_endpoint_url`` is None boto3 targets AWS S3;
        otherwise it connects to the given endpoint (e.g. MinIO). Credentials
        fall back to boto3's default chain when not configured.

        Args:
            settings: Application settings with S3 configuration.
            s3_client: Pre-built boto3 client, mainly for tests.
        """
        self.bucket_name = settings.s3_bucket
        self.distribution_url = settings.s3_cf_distribution.rstrip("/")

        if s3_client is not None:
            self.s3_client = s3_client
            return

        client_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 3, "mode": "standard"},
        )

        self.s3_client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            region_name=settings.s3_region,
            config=client_config,
        )

        logger.info(
            "S3 storage client initialized",
            extra={
                "bucket": self.bucket_name,
                "region": settings.s3_region,
                "endpoint": settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    def public_url(self, key: str) -> str:
        """Return ``<distribution>/<key>``."""
        return f"{self.distribution_url}/{key}"

    async def put_object(self, key: str, body: bytes, content_type: str) -> None:
        """
        Upload ``body`` to ``key`` in a single request.

        Args:
            key: Object key, e.g. ``landscape/<name>.mp4``
            body: Complete object payload
            content_type: Content-Type stored with the object

        Raises:
            PublishError: If S3 rejects the request or the transport fails.
        """

        @async_wrap
        def _put() -> None:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
            )

        try:
            await _put()
        except ClientError as e:
            message = e.response.get("Error", {}).get("Message", str(e))
            logger.error(
                "Failed to publish object",
                extra={"key": key, "bucket": self.bucket_name, "error": message},
            )
            raise PublishError("Error uploading file to S3") from e
        except BotoCoreError as e:
            logger.error(
                "Storage transport error during publish",
                extra={"key": key, "bucket": self.bucket_name, "error": str(e)},
            )
            raise PublishError("Error uploading file to S3") from e

        logger.info(
            "Published object",
            extra={"key": key, "bucket": self.bucket_name, "size": len(body)},
        )

    async def delete_object(self, key: str) -> None:
        """
        Delete ``key``. Deleting a missing key is not an error on S3.

        Raises:
            PublishError: If the delete request fails.
        """

        @async_wrap
        def _delete() -> None:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)

        try:
            await _delete()
        except (ClientError, BotoCoreError) as e:
            raise PublishError(f"Error deleting {key} from S3") from e

        logger.info("Deleted object", extra={"key": key, "bucket": self.bucket_name})


def get_storage_client(settings: Settings) -> StorageClient:
    """
    Get the shared StorageClient instance, creating it on first use.

    boto3 clients are thread-safe, so a single instance serves every request.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageClient(settings)
    return _singleton_container["instance"]
