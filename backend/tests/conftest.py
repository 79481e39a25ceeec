"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides the shared fixtures used across the suite:
- Settings pointing at per-test temporary asset and staging directories
- An in-memory VideoStore and a fake MediaProcessor
- A mocked StorageClient (spec'd on the real class)
- JWT factory producing HS256 tokens with python-jose
- A FastAPI app wired through ``app.dependency_overrides`` and its TestClient
- Sample JPEG bytes generated with Pillow and a raw multipart body builder
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from io import BytesIO
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from PIL import Image

from tubely.api.deps import get_media_processor, get_storage, get_video_store
from tubely.config import Settings, get_settings
from tubely.core.storage import StorageClient
from tubely.exceptions import PersistenceError
from tubely.main import create_app
from tubely.models.video import Video


TEST_SECRET = "test-secret-key-for-jwt-signing-minimum-32-chars"
TEST_ISSUER = "tubely-access"
TEST_DISTRIBUTION = "https://d1234.cloudfront.net"

TEST_THUMBNAIL_BUDGET = 64 * 1024
TEST_VIDEO_BUDGET = 256 * 1024


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


# ==============================================================================
# Test Doubles
# ==============================================================================


class InMemoryVideoStore:
    """
    VideoStore keeping records in a dict.

    Records are copied on the way in and out so callers cannot mutate the
    stored state without going through ``update_video``.
    """

    def __init__(self) -> None:
        self.videos: dict[UUID, Video] = {}
        self.update_calls = 0
        self.fail_updates = False

    def add(self, video: Video) -> Video:
        self.videos[video.id] = video.model_copy(deep=True)
        return video

    async def get_video(self, video_id: UUID) -> Video | None:
        video = self.videos.get(video_id)
        return video.model_copy(deep=True) if video is not None else None

    async def update_video(self, video: Video) -> None:
        self.update_calls += 1
        if self.fail_updates:
            raise PersistenceError("Couldn't update video")
        self.videos[video.id] = video.model_copy(deep=True)


class FakeMediaProcessor:
    """MediaProcessor that copies the input instead of running ffmpeg."""

    def __init__(self, aspect_ratio: str = "16:9") -> None:
        self.aspect_ratio = aspect_ratio
        self.inspected: list[Path] = []
        self.normalized: list[Path] = []
        self.processed_paths: list[Path] = []

    @property
    def calls(self) -> int:
        return len(self.inspected) + len(self.normalized)

    async def inspect(self, path: Path) -> str:
        self.inspected.append(path)
        return self.aspect_ratio

    async def normalize(self, path: Path) -> Path:
        self.normalized.append(path)
        output = Path(f"{path}.processing")
        output.write_bytes(b"faststart:" + path.read_bytes())
        self.processed_paths.append(output)
        return output


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    path = tmp_path / "assets"
    path.mkdir()
    return path


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(assets_dir: Path, staging_dir: Path) -> Settings:
    """
    Settings isolated from the environment.

    Budgets are reduced so over-budget bodies stay small.
    """
    return Settings(
        app_env="testing",
        app_name="tubely-test",
        debug=False,
        jwt_secret=TEST_SECRET,
        jwt_issuer=TEST_ISSUER,
        port=8091,
        assets_root=assets_dir,
        staging_dir=staging_dir,
        s3_bucket="test-bucket",
        s3_region="us-east-1",
        s3_cf_distribution=TEST_DISTRIBUTION,
        mongodb_uri="mongodb://localhost:27017",
        mongodb_db_name="test_tubely",
        max_thumbnail_upload_bytes=TEST_THUMBNAIL_BUDGET,
        max_video_upload_bytes=TEST_VIDEO_BUDGET,
    )


# ==============================================================================
# Collaborator Fixtures
# ==============================================================================


@pytest.fixture
def video_store() -> InMemoryVideoStore:
    return InMemoryVideoStore()


@pytest.fixture
def media_processor() -> FakeMediaProcessor:
    return FakeMediaProcessor()


@pytest.fixture
def mock_storage() -> Mock:
    """
    Mocked StorageClient.

    ``put_object`` / ``delete_object`` are AsyncMocks; ``public_url`` builds
    URLs against the test distribution.
    """
    mock = Mock(spec=StorageClient)
    mock.bucket_name = "test-bucket"
    mock.distribution_url = TEST_DISTRIBUTION
    mock.put_object = AsyncMock(return_value=None)
    mock.delete_object = AsyncMock(return_value=None)
    mock.public_url = Mock(side_effect=lambda key: f"{TEST_DISTRIBUTION}/{key}")
    return mock


# ==============================================================================
# Identity Fixtures
# ==============================================================================


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_token() -> Callable[..., str]:
    """
    Factory for HS256 access tokens.

    Keyword overrides replace or (with None) remove default claims.
    """

    def _make_token(
        subject: UUID | str,
        secret: str = TEST_SECRET,
        expires_in: timedelta = timedelta(hours=1),
        **claims: Any,
    ) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(subject),
            "iss": TEST_ISSUER,
            "iat": now,
            "exp": now + expires_in,
        }
        for key, value in claims.items():
            if value is None:
                payload.pop(key, None)
            else:
                payload[key] = value
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make_token


@pytest.fixture
def auth_headers(make_token: Callable[..., str], owner_id: UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(owner_id)}"}


@pytest.fixture
def other_auth_headers(make_token: Callable[..., str], other_user_id: UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(other_user_id)}"}


@pytest.fixture
def video(video_store: InMemoryVideoStore, owner_id: UUID) -> Video:
    """A stored video record owned by ``owner_id``."""
    return video_store.add(
        Video(user_id=owner_id, title="Boots unboxing", description="A look at the new boots")
    )


# ==============================================================================
# Application Fixtures
# ==============================================================================


@pytest.fixture
def app(
    test_settings: Settings,
    video_store: InMemoryVideoStore,
    media_processor: FakeMediaProcessor,
    mock_storage: Mock,
) -> FastAPI:
    application = create_app(test_settings)
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_video_store] = lambda: video_store
    application.dependency_overrides[get_storage] = lambda: mock_storage
    application.dependency_overrides[get_media_processor] = lambda: media_processor
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """TestClient without lifespan, so no MongoDB connection is attempted."""
    return TestClient(app)


# ==============================================================================
# Sample Content
# ==============================================================================


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A real JPEG padded after its EOI marker to exactly 2 KiB."""
    image = Image.new("RGB", (32, 18), color=(30, 120, 200))
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=85)
    data = buffer.getvalue()
    return data + b"\x00" * (2048 - len(data))


@pytest.fixture
def png_bytes() -> bytes:
    image = Image.new("RGB", (16, 9), color=(200, 30, 30))
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def mp4_bytes() -> bytes:
    """Bytes shaped like an MP4 header; only the fake processor reads them."""
    return b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + b"\x00" * 4096


def _build_multipart(
    field: str,
    filename: str,
    data: bytes,
    content_type: str | None,
    boundary: str = "tubelyboundary",
) -> tuple[bytes, str]:
    """
    Build a multipart/form-data body by hand.

    Used where httpx would fill in a Content-Type the test needs to omit.

    Returns:
        (body, request Content-Type header)
    """
    lines = [
        f"--{boundary}\r\n".encode(),
        f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'.encode(),
    ]
    if content_type is not None:
        lines.append(f"Content-Type: {content_type}\r\n".encode())
    lines.extend([b"\r\n", data, f"\r\n--{boundary}--\r\n".encode()])
    return b"".join(lines), f"multipart/form-data; boundary={boundary}"


@pytest.fixture
def build_multipart() -> Callable[..., tuple[bytes, str]]:
    return _build_multipart

