"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely upload service
using Pydantic Settings. It loads and validates the environment variables
required for:
- Application settings (name, environment, debug mode, logging)
- Bearer token validation (signing secret, expected issuer)
- Local asset storage for thumbnails and scratch storage for staged uploads
- S3-compatible object storage and the distribution used for public URLs
- MongoDB connection for the video record store
- Upload size budgets and external media tool invocation

All settings support environment variable overrides and .env file loading.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MEBIBYTE = 1 << 20
GIBIBYTE = 1 << 30


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely upload service.

    Values are read from environment variables (case-insensitive) and an
    optional ``.env`` file.

    Configuration Categories:
    - Application: name, environment, debug mode, logging, bind address
    - Authentication: JWT signing secret and expected issuer
    - Local storage: thumbnail asset root and staging scratch directory
    - S3: bucket, region, optional endpoint and the distribution base URL
    - MongoDB: record store connection
    - Uploads: per-endpoint body budgets
    - Media tools: ffprobe/ffmpeg binaries and their timeout

    Example usage:
        ```python
        from tubely.config import get_settings

        settings = get_settings()
        print(f"Publishing to bucket: {settings.s3_bucket}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(default="tubely", description="Service name used in logs and docs")

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable debug mode and auto-reload")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(default=False, description="Emit structured JSON log lines")

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    # =========================================================================
    # Authentication
    # =========================================================================

    jwt_secret: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Process-wide secret used to verify HS256 bearer tokens",
        min_length=32,
    )

    jwt_issuer: str = Field(
        default="tubely-access",
        description="Issuer claim that accepted access tokens must carry",
    )

    # =========================================================================
    # Local Storage
    # =========================================================================

    assets_root: Path = Field(
        default=Path("assets"),
        description="Directory where uploaded thumbnails are persisted and served from",
    )

    staging_dir: Path | None = Field(
        default=None,
        description="Scratch directory for staged uploads (system temp dir when unset)",
    )

    # =========================================================================
    # S3 Storage Configuration
    # =========================================================================

    s3_bucket: str = Field(default="tubely-videos", description="Bucket receiving processed videos")

    s3_region: str = Field(default="us-east-1", description="Region of the S3 bucket")

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None, description="Access key ID (None uses the default credential chain)"
    )

    s3_secret_access_key: str | None = Field(
        default=None, description="Secret access key (None uses the default credential chain)"
    )

    s3_cf_distribution: str = Field(
        default="https://d1234.cloudfront.net",
        description="Distribution base URL that published object keys are appended to",
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI for the video record store",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum MongoDB connection pool size", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum MongoDB connection pool size", ge=1
    )

    # =========================================================================
    # Upload Budgets
    # =========================================================================

    max_thumbnail_upload_bytes: int = Field(
        default=10 * MEBIBYTE,
        description="Maximum request body size for thumbnail uploads",
        ge=1,
    )

    max_video_upload_bytes: int = Field(
        default=1 * GIBIBYTE,
        description="Maximum request body size for video uploads",
        ge=1,
    )

    # =========================================================================
    # Media Tools
    # =========================================================================

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    media_command_timeout_seconds: float = Field(
        default=300.0,
        description="Seconds an ffprobe/ffmpeg invocation may run before it is killed",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("s3_cf_distribution")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def assets_base_url(self) -> str:
        """Base URL under which files in ``assets_root`` are served."""
        return f"http://localhost:{self.port}/assets"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The ``lru_cache`` decorator ensures the environment is read once and the
    same instance is reused for the lifetime of the process. FastAPI routes
    depend on this function, so tests replace it through
    ``app.dependency_overrides``.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()
