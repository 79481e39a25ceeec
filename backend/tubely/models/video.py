"""
Video Pydantic models for Tubely.

This module defines the Video record that both upload pipelines read and
update. The pipelines only rely on ``id`` and ``user_id`` for lookup and
ownership and write a single URL field plus ``updated_at``; the remaining
fields are carried through unchanged and echoed back in API responses.

Records are stored in MongoDB with the UUID rendered as a string ``_id``.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Video(BaseModel):
    """
    Pydantic model for a video record.

    Attributes:
        id: Video identifier
        user_id: Identifier of the owning user
        title: Display title
        description: Free-form description
        thumbnail_url: Public URL of the thumbnail, set by a successful thumbnail upload
        video_url: Public URL of the processed video, set by a successful video upload
        created_at: Record creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)

    Example:
        ```python
        video = Video(user_id=owner_id, title="Boots", description="Unboxing")
        video.set_video_url("https://d1234.cloudfront.net/landscape/abc.mp4")
        ```
    """

    id: UUID = Field(default_factory=uuid4, description="Video identifier")

    user_id: UUID = Field(..., description="Identifier of the owning user")

    title: str = Field(default="", max_length=500, description="Display title")

    description: str = Field(default="", max_length=5000, description="Video description")

    thumbnail_url: str | None = Field(default=None, description="Public thumbnail URL")

    video_url: str | None = Field(default=None, description="Public URL of the processed video")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Record creation timestamp (UTC)"
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Last modification timestamp (UTC)"
    )

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "user_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                "title": "Boots unboxing",
                "description": "A look at the new boots",
                "thumbnail_url": "http://localhost:8091/assets/abc.jpg",
                "video_url": "https://d1234.cloudfront.net/landscape/abc.mp4",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )

    # =========================================================================
    # MUTATORS
    # =========================================================================

    def set_thumbnail_url(self, url: str) -> None:
        self.thumbnail_url = url
        self.updated_at = datetime.now(UTC)

    def set_video_url(self, url: str) -> None:
        self.video_url = url
        self.updated_at = datetime.now(UTC)

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    # =========================================================================
    # MONGODB CONVERSION
    # =========================================================================

    def to_document(self) -> dict[str, Any]:
        """
        Convert the record to a MongoDB document.

        UUIDs are stored as strings so the collection does not depend on the
        driver's UUID representation setting.
        """
        document = self.model_dump(mode="python")
        document["_id"] = str(document.pop("id"))
        document["user_id"] = str(document["user_id"])
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Video":
        """Build a Video from a MongoDB document produced by ``to_document``."""
        data = dict(document)
        data["id"] = data.pop("_id")
        return cls.model_validate(data)
