"""
FastAPI router for video uploads.

Endpoints:
- POST /videos/{video_id}/thumbnail - multipart field ``thumbnail``, image/*, 10 MiB body cap
- POST /videos/{video_id}/video - multipart field ``video``, video/mp4 only, 1 GiB body cap

Both endpoints require ``Authorization: Bearer <jwt>`` and only the owner of
the video may upload. Neither declares ``File()`` parameters: the body is
parsed by ``read_upload`` so the size budget applies before FastAPI would
buffer it. On success the updated video record is returned.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from tubely.api.deps import get_upload_service
from tubely.api.intake import read_upload
from tubely.config import Settings, get_settings
from tubely.core.auth import get_current_principal, parse_video_id
from tubely.models.video import Video
from tubely.services.upload_service import UploadService
from tubely.utils.file_validator import validate_thumbnail_media_type, validate_video_media_type


# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter()

THUMBNAIL_FIELD = "thumbnail"
VIDEO_FIELD = "video"


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Human-readable error message")


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid id, form or media type"},
    401: {"model": ErrorResponse, "description": "Missing or invalid token, or not the owner"},
    404: {"model": ErrorResponse, "description": "Video not found"},
    413: {"model": ErrorResponse, "description": "Request body too large"},
    500: {"model": ErrorResponse, "description": "Processing, storage or persistence failure"},
}


@router.post(
    "/videos/{video_id}/thumbnail",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload a thumbnail",
    responses=ERROR_RESPONSES,
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    """
    Store an image as the video's thumbnail.

    The image is saved under the asset root, cached in memory for
    ``GET /thumbnails/{video_id}``, and its URL written to ``thumbnail_url``.
    """
    video_uuid = parse_video_id(video_id)
    principal_id = await get_current_principal(request, settings)

    logger.info(
        "Uploading thumbnail",
        extra={"video_id": str(video_uuid), "user_id": str(principal_id)},
    )

    async with read_upload(
        request, THUMBNAIL_FIELD, settings.max_thumbnail_upload_bytes
    ) as upload:
        media_type = validate_thumbnail_media_type(upload.media_type)
        return await upload_service.upload_thumbnail(
            video_uuid, principal_id, upload.file, media_type
        )


@router.post(
    "/videos/{video_id}/video",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload a video",
    responses=ERROR_RESPONSES,
)
async def upload_video(
    video_id: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    """
    Process an MP4 upload and publish it.

    The file is remuxed for fast start, classified by aspect ratio and
    published to object storage; ``video_url`` points at the published copy.
    """
    video_uuid = parse_video_id(video_id)
    principal_id = await get_current_principal(request, settings)

    logger.info(
        "Uploading video",
        extra={"video_id": str(video_uuid), "user_id": str(principal_id)},
    )

    async with read_upload(request, VIDEO_FIELD, settings.max_video_upload_bytes) as upload:
        media_type = validate_video_media_type(upload.media_type)
        return await upload_service.upload_video(
            video_uuid, principal_id, upload.file, media_type
        )
