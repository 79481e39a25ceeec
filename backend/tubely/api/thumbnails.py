"""
FastAPI router serving cached thumbnails.

``GET /thumbnails/{video_id}`` returns the most recently uploaded thumbnail
bytes with their media type, straight from the in-process cache.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from tubely.api.deps import get_thumbnail_cache
from tubely.api.videos import ErrorResponse
from tubely.core.auth import parse_video_id
from tubely.exceptions import RecordNotFound
from tubely.services.thumbnail_cache import ThumbnailCache


router = APIRouter()


@router.get(
    "/thumbnails/{video_id}",
    response_class=Response,
    summary="Get a cached thumbnail",
    responses={
        200: {"content": {"image/*": {}}, "description": "Thumbnail bytes"},
        400: {"model": ErrorResponse, "description": "Invalid video id"},
        404: {"model": ErrorResponse, "description": "No thumbnail cached for this video"},
    },
)
async def get_thumbnail(
    video_id: str,
    thumbnails: ThumbnailCache = Depends(get_thumbnail_cache),
) -> Response:
    video_uuid = parse_video_id(video_id)

    thumbnail = thumbnails.get(video_uuid)
    if thumbnail is None:
        raise RecordNotFound("Thumbnail not found")

    return Response(content=thumbnail.data, media_type=thumbnail.media_type)
