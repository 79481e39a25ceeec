"""
Tubely API Package.

Router Structure:
    - videos.py: thumbnail and video upload endpoints
    - thumbnails.py: cached thumbnail serving
    - intake.py: bounded multipart parsing shared by the upload endpoints
    - deps.py: dependency providers for services and collaborators

``api_router`` aggregates every router for registration in ``tubely.main``.
"""

from fastapi import APIRouter

from tubely.api.thumbnails import router as thumbnails_router
from tubely.api.videos import router as videos_router


api_router = APIRouter()

api_router.include_router(videos_router, tags=["videos"])
api_router.include_router(thumbnails_router, tags=["thumbnails"])
