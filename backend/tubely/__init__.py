"""
Tubely Backend Application Package

This package contains the Tubely FastAPI application that accepts thumbnail
and video uploads for existing video records. The platform provides:

- Bearer-token authentication and ownership checks against the video record
- Size-capped multipart intake for thumbnails (10 MiB) and videos (1 GiB)
- Staging of uploads to scratch storage with guaranteed cleanup
- ffprobe aspect-ratio inspection and ffmpeg fast-start normalization
- Publishing of processed videos to S3-compatible object storage
- Record updates with rollback of local side effects on failure

Package Structure:
- api/: HTTP routes, request intake and dependency providers
- core/: Infrastructure (authentication, record store, object storage)
- models/: Pydantic data models
- services/: Upload pipelines, staging, media processing, thumbnail cache
- utils/: Content-type validation, asset naming and logging helpers
"""

__version__ = "1.0.0"
__app_name__ = "tubely"
