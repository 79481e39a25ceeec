"""
Services module for the Tubely backend application.

Business logic behind the upload endpoints:

- staging: temporary on-disk copies of uploaded streams with guaranteed cleanup
- media_processor: ffprobe inspection, ffmpeg fast-start remux, aspect-ratio classification
- thumbnail_cache: in-process thumbnail store with per-video locking
- upload_service: thumbnail and video pipelines plus the record updater

Services receive their collaborators through constructors so FastAPI
dependencies (and tests) decide which implementations are used.
"""
