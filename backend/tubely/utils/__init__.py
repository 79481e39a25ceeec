"""
Utilities Package for the Tubely backend.

Modules:
--------
file_validator:
    Content-Type parsing and endpoint acceptance rules, extension mapping
    and random asset naming.

logger:
    Structured logging configuration (JSON or text), uvicorn integration
    and LoggerAdapter-based context enrichment.

Usage:
------
    from tubely.utils import parse_media_type, setup_logging
"""

from tubely.utils.file_validator import (
    build_asset_filename,
    extension_for_media_type,
    format_file_size,
    generate_asset_name,
    parse_media_type,
    validate_thumbnail_media_type,
    validate_video_media_type,
)
from tubely.utils.logger import JSONFormatter, add_log_context, setup_logging


__all__ = [
    "build_asset_filename",
    "extension_for_media_type",
    "format_file_size",
    "generate_asset_name",
    "parse_media_type",
    "validate_thumbnail_media_type",
    "validate_video_media_type",
    "JSONFormatter",
    "add_log_context",
    "setup_logging",
]
