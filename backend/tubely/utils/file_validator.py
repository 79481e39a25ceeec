"""
Upload Content-Type Validation and Asset Naming Utilities

This module holds the pure rules applied to uploaded files once they have
been pulled out of the multipart body:
- Parsing the declared part Content-Type into a lower-cased ``type/subtype``
  (parameters such as ``; charset=...`` are ignored)
- Endpoint acceptance rules: thumbnails must be ``image/*``, videos must be
  exactly ``video/mp4``
- Mapping a media type to the file extension used in asset names
- Generating collision-free asset names from 32 random bytes

Nothing here touches the request or the filesystem, so every rule is
covered by plain unit tests.
"""

import base64
import re
import secrets

from tubely.exceptions import InvalidMediaType, MissingContentType, UnsupportedMediaType


# =============================================================================
# CONSTANTS - Size Limits
# =============================================================================

BYTES_PER_KB: int = 1024


# =============================================================================
# CONSTANTS - Media Types
# =============================================================================

# The only container accepted by the video endpoint
VIDEO_MEDIA_TYPE: str = "video/mp4"

# Top-level type accepted by the thumbnail endpoint
THUMBNAIL_TOP_LEVEL_TYPE: str = "image"

# Extensions that differ from the media subtype
EXTENSION_OVERRIDES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/svg+xml": "svg",
    "image/x-icon": "ico",
    "image/vnd.microsoft.icon": "ico",
}

# Number of random bytes behind each asset name (43 URL-safe base64 characters)
ASSET_NAME_BYTES: int = 32

# RFC 7230 token: 1*tchar
_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_MEDIA_TYPE_REGEX = re.compile(rf"^({_TOKEN})/({_TOKEN})$")

# Subtypes that can be used verbatim as a file extension
_EXTENSION_REGEX = re.compile(r"^[a-z0-9][a-z0-9.+\-]*$")


# =============================================================================
# MEDIA TYPE PARSING
# =============================================================================


def parse_media_type(content_type: str | None) -> str:
    """
    Parse a Content-Type header value into its lower-cased media type.

    Parameters after the first ``;`` are discarded. The remaining
    ``type/subtype`` must consist of two RFC 7230 tokens.

    Args:
        content_type: Raw Content-Type of the uploaded part

    Returns:
        Media type such as ``"image/png"``

    Raises:
        MissingContentType: If the value is None or blank
        InvalidMediaType: If the value is not a well-formed media type

    Example:
        >>> parse_media_type("Image/PNG; charset=binary")
        'image/png'
    """
    if content_type is None or not content_type.strip():
        raise MissingContentType("Missing Content-Type for uploaded file")

    essence = content_type.split(";", 1)[0].strip()
    match = _MEDIA_TYPE_REGEX.match(essence)
    if match is None:
        raise InvalidMediaType(f"Invalid Content-Type: {content_type!r}")

    return essence.lower()


def validate_thumbnail_media_type(media_type: str) -> str:
    """
    Ensure a parsed media type is acceptable for a thumbnail.

    Raises:
        UnsupportedMediaType: If the type is not an ``image/*`` type
    """
    top_level, _, _ = media_type.partition("/")
    if top_level != THUMBNAIL_TOP_LEVEL_TYPE:
        raise UnsupportedMediaType(
            f"Invalid file type '{media_type}'. Thumbnails must be an image"
        )
    return media_type


def validate_video_media_type(media_type: str) -> str:
    """
    Ensure a parsed media type is ``video/mp4``.

    Raises:
        UnsupportedMediaType: For any other type, including other video containers
    """
    if media_type != VIDEO_MEDIA_TYPE:
        raise UnsupportedMediaType(
            f"Invalid file type '{media_type}'. Only {VIDEO_MEDIA_TYPE} is supported"
        )
    return media_type


# =============================================================================
# ASSET NAMING
# =============================================================================


def extension_for_media_type(media_type: str) -> str:
    """
    Return the file extension (without dot) for a parsed media type.

    ``image/jpeg`` maps to ``jpg``; other types use their subtype.

    Raises:
        UnsupportedMediaType: If the subtype cannot be used in a file name

    Example:
        >>> extension_for_media_type("image/jpeg")
        'jpg'
        >>> extension_for_media_type("video/mp4")
        'mp4'
    """
    if media_type in EXTENSION_OVERRIDES:
        return EXTENSION_OVERRIDES[media_type]

    subtype = media_type.partition("/")[2]
    if not _EXTENSION_REGEX.match(subtype):
        raise UnsupportedMediaType(f"Unsupported file type '{media_type}'")
    return subtype


def generate_asset_name() -> str:
    """
    Generate a random, URL-safe asset name.

    32 bytes from ``secrets`` encoded as URL-safe base64 without padding.
    """
    raw = secrets.token_bytes(ASSET_NAME_BYTES)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def build_asset_filename(media_type: str) -> str:
    """Return ``<random name>.<ext>`` for a parsed media type."""
    return f"{generate_asset_name()}.{extension_for_media_type(media_type)}"


# =============================================================================
# FORMATTING
# =============================================================================


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable string.

    Example:
        >>> format_file_size(1536)
        '1.50 KB'
        >>> format_file_size(1 << 30)
        '1.00 GB'
    """
    if size_bytes < 0:
        return "Invalid size"

    bytes_per_mb = BYTES_PER_KB * BYTES_PER_KB
    bytes_per_gb = bytes_per_mb * BYTES_PER_KB

    if size_bytes < BYTES_PER_KB:
        return f"{size_bytes} B"
    if size_bytes < bytes_per_mb:
        return f"{size_bytes / BYTES_PER_KB:.2f} KB"
    if size_bytes < bytes_per_gb:
        return f"{size_bytes / bytes_per_mb:.2f} MB"
    return f"{size_bytes / bytes_per_gb:.2f} GB"
