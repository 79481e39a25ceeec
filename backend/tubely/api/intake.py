"""
Upload intake: bounded multipart parsing for the upload endpoints.

The request body is never buffered past the endpoint's byte budget. A
declared ``Content-Length`` above the budget is rejected before anything is
read; otherwise the ASGI ``receive`` channel is wrapped with a byte counter
that raises ``PayloadTooLarge`` as soon as the budget is exceeded, which
aborts Starlette's multipart parser mid-stream.

Usage:
    ```python
    async with read_upload(request, "video", settings.max_video_upload_bytes) as upload:
        validate_video_media_type(upload.media_type)
        await service.upload_video(video_id, principal_id, upload.file, upload.media_type)
    ```
"""

import logging

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.types import Message, Receive

from tubely.exceptions import MalformedUpload, PayloadTooLarge
from tubely.utils.file_validator import format_file_size, parse_media_type


logger = logging.getLogger(__name__)


@dataclass
class UploadedAsset:
    """
    A file part pulled out of a multipart request.

    Attributes:
        file: The part's content (spooled by Starlette)
        media_type: Parsed, lower-cased ``type/subtype``
        content_type: Content-Type exactly as declared by the client
    """

    file: UploadFile
    media_type: str
    content_type: str


def check_declared_length(request: Request, max_bytes: int) -> None:
    """
    Reject a request whose declared Content-Length exceeds ``max_bytes``.

    A missing or unparseable header is left to the streaming check.

    Raises:
        PayloadTooLarge: If the declared length is over budget.
    """
    content_length = request.headers.get("content-length")
    if content_length is None:
        return
    try:
        declared = int(content_length)
    except ValueError:
        return
    if declared > max_bytes:
        raise PayloadTooLarge(
            f"Request body ({format_file_size(declared)}) exceeds "
            f"the {format_file_size(max_bytes)} limit"
        )


def limit_receive(receive: Receive, max_bytes: int) -> Receive:
    """Wrap an ASGI receive callable so reading more than ``max_bytes`` body bytes fails."""
    received = 0

    async def limited_receive() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                raise PayloadTooLarge(
                    f"Request body exceeds the {format_file_size(max_bytes)} limit"
                )
        return message

    return limited_receive


@asynccontextmanager
async def read_upload(request: Request, field: str, max_bytes: int) -> AsyncIterator[UploadedAsset]:
    """
    Parse the multipart body and yield the file part named ``field``.

    The parsed form (and its spooled files) is closed when the context exits.

    Raises:
        PayloadTooLarge: Body over budget
        MalformedUpload: Body is not a parseable form, or ``field`` is
            absent or not a file
        MissingContentType: The part has no Content-Type
        InvalidMediaType: The part's Content-Type is malformed
    """
    check_declared_length(request, max_bytes)

    bounded = Request(request.scope, receive=limit_receive(request.receive, max_bytes))
    try:
        form = await bounded.form()
    except (MultiPartException, StarletteHTTPException) as e:
        detail = getattr(e, "message", None) or getattr(e, "detail", None) or str(e)
        logger.warning("Unparseable multipart body", extra={"error": detail})
        raise MalformedUpload("Unable to parse form file") from e

    try:
        part = form.get(field)
        if not isinstance(part, UploadFile):
            raise MalformedUpload("Unable to parse form file")

        content_type = part.content_type or ""
        media_type = parse_media_type(content_type)

        yield UploadedAsset(file=part, media_type=media_type, content_type=content_type)
    finally:
        await form.close()
