"""
Upload intake tests.

Drives ``read_upload`` with hand-built ASGI requests so the streaming byte
budget can be exercised without a declared Content-Length.
"""

import pytest

from starlette.requests import Request

from tubely.api.intake import check_declared_length, limit_receive, read_upload
from tubely.exceptions import MalformedUpload, MissingContentType, PayloadTooLarge


def make_request(
    chunks: list[bytes],
    content_type: str,
    content_length: int | None = None,
) -> Request:
    headers = [(b"content-type", content_type.encode())]
    if content_length is not None:
        headers.append((b"content-length", str(content_length).encode()))

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/videos/x/video",
        "query_string": b"",
        "headers": headers,
    }
    messages = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1}
        for index, chunk in enumerate(chunks)
    ]

    async def receive() -> dict:
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)


def split(data: bytes, size: int) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


class TestDeclaredLength:
    def test_within_budget(self) -> None:
        check_declared_length(make_request([b""], "text/plain", content_length=100), 100)

    def test_over_budget(self) -> None:
        with pytest.raises(PayloadTooLarge) as exc_info:
            check_declared_length(make_request([b""], "text/plain", content_length=101), 100)

        assert exc_info.value.status_code == 413

    def test_unparseable_header_is_ignored(self) -> None:
        request = make_request([b""], "text/plain")
        request.scope["headers"].append((b"content-length", b"lots"))

        check_declared_length(request, 100)


class TestLimitReceive:
    async def test_counts_body_bytes(self) -> None:
        request = make_request([b"a" * 60, b"b" * 60], "text/plain")
        receive = limit_receive(request.receive, 100)

        first = await receive()
        assert first["body"] == b"a" * 60

        with pytest.raises(PayloadTooLarge):
            await receive()

    async def test_passes_through_under_budget(self) -> None:
        request = make_request([b"a" * 50, b"b" * 50], "text/plain")
        receive = limit_receive(request.receive, 100)

        assert (await receive())["more_body"] is True
        assert (await receive())["more_body"] is False


class TestReadUpload:
    async def test_yields_file_part(self, build_multipart) -> None:
        body, content_type = build_multipart("video", "clip.mp4", b"\x00" * 64, "video/MP4")
        request = make_request(split(body, 32), content_type)

        async with read_upload(request, "video", 1024) as upload:
            assert upload.media_type == "video/mp4"
            assert upload.content_type == "video/MP4"
            assert await upload.file.read() == b"\x00" * 64
            part = upload.file

        assert part.file.closed

    async def test_undeclared_body_over_budget(self, build_multipart) -> None:
        body, content_type = build_multipart("video", "clip.mp4", b"\x00" * 4096, "video/mp4")
        request = make_request(split(body, 256), content_type)

        with pytest.raises(PayloadTooLarge):
            async with read_upload(request, "video", 1024):
                pytest.fail("body over budget was accepted")

    async def test_understated_content_length(self, build_multipart) -> None:
        body, content_type = build_multipart("video", "clip.mp4", b"\x00" * 4096, "video/mp4")
        request = make_request(split(body, 256), content_type, content_length=10)

        with pytest.raises(PayloadTooLarge):
            async with read_upload(request, "video", 1024):
                pytest.fail("body over budget was accepted")

    async def test_missing_field(self, build_multipart) -> None:
        body, content_type = build_multipart("other", "clip.mp4", b"\x00", "video/mp4")

        with pytest.raises(MalformedUpload):
            async with read_upload(make_request([body], content_type), "video", 1024):
                pytest.fail("missing field was accepted")

    async def test_part_without_content_type(self, build_multipart) -> None:
        body, content_type = build_multipart("video", "clip.mp4", b"\x00", None)

        with pytest.raises(MissingContentType):
            async with read_upload(make_request([body], content_type), "video", 1024):
                pytest.fail("part without Content-Type was accepted")

