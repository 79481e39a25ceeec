"""Shared exceptions for the Tubely upload service.

Every failure a pipeline can produce is a subclass of ``TubelyError``. Each
class carries the HTTP status it maps to, and a single exception handler in
``tubely.main`` renders them as ``{"error": message}``. Services raise these
directly; nothing outside the HTTP layer needs to know about status codes.
"""


class TubelyError(Exception):
    """Base class for upload pipeline failures.

    Attributes:
        message: Human-readable description returned to the client.
        status_code: HTTP status used when the error reaches the API layer.
    """

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Client errors (400)
# =============================================================================


class InvalidIdentifier(TubelyError):
    """Path video id is not a well-formed UUID."""

    status_code = 400


class MalformedUpload(TubelyError):
    """Multipart body unparseable or the named file field is absent."""

    status_code = 400


class MissingContentType(TubelyError):
    """The file part carries no Content-Type."""

    status_code = 400


class InvalidMediaType(TubelyError):
    """The part's Content-Type is not a parseable ``type/subtype``."""

    status_code = 400


class UnsupportedMediaType(TubelyError):
    """Parsed media type is not accepted by the endpoint."""

    status_code = 400


# =============================================================================
# Authentication and authorization (401)
# =============================================================================


class MissingCredential(TubelyError):
    status_code = 401


class InvalidCredential(TubelyError):
    status_code = 401


class NotAuthorized(TubelyError):
    """Authenticated principal does not own the target video."""

    status_code = 401


# =============================================================================
# Lookup and size (404, 413)
# =============================================================================


class RecordNotFound(TubelyError):
    status_code = 404


class PayloadTooLarge(TubelyError):
    """Request body exceeded the endpoint's byte budget."""

    status_code = 413


# =============================================================================
# Server-side failures (500)
# =============================================================================


class StagingIOError(TubelyError):
    pass


class ProbeExecutionError(TubelyError):
    """ffprobe could not start, exited non-zero, or timed out."""


class ProbeOutputError(TubelyError):
    """ffprobe output was not the expected JSON document."""


class NoStreamsFound(TubelyError):
    pass


class TranscodeExecutionError(TubelyError):
    """ffmpeg could not start, exited non-zero, or timed out."""


class PublishError(TubelyError):
    pass


class RecordStoreError(TubelyError):
    """The record store could not be queried."""


class PersistenceError(TubelyError):
    """Updating the video record failed."""


class ThumbnailStorageError(TubelyError):
    pass
