"""
Tubely Identity and Authorization Guard

This module answers two questions for every upload request: who is calling,
and do they own the video being modified.

- ``parse_video_id`` turns the path segment into a UUID
- ``get_bearer_token`` pulls the token out of the Authorization header
- ``validate_jwt`` verifies an HS256 access token with python-jose and
  returns the subject as a UUID
- ``get_current_principal`` composes the two as a FastAPI dependency
- ``authorize_owner`` / ``load_owned_video`` enforce record ownership

Tokens are issued elsewhere; this service only verifies them against the
process-wide secret and the expected issuer.

Usage:
    ```python
    from fastapi import Depends
    from tubely.core.auth import get_current_principal

    @router.post("/videos/{video_id}/thumbnail")
    async def upload(video_id: str, principal_id: UUID = Depends(get_current_principal)):
        ...
    ```
"""

import logging

from collections.abc import Mapping
from uuid import UUID

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt

from tubely.config import Settings, get_settings
from tubely.core.database import VideoStore
from tubely.exceptions import (
    InvalidCredential,
    InvalidIdentifier,
    MissingCredential,
    NotAuthorized,
    RecordNotFound,
)
from tubely.models.video import Video


# Configure module logger
logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
BEARER_SCHEME = "bearer"


# =============================================================================
# Identifier Parsing
# =============================================================================


def parse_video_id(raw: str) -> UUID:
    """
    Parse the video id path segment.

    Raises:
        InvalidIdentifier: If ``raw`` is not a UUID.
    """
    try:
        return UUID(raw)
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdentifier("Invalid ID") from None


# =============================================================================
# Token Extraction and Validation
# =============================================================================


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """
    Extract the bearer token from request headers.

    The scheme comparison is case-insensitive. Header lookup goes through
    the mapping, so Starlette's case-insensitive ``Headers`` work as-is.

    Args:
        headers: Request headers.

    Returns:
        str: The raw token string.

    Raises:
        MissingCredential: If the header is absent, uses another scheme, or
            carries no token.
    """
    authorization = headers.get("authorization")
    if not authorization:
        raise MissingCredential("Couldn't find JWT")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != BEARER_SCHEME or not token:
        raise MissingCredential("Couldn't find JWT")

    return token


def validate_jwt(token: str, secret: str, issuer: str) -> UUID:
    """
    Validate an HS256 access token and return its subject.

    Signature, expiry and issuer are all checked by ``jwt.decode``. The
    ``sub`` claim must be a UUID.

    Args:
        token: Encoded JWT.
        secret: Shared HS256 signing secret.
        issuer: Required ``iss`` claim.

    Returns:
        UUID: The authenticated user's id.

    Raises:
        InvalidCredential: If the token fails any check.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            issuer=issuer,
            options={"require_sub": True, "verify_aud": False},
        )
    except ExpiredSignatureError:
        logger.warning("Access token has expired")
        raise InvalidCredential("Couldn't validate JWT") from None
    except JWTError as e:
        logger.warning("Access token validation failed: %s", str(e))
        raise InvalidCredential("Couldn't validate JWT") from None

    try:
        return UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        logger.warning("Access token subject is not a user id")
        raise InvalidCredential("Couldn't validate JWT") from None


async def get_current_principal(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> UUID:
    """
    FastAPI dependency returning the authenticated user id.

    Raises:
        MissingCredential: No usable Authorization header.
        InvalidCredential: Token rejected.
    """
    token = get_bearer_token(request.headers)
    return validate_jwt(token, settings.jwt_secret, settings.jwt_issuer)


# =============================================================================
# Ownership
# =============================================================================


def authorize_owner(video: Video, principal_id: UUID) -> Video:
    """
    Ensure ``principal_id`` owns ``video``.

    Raises:
        NotAuthorized: If the record belongs to someone else.
    """
    if not video.is_owned_by(principal_id):
        logger.warning(
            "Ownership check failed",
            extra={"video_id": str(video.id), "principal_id": str(principal_id)},
        )
        raise NotAuthorized("Not authorized to update this video")
    return video


async def load_owned_video(store: VideoStore, video_id: UUID, principal_id: UUID) -> Video:
    """
    Fetch a video record and check that ``principal_id`` owns it.

    Raises:
        RecordNotFound: If no record exists for ``video_id``.
        RecordStoreError: If the store cannot be queried.
        NotAuthorized: If the record belongs to another user.
    """
    video = await store.get_video(video_id)
    if video is None:
        raise RecordNotFound("Couldn't find video")
    return authorize_owner(video, principal_id)


__all__ = [
    "parse_video_id",
    "get_bearer_token",
    "validate_jwt",
    "get_current_principal",
    "authorize_owner",
    "load_owned_video",
]
