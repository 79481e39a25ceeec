"""
Tubely Identity and Authorization Test Suite

Covers backend/tubely/core/auth.py:
- Video id parsing
- Bearer token extraction from the Authorization header
- HS256 token validation (signature, expiry, issuer, subject)
- Ownership checks and record loading
"""

from datetime import timedelta
from uuid import UUID, uuid4

import pytest

from tubely.config import Settings
from tubely.core.auth import (
    authorize_owner,
    get_bearer_token,
    load_owned_video,
    parse_video_id,
    validate_jwt,
)
from tubely.exceptions import (
    InvalidCredential,
    InvalidIdentifier,
    MissingCredential,
    NotAuthorized,
    RecordNotFound,
)
from tubely.models.video import Video


# =============================================================================
# Identifier Parsing
# =============================================================================


class TestParseVideoId:
    """Tests for the path segment parser."""

    def test_parses_canonical_uuid(self) -> None:
        video_id = uuid4()
        assert parse_video_id(str(video_id)) == video_id

    def test_parses_uppercase_uuid(self) -> None:
        video_id = uuid4()
        assert parse_video_id(str(video_id).upper()) == video_id

    @pytest.mark.parametrize("raw", ["", "not-a-uuid", "1234", "g" * 32])
    def test_rejects_malformed_id(self, raw: str) -> None:
        with pytest.raises(InvalidIdentifier) as exc_info:
            parse_video_id(raw)

        assert exc_info.value.message == "Invalid ID"
        assert exc_info.value.status_code == 400


# =============================================================================
# Bearer Token Extraction
# =============================================================================


class TestGetBearerToken:
    """Tests for Authorization header parsing."""

    def test_extracts_token(self) -> None:
        assert get_bearer_token({"authorization": "Bearer abc.def.ghi"}) == "abc.def.ghi"

    @pytest.mark.parametrize("scheme", ["bearer", "BEARER", "BeArEr"])
    def test_scheme_is_case_insensitive(self, scheme: str) -> None:
        assert get_bearer_token({"authorization": f"{scheme} token"}) == "token"

    def test_missing_header(self) -> None:
        with pytest.raises(MissingCredential) as exc_info:
            get_bearer_token({})

        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize("value", ["", "Bearer", "Bearer   ", "Basic dXNlcjpwYXNz", "token"])
    def test_unusable_header(self, value: str) -> None:
        with pytest.raises(MissingCredential):
            get_bearer_token({"authorization": value})


# =============================================================================
# Token Validation
# =============================================================================


class TestValidateJwt:
    """Tests for HS256 token validation."""

    def test_valid_token_returns_subject(
        self, make_token, owner_id: UUID, test_settings: Settings
    ) -> None:
        token = make_token(owner_id)
        assert validate_jwt(token, test_settings.jwt_secret, test_settings.jwt_issuer) == owner_id

    def test_expired_token(self, make_token, owner_id: UUID, test_settings: Settings) -> None:
        token = make_token(owner_id, expires_in=timedelta(minutes=-5))

        with pytest.raises(InvalidCredential) as exc_info:
            validate_jwt(token, test_settings.jwt_secret, test_settings.jwt_issuer)

        assert exc_info.value.message == "Couldn't validate JWT"
        assert exc_info.value.status_code == 401

    def test_wrong_secret(self, make_token, owner_id: UUID, test_settings: Settings) -> None:
        token = make_token(owner_id, secret="another-secret-that-is-long-enough-to-sign")

        with pytest.raises(InvalidCredential):
            validate_jwt(token, test_settings.jwt_secret, test_settings.jwt_issuer)

    def test_wrong_issuer(self, make_token, owner_id: UUID, test_settings: Settings) -> None:
        token = make_token(owner_id, iss="someone-else")

        with pytest.raises(InvalidCredential):
            validate_jwt(token, test_settings.jwt_secret, test_settings.jwt_issuer)

    def test_missing_issuer(self, make_token, owner_id: UUID, test_settings: Settings) -> None:
        token = make_token(owner_id, iss=None)

        with pytest.raises(InvalidCredential):
            validate_jwt(token, test_settings.jwt_secret, test_settings.jwt_issuer)

    def test_subject_must_be_uuid(self, make_token, test_settings: Settings) -> None:
        token = make_token("user-42")

        with pytest.raises(InvalidCredential):
            validate_jwt(token, test_settings.jwt_secret, test_settings.jwt_issuer)

    def test_missing_subject(self, make_token, owner_id: UUID, test_settings: Settings) -> None:
        token = make_token(owner_id, sub=None)

        with pytest.raises(InvalidCredential):
            validate_jwt(token, test_settings.jwt_secret, test_settings.jwt_issuer)

    def test_garbage_token(self, test_settings: Settings) -> None:
        with pytest.raises(InvalidCredential):
            validate_jwt("not.a.jwt", test_settings.jwt_secret, test_settings.jwt_issuer)


# =============================================================================
# Ownership
# =============================================================================


class TestOwnership:
    """Tests for authorize_owner and load_owned_video."""

    def test_owner_is_authorized(self, video: Video, owner_id: UUID) -> None:
        assert authorize_owner(video, owner_id) is video

    def test_other_user_is_rejected(self, video: Video, other_user_id: UUID) -> None:
        with pytest.raises(NotAuthorized) as exc_info:
            authorize_owner(video, other_user_id)

        assert exc_info.value.status_code == 401

    async def test_load_owned_video(self, video_store, video: Video, owner_id: UUID) -> None:
        loaded = await load_owned_video(video_store, video.id, owner_id)

        assert loaded.id == video.id
        assert loaded.user_id == owner_id

    async def test_load_missing_video(self, video_store, owner_id: UUID) -> None:
        with pytest.raises(RecordNotFound) as exc_info:
            await load_owned_video(video_store, uuid4(), owner_id)

        assert exc_info.value.message == "Couldn't find video"
        assert exc_info.value.status_code == 404

    async def test_load_video_owned_by_someone_else(
        self, video_store, video: Video, other_user_id: UUID
    ) -> None:
        with pytest.raises(NotAuthorized):
            await load_owned_video(video_store, video.id, other_user_id)
