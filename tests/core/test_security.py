"""
Tests for JWT helpers.
"""
from datetime import timedelta

import pytest

from bruinsplit.core.security import (
    SecurityException,
    create_access_token,
    decode_token,
    extract_token_from_header,
    user_id_from_payload,
)


class TestTokens:
    """Creating and decoding access tokens."""

    def test_round_trip(self):
        token = create_access_token({"userId": "user-alice"})

        payload = decode_token(token)

        assert payload["userId"] == "user-alice"
        assert "exp" in payload
        assert "iat" in payload

    def test_expired_token_rejected(self):
        token = create_access_token({"userId": "user-alice"}, expires_delta=timedelta(seconds=-5))

        with pytest.raises(SecurityException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid or expired token"

    def test_garbage_token_rejected(self):
        with pytest.raises(SecurityException):
            decode_token("not-a-jwt")


class TestClaims:
    """Resolving the profile id from a payload."""

    def test_user_id_claim(self):
        assert user_id_from_payload({"userId": "user-bob"}) == "user-bob"

    def test_sub_fallback(self):
        assert user_id_from_payload({"sub": "user-bob"}) == "user-bob"

    def test_missing_claim(self):
        with pytest.raises(SecurityException):
            user_id_from_payload({"email": "bob@ucla.edu"})


class TestAuthorizationHeader:
    """Bearer header parsing."""

    def test_bearer_token(self):
        assert extract_token_from_header("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert extract_token_from_header("bearer abc") == "abc"

    @pytest.mark.parametrize("header", [None, "", "abc", "Basic abc", "Bearer a b"])
    def test_malformed_header(self, header):
        with pytest.raises(SecurityException) as exc_info:
            extract_token_from_header(header)

        assert exc_info.value.detail == "No token provided"
