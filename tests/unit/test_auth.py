"""
Unit tests for bearer token decoding.
"""

import jwt
import pytest

from lambdahttp.auth import bearer_token, decode_token


class TestBearerToken:
    """Tests for bearer_token()."""

    @pytest.mark.parametrize("value,expected", [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer   abc", "abc"),
        ("Basic dXNlcjpwYXNz", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ])
    def test_extract(self, value, expected):
        assert bearer_token(value) == expected


class TestDecodeToken:
    """Tests for decode_token()."""

    def test_decodes_without_verifying(self, jwt_token):
        decoded = decode_token(f"Bearer {jwt_token}")

        assert decoded["header"]["alg"] == "HS256"
        assert decoded["payload"] == {"sub": "user-1", "name": "Test User"}
        assert decoded["data"] == jwt_token.rsplit(".", 1)[0]
        assert decoded["signature"] == jwt_token.rsplit(".", 1)[1]

    def test_wrong_key_still_decodes(self):
        """Test that signature checks are left to the handler."""
        token = jwt.encode({"sub": "x"}, "another-secret-key-that-is-long-enough-too", algorithm="HS256")
        assert decode_token(f"Bearer {token}")["payload"] == {"sub": "x"}

    @pytest.mark.parametrize("value", ["Bearer not-a-jwt", "Bearer a.b.c", "Basic abc", None])
    def test_invalid(self, value):
        assert decode_token(value) is None
