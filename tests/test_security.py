"""Password hashing and access token tests."""

from datetime import timedelta

import pytest

from src.domain.errors import AuthenticationFailed
from src.infrastructure.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswords:
    def test_hash_verifies(self):
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)

    def test_wrong_password(self):
        assert not verify_password("battery staple", hash_password("correct horse"))


class TestAccessTokens:
    def test_round_trip(self):
        payload = decode_access_token(create_access_token(42, "driver"))
        assert payload["sub"] == "42"
        assert payload["role"] == "driver"

    def test_expired_token(self):
        token = create_access_token(42, "driver", expires_delta=timedelta(seconds=-1))
        with pytest.raises(AuthenticationFailed):
            decode_access_token(token)

    def test_garbage_token(self):
        with pytest.raises(AuthenticationFailed):
            decode_access_token("not.a.token")
