from __future__ import annotations

from datetime import timedelta

import pytest

from supportbot.auth.jwt import create_access_token, decode_jwt, encode_jwt, verify_bearer
from supportbot.core.exceptions import AuthenticationError


def test_access_token_round_trip():
    token = create_access_token("user-1", "user@example.com", secret="secret")
    user = verify_bearer(f"Bearer {token}", secret="secret")
    assert user.user_id == "user-1"
    assert user.email == "user@example.com"


def test_wrong_secret_is_rejected():
    token = create_access_token("user-1", "user@example.com", secret="secret")
    with pytest.raises(AuthenticationError):
        verify_bearer(token, secret="other")


def test_expired_token_is_rejected():
    token = encode_jwt({"sub": "user-1"}, secret="secret", ttl=timedelta(seconds=-5))
    with pytest.raises(AuthenticationError):
        decode_jwt(token, secret="secret")


def test_non_access_token_is_rejected():
    token = encode_jwt({"sub": "user-1", "token_use": "refresh"}, secret="secret", ttl=timedelta(minutes=5))
    with pytest.raises(AuthenticationError):
        verify_bearer(token, secret="secret")


@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
def test_malformed_tokens_are_rejected(token):
    with pytest.raises(AuthenticationError):
        verify_bearer(token, secret="secret")
