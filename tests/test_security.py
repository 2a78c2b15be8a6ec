"""
Unit tests for password hashing and bearer tokens.
"""

import uuid
from datetime import timedelta

import jwt
import pytest

from taskhub.core.config import Settings
from taskhub.core.jwt import create_access_token, decode_access_token
from taskhub.core.security import hash_password, verify_password
from taskhub.errors import ExpiredTokenError, InvalidTokenError

pytestmark = pytest.mark.unit

SETTINGS = Settings(SECRET_KEY="unit-test-secret-key-long-enough-for-hs256")


def test_password_hash_round_trip():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_malformed_hash_is_a_mismatch():
    assert not verify_password("secret123", "not-a-bcrypt-hash")


def test_token_carries_user_id():
    user_id = uuid.uuid4()
    token = create_access_token(user_id, settings=SETTINGS)
    assert decode_access_token(token, settings=SETTINGS) == user_id


def test_expired_token_is_rejected():
    token = create_access_token(uuid.uuid4(), settings=SETTINGS, expires_delta=timedelta(seconds=-5))
    with pytest.raises(ExpiredTokenError):
        decode_access_token(token, settings=SETTINGS)


def test_token_signed_with_other_key_is_rejected():
    other = Settings(SECRET_KEY="another-secret-key-also-long-enough-here")
    token = create_access_token(uuid.uuid4(), settings=other)
    with pytest.raises(InvalidTokenError):
        decode_access_token(token, settings=SETTINGS)


def test_garbage_and_empty_tokens_are_rejected():
    with pytest.raises(InvalidTokenError):
        decode_access_token("not.a.token", settings=SETTINGS)
    with pytest.raises(InvalidTokenError):
        decode_access_token("", settings=SETTINGS)


def test_token_without_user_id_is_rejected():
    token = jwt.encode({"sub": "nobody", "exp": 4102444800}, SETTINGS.SECRET_KEY, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        decode_access_token(token, settings=SETTINGS)
