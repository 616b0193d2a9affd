# ruff: noqa: INP001
"""Password hashing and access token tests."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import jwt
import pytest

from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_password_hash_round_trip() -> None:
    hashed = hash_password("correct horse")

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_rejects_malformed_hash() -> None:
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_access_token_carries_subject_and_claims() -> None:
    user_id = str(uuid4())
    token = create_access_token(subject=user_id, claims={"role": "team_lead"})

    claims = decode_access_token(token)

    assert claims["sub"] == user_id
    assert claims["role"] == "team_lead"
    assert claims["exp"] > claims["iat"]


def test_expired_token_is_rejected() -> None:
    token = create_access_token(subject=str(uuid4()), expires_delta=timedelta(seconds=-1))

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(token)


def test_token_signed_with_other_key_is_rejected() -> None:
    token = jwt.encode({"sub": str(uuid4()), "exp": 4102444800}, "other-secret-0123456789-0123456789", algorithm="HS256")

    with pytest.raises(jwt.InvalidSignatureError):
        decode_access_token(token)
