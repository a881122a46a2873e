# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Session tokens and the authenticated /me endpoints."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from jose import jwt

from messhub_server.auth import create_access_token, decode_token
from messhub_server.config import settings
from messhub_server.exceptions import InvalidTokenError, TokenExpiredError
from tests.conftest import login_token, register_verified


def test_token_carries_identity_claims():
    token = create_access_token(7, "alice@x.com", "mess-owner")
    claims = decode_token(token)
    assert claims["sub"] == "7"
    assert claims["email"] == "alice@x.com"
    assert claims["role"] == "mess-owner"
    assert set(claims) == {"sub", "email", "role", "exp"}


def test_default_lifetime_is_a_day():
    claims = decode_token(create_access_token(1, "a@x.com", "user"))
    expected = datetime.now(timezone.utc) + timedelta(hours=24)
    assert abs(claims["exp"] - expected.timestamp()) < 5


def test_expired_token_is_distinguished():
    token = create_access_token(1, "a@x.com", "user", expires_delta=timedelta(seconds=-5))
    with pytest.raises(TokenExpiredError):
        decode_token(token)


def test_bad_signature_is_invalid():
    token = jwt.encode({"sub": "1", "email": "a@x.com", "role": "user"}, "other-secret", algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        decode_token(token)


def test_garbage_is_invalid():
    with pytest.raises(InvalidTokenError):
        decode_token("not.a.token")


def test_missing_claim_is_invalid():
    token = jwt.encode({"sub": "1"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(InvalidTokenError):
        decode_token(token)


async def test_me_requires_token(client: AsyncClient):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTH_004"


async def test_me_with_expired_token(client: AsyncClient):
    token = create_access_token(1, "a@x.com", "user", expires_delta=timedelta(seconds=-5))
    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["error"] == {"code": "AUTH_004", "message": "Token has expired."}


async def test_me_for_deleted_user(client: AsyncClient):
    token = create_access_token(9999, "ghost@x.com", "user")
    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTH_004"


async def test_me_returns_profile(client: AsyncClient):
    await register_verified(client)
    token = await login_token(client)
    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    user = r.json()["data"]["user"]
    assert user["email"] == "alice@x.com"
    assert user["role"] == "user"
    assert "passwordHash" not in user and "otp" not in user


async def test_update_profile(client: AsyncClient):
    await register_verified(client)
    headers = {"Authorization": f"Bearer {await login_token(client)}"}
    r = await client.put("/api/auth/me", json={"name": "Alice Smith", "phone": "+1 555 123 4567"}, headers=headers)
    assert r.status_code == 200, r.text
    user = r.json()["data"]["user"]
    assert user["name"] == "Alice Smith"
    assert user["phone"] == "+1 555 123 4567"

    r = await client.put("/api/auth/me", json={"name": "R2-D2"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_001"


async def test_logout_acknowledged(client: AsyncClient):
    await register_verified(client)
    token = await login_token(client)
    r = await client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["success"] is True
