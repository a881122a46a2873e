# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""CredentialStore: uniqueness, secret projection and challenge writes."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import InvalidRequestError

from messhub_server import otp
from messhub_server.auth import verify_password
from messhub_server.database import async_session_maker
from messhub_server.exceptions import DuplicateEmailError, UserNotFoundError
from messhub_server.services.credentials import CredentialStore

EXPIRY = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


async def _create(email="User@X.com", challenge=None) -> int:
    async with async_session_maker() as s:
        user = await CredentialStore(s).create_user(
            email=email, password="Secret123!", name="Alice", challenge=challenge
        )
        await s.commit()
        return user.id


async def test_create_user_normalizes_email(db):
    await _create("  User@X.com ")
    async with async_session_maker() as s:
        user = await CredentialStore(s).find_by_email("user@x.com")
        assert user is not None
        assert user.email == "user@x.com"
        assert user.is_verified is False
        assert user.is_active is True


async def test_duplicate_email_is_case_insensitive(db):
    await _create("User@X.com")
    with pytest.raises(DuplicateEmailError):
        await _create("user@x.COM")


async def test_secrets_not_loaded_by_default(db):
    await _create(challenge=otp.Challenge("123456", EXPIRY))
    async with async_session_maker() as s:
        user = await CredentialStore(s).find_by_email("user@x.com")
        with pytest.raises(InvalidRequestError):
            _ = user.password_hash
        with pytest.raises(InvalidRequestError):
            _ = user.otp


async def test_secrets_loaded_on_request(db):
    await _create(challenge=otp.Challenge("123456", EXPIRY))
    async with async_session_maker() as s:
        store = CredentialStore(s)
        await store.find_by_email("user@x.com")
        user = await store.find_by_email("user@x.com", include_secrets=True)
        assert verify_password("Secret123!", user.password_hash)
        assert user.password_hash != "Secret123!"
        assert user.otp == "123456"
        assert user.otp_expiry is not None


async def test_require_by_email_missing(db):
    async with async_session_maker() as s:
        with pytest.raises(UserNotFoundError):
            await CredentialStore(s).require_by_email("nobody@x.com")


async def test_set_password(db):
    user_id = await _create()
    async with async_session_maker() as s:
        await CredentialStore(s).set_password(user_id, "Another456$")
        await s.commit()
    async with async_session_maker() as s:
        user = await CredentialStore(s).find_by_email("user@x.com", include_secrets=True)
        assert verify_password("Another456$", user.password_hash)


async def test_new_challenge_supersedes_old(db):
    user_id = await _create(challenge=otp.Challenge("111111", EXPIRY))
    later = EXPIRY + timedelta(minutes=5)
    async with async_session_maker() as s:
        store = CredentialStore(s)
        await store.set_challenge(user_id, otp.Challenge("222222", later))
        await s.commit()
        assert await store.consume_challenge(user_id, "111111", EXPIRY) is False
        assert await store.consume_challenge(user_id, "222222", later) is True
        await s.commit()
    async with async_session_maker() as s:
        user = await CredentialStore(s).find_by_email("user@x.com", include_secrets=True)
        assert user.otp is None
        assert user.otp_expiry is None


async def test_consume_is_single_use(db):
    user_id = await _create(challenge=otp.Challenge("123456", EXPIRY))
    async with async_session_maker() as s:
        store = CredentialStore(s)
        assert await store.consume_challenge(user_id, "123456", EXPIRY, is_verified=True) is True
        assert await store.consume_challenge(user_id, "123456", EXPIRY, is_verified=True) is False
        await s.commit()
    async with async_session_maker() as s:
        user = await CredentialStore(s).find_by_email("user@x.com")
        assert user.is_verified is True


async def test_clear_challenge(db):
    user_id = await _create(challenge=otp.Challenge("123456", EXPIRY))
    async with async_session_maker() as s:
        await CredentialStore(s).clear_challenge(user_id)
        await s.commit()
    async with async_session_maker() as s:
        user = await CredentialStore(s).find_by_email("user@x.com", include_secrets=True)
        assert (user.otp, user.otp_expiry) == (None, None)


async def test_update_unknown_user(db):
    async with async_session_maker() as s:
        with pytest.raises(UserNotFoundError):
            await CredentialStore(s).clear_challenge(9999)


async def test_update_profile_ignores_other_fields(db):
    user_id = await _create()
    async with async_session_maker() as s:
        user = await CredentialStore(s).update_profile(user_id, name="Alicia", role="admin", phone="+1 555 123 4567")
        await s.commit()
        assert user.name == "Alicia"
        assert user.role == "user"
        assert user.phone == "+1 555 123 4567"


async def test_create_admin_is_verified(db):
    from messhub_server.scripts.create_admin import create_admin

    await create_admin("Root@X.com", "Secret123!", "Root")
    async with async_session_maker() as s:
        user = await CredentialStore(s).find_by_email("root@x.com")
        assert user.role == "admin"
        assert user.is_verified is True
