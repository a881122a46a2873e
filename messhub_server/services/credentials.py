# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Credential store: user records, password hashes and pending one-time codes."""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from messhub_server.auth import hash_password
from messhub_server.exceptions import DuplicateEmailError, UserNotFoundError
from messhub_server.models import SECRET_FIELDS, User, UserRole
from messhub_server.otp import Challenge

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "phone")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """Reads and writes users within one AsyncSession.

    Secret columns stay unloaded unless a caller asks for them. Challenge
    writes are single UPDATE statements scoped to one user row; the store
    does not lock, so concurrent resends are last-write-wins.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_user(
        self,
        email: str,
        password: str,
        name: str,
        role: str = UserRole.USER.value,
        phone: str | None = None,
        challenge: Challenge | None = None,
    ) -> User:
        """Insert an unverified user. Raises DuplicateEmailError if the email is taken."""
        email = normalize_email(email)
        if await self._email_taken(email):
            raise DuplicateEmailError()
        user = User(
            email=email,
            name=name,
            role=role,
            phone=phone,
            password_hash=hash_password(password),
            is_verified=False,
            is_active=True,
            otp=challenge.code if challenge else None,
            otp_expiry=challenge.expires_at if challenge else None,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            await self.db.rollback()
            raise DuplicateEmailError()
        logger.info("Created user id=%s role=%s", user.id, role)
        return user

    async def _email_taken(self, email: str) -> bool:
        result = await self.db.execute(
            select(User.id).where(func.lower(User.email) == normalize_email(email))
        )
        return result.first() is not None

    async def get(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def find_by_email(self, email: str, include_secrets: bool = False) -> User | None:
        """Look a user up by email, case-insensitively.

        Without include_secrets the password hash and challenge are never
        selected; accessing them on the returned object raises.
        """
        stmt = select(User).where(func.lower(User.email) == normalize_email(email))
        if include_secrets:
            stmt = stmt.options(*(undefer(col) for col in SECRET_FIELDS)).execution_options(
                populate_existing=True
            )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_by_email(self, email: str, include_secrets: bool = False) -> User:
        user = await self.find_by_email(email, include_secrets=include_secrets)
        if user is None:
            raise UserNotFoundError()
        return user

    async def set_password(self, user_id: int, plaintext: str) -> None:
        await self._update(user_id, password_hash=hash_password(plaintext))

    async def set_challenge(self, user_id: int, challenge: Challenge) -> None:
        """Store a fresh code, replacing (and so invalidating) any earlier one."""
        await self._update(user_id, otp=challenge.code, otp_expiry=challenge.expires_at)

    async def clear_challenge(self, user_id: int) -> None:
        await self._update(user_id, otp=None, otp_expiry=None)

    async def consume_challenge(
        self,
        user_id: int,
        code: str,
        expires_at: datetime,
        **values: Any,
    ) -> bool:
        """Clear the challenge (and apply values) only if it is still the one that was validated.

        This is one conditional UPDATE: if a concurrent resend replaced the
        code between validation and this call, no row matches and False is
        returned instead of consuming the newer code.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.otp == code, User.otp_expiry == expires_at)
            .values(otp=None, otp_expiry=None, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def touch_last_login(self, user_id: int) -> datetime:
        now = datetime.now(timezone.utc)
        await self._update(user_id, last_login=now)
        return now

    async def update_profile(self, user_id: int, **fields: Any) -> User:
        """Apply name/phone changes; other keys are ignored."""
        changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS and v is not None}
        if changes:
            await self._update(user_id, **changes)
        user = await self.get(user_id)
        await self.db.refresh(user)
        return user

    async def _update(self, user_id: int, **values: Any) -> None:
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise UserNotFoundError()
