# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""One-time codes: generation and validation.

A challenge is a 6-digit numeric string plus an expiry. Codes are drawn
uniformly from [0, 1_000_000) and zero-padded, so "048213" is as likely as
any other code. The caller persists the pair on the user record.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from messhub_server.config import settings
from messhub_server.exceptions import ExpiredCodeError, InvalidCodeError, NoActiveChallengeError

CODE_LENGTH = 6
CODE_SPACE = 10**CODE_LENGTH


@dataclass(frozen=True)
class Challenge:
    code: str
    expires_at: datetime


def utcnow() -> datetime:
    """Clock used for both issuing and checking codes."""
    return datetime.now(timezone.utc)


def generate_code() -> str:
    """Return a uniformly random 6-digit code, leading zeros allowed."""
    return f"{secrets.randbelow(CODE_SPACE):0{CODE_LENGTH}d}"


def generate(ttl_minutes: int | None = None) -> Challenge:
    """Create a fresh challenge valid for ttl_minutes (default from settings)."""
    minutes = settings.otp_expiry_minutes if ttl_minutes is None else ttl_minutes
    return Challenge(code=generate_code(), expires_at=utcnow() + timedelta(minutes=minutes))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate(
    submitted: object,
    stored: str | None,
    stored_expiry: datetime | None,
    now: datetime | None = None,
) -> None:
    """Check a submitted code against the stored challenge.

    Raises NoActiveChallengeError when nothing is stored, ExpiredCodeError
    once ``now >= stored_expiry`` (whatever was submitted), and
    InvalidCodeError on mismatch. The submitted value must be a string;
    numbers are rejected rather than coerced.
    """
    if stored is None or stored_expiry is None:
        raise NoActiveChallengeError()
    now = _as_utc(now or utcnow())
    if now >= _as_utc(stored_expiry):
        raise ExpiredCodeError()
    if not isinstance(submitted, str):
        raise InvalidCodeError()
    if not secrets.compare_digest(submitted.strip().encode(), str(stored).strip().encode()):
        raise InvalidCodeError()
