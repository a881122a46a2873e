# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""One-time code generation and validation."""

from datetime import datetime, timedelta, timezone

import pytest

from messhub_server import otp
from messhub_server.exceptions import ExpiredCodeError, InvalidCodeError, NoActiveChallengeError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
LATER = NOW + timedelta(minutes=10)


def test_generated_code_is_six_digits():
    for _ in range(200):
        code = otp.generate_code()
        assert len(code) == 6
        assert code.isdigit()


def test_leading_zero_codes_are_possible(monkeypatch):
    monkeypatch.setattr(otp.secrets, "randbelow", lambda n: 48213)
    assert otp.generate_code() == "048213"
    monkeypatch.setattr(otp.secrets, "randbelow", lambda n: 0)
    assert otp.generate_code() == "000000"


def test_code_range_covers_full_space(monkeypatch):
    seen = []
    monkeypatch.setattr(otp.secrets, "randbelow", lambda n: seen.append(n) or n - 1)
    assert otp.generate_code() == "999999"
    assert seen == [1_000_000]


def test_generate_uses_configured_ttl(monkeypatch):
    monkeypatch.setattr(otp, "utcnow", lambda: NOW)
    challenge = otp.generate()
    assert challenge.expires_at == NOW + timedelta(minutes=10)
    assert otp.generate(ttl_minutes=3).expires_at == NOW + timedelta(minutes=3)


def test_validate_accepts_matching_code():
    otp.validate("048213", "048213", LATER, now=NOW)


def test_validate_trims_whitespace():
    otp.validate(" 048213 ", "048213", LATER, now=NOW)


def test_validate_rejects_mismatch():
    with pytest.raises(InvalidCodeError):
        otp.validate("048214", "048213", LATER, now=NOW)


def test_validate_rejects_numbers():
    # 48213 would match "048213" only through coercion
    with pytest.raises(InvalidCodeError):
        otp.validate(48213, "048213", LATER, now=NOW)


def test_validate_expired_even_when_equal():
    with pytest.raises(ExpiredCodeError):
        otp.validate("048213", "048213", LATER, now=LATER)
    with pytest.raises(ExpiredCodeError):
        otp.validate("048213", "048213", LATER, now=LATER + timedelta(seconds=1))


def test_validate_without_challenge():
    with pytest.raises(NoActiveChallengeError):
        otp.validate("048213", None, None, now=NOW)


def test_validate_naive_expiry_is_utc():
    naive = LATER.replace(tzinfo=None)
    otp.validate("048213", "048213", naive, now=NOW)
    with pytest.raises(ExpiredCodeError):
        otp.validate("048213", "048213", naive, now=LATER)


def test_otp_errors_carry_reason():
    assert InvalidCodeError().to_error()["details"] == {"reason": "invalid"}
    assert ExpiredCodeError().to_error()["details"] == {"reason": "expired"}
    assert NoActiveChallengeError().to_error()["code"] == "AUTH_003"
