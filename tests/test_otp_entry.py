# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""OTP entry cells, focus handling, attempts and resend countdown."""

import asyncio

from messhub_client.otp_entry import OtpEntry, ResendCountdown


def test_typing_advances_focus():
    entry = OtpEntry()
    for i, digit in enumerate("734521"):
        entry.change(i, digit)
    assert entry.cells == list("734521")
    assert entry.code == "734521"
    assert entry.is_complete
    # No cell after the last one
    assert entry.focus == 5


def test_non_digit_is_ignored():
    entry = OtpEntry()
    entry.change(0, "a")
    assert entry.cells[0] == ""
    assert entry.focus == 0


def test_change_to_empty_clears_cell():
    entry = OtpEntry()
    entry.change(0, "7")
    entry.change(0, "")
    assert entry.cells[0] == ""


def test_paste_fills_all_cells():
    entry = OtpEntry()
    assert entry.paste("734521")
    assert entry.cells == ["7", "3", "4", "5", "2", "1"]
    assert entry.focus == 5


def test_paste_strips_separators():
    entry = OtpEntry()
    assert entry.paste(" 734-521 ")
    assert entry.code == "734521"


def test_paste_with_wrong_length_is_ignored():
    entry = OtpEntry()
    assert not entry.paste("12345")
    assert not entry.paste("1234567")
    assert entry.code == ""


def test_multichar_change_is_a_paste():
    entry = OtpEntry()
    entry.change(2, "734521")
    assert entry.code == "734521"
    assert entry.focus == 5


def test_multichar_change_without_full_code_keeps_first_digit():
    entry = OtpEntry()
    entry.change(2, "98")
    assert entry.cells == ["", "", "9", "", "", ""]
    assert entry.focus == 3


def test_backspace_on_filled_cell_stays():
    entry = OtpEntry()
    entry.change(0, "1")
    entry.change(1, "2")
    entry.backspace(1)
    assert entry.cells[:2] == ["1", ""]
    assert entry.focus == 2


def test_backspace_on_empty_cell_moves_back():
    entry = OtpEntry()
    entry.change(0, "1")
    entry.change(1, "2")
    entry.backspace(2)
    assert entry.focus == 1
    assert entry.cells[:3] == ["1", "", ""]


def test_backspace_on_first_empty_cell():
    entry = OtpEntry()
    entry.backspace(0)
    assert entry.focus == 0


def test_failure_clears_and_refocuses():
    entry = OtpEntry()
    entry.paste("111111")
    entry.record_failure()
    assert entry.code == ""
    assert entry.focus == 0
    assert entry.attempts == 1
    assert entry.attempts_remaining == 2


def test_locked_after_max_attempts():
    entry = OtpEntry(max_attempts=3)
    for _ in range(3):
        entry.paste("111111")
        assert entry.can_submit()
        entry.record_failure()
    entry.paste("222222")
    assert entry.locked
    assert not entry.can_submit()


def test_cannot_submit_while_loading_or_incomplete():
    entry = OtpEntry()
    entry.change(0, "1")
    assert not entry.can_submit()
    entry.paste("123456")
    assert not entry.can_submit(is_loading=True)
    assert entry.can_submit(is_loading=False)


def test_reset_after_resend():
    entry = OtpEntry(cooldown=60)
    entry.paste("123456")
    entry.record_failure()
    entry.countdown.remaining = 0
    entry.paste("123456")
    entry.reset_after_resend()
    assert entry.code == ""
    assert entry.attempts == 0
    assert entry.countdown.remaining == 60
    assert not entry.countdown.can_resend


def test_lock_lifts_only_with_a_new_code():
    entry = OtpEntry(max_attempts=3, cooldown=60)
    for _ in range(3):
        entry.paste("111111")
        entry.record_failure()
    assert entry.locked
    # Still cooling down: no new code, so no new guesses
    assert not entry.countdown.can_resend
    entry.countdown.remaining = 0
    entry.reset_after_resend()
    assert not entry.locked
    assert entry.attempts_remaining == 3


def test_countdown_ticks_to_zero():
    countdown = ResendCountdown(3)
    assert not countdown.can_resend
    assert [countdown.tick() for _ in range(4)] == [2, 1, 0, 0]
    assert countdown.can_resend
    countdown.reset()
    assert countdown.remaining == 3


async def test_countdown_runs_in_background(monkeypatch):
    real_sleep = asyncio.sleep

    async def fast_sleep(delay):
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", fast_sleep)
    countdown = ResendCountdown(3)
    countdown.start()
    assert countdown.running
    for _ in range(20):
        if countdown.can_resend:
            break
        await real_sleep(0)
    assert countdown.can_resend
    assert not countdown.running


async def test_countdown_restarts_rather_than_resumes():
    countdown = ResendCountdown(60)
    countdown.start()
    countdown.remaining = 42
    countdown.stop()
    assert not countdown.running
    assert countdown.remaining == 42
    countdown.start()
    assert countdown.remaining == 60
    countdown.stop()
