# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Six-cell verification code entry with resend cooldown and attempt limit."""

import asyncio
import logging
import re

from messhub_client.config import client_settings

logger = logging.getLogger(__name__)

NON_DIGIT = re.compile(r"\D")


class ResendCountdown:
    """Seconds until "resend" is allowed.

    ``start()`` runs a one-second asyncio ticker owned by the mounted screen.
    ``stop()`` cancels it. Starting again begins a fresh countdown; a stopped
    countdown is never resumed.
    """

    def __init__(self, seconds: int | None = None):
        self.seconds = client_settings.resend_cooldown if seconds is None else seconds
        self.remaining = self.seconds
        self._task: asyncio.Task | None = None

    @property
    def can_resend(self) -> bool:
        return self.remaining <= 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> int:
        if self.remaining > 0:
            self.remaining -= 1
        return self.remaining

    def reset(self) -> None:
        self.remaining = self.seconds

    def start(self) -> None:
        self.stop()
        self.reset()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while self.remaining > 0:
            await asyncio.sleep(1)
            self.tick()


class OtpEntry:
    """State of the code input: cells, focus, attempts and the resend countdown."""

    def __init__(self, length: int = 6, max_attempts: int | None = None, cooldown: int | None = None):
        self.length = length
        self.max_attempts = client_settings.max_attempts if max_attempts is None else max_attempts
        self.cells = [""] * length
        self.focus = 0
        self.attempts = 0
        self.countdown = ResendCountdown(cooldown)

    @property
    def code(self) -> str:
        return "".join(self.cells)

    @property
    def is_complete(self) -> bool:
        return all(self.cells)

    @property
    def locked(self) -> bool:
        return self.attempts >= self.max_attempts

    @property
    def attempts_remaining(self) -> int:
        return max(self.max_attempts - self.attempts, 0)

    def can_submit(self, is_loading: bool = False) -> bool:
        return self.is_complete and not self.locked and not is_loading

    def change(self, index: int, value: str) -> None:
        """Input event on cell ``index``. Multi-character values are treated as a paste."""
        if len(value) > 1 and self.paste(value):
            return
        digit = NON_DIGIT.sub("", value)[:1]
        if digit:
            self.cells[index] = digit
            if index < self.length - 1:
                self.focus = index + 1
        else:
            self.cells[index] = ""

    def backspace(self, index: int) -> None:
        if self.cells[index]:
            self.cells[index] = ""
        elif index > 0:
            self.focus = index - 1
            self.cells[index - 1] = ""

    def paste(self, text: str) -> bool:
        """Fill every cell when ``text`` holds exactly ``length`` digits."""
        digits = NON_DIGIT.sub("", text or "")
        if len(digits) != self.length:
            logger.debug("Ignoring paste with %d digits", len(digits))
            return False
        self.cells = list(digits)
        self.focus = self.length - 1
        return True

    def clear(self) -> None:
        self.cells = [""] * self.length
        self.focus = 0

    def record_failure(self) -> None:
        self.attempts += 1
        self.clear()

    def reset_after_resend(self) -> None:
        """A fresh code was sent: empty cells, restart the cooldown, allow new attempts.

        The lock is per code, so at most ``max_attempts`` guesses fit in each
        resend cooldown. Server-side rate limiting bounds guessing overall.
        """
        self.clear()
        self.attempts = 0
        if self.countdown.running:
            self.countdown.start()
        else:
            self.countdown.reset()
