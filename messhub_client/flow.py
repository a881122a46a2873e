# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Screen navigation for the sign-in flow.

AuthFlow holds the active screen and the payload carried between screens
(email, reset flag, pending password, message). ``navigate`` merges into the
payload rather than replacing it, which is how the email typed on the
register screen is still known on the OTP screen. The email is also mirrored
into storage so a restart mid-flow can pick it up again.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, fields, replace

from messhub_client import storage as keys
from messhub_client.config import client_settings
from messhub_client.roles import dashboard_path
from messhub_client.storage import FileStorage, MemoryStorage, Storage

logger = logging.getLogger(__name__)


class AuthScreen(str, enum.Enum):
    WELCOME = "welcome"
    LOGIN = "login"
    REGISTER = "register"
    FORGOT_PASSWORD = "forgot-password"
    OTP_VERIFICATION = "otp-verification"
    RESET_PASSWORD = "reset-password"
    SUCCESS = "success"


@dataclass
class FlowPayload:
    email: str | None = None
    reset_flow: bool = False
    # Verified reset code, carried from the OTP screen to reset-password
    otp: str | None = None
    name: str | None = None
    role: str | None = None
    # Pending password for the auto-login that follows verification
    password: str | None = None
    message: str | None = None


PAYLOAD_FIELDS = frozenset(f.name for f in fields(FlowPayload))


@dataclass(frozen=True)
class SuccessOutcome:
    title: str
    description: str
    redirect_to: str | None = None
    redirect_delay: float = 0.0
    show_sign_in: bool = False


class AuthFlow:
    """Current screen plus carried payload, changed only through navigate()."""

    def __init__(
        self,
        initial: AuthScreen | str = AuthScreen.WELCOME,
        session_storage: Storage | None = None,
        durable_storage: Storage | None = None,
    ):
        self.screen = AuthScreen(initial)
        self.payload = FlowPayload()
        self.history: list[AuthScreen] = [self.screen]
        self.session_storage: Storage = session_storage if session_storage is not None else MemoryStorage()
        self.durable_storage: Storage = (
            durable_storage if durable_storage is not None else FileStorage(client_settings.storage_path)
        )
        self._listeners: list[Callable[["AuthFlow"], None]] = []

    def subscribe(self, listener: Callable[["AuthFlow"], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def navigate(self, screen: AuthScreen | str, **partial) -> None:
        """Switch to ``screen``, merging non-None ``partial`` keys into the payload."""
        screen = AuthScreen(screen)
        unknown = set(partial) - PAYLOAD_FIELDS
        if unknown:
            raise TypeError(f"Unknown flow payload keys: {', '.join(sorted(unknown))}")
        updates = {k: v for k, v in partial.items() if v is not None}
        self.payload = replace(self.payload, **updates)
        self.screen = screen
        self.history.append(screen)
        self._mirror_email()
        logger.debug("Navigate to %s (reset_flow=%s)", screen.value, self.payload.reset_flow)
        for listener in list(self._listeners):
            listener(self)

    def back(self) -> None:
        """Return to the previous screen, keeping the payload."""
        if len(self.history) < 2:
            return
        self.history.pop()
        previous = self.history.pop()
        self.navigate(previous)

    def discard(self, *names: str) -> None:
        """Reset payload fields to their defaults (e.g. the pending password once used)."""
        unknown = set(names) - PAYLOAD_FIELDS
        if unknown:
            raise TypeError(f"Unknown flow payload keys: {', '.join(sorted(unknown))}")
        defaults = FlowPayload()
        self.payload = replace(self.payload, **{n: getattr(defaults, n) for n in names})

    def _mirror_email(self) -> None:
        email = self.payload.email
        if not email:
            return
        self.session_storage.set(keys.AUTH_EMAIL, email)
        if self.payload.reset_flow:
            self.durable_storage.set(keys.RESET_EMAIL, email)

    def recall_email(self) -> str | None:
        """Email for the current flow: payload first, then the reload caches."""
        return (
            self.payload.email
            or self.durable_storage.get(keys.RESET_EMAIL)
            or self.session_storage.get(keys.AUTH_EMAIL)
        )

    def success_outcome(self, context, delay: float | None = None) -> SuccessOutcome:
        """What the success screen shows, given the current auth state."""
        if self.payload.message:
            title = self.payload.message
        elif self.payload.reset_flow:
            title = "Password Reset Successfully"
        else:
            title = "Account Created Successfully"

        if context.is_authenticated and context.user:
            return SuccessOutcome(
                title=title,
                description="Redirecting you to your dashboard...",
                redirect_to=dashboard_path(context.role),
                redirect_delay=client_settings.success_redirect_delay if delay is None else delay,
            )

        if self.payload.reset_flow:
            description = "Your password has been reset successfully. You can now sign in with your new password."
        else:
            description = "Your account has been created successfully. You can now sign in to your account."
        return SuccessOutcome(title=title, description=description, show_sign_in=True)
