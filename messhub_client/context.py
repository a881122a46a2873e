# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""App-wide auth state: who is signed in, and the named operations that change it.

One AuthContext is created at start-up and handed to every screen. State is
only mutated through its methods (login, logout, register, ...), each of
which is logged, so every change can be traced. ``hydrate()`` restores a
saved session from durable storage (``MESSHUB_STORAGE_PATH`` unless
another store is passed); ``logout()`` clears it.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from messhub_client import storage as keys
from messhub_client.api import AuthApiClient
from messhub_client.config import client_settings
from messhub_client.errors import AuthError, AuthErrorCode
from messhub_client.storage import FileStorage, Storage

logger = logging.getLogger(__name__)

OTP_RE = re.compile(r"^[0-9]{6}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Common domain typos caught before a code is sent to nowhere
DOMAIN_TYPOS = {
    "gamil.com": "gmail.com",
    "gmal.com": "gmail.com",
    "gmail.co": "gmail.com",
    "gmail.con": "gmail.com",
    "gmail.om": "gmail.com",
    "gmail.cm": "gmail.com",
    "gmail.comm": "gmail.com",
    "gmail.coom": "gmail.com",
    "gmail.cim": "gmail.com",
    "hotmal.com": "hotmail.com",
    "hotmail.co": "hotmail.com",
    "yaho.com": "yahoo.com",
    "yahoo.co": "yahoo.com",
}


@dataclass
class RegisterData:
    name: str
    email: str
    password: str
    role: str = "user"
    phone: str | None = None


def check_email(email: str) -> None:
    """Raise a VALIDATION_ERROR AuthError for malformed or misspelt addresses."""
    email = email.strip()
    if not EMAIL_RE.match(email):
        raise AuthError(AuthErrorCode.VALIDATION_ERROR, "Please enter a valid email address")
    local, _, domain = email.rpartition("@")
    suggestion = DOMAIN_TYPOS.get(domain.lower())
    if suggestion:
        raise AuthError(AuthErrorCode.VALIDATION_ERROR, f"Did you mean {local}@{suggestion}?")


def check_otp(otp: str) -> str:
    otp = otp.strip()
    if not OTP_RE.match(otp):
        raise AuthError(AuthErrorCode.VALIDATION_ERROR, "Verification code must be 6 digits")
    return otp


class AuthContext:
    """Shared auth state plus the operations screens call.

    Operations return True/False; on False, ``error`` holds the normalized
    AuthError. ``is_loading`` is True while a request is outstanding so
    screens can disable their submit control.
    """

    def __init__(self, api: AuthApiClient, storage: Storage | None = None):
        self.api = api
        self.storage: Storage = storage if storage is not None else FileStorage(client_settings.storage_path)
        self.is_authenticated = False
        self.is_loading = False
        self.user: dict[str, Any] | None = None
        self.token: str | None = None
        self.error: AuthError | None = None
        self._listeners: list[Callable[["AuthContext"], None]] = []

    def subscribe(self, listener: Callable[["AuthContext"], None]) -> Callable[[], None]:
        """Call listener after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def role(self) -> str | None:
        return self.user.get("role") if self.user else None

    def hydrate(self) -> bool:
        """Restore a saved session. Returns whether one was found."""
        user = self.storage.get(keys.AUTH_USER)
        token = self.storage.get(keys.AUTH_TOKEN)
        if user and token:
            self._set_session(user, token, persist=False)
            logger.debug("Session restored for %s", user.get("email"))
            return True
        return False

    def _set_session(self, user: dict[str, Any], token: str, persist: bool = True) -> None:
        self.user = user
        self.token = token
        self.api.token = token
        self.is_authenticated = True
        if persist:
            self.storage.set(keys.AUTH_USER, user)
            self.storage.set(keys.AUTH_TOKEN, token)
        self._notify()

    def _clear_session(self) -> None:
        self.user = None
        self.token = None
        self.api.token = None
        self.is_authenticated = False
        self.storage.remove(keys.AUTH_USER)
        self.storage.remove(keys.AUTH_TOKEN)
        self._notify()

    async def _run(self, operation: str, call: Callable[[], Awaitable[Any]]) -> bool:
        self.is_loading = True
        self.error = None
        self._notify()
        try:
            await call()
            logger.debug("%s succeeded", operation)
            return True
        except AuthError as e:
            logger.info("%s failed: %s %s", operation, e.code.value, e.message)
            self.error = e
            return False
        finally:
            self.is_loading = False
            self._notify()

    async def login(self, email: str, password: str) -> bool:
        async def call():
            # Sent as typed: surrounding spaces are part of the password
            if not email.strip() or not password:
                raise AuthError(AuthErrorCode.VALIDATION_ERROR, "Email and password are required")
            data = await self.api.login(email.strip(), password)
            self._set_session(data["user"], data["token"])

        return await self._run("login", call)

    async def login_after_registration(self, email: str, password: str) -> bool:
        return await self.login(email, password)

    async def register(self, data: RegisterData) -> bool:
        async def call():
            check_email(data.email)
            await self.api.register(
                name=data.name.strip(),
                email=data.email.strip(),
                password=data.password,
                role=data.role,
                phone=data.phone.strip() if data.phone else None,
            )

        return await self._run("register", call)

    async def verify_otp(self, email: str, otp: str) -> bool:
        async def call():
            if not email.strip():
                raise AuthError(AuthErrorCode.VALIDATION_ERROR, "Email and verification code are required")
            await self.api.verify(email.strip(), check_otp(otp))

        return await self._run("verify_otp", call)

    async def resend_otp(self, email: str) -> bool:
        async def call():
            check_email(email)
            await self.api.resend_otp(email.strip())

        return await self._run("resend_otp", call)

    async def forgot_password(self, email: str) -> bool:
        async def call():
            check_email(email)
            await self.api.forgot_password(email.strip())
            self.storage.set(keys.RESET_EMAIL, email.strip())

        return await self._run("forgot_password", call)

    async def verify_password_reset_otp(self, email: str, otp: str) -> bool:
        async def call():
            address = email.strip() or self.storage.get(keys.RESET_EMAIL, "")
            await self.api.verify_password_reset_otp(address, check_otp(otp))

        return await self._run("verify_password_reset_otp", call)

    async def resend_password_reset_otp(self, email: str) -> bool:
        # A reset code is reissued through forgot-password: /resend-otp refuses verified accounts
        async def call():
            check_email(email)
            await self.api.forgot_password(email.strip())

        return await self._run("resend_password_reset_otp", call)

    async def reset_password(self, email: str, otp: str, new_password: str) -> bool:
        async def call():
            await self.api.reset_password(email.strip(), check_otp(otp), new_password)
            self.storage.remove(keys.RESET_EMAIL)

        return await self._run("reset_password", call)

    async def refresh_profile(self) -> bool:
        """Reload the profile from /auth/me; an invalid session signs the user out."""

        async def call():
            try:
                user = await self.api.me()
            except AuthError as e:
                if e.code in (AuthErrorCode.SESSION_INVALID, AuthErrorCode.ACCOUNT_DEACTIVATED):
                    self._clear_session()
                raise
            self._set_session(user, self.token or "")

        return await self._run("refresh_profile", call)

    async def update_profile(self, **fields: Any) -> bool:
        async def call():
            user = await self.api.update_profile(**fields)
            self._set_session(user, self.token or "")

        return await self._run("update_profile", call)

    async def logout(self) -> None:
        """Forget the session locally, then tell the server (best effort)."""
        token = self.token
        self._clear_session()
        logger.debug("Logged out")
        if not token:
            return
        try:
            await self.api.logout(token=token)
        except AuthError as e:
            logger.debug("Server logout not acknowledged: %s", e.message)
