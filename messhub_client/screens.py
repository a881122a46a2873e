# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Screen controllers for the sign-in flow.

Each controller turns user actions into AuthContext calls and AuthFlow
navigation. They hold only what a form would hold (the last error, a
"sign in instead" hint); everything shared lives in the context or flow.
"""

import logging

from messhub_client.context import AuthContext, RegisterData
from messhub_client.errors import AuthErrorCode
from messhub_client.flow import AuthFlow, AuthScreen
from messhub_client.otp_entry import OtpEntry

logger = logging.getLogger(__name__)

VERIFIED_LOGGED_IN = "Your account has been verified and you're now logged in!"
VERIFIED_SIGN_IN = "Your account has been verified! Please log in to continue."


class Screen:
    def __init__(self, context: AuthContext, flow: AuthFlow):
        self.context = context
        self.flow = flow
        self.error: str | None = None

    def _take_error(self, fallback: str) -> str:
        self.error = self.context.error.message if self.context.error else fallback
        return self.error


class LoginScreen(Screen):
    async def submit(self, email: str, password: str) -> bool:
        self.error = None
        if await self.context.login(email, password):
            self.flow.navigate(AuthScreen.SUCCESS, email=email.strip(), message="Signed in successfully")
            return True

        error = self.context.error
        self._take_error("Login failed. Please try again.")
        if error is not None and error.code is AuthErrorCode.UNVERIFIED_ACCOUNT:
            # Send the user to finish verification with a fresh code
            address = email.strip()
            sent = await self.context.resend_otp(address)
            message = (
                "Your account is not verified yet. We've sent a new code to your email."
                if sent
                else "Your account is not verified yet. Request a new code to continue."
            )
            self.flow.navigate(
                AuthScreen.OTP_VERIFICATION,
                email=address,
                password=password,
                reset_flow=False,
                message=message,
            )
        return False


class RegisterScreen(Screen):
    def __init__(self, context: AuthContext, flow: AuthFlow):
        super().__init__(context, flow)
        self.suggest_login = False
        self._email: str | None = None

    async def submit(self, data: RegisterData) -> bool:
        self.error = None
        self.suggest_login = False
        self._email = data.email.strip()
        if await self.context.register(data):
            self.flow.navigate(
                AuthScreen.OTP_VERIFICATION,
                email=self._email,
                name=data.name.strip(),
                role=data.role,
                password=data.password,
                reset_flow=False,
            )
            return True

        self._take_error("Registration failed. Please try again.")
        if self.context.error is not None and self.context.error.code is AuthErrorCode.DUPLICATE_EMAIL:
            self.suggest_login = True
        return False

    def go_to_login(self) -> None:
        self.flow.navigate(AuthScreen.LOGIN, email=self._email)


class ForgotPasswordScreen(Screen):
    async def submit(self, email: str) -> bool:
        self.error = None
        address = email.strip()
        if await self.context.forgot_password(address):
            self.flow.navigate(AuthScreen.OTP_VERIFICATION, email=address, reset_flow=True)
            return True
        self._take_error("Failed to send reset code. Please try again.")
        return False


class ResetPasswordScreen(Screen):
    async def submit(self, new_password: str, confirm_password: str | None = None) -> bool:
        self.error = None
        if confirm_password is not None and new_password != confirm_password:
            self.error = "Passwords do not match"
            return False
        email = self.flow.recall_email()
        otp = self.flow.payload.otp
        if not email or not otp:
            self.error = "Your reset session has expired. Please request a new code."
            return False
        if await self.context.reset_password(email, otp, new_password):
            self.flow.discard("otp")
            self.flow.navigate(AuthScreen.SUCCESS, reset_flow=True, message="Password Reset Successfully")
            return True
        self._take_error("Failed to reset password. Please try again.")
        return False


class OtpVerificationScreen(Screen):
    """Code entry for both account verification and password reset.

    ``reset_flow`` in the flow payload picks which endpoint a submission
    hits. A submission that completes after the screen was unmounted, or
    after the flow moved elsewhere, still records its result but does not
    navigate.
    """

    def __init__(self, context: AuthContext, flow: AuthFlow, entry: OtpEntry | None = None):
        super().__init__(context, flow)
        self.entry = entry if entry is not None else OtpEntry()
        self.email: str | None = None
        self.mounted = False
        self._visit = 0

    def mount(self) -> None:
        """Show the screen. Must be called with an event loop running (starts the countdown)."""
        self.mounted = True
        self._visit = len(self.flow.history)
        self.email = self.flow.recall_email()
        self.error = None if self.email else "Email not found. Please go back and try again."
        self.entry.clear()
        self.entry.countdown.start()

    def unmount(self) -> None:
        self.mounted = False
        self.entry.countdown.stop()

    def _is_current(self, visit: int) -> bool:
        return (
            self.mounted
            and self._visit == visit
            and self.flow.screen is AuthScreen.OTP_VERIFICATION
            and len(self.flow.history) == visit
        )

    async def submit(self) -> bool:
        if self.entry.locked:
            self.error = "Too many failed attempts. Please request a new code."
            return False
        if not self.entry.is_complete:
            self.error = "Please enter all 6 digits of the verification code"
            return False
        if self.context.is_loading:
            return False
        if not self.email:
            self.error = "Email not found. Please go back and try again."
            return False

        visit = self._visit
        email = self.email
        code = self.entry.code
        reset_flow = self.flow.payload.reset_flow
        self.error = None

        if reset_flow:
            ok = await self.context.verify_password_reset_otp(email, code)
        else:
            ok = await self.context.verify_otp(email, code)

        if not ok:
            self._take_error("Invalid verification code. Please try again.")
            self.entry.record_failure()
            return False

        if not self._is_current(visit):
            logger.debug("Verification finished after leaving the OTP screen; not navigating")
            return True

        if reset_flow:
            self.flow.navigate(AuthScreen.RESET_PASSWORD, email=email, otp=code)
            return True

        message = VERIFIED_SIGN_IN
        password = self.flow.payload.password
        if password:
            logged_in = await self.context.login_after_registration(email, password)
            self.flow.discard("password")
            if not self._is_current(visit):
                return True
            if logged_in:
                message = VERIFIED_LOGGED_IN
        self.flow.navigate(AuthScreen.SUCCESS, message=message)
        return True

    async def resend(self) -> bool:
        if not self.entry.countdown.can_resend or self.context.is_loading:
            return False
        if not self.email:
            self.error = "Email address not found. Please go back and try again."
            return False

        if self.flow.payload.reset_flow:
            ok = await self.context.resend_password_reset_otp(self.email)
        else:
            ok = await self.context.resend_otp(self.email)

        if not ok:
            self._take_error("Failed to resend verification code. Please try again.")
            return False
        self.error = None
        self.entry.reset_after_resend()
        return True
