# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Client-side error shape.

Every failed call is turned into an AuthError before a screen sees it, so
screens branch on ``error.code`` and show ``error.message`` without ever
looking at HTTP responses or transport exceptions.
"""

import enum
from typing import Any


class AuthErrorCode(str, enum.Enum):
    INVALID_CREDENTIALS = "AUTH_001"
    UNVERIFIED_ACCOUNT = "AUTH_002"
    INVALID_OTP = "AUTH_003"
    SESSION_INVALID = "AUTH_004"
    ACCOUNT_DEACTIVATED = "AUTH_005"
    USER_NOT_FOUND = "USER_001"
    VALIDATION_ERROR = "VALIDATION_001"
    ALREADY_VERIFIED = "VERIFICATION_001"
    DUPLICATE_EMAIL = "DUPLICATE_001"
    DELIVERY_FAILED = "EMAIL_003"
    RATE_LIMITED = "RATE_LIMIT_001"
    SERVER_ERROR = "SERVER_001"
    NETWORK_ERROR = "NETWORK_ERROR"
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    UNKNOWN = "UNKNOWN"


class AuthError(Exception):
    """Normalized failure of an auth operation."""

    def __init__(
        self,
        code: AuthErrorCode,
        message: str,
        status: int | None = None,
        details: Any = None,
    ):
        self.code = code
        self.message = message
        self.status = status
        self.details = details
        super().__init__(message)

    @property
    def reason(self) -> str | None:
        """For AUTH_003: "invalid", "expired" or "missing"."""
        if isinstance(self.details, dict):
            return self.details.get("reason")
        return None

    @property
    def field_errors(self) -> dict[str, str]:
        if isinstance(self.details, list):
            return {d.get("field", ""): d.get("message", "") for d in self.details if isinstance(d, dict)}
        return {}

    def __repr__(self) -> str:
        return f"AuthError({self.code.value}, {self.message!r}, status={self.status})"


# (operation, code) -> message; operation None is the fallback for any operation
_MESSAGES: dict[tuple[str | None, AuthErrorCode], str] = {
    ("login", AuthErrorCode.INVALID_CREDENTIALS): "Invalid password. Please check and try again.",
    ("login", AuthErrorCode.USER_NOT_FOUND): "Email not registered. Please create an account first.",
    ("login", AuthErrorCode.UNVERIFIED_ACCOUNT): "Account not verified. Please check your email for verification code.",
    ("login", AuthErrorCode.RATE_LIMITED): "Too many login attempts. Please wait a few minutes before trying again.",
    ("register", AuthErrorCode.DUPLICATE_EMAIL): "This email is already registered. Please sign in or use a different email.",
    ("register", AuthErrorCode.RATE_LIMITED): "Too many registration attempts. Please wait a few minutes before trying again.",
    ("verify", AuthErrorCode.ALREADY_VERIFIED): "This email is already verified. Please proceed to login.",
    ("verify", AuthErrorCode.USER_NOT_FOUND): "Email not found. Please check your email address.",
    ("resend_otp", AuthErrorCode.ALREADY_VERIFIED): "This email is already verified.",
    ("resend_otp", AuthErrorCode.USER_NOT_FOUND): "Email not found. Please check your email address.",
    ("resend_otp", AuthErrorCode.RATE_LIMITED): "Please wait a few minutes before requesting another code.",
    ("resend_otp", AuthErrorCode.DELIVERY_FAILED): "Failed to send verification code. Please check your email address and try again.",
    ("forgot_password", AuthErrorCode.USER_NOT_FOUND): "Email not found. Please check your email address.",
    ("forgot_password", AuthErrorCode.UNVERIFIED_ACCOUNT): "Account not verified. Please verify your account first.",
    ("forgot_password", AuthErrorCode.DELIVERY_FAILED): "Could not send reset email. Please try again later.",
    ("verify_password_reset_otp", AuthErrorCode.USER_NOT_FOUND): "Account not found. Please check your email address.",
    ("reset_password", AuthErrorCode.USER_NOT_FOUND): "Account not found. Please check your email address.",
    (None, AuthErrorCode.ACCOUNT_DEACTIVATED): "Your account has been deactivated. Please contact support.",
    (None, AuthErrorCode.RATE_LIMITED): "Too many requests. Please wait a few minutes before trying again.",
    (None, AuthErrorCode.USER_NOT_FOUND): "Account not found. Please check your credentials.",
    (None, AuthErrorCode.NETWORK_ERROR): "Network error. Please check your connection.",
    (None, AuthErrorCode.NETWORK_TIMEOUT): "The server took too long to respond. Please try again.",
    (None, AuthErrorCode.SERVER_ERROR): "An unexpected error occurred. Please try again.",
}

_OTP_MESSAGES = {
    "expired": "Verification code has expired. Please request a new one.",
    "missing": "No active verification code. Please request a new one.",
    "invalid": "Invalid verification code. Please check and try again.",
}


def _session_message(server_message: str) -> str:
    if "expired" in server_message.lower():
        return "Your session has expired. Please sign in again."
    return "Please sign in again."


def _coerce_code(raw: Any, status: int) -> AuthErrorCode:
    try:
        return AuthErrorCode(raw)
    except ValueError:
        pass
    if status == 429:
        return AuthErrorCode.RATE_LIMITED
    if status >= 500:
        return AuthErrorCode.SERVER_ERROR
    return AuthErrorCode.UNKNOWN


def normalize_response_error(operation: str, status: int, body: Any) -> AuthError:
    """Build an AuthError from a non-success envelope (or a non-JSON body)."""
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        error = {}
    code = _coerce_code(error.get("code"), status)
    server_message = str(error.get("message") or "")
    details = error.get("details")

    if code is AuthErrorCode.INVALID_OTP:
        reason = details.get("reason") if isinstance(details, dict) else None
        if reason is None:
            reason = "expired" if "expired" in server_message.lower() else "invalid"
        message = _OTP_MESSAGES.get(reason, _OTP_MESSAGES["invalid"])
    elif code is AuthErrorCode.SESSION_INVALID:
        message = _session_message(server_message)
    elif code is AuthErrorCode.VALIDATION_ERROR and isinstance(details, list) and details:
        fields = ", ".join(f"{d.get('field')}: {d.get('message')}" for d in details if isinstance(d, dict))
        message = f"Please fix the following: {fields}"
    else:
        message = (
            _MESSAGES.get((operation, code))
            or _MESSAGES.get((None, code))
            or server_message
            or "An unexpected error occurred. Please try again."
        )
    return AuthError(code, message, status=status, details=details)
