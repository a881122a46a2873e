# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Error taxonomy for the auth API.

Every business failure is a MessHubException carrying the wire error code
and HTTP status. The handlers in main.py turn them into the JSON envelope
``{"success": false, "error": {"code", "message", "details"?}}``.
"""

from typing import Any


class MessHubException(Exception):
    """Base exception for all MessHub business errors.

    Attributes:
        message: Human-readable error message
        code: Error code for client-side error handling (e.g. "AUTH_001")
        status_code: HTTP status the error is reported with
        details: Optional structured details (field errors, reasons)
    """

    code = "SERVER_001"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_error(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return error


# 400


class ValidationFailedError(MessHubException):
    """Malformed input: bad email, short password, new password equal to old."""

    code = "VALIDATION_001"
    status_code = 400
    default_message = "Validation failed"


class AlreadyVerifiedError(MessHubException):
    code = "VERIFICATION_001"
    status_code = 400
    default_message = "Account already verified"


class OtpError(MessHubException):
    """Base for one-time code failures. All share AUTH_003 on the wire;
    ``details.reason`` tells the client which one it was."""

    code = "AUTH_003"
    status_code = 400
    reason = "invalid"

    def __init__(self, message: str | None = None, details: Any = None):
        super().__init__(message, details if details is not None else {"reason": self.reason})


class InvalidCodeError(OtpError):
    default_message = "Invalid OTP"
    reason = "invalid"


class ExpiredCodeError(OtpError):
    default_message = "OTP expired"
    reason = "expired"


class NoActiveChallengeError(OtpError):
    default_message = "No active OTP. Please request a new code."
    reason = "missing"


# 401


class InvalidCredentialsError(MessHubException):
    code = "AUTH_001"
    status_code = 401
    default_message = "Invalid credentials"


class TokenError(MessHubException):
    code = "AUTH_004"
    status_code = 401
    default_message = "Access denied. No token provided."


class TokenExpiredError(TokenError):
    default_message = "Token has expired."


class InvalidTokenError(TokenError):
    default_message = "Invalid token."


# 403


class UnverifiedError(MessHubException):
    code = "AUTH_002"
    status_code = 403
    default_message = "Account not verified"


class DeactivatedError(MessHubException):
    code = "AUTH_005"
    status_code = 403
    default_message = "Account has been deactivated."


# 404


class UserNotFoundError(MessHubException):
    code = "USER_001"
    status_code = 404
    default_message = "User not found"


# 409


class DuplicateEmailError(MessHubException):
    code = "DUPLICATE_001"
    status_code = 409
    default_message = "Email already registered"


# 429


class RateLimitedError(MessHubException):
    code = "RATE_LIMIT_001"
    status_code = 429
    default_message = "Too many requests. Please try again later."


# 500


class DeliveryFailedError(MessHubException):
    """Out-of-band code delivery failed. Distinct from a bad code so the
    client offers "retry sending" instead of "check your code"."""

    code = "EMAIL_003"
    status_code = 500
    default_message = "Failed to send OTP email"


class InternalError(MessHubException):
    """Unexpected failure; the cause is logged, never returned."""
