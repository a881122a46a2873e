# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic schemas for API request/response.

Field names travel in camelCase (``newPassword``, ``isVerified``) to match
the web client; Python code uses snake_case.
"""

import re
from datetime import datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from messhub_server.config import settings
from messhub_server.models.user import SELF_SERVICE_ROLES, UserRole

T = TypeVar("T")

NAME_RE = re.compile(r"^[A-Za-z\s]+$")
PHONE_RE = re.compile(r"^\+?[\d\s-]{10,15}$")
# At least one lowercase, one uppercase, one digit and one special character
PASSWORD_CLASSES = (r"[a-z]", r"[A-Z]", r"\d", r"[^A-Za-z\d]")

# Exactly six ASCII digits, surrounding whitespace ignored. Strict str: JSON numbers are rejected.
OtpCode = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^[0-9]{6}$")]


def check_password_policy(value: str) -> str:
    if len(value) < settings.min_password_length:
        raise ValueError(f"Password must be at least {settings.min_password_length} characters long")
    if not all(re.search(p, value) for p in PASSWORD_CLASSES):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


def check_name(value: str) -> str:
    value = value.strip()
    if not 2 <= len(value) <= 50:
        raise ValueError("Name must be between 2 and 50 characters")
    if not NAME_RE.match(value):
        raise ValueError("Name can only contain letters and spaces")
    return value


def check_phone(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not PHONE_RE.match(value):
        raise ValueError("Please enter a valid phone number (10-15 digits)")
    return value


PersonName = Annotated[str, AfterValidator(check_name)]
Password = Annotated[str, AfterValidator(check_password_policy)]
Phone = Annotated[str | None, AfterValidator(check_phone)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailRequest(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()


# Auth requests
class RegisterRequest(EmailRequest):
    name: PersonName
    password: Password
    role: UserRole = UserRole.USER
    phone: Phone = None

    @field_validator("role")
    @classmethod
    def _self_service_role(cls, v: UserRole) -> UserRole:
        if v not in SELF_SERVICE_ROLES:
            raise ValueError("Invalid role selected")
        return v


class LoginRequest(EmailRequest):
    password: str = Field(min_length=1)


class VerifyOtpRequest(EmailRequest):
    otp: OtpCode


class ResetPasswordRequest(EmailRequest):
    otp: OtpCode
    new_password: Password


class ProfileUpdate(CamelModel):
    name: PersonName | None = None
    phone: Phone = None


# Auth responses
class UserProfile(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    phone: str | None = None
    is_verified: bool
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RegisteredUser(CamelModel):
    email: str
    name: str
    role: UserRole

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class LoginData(BaseModel):
    token: str
    user: UserProfile


class UserData(BaseModel):
    user: UserProfile


# Envelope
class ApiResponse(BaseModel, Generic[T]):
    """Successful response: ``{"success": true, "message"?, "data"?}``."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Any = None


class ErrorResponse(BaseModel):
    """Failed response: ``{"success": false, "error": {"code", "message", "details"?}}``."""

    success: bool = False
    message: str | None = None
    error: ErrorBody
