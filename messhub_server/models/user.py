# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""User model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from messhub_server.models.base import Base
from messhub_server.models.timestamp import TimestampMixin


class UserRole(str, enum.Enum):
    """Closed set of account roles."""

    USER = "user"
    MESS_OWNER = "mess-owner"
    ADMIN = "admin"


# Roles a visitor may pick at sign-up; admins come from scripts/create_admin.py
SELF_SERVICE_ROLES = (UserRole.USER, UserRole.MESS_OWNER)


class User(Base, TimestampMixin):
    """User account with its pending one-time code.

    password_hash, otp and otp_expiry are deferred with raiseload: a plain
    select never loads them and touching them raises. Load them explicitly
    through CredentialStore.find_by_email(include_secrets=True).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(otp IS NULL AND otp_expiry IS NULL) OR (otp IS NOT NULL AND otp_expiry IS NOT NULL)",
            name="otp_pair",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(String(16), default=UserRole.USER.value, nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    password_hash: Mapped[str] = mapped_column(
        String(255), nullable=False, deferred=True, deferred_raiseload=True
    )
    otp: Mapped[str | None] = mapped_column(
        String(6), nullable=True, deferred=True, deferred_raiseload=True
    )
    otp_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, deferred=True, deferred_raiseload=True
    )


SECRET_FIELDS = (User.password_hash, User.otp, User.otp_expiry)
