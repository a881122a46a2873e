# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from messhub_server.models.base import Base
from messhub_server.models.user import SECRET_FIELDS, User, UserRole

__all__ = [
    "Base",
    "SECRET_FIELDS",
    "User",
    "UserRole",
]
