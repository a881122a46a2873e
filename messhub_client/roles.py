# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Account roles and where each one lands after sign-in."""

import enum


class Role(str, enum.Enum):
    USER = "user"
    MESS_OWNER = "mess-owner"
    ADMIN = "admin"


DASHBOARD_PATHS: dict[Role, str] = {
    Role.USER: "/user/dashboard",
    Role.MESS_OWNER: "/mess-owner/dashboard",
    Role.ADMIN: "/admin/dashboard",
}


def parse_role(value: str | Role | None) -> Role:
    """Unknown or missing roles are treated as a plain user."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return Role.USER


def dashboard_path(role: str | Role | None) -> str:
    return DASHBOARD_PATHS[parse_role(role)]
