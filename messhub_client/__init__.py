# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Headless MessHub client: API transport, auth context, screen flow and OTP entry."""

from messhub_client.api import AuthApiClient
from messhub_client.context import AuthContext, RegisterData
from messhub_client.errors import AuthError, AuthErrorCode
from messhub_client.flow import AuthFlow, AuthScreen, FlowPayload
from messhub_client.otp_entry import OtpEntry, ResendCountdown
from messhub_client.roles import Role, dashboard_path

__all__ = [
    "AuthApiClient",
    "AuthContext",
    "AuthError",
    "AuthErrorCode",
    "AuthFlow",
    "AuthScreen",
    "FlowPayload",
    "OtpEntry",
    "RegisterData",
    "ResendCountdown",
    "Role",
    "dashboard_path",
]
