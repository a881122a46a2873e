# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Configuration for the MessHub client."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Client settings from MESSHUB_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="MESSHUB_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api_url: str = "http://localhost:5000"
    # Seconds before a request fails with NETWORK_TIMEOUT
    request_timeout: float = 30.0
    # Durable session store (user + token), survives restarts
    storage_path: Path = Path.home() / ".messhub" / "session.json"
    # OTP screen
    resend_cooldown: int = 60
    max_attempts: int = 3
    # Seconds the success screen waits before sending an authenticated user to the dashboard
    success_redirect_delay: float = 1.5


client_settings = ClientSettings()
