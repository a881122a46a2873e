# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""HTTP client for the MessHub auth API."""

import logging
from typing import Any

import httpx

from messhub_client.config import client_settings
from messhub_client.errors import AuthError, AuthErrorCode, normalize_response_error

logger = logging.getLogger(__name__)


class AuthApiClient:
    """Thin async wrapper over the /api/auth endpoints.

    Each method returns the envelope's ``data`` (or None) and raises
    AuthError on any failure: error envelopes, non-JSON bodies, timeouts
    and connection problems alike.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=(base_url or client_settings.api_url).rstrip("/") + "/api",
            timeout=client_settings.request_timeout if timeout is None else timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.token: str | None = None

    async def __aenter__(self) -> "AuthApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        auth: bool = False,
        token: str | None = None,
    ) -> Any:
        headers = {}
        if auth:
            token = token or self.token
            if not token:
                raise AuthError(AuthErrorCode.SESSION_INVALID, "Please sign in again.")
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("%s timed out: %s", operation, e)
            raise AuthError(AuthErrorCode.NETWORK_TIMEOUT, "The server took too long to respond. Please try again.")
        except httpx.TransportError as e:
            logger.warning("%s failed to reach server: %s", operation, e)
            raise AuthError(AuthErrorCode.NETWORK_ERROR, "Network error. Please check your connection.")

        try:
            body = response.json()
        except ValueError:
            body = {"error": {"message": response.text or "An unexpected error occurred"}}

        if response.is_error or not (isinstance(body, dict) and body.get("success")):
            raise normalize_response_error(operation, response.status_code, body)
        return body.get("data")

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: str | None = None,
        phone: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": name, "email": email, "password": password}
        if role:
            payload["role"] = role
        if phone:
            payload["phone"] = phone
        return await self._request("register", "POST", "/auth/register", payload)

    async def verify(self, email: str, otp: str) -> None:
        await self._request("verify", "POST", "/auth/verify", {"email": email, "otp": otp})

    async def resend_otp(self, email: str) -> None:
        await self._request("resend_otp", "POST", "/auth/resend-otp", {"email": email})

    async def login(self, email: str, password: str) -> dict[str, Any]:
        return await self._request("login", "POST", "/auth/login", {"email": email, "password": password})

    async def forgot_password(self, email: str) -> None:
        await self._request("forgot_password", "POST", "/auth/forgot-password", {"email": email})

    async def verify_password_reset_otp(self, email: str, otp: str) -> None:
        await self._request(
            "verify_password_reset_otp",
            "POST",
            "/auth/verify-password-reset-otp",
            {"email": email, "otp": otp},
        )

    async def reset_password(self, email: str, otp: str, new_password: str) -> None:
        await self._request(
            "reset_password",
            "POST",
            "/auth/reset-password",
            {"email": email, "otp": otp, "newPassword": new_password},
        )

    async def me(self) -> dict[str, Any]:
        data = await self._request("me", "GET", "/auth/me", auth=True)
        return data["user"]

    async def update_profile(self, **fields: Any) -> dict[str, Any]:
        data = await self._request("update_profile", "PUT", "/auth/me", fields, auth=True)
        return data["user"]

    async def logout(self, token: str | None = None) -> None:
        await self._request("logout", "POST", "/auth/logout", auth=True, token=token)
