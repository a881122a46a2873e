# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""In-memory rate limiting for auth endpoints (brute-force protection)."""

import time
from collections import defaultdict

from fastapi import Request

from messhub_server.config import settings
from messhub_server.exceptions import RateLimitedError

# (client_key, endpoint) -> list of request timestamps in window
_buckets: defaultdict[tuple[str, str], list[float]] = defaultdict(list)
# Window seconds; max requests per window per endpoint
WINDOW = 60
LIMITS: dict[str, int] = {
    "/api/auth/login": 10,
    "/api/auth/register": 5,
    "/api/auth/verify": 10,
    "/api/auth/resend-otp": 5,
    "/api/auth/forgot-password": 5,
    "/api/auth/verify-password-reset-otp": 10,
    "/api/auth/reset-password": 10,
}


def _client_key(request: Request) -> str:
    """Prefer X-Forwarded-For when behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host or "unknown"
    return "unknown"


def _clean_old(bucket: list[float], now: float) -> None:
    cutoff = now - WINDOW
    while bucket and bucket[0] < cutoff:
        bucket.pop(0)


def check_rate_limit(request: Request, path: str) -> None:
    """Raise RateLimitedError (429) if the client has exceeded the limit for this path."""
    limit = LIMITS.get(path)
    if limit is None:
        return
    now = time.monotonic()
    bucket = _buckets[(_client_key(request), path)]
    _clean_old(bucket, now)
    if len(bucket) >= limit:
        raise RateLimitedError()
    bucket.append(now)


def reset() -> None:
    """Forget all recorded requests."""
    _buckets.clear()


async def rate_limit_auth_dep(request: Request) -> None:
    """FastAPI dependency: rate limit auth endpoints."""
    if not settings.rate_limit_enabled:
        return
    check_rate_limit(request, request.url.path.rstrip("/"))
