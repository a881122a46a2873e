# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. Tests run against a throwaway SQLite database (aiosqlite)."""

import os
import tempfile

# Settings are read at import time, so the environment must be ready first.
_tmpdir = tempfile.mkdtemp(prefix="messhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmpdir}/test.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SKIP_EMAIL"] = "true"
os.environ["JWT_SECRET"] = "test-secret"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from messhub_client.config import client_settings  # noqa: E402
from messhub_server import otp, rate_limit  # noqa: E402
from messhub_server.database import async_session_maker, drop_db, engine, init_db  # noqa: E402
from messhub_server.main import app  # noqa: E402
from messhub_server.routers import auth as auth_router  # noqa: E402
from messhub_server.services.credentials import CredentialStore  # noqa: E402

PASSWORD = "Secret123!"


@pytest.fixture(autouse=True)
def session_file(tmp_path, monkeypatch):
    """Keep the client's default durable store out of the home directory."""
    path = tmp_path / "session.json"
    monkeypatch.setattr(client_settings, "storage_path", path)
    return path


@pytest.fixture
async def db():
    """Fresh tables for each test."""
    await init_db()
    rate_limit.reset()
    yield
    await drop_db()
    await engine.dispose()


@pytest.fixture
async def session(db):
    async with async_session_maker() as s:
        yield s


@pytest.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def issued_codes(monkeypatch):
    """Queue of codes the server will hand out next; random once empty."""
    queue: list[str] = []
    real = otp.generate_code
    monkeypatch.setattr(otp, "generate_code", lambda: queue.pop(0) if queue else real())
    return queue


@pytest.fixture
def outbox(monkeypatch):
    """Capture code emails as (to, code, purpose) instead of logging them."""
    sent: list[tuple[str, str, str]] = []

    async def fake_send(to, code, name, purpose="verification"):
        sent.append((to, code, purpose))

    monkeypatch.setattr(auth_router, "send_otp_email", fake_send)
    return sent


@pytest.fixture
def clock(monkeypatch):
    """Shift the server's code clock: ``clock(minutes=11)``."""
    from datetime import timedelta

    real = otp.utcnow

    def advance(**delta):
        monkeypatch.setattr(otp, "utcnow", lambda: real() + timedelta(**delta))

    return advance


async def stored_challenge(email: str):
    """(otp, otp_expiry) currently stored for the user."""
    async with async_session_maker() as s:
        user = await CredentialStore(s).require_by_email(email, include_secrets=True)
        return user.otp, user.otp_expiry


async def register(client: AsyncClient, email: str = "alice@x.com", password: str = PASSWORD, **extra):
    body = {"name": "Alice", "email": email, "password": password, **extra}
    return await client.post("/api/auth/register", json=body)


async def register_verified(client: AsyncClient, email: str = "alice@x.com", password: str = PASSWORD):
    """Register and verify; returns the registration response."""
    r = await register(client, email, password)
    code, _ = await stored_challenge(email)
    v = await client.post("/api/auth/verify", json={"email": email, "otp": code})
    assert v.status_code == 200, v.text
    return r


async def login_token(client: AsyncClient, email: str = "alice@x.com", password: str = PASSWORD) -> str:
    r = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["data"]["token"]
