#!/usr/bin/env python3
# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Create a verified admin user. Run: python -m messhub_server.scripts.create_admin"""

import asyncio
import getpass
import sys

from sqlalchemy import update

from messhub_server.database import async_session_maker, init_db
from messhub_server.exceptions import DuplicateEmailError
from messhub_server.models import User, UserRole
from messhub_server.services.credentials import CredentialStore


async def create_admin(email: str, password: str, name: str) -> int:
    """Insert an admin that can log in immediately (no verification code)."""
    async with async_session_maker() as session:
        store = CredentialStore(session)
        user = await store.create_user(email=email, password=password, name=name, role=UserRole.ADMIN.value)
        await session.execute(update(User).where(User.id == user.id).values(is_verified=True))
        await session.commit()
        return user.id


async def main():
    await init_db()
    name = input("Admin name: ").strip()
    email = input("Admin email: ").strip()
    password = getpass.getpass("Password: ")
    if not name or not email or not password:
        print("All fields required")
        sys.exit(1)
    try:
        await create_admin(email, password, name)
    except DuplicateEmailError:
        print("User already exists")
        sys.exit(1)
    print("Admin user created.")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
