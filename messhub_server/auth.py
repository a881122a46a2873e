# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication: session tokens and password hashing."""

from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from messhub_server.config import settings
from messhub_server.database import get_db
from messhub_server.exceptions import (
    DeactivatedError,
    InvalidTokenError,
    TokenError,
    TokenExpiredError,
)
from messhub_server.models import User

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)
bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_CLAIMS = ("sub", "email", "role")


def hash_password(password: str) -> str:
    """Hash a password for storage (salted bcrypt)."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain, hashed)


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a session token carrying the user id, email and role."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    to_encode = {"sub": str(user_id), "email": email, "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a session token.

    Raises TokenExpiredError for a well-signed but expired token and
    InvalidTokenError for anything malformed or badly signed, so the client
    can tell "session expired" apart from "please log in again".
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError:
        raise InvalidTokenError()
    if any(not payload.get(claim) for claim in TOKEN_CLAIMS):
        raise InvalidTokenError()
    return payload


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """Extract and validate claims from the Bearer header. Raises AUTH_004 if absent or invalid."""
    if not credentials or not credentials.credentials:
        raise TokenError()
    return decode_token(credentials.credentials)


async def get_current_user(
    request: Request,
    claims: dict[str, Any] = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the token's user. Deleted users get AUTH_004, deactivated ones AUTH_005."""
    try:
        user_id = int(claims["sub"])
    except ValueError:
        raise InvalidTokenError()
    user = await db.get(User, user_id)
    if user is None:
        raise InvalidTokenError("Token is no longer valid.")
    if not user.is_active:
        raise DeactivatedError()
    request.state.user_id = user.id
    return user
