# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication API routes.

Account state lives on the user row: Unregistered -> unverified -> verified,
plus an independent pending-code pair (otp, otp_expiry). Verification and
password reset share that pair; the endpoint decides the purpose.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from messhub_server import otp
from messhub_server.api.schemas import (
    ApiResponse,
    EmailRequest,
    ErrorResponse,
    LoginData,
    LoginRequest,
    ProfileUpdate,
    RegisteredUser,
    RegisterRequest,
    ResetPasswordRequest,
    UserData,
    UserProfile,
    VerifyOtpRequest,
)
from messhub_server.auth import create_access_token, get_current_user, hash_password, verify_password
from messhub_server.database import get_db
from messhub_server.exceptions import (
    AlreadyVerifiedError,
    DeactivatedError,
    DeliveryFailedError,
    InvalidCodeError,
    InvalidCredentialsError,
    UnverifiedError,
    ValidationFailedError,
)
from messhub_server.models import User
from messhub_server.rate_limit import rate_limit_auth_dep
from messhub_server.services.credentials import CredentialStore
from messhub_server.services.email import send_otp_email

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 409, 429, 500)},
)
limited = [Depends(rate_limit_auth_dep)]


@router.post(
    "/register",
    response_model=ApiResponse[RegisteredUser],
    status_code=status.HTTP_201_CREATED,
    dependencies=limited,
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[RegisteredUser]:
    """Create an unverified account and email it a verification code.

    Delivery is best-effort here: the account exists either way and the
    user can ask for a new code with /resend-otp.
    """
    store = CredentialStore(db)
    challenge = otp.generate()
    user = await store.create_user(
        email=data.email,
        password=data.password,
        name=data.name,
        role=data.role.value,
        phone=data.phone,
        challenge=challenge,
    )
    await db.commit()
    try:
        await send_otp_email(user.email, challenge.code, user.name, "verification")
    except DeliveryFailedError:
        logger.warning("Verification email for user id=%s not delivered; registration kept", user.id)
    return ApiResponse(
        message="Registration successful. Please check your email for verification code.",
        data=RegisteredUser.model_validate(user),
    )


@router.post("/verify", response_model=ApiResponse[None], dependencies=limited)
async def verify(
    data: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[None]:
    """Verify the account with its one-time code. Enables login."""
    store = CredentialStore(db)
    user = await store.require_by_email(data.email, include_secrets=True)
    if user.is_verified:
        raise AlreadyVerifiedError()
    otp.validate(data.otp, user.otp, user.otp_expiry)
    consumed = await store.consume_challenge(user.id, user.otp, user.otp_expiry, is_verified=True)
    if not consumed:
        # Replaced by a concurrent resend after we read it
        raise InvalidCodeError()
    await db.commit()
    logger.info("User id=%s verified", user.id)
    return ApiResponse(message="Account verified successfully")


@router.post("/resend-otp", response_model=ApiResponse[None], dependencies=limited)
async def resend_otp(
    data: EmailRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[None]:
    """Issue a new verification code, invalidating the previous one."""
    store = CredentialStore(db)
    user = await store.require_by_email(data.email)
    if user.is_verified:
        raise AlreadyVerifiedError()
    challenge = otp.generate()
    await store.set_challenge(user.id, challenge)
    await db.commit()
    await send_otp_email(user.email, challenge.code, user.name, "verification")
    return ApiResponse(message="OTP sent successfully")


@router.post("/login", response_model=ApiResponse[LoginData], dependencies=limited)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[LoginData]:
    """Authenticate a verified, active user and return a session token."""
    store = CredentialStore(db)
    user = await store.require_by_email(data.email, include_secrets=True)
    if not user.is_verified:
        raise UnverifiedError()
    if not user.is_active:
        raise DeactivatedError()
    if not verify_password(data.password, user.password_hash):
        raise InvalidCredentialsError()
    await store.touch_last_login(user.id)
    await db.commit()
    await db.refresh(user)
    token = create_access_token(user.id, user.email, user.role)
    return ApiResponse(
        message="Login successful",
        data=LoginData(token=token, user=UserProfile.model_validate(user)),
    )


@router.post("/forgot-password", response_model=ApiResponse[None], dependencies=limited)
async def forgot_password(
    data: EmailRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[None]:
    """Email a password reset code to a verified account."""
    store = CredentialStore(db)
    user = await store.require_by_email(data.email)
    if not user.is_verified:
        raise UnverifiedError()
    challenge = otp.generate()
    await store.set_challenge(user.id, challenge)
    await db.commit()
    await send_otp_email(user.email, challenge.code, user.name, "reset")
    return ApiResponse(message="Password reset code sent to your email")


@router.post("/verify-password-reset-otp", response_model=ApiResponse[None], dependencies=limited)
async def verify_password_reset_otp(
    data: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[None]:
    """Check a reset code without consuming it; /reset-password checks it again."""
    store = CredentialStore(db)
    user = await store.require_by_email(data.email, include_secrets=True)
    otp.validate(data.otp, user.otp, user.otp_expiry)
    return ApiResponse(message="OTP verified successfully")


@router.post("/reset-password", response_model=ApiResponse[None], dependencies=limited)
async def reset_password(
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[None]:
    """Set a new password with a still-valid reset code, then clear the code."""
    store = CredentialStore(db)
    user = await store.require_by_email(data.email, include_secrets=True)
    otp.validate(data.otp, user.otp, user.otp_expiry)
    if verify_password(data.new_password, user.password_hash):
        raise ValidationFailedError(
            "New password must be different from the old password",
            details=[{"field": "newPassword", "message": "New password must be different from the old password"}],
        )
    consumed = await store.consume_challenge(
        user.id,
        user.otp,
        user.otp_expiry,
        password_hash=hash_password(data.new_password),
    )
    if not consumed:
        raise InvalidCodeError()
    await db.commit()
    logger.info("Password reset for user id=%s", user.id)
    return ApiResponse(message="Password reset successfully")


@router.get("/me", response_model=ApiResponse[UserData])
async def get_me(
    user: User = Depends(get_current_user),
) -> ApiResponse[UserData]:
    """Get current user profile."""
    return ApiResponse(data=UserData(user=UserProfile.model_validate(user)))


@router.put("/me", response_model=ApiResponse[UserData])
async def update_me(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserData]:
    """Update name and/or phone of the current user."""
    store = CredentialStore(db)
    updated = await store.update_profile(user.id, **data.model_dump(exclude_unset=True))
    await db.commit()
    return ApiResponse(
        message="Profile updated successfully",
        data=UserData(user=UserProfile.model_validate(updated)),
    )


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    user: User = Depends(get_current_user),
) -> ApiResponse[None]:
    """Acknowledge logout. Tokens are stateless; the client discards its copy."""
    logger.info("User id=%s logged out", user.id)
    return ApiResponse(message="Logged out successfully")
