"""Registration, OTP verification and login."""

import structlog
from fastapi import APIRouter, Depends

from sunyield.sandbox.api.deps import current_user, get_platform
from sunyield.sandbox.api.schemas import (
    EmailRequest,
    LoginRequest,
    OtpRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from sunyield.sandbox.state import PlatformState, UserRecord

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register")
async def register(
    request: RegisterRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.register(request.email, request.password, request.full_name, request.contact)
    logger.info("user_registered", email=request.email)
    return {
        "success": True,
        "message": "Registration successful. Please check your email for the OTP.",
    }


@router.post("/verify-otp")
async def verify_otp(
    request: OtpRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    token, user = platform.verify_otp(request.email, request.otp)
    return {"token": token, "user": user.to_model().to_api()}


@router.post("/resend-otp")
async def resend_otp(
    request: EmailRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.resend_otp(request.email)
    return {"success": True, "message": "OTP sent to your email"}


@router.post("/login")
async def login(
    request: LoginRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    token, user = platform.login(request.email, request.password)
    logger.info("user_logged_in", user_id=user.id)
    return {"token": token, "user": user.to_model().to_api()}


@router.get("/me")
async def me(user: UserRecord = Depends(current_user)) -> dict:  # noqa: B008
    return user.to_model().to_api()


@router.post("/forgot-password")
async def forgot_password(
    request: EmailRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.forgot_password(request.email)
    return {"success": True, "message": "If the account exists, a reset code has been sent"}


@router.post("/reset-password")
async def reset_password(
    request: ResetPasswordRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.reset_password(request.email, request.otp, request.new_password)
    return {"success": True, "message": "Password reset successful"}
