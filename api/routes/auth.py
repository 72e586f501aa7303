"""
Authentication API Endpoints

Provides REST endpoints for:
- Registration and credential login (with optional OTP second step)
- OTP verification and resend
- Forgot-password / update-password flow
- Password change for a logged-in user
- Two-factor status for the login page
"""

import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import AuthenticatorDep
from api.responses import store_errors, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


# =============================================================================
# Request Models
# =============================================================================


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class EmailRequest(BaseModel):
    email: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str | int] = None


class UpdatePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")
    reset_token: Optional[str] = Field(None, alias="resetToken")


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: Optional[str] = Field(None, alias="currentPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/register")
@store_errors("Registration failed. Server error.")
async def register(request: RegisterRequest, authenticator: AuthenticatorDep):
    """Create a customer account. The role is always "user"."""
    await authenticator.register(request.name, request.email, request.phone, request.password)
    return success()


@router.post("/login")
@store_errors("Login failed")
async def login(request: LoginRequest, authenticator: AuthenticatorDep):
    """
    Check credentials; when 2FA is enabled, issue an OTP instead of the user.

    Returns:
        2FA off: {"success": true, "requireOTP": false, "user": {...}, "message": ...}
        2FA on:  {"success": true, "requireOTP": true, "message": "OTP sent to your email."}
    """
    result = await authenticator.login(request.email or "", request.password or "")
    if not result.require_otp:
        return success(requireOTP=False, user=result.user, message=result.message)
    return success(requireOTP=True, message=result.message)


@router.post("/verify-otp")
@store_errors("OTP verification failed")
async def verify_otp(request: VerifyOtpRequest, authenticator: AuthenticatorDep):
    verification = await authenticator.verify_otp(request.email or "", request.otp)
    return success(user=verification.user, resetToken=verification.reset_token)


@router.post("/resend-otp")
@store_errors("Failed to resend OTP")
async def resend_otp(request: EmailRequest, authenticator: AuthenticatorDep):
    await authenticator.resend_otp(request.email or "")
    return success(message="OTP resent successfully.")


@router.post("/forgot-password")
@store_errors("Failed to send OTP")
async def forgot_password(request: EmailRequest, authenticator: AuthenticatorDep):
    await authenticator.forgot_password(request.email or "")
    return success(requireOTP=True, message="OTP sent successfully!")


@router.post("/update-password")
@store_errors("Failed to update password")
async def update_password(request: UpdatePasswordRequest, authenticator: AuthenticatorDep):
    """Set a new password. Requires the resetToken returned by /verify-otp."""
    await authenticator.update_password(request.email, request.new_password, request.reset_token)
    return success(message="Password updated successfully.")


@router.patch("/change-password/{user_id}")
@store_errors("Error changing password")
async def change_password(user_id: int, request: ChangePasswordRequest, authenticator: AuthenticatorDep):
    changed = await authenticator.change_password(
        user_id, request.current_password or "", request.new_password or ""
    )
    return {"success": changed}


@router.get("/security-status")
@store_errors("Failed to fetch security status")
async def security_status(authenticator: AuthenticatorDep):
    """Two-factor flag for the login page: {"enabled": 0 | 1}."""
    enabled = await authenticator.is_two_factor_enabled()
    return {"enabled": int(enabled)}
