"""
User account API endpoints - profile, logout and credential changes.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ..models import ChangeEmailRequest, ChangePasswordRequest, LogoutRequest
from ..services import AuthService, OnboardingService
from ..utils.auth import get_auth_service, get_current_user_id, get_onboarding_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile")
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.get_user(user_id)
    return {"success": True, "data": {"user": user.full_profile()}}


@router.put("/profile")
async def update_profile(
    data: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Edit name, date of birth, gender, height, weight or activity level."""
    user = await service.update_profile(user_id, data)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": user.full_profile()},
    }


@router.post("/logout")
async def logout(
    body: Optional[LogoutRequest] = None,
    user_id: str = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Revoke the given refresh token (if any) for the current user."""
    await auth_service.logout(user_id, body.refresh_token if body else None)
    return {"success": True, "message": "Logged out successfully"}


@router.post("/logout-all")
async def logout_all(
    user_id: str = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.logout_all(user_id)
    return {"success": True, "message": "Logged out from all devices successfully"}


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    user_id: str = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Change the password. Every existing refresh token is revoked, so other
    devices have to sign in again.
    """
    await auth_service.change_password(user_id, body.current_password, body.new_password)
    return {
        "success": True,
        "message": "Password changed successfully. Please login again on all devices.",
    }


@router.post("/change-email")
async def change_email(
    body: ChangeEmailRequest,
    user_id: str = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.change_email(user_id, body.email, body.password)
    return {
        "success": True,
        "message": "Email changed successfully",
        "data": {"user": user.summary()},
    }
