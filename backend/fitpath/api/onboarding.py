"""
Onboarding API endpoints - section updates, status and completion.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..core.onboarding import onboarding_status
from ..models import Section, User
from ..services import OnboardingService
from ..utils.auth import get_current_user_id, get_onboarding_service

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


def _status_payload(user: User) -> Dict[str, Any]:
    return onboarding_status(user).model_dump(by_alias=True)


@router.get("/status")
async def get_status(
    user_id: str = Depends(get_current_user_id),
    service: OnboardingService = Depends(get_onboarding_service),
):
    status = await service.get_status(user_id)
    return {"success": True, "data": status.model_dump(by_alias=True)}


@router.get("/profile")
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Full profile with every section, BMI and age."""
    profile = await service.get_profile(user_id)
    return {"success": True, "data": {"user": profile}}


@router.put("/{section}")
async def update_section(
    section: Section,
    data: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """
    Save one onboarding section.

    Null values are ignored. Filling in the last required section completes
    onboarding automatically.
    """
    user = await service.update_section(user_id, section, data)
    section_data = getattr(user, section.field_name).model_dump(mode="json", by_alias=True)
    return {
        "success": True,
        "message": f"{section.value} updated successfully",
        "data": {
            section.value: section_data,
            "onboardingStatus": _status_payload(user),
        },
    }


@router.post("/complete")
async def complete(
    user_id: str = Depends(get_current_user_id),
    service: OnboardingService = Depends(get_onboarding_service),
):
    user = await service.complete(user_id)
    return {
        "success": True,
        "message": "Onboarding completed successfully",
        "data": {"user": user.full_profile(), "onboardingStatus": _status_payload(user)},
    }


@router.post("/skip")
async def skip(
    user_id: str = Depends(get_current_user_id),
    service: OnboardingService = Depends(get_onboarding_service),
):
    user = await service.skip(user_id)
    return {
        "success": True,
        "message": "Onboarding skipped",
        "data": {"user": user.full_profile(), "onboardingStatus": _status_payload(user)},
    }
