"""
Admin API endpoints - user management and statistics. Admins only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..models import AdminStatusUpdate, User
from ..services import AdminService
from ..utils.auth import get_admin_service, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    search: str = Query(""),
    verified: Optional[bool] = Query(None),
    onboarding_completed: Optional[bool] = Query(None, alias="onboardingCompleted"),
    is_admin: Optional[bool] = Query(None, alias="isAdmin"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """List users with search, filters, sorting and pagination."""
    data = await service.list_users(
        search=search,
        verified=verified,
        onboarding_completed=onboarding_completed,
        is_admin=is_admin,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return {"success": True, "data": data}


@router.get("/stats")
async def get_stats(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"success": True, "data": await service.get_stats()}


@router.get("/users/{user_id}")
async def get_user_details(
    user_id: str,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"success": True, "data": {"user": await service.get_user_details(user_id)}}


@router.patch("/users/{user_id}/admin-status")
async def update_admin_status(
    user_id: str,
    body: AdminStatusUpdate,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = await service.set_admin_status(user_id, body.is_admin)
    action = "granted" if body.is_admin else "revoked"
    return {"success": True, "message": f"Admin privileges {action}", "data": {"user": user}}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    await service.delete_user(admin.id, user_id)
    return {"success": True, "message": "User deleted successfully"}
