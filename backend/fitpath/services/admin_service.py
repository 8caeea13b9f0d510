"""
Admin Service - user listing, reporting and admin-flag management.
"""

import logging
import math
from typing import Any, Dict, Optional

from ..core.exceptions import ForbiddenError, InputValidationError, UserNotFoundError
from ..storage.user_repository import SORTABLE_FIELDS, UserRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class AdminService:
    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def list_users(
        self,
        search: str = "",
        verified: Optional[bool] = None,
        onboarding_completed: Optional[bool] = None,
        is_admin: Optional[bool] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        List users with filters, sorting and pagination.

        Returns:
            Dict with ``users`` (public fields), ``pagination`` and ``stats``

        Raises:
            InputValidationError: Unknown sort field/order or out-of-range paging
        """
        if sort_by not in SORTABLE_FIELDS:
            raise InputValidationError(
                f"Cannot sort by '{sort_by}'",
                details={"allowed": sorted(SORTABLE_FIELDS)},
            )
        if sort_order not in ("asc", "desc"):
            raise InputValidationError("Sort order must be 'asc' or 'desc'")
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise InputValidationError(
                f"Page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}"
            )

        users, total = await self.repository.find_users(
            search=search,
            verified=verified,
            onboarding_completed=onboarding_completed,
            is_admin=is_admin,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
        total_pages = math.ceil(total / limit) if total else 0
        stats = await self.repository.get_stats()

        return {
            "users": [u.public_profile() for u in users],
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalUsers": total,
                "hasNextPage": page < total_pages,
                "hasPrevPage": page > 1,
                "limit": limit,
            },
            "stats": stats["overall"],
        }

    async def get_user_details(self, user_id: str) -> Dict[str, Any]:
        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        details = user.full_profile()
        details["isAdmin"] = user.is_admin
        details["activeSessions"] = len(user.refresh_tokens)
        return details

    async def set_admin_status(self, user_id: str, is_admin: bool) -> Dict[str, Any]:
        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        user.is_admin = is_admin
        user = await self.repository.save(user)
        logger.info(f"Admin status for user {user_id} set to {is_admin}")
        return {"id": user.id, "email": user.email, "isAdmin": user.is_admin}

    async def get_stats(self) -> Dict[str, Any]:
        return await self.repository.get_stats()

    async def delete_user(self, actor_id: str, user_id: str) -> None:
        """
        Delete an account.

        Raises:
            ForbiddenError: An admin tried to delete their own account
            UserNotFoundError: Unknown user
        """
        if actor_id == user_id:
            raise ForbiddenError("Admins cannot delete their own account")
        if not await self.repository.delete(user_id):
            raise UserNotFoundError()
        logger.info(f"User {user_id} deleted by admin {actor_id}")
