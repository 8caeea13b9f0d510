"""
User Repository - Persistent storage for user documents using StorageInterface.

One JSON document per user in ``users/<id>.json`` plus an email index
(``users/email_index.json``) that enforces case-insensitive uniqueness.
"""

import asyncio
import json
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..core.exceptions import ConcurrentUpdateError, DuplicateEntryError, StorageError
from ..models.base import utcnow
from ..models.user import REFRESH_TOKEN_TTL, User
from .interface import StorageInterface

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "lastLoginAt": "last_login_at",
    "email": "email",
    "profileCompleteness": "profile_completeness",
}


class UserRepository:
    """
    Loads and saves whole user documents.

    Saves are last-write-wins. Callers that need stronger guarantees pass
    ``expected_version`` to ``save`` and get a ``ConcurrentUpdateError`` when
    someone else saved the document in between.

    Within one process, writes to a user document are serialized by a
    per-user lock and every email index read-modify-write holds the index
    lock. Lock order is user lock, then index lock.
    """

    def __init__(self, storage: StorageInterface):
        """
        Initialize the repository.

        Args:
            storage: StorageInterface implementation (typically LocalStorage)
        """
        self.storage = storage
        self.users_dir = "users"
        self._email_index_path = f"{self.users_dir}/email_index.json"
        self._index_lock = asyncio.Lock()
        self._user_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _user_path(self, user_id: str) -> str:
        return f"{self.users_dir}/{user_id}.json"

    async def _load_email_index(self) -> Dict[str, str]:
        """Load email to user_id index mapping."""
        content = await self.storage.load(self._email_index_path)
        if content is None:
            return {}
        try:
            return json.loads(content.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError("Email index is corrupted") from e

    async def _save_email_index(self, index: Dict[str, str]) -> None:
        await self.storage.save(self._email_index_path, json.dumps(index, indent=2))

    async def _write(self, user: User) -> None:
        await self.storage.save(self._user_path(user.id), user.model_dump_json(indent=2))

    # ------------------------------------------------------------------ reads

    async def get_by_id(self, user_id: str) -> Optional[User]:
        content = await self.storage.load(self._user_path(user_id))
        if content is None:
            return None
        try:
            return User.model_validate_json(content)
        except ValidationError as e:
            logger.error(f"User document {user_id} is corrupted: {e}")
            raise StorageError(f"User document {user_id} is corrupted") from e

    async def get_by_email(self, email: str) -> Optional[User]:
        index = await self._load_email_index()
        user_id = index.get(email.strip().lower())
        if user_id is None:
            return None
        return await self.get_by_id(user_id)

    async def list_users(self) -> List[User]:
        files = await self.storage.list(self.users_dir, pattern="*.json")
        users = []
        for file_path in files:
            if file_path == self._email_index_path:
                continue
            user_id = file_path.rsplit("/", 1)[-1][:-len(".json")]
            user = await self.get_by_id(user_id)
            if user is not None:
                users.append(user)
        return users

    # ----------------------------------------------------------------- writes

    async def create(self, user: User) -> User:
        """
        Store a new user.

        Raises:
            DuplicateEntryError: If the email is already registered
        """
        async with self._index_lock:
            index = await self._load_email_index()
            if user.email in index:
                raise DuplicateEntryError(
                    "A user with this email address already exists",
                    details={"field": "email", "value": user.email},
                )

            user.refresh_data_quality()
            await self._write(user)
            index[user.email] = user.id
            await self._save_email_index(index)
        logger.info(f"Created user {user.id}")
        return user

    async def save(self, user: User, expected_version: Optional[int] = None) -> User:
        """
        Replace the stored document with ``user``.

        Derived onboarding fields are recomputed, ``version`` is incremented
        and the email index follows email changes.

        Raises:
            ConcurrentUpdateError: If ``expected_version`` no longer matches
            DuplicateEntryError: If the new email belongs to another user
        """
        async with self._user_locks[user.id]:
            stored = await self.get_by_id(user.id)
            if expected_version is not None and stored is not None and stored.version != expected_version:
                raise ConcurrentUpdateError(
                    "User was modified by another request, please retry",
                    details={"expectedVersion": expected_version, "actualVersion": stored.version},
                )

            if stored is not None and stored.email != user.email:
                async with self._index_lock:
                    index = await self._load_email_index()
                    owner = index.get(user.email)
                    if owner is not None and owner != user.id:
                        raise DuplicateEntryError(
                            "A user with this email address already exists",
                            details={"field": "email", "value": user.email},
                        )
                    index.pop(stored.email, None)
                    index[user.email] = user.id
                    await self._save_email_index(index)

            user.refresh_data_quality()
            user.version = (stored.version if stored is not None else user.version) + 1
            user.updated_at = utcnow()
            await self._write(user)
        return user

    async def delete(self, user_id: str) -> bool:
        async with self._user_locks[user_id]:
            user = await self.get_by_id(user_id)
            if user is None:
                return False

            async with self._index_lock:
                index = await self._load_email_index()
                if index.pop(user.email, None) is not None:
                    await self._save_email_index(index)

            deleted = await self.storage.delete(self._user_path(user_id))
        self._user_locks.pop(user_id, None)
        logger.info(f"Deleted user {user_id}")
        return deleted

    async def purge_expired_refresh_tokens(
        self,
        now: Optional[datetime] = None,
        ttl: timedelta = REFRESH_TOKEN_TTL,
    ) -> int:
        """Background TTL sweep: drop refresh tokens older than ``ttl`` from every user."""
        now = now or utcnow()
        purged = 0
        for user in await self.list_users():
            removed = user.clean_expired_tokens(now, ttl)
            if removed:
                await self.save(user)
                purged += removed
        if purged:
            logger.info(f"Purged {purged} expired refresh tokens")
        return purged

    # -------------------------------------------------------------- reporting

    async def find_users(
        self,
        search: str = "",
        verified: Optional[bool] = None,
        onboarding_completed: Optional[bool] = None,
        is_admin: Optional[bool] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[User], int]:
        """
        Filter, sort and paginate users.

        Returns:
            Tuple[List[User], int]: The requested page and the total match count
        """
        users = await self.list_users()
        term = search.strip().lower()

        def matches(user: User) -> bool:
            if term and term not in user.email and term not in (user.basic_info.name or "").lower():
                return False
            if verified is not None and user.is_email_verified != verified:
                return False
            if onboarding_completed is not None and user.onboarding_completed != onboarding_completed:
                return False
            if is_admin is not None and user.is_admin != is_admin:
                return False
            return True

        matched = [u for u in users if matches(u)]

        field = SORTABLE_FIELDS[sort_by]
        present = [u for u in matched if getattr(u, field) is not None]
        missing = [u for u in matched if getattr(u, field) is None]
        present.sort(key=lambda u: getattr(u, field), reverse=(sort_order == "desc"))
        ordered = present + missing

        start = (page - 1) * limit
        return ordered[start:start + limit], len(matched)

    async def get_stats(self, now: Optional[datetime] = None, days: int = 30) -> Dict[str, Any]:
        now = now or utcnow()
        cutoff = now - timedelta(days=days)
        users = await self.list_users()
        total = len(users)

        steps: Dict[int, int] = {}
        for user in users:
            steps[user.onboarding_step] = steps.get(user.onboarding_step, 0) + 1

        verified = sum(1 for u in users if u.is_email_verified)
        return {
            "overall": {
                "totalUsers": total,
                "verifiedUsers": verified,
                "completedOnboarding": sum(1 for u in users if u.onboarding_completed),
                "averageCompleteness": (
                    round(sum(u.profile_completeness for u in users) / total, 1) if total else 0
                ),
            },
            "onboardingSteps": [
                {"step": step, "count": count} for step, count in sorted(steps.items())
            ],
            "recentActivity": {
                "recentRegistrations": sum(1 for u in users if u.created_at >= cutoff),
                "activeUsers": sum(
                    1 for u in users if u.last_login_at and u.last_login_at >= cutoff
                ),
            },
            "verification": {"verified": verified, "unverified": total - verified},
        }


# Global user repository instance
_user_repository: Optional[UserRepository] = None


def init_user_repository(storage: StorageInterface) -> UserRepository:
    """
    Initialize the global user repository instance.

    Args:
        storage: StorageInterface implementation
    """
    global _user_repository
    _user_repository = UserRepository(storage)
    return _user_repository


def get_user_repository() -> UserRepository:
    """
    Get the global user repository instance.

    Raises:
        RuntimeError: If the repository has not been initialized
    """
    if _user_repository is None:
        raise RuntimeError("User repository not initialized. Call init_user_repository() first.")
    return _user_repository
