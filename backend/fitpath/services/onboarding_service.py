"""
Onboarding Service - loads a user, applies one onboarding transition and saves it.
"""

import logging
from typing import Any, Dict, Union

from ..core import onboarding
from ..core.exceptions import InputValidationError, UserNotFoundError
from ..models.onboarding import OnboardingStatus, Section
from ..models.user import User
from ..storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


class OnboardingService:
    """Thin persistence wrapper around the pure functions in ``core.onboarding``."""

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def _load(self, user_id: str) -> User:
        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def _store(self, before: User, after: User) -> User:
        saved = await self.repository.save(after, expected_version=before.version)
        if after.onboarding_completed and not before.onboarding_completed:
            logger.info(f"Onboarding completed for user {saved.id}")
        return saved

    async def get_status(self, user_id: str) -> OnboardingStatus:
        return onboarding.onboarding_status(await self._load(user_id))

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        return (await self._load(user_id)).full_profile()

    async def update_section(
        self,
        user_id: str,
        section: Union[Section, str],
        data: Dict[str, Any],
    ) -> User:
        """
        Write one section.

        Raises:
            UserNotFoundError: Unknown user
            InputValidationError: Section data is invalid (nothing is saved)
            ConcurrentUpdateError: The document changed while this update ran
        """
        user = await self._load(user_id)
        updated = onboarding.apply_section_update(user, section, data)
        return await self._store(user, updated)

    async def update_profile(self, user_id: str, data: Dict[str, Any]) -> User:
        """
        Account-level profile edit. Writes the basicInfo section.

        Raises:
            InputValidationError: No basicInfo field in ``data``, or invalid values
        """
        if not onboarding.section_changes(Section.BASIC_INFO, data):
            raise InputValidationError("No valid fields provided for update")
        return await self.update_section(user_id, Section.BASIC_INFO, data)

    async def complete(self, user_id: str) -> User:
        user = await self._load(user_id)
        return await self._store(user, onboarding.complete_onboarding(user))

    async def skip(self, user_id: str) -> User:
        user = await self._load(user_id)
        updated = onboarding.skip_onboarding(user)
        logger.info(f"Onboarding skipped by user {user_id}")
        return await self._store(user, updated)
