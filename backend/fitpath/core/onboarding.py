"""
Onboarding state machine.

    NOT_STARTED (step 0) -> IN_PROGRESS (step 1..5) -> COMPLETED (step 6)

All transitions are pure: they take a ``User`` and return an updated copy,
leaving persistence to the caller. ``onboarding_step`` only moves forward and
``onboarding_completed`` never goes back to False.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..models.base import utcnow
from ..models.onboarding import SECTION_MODELS, OnboardingStatus, Section
from ..models.user import User
from .exceptions import IncompleteSectionsError, InputValidationError

logger = logging.getLogger(__name__)

SECTION_STEPS = {
    Section.BASIC_INFO: 1,
    Section.LIFESTYLE: 2,
    Section.MEDICAL_HISTORY: 3,
    Section.GOALS: 4,
    Section.PREFERENCES: 5,
}
COMPLETED_STEP = 6

# Section -> DataQuality flag; order is the order reported to clients
REQUIRED_SECTIONS = {
    Section.BASIC_INFO: "has_basic_info",
    Section.LIFESTYLE: "has_lifestyle",
    Section.MEDICAL_HISTORY: "has_medical_history",
    Section.GOALS: "has_goals",
}


def _clean(model_cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map camelCase keys to attribute names, dropping null values, client-sent
    timestamps and keys the section does not define (free-form sections keep them).
    """
    free_form = model_cls.model_config.get("extra") == "allow"
    by_alias = {
        (field.alias or name): name for name, field in model_cls.model_fields.items()
    }
    cleaned = {}
    for key, value in data.items():
        name = by_alias.get(key, key)
        if (name not in model_cls.model_fields and not free_form) or value is None or name == "completed_at":
            continue
        cleaned[name] = value
    return cleaned


def section_changes(section: Union[Section, str], data: Dict[str, Any]) -> Dict[str, Any]:
    """The part of ``data`` an update of ``section`` would actually write."""
    return _clean(SECTION_MODELS[Section(section)], data)


def missing_sections(user: User) -> List[str]:
    quality = user.data_quality
    return [
        section.value
        for section, flag in REQUIRED_SECTIONS.items()
        if not getattr(quality, flag)
    ]


def _stamp_completion(user: User, now: datetime, sections_completed: int) -> None:
    info = user.session_info
    info.completion_timestamp = now
    info.completion_date = now.date().isoformat()
    info.sections_completed = sections_completed
    info.completion_rate = f"{user.profile_completeness}%"


def maybe_auto_complete(user: User, now: Optional[datetime] = None) -> bool:
    """
    Finish onboarding as soon as every required section is filled in.

    Mutates ``user`` in place and returns True when the transition fired.
    """
    if user.onboarding_completed or user.profile_completeness != 100:
        return False
    user.onboarding_completed = True
    user.onboarding_step = COMPLETED_STEP
    _stamp_completion(user, now or utcnow(), len(REQUIRED_SECTIONS))
    logger.info(f"Onboarding auto-completed for user {user.id}")
    return True


def apply_section_update(
    user: User,
    section: Union[Section, str],
    data: Dict[str, Any],
    now: Optional[datetime] = None,
) -> User:
    """
    Merge ``data`` into one section and recompute onboarding progress.

    Args:
        user: Current user document (not modified)
        section: Section to write
        data: Field values; ``None`` values are ignored so they never
            overwrite what is already stored
        now: Timestamp used for ``completed_at`` (defaults to current UTC)

    Returns:
        User: Updated copy

    Raises:
        InputValidationError: If the merged section fails validation
    """
    section = Section(section)
    now = now or utcnow()
    updated = user.model_copy(deep=True)

    current = getattr(updated, section.field_name)
    model_cls = type(current)
    changes = _clean(model_cls, data)

    values = current.model_dump()
    values.update(changes)
    values["completed_at"] = now
    if section is Section.LAB_RESULTS and values.get("submitted_at") is None:
        values["submitted_at"] = now
    try:
        setattr(updated, section.field_name, model_cls.model_validate(values))
    except ValidationError as e:
        raise InputValidationError(
            f"Invalid {section.value} data",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        )

    updated.refresh_data_quality()

    # An empty update only refreshes completed_at
    if not changes:
        return updated

    if not maybe_auto_complete(updated, now):
        step = SECTION_STEPS.get(section)
        if step is not None and updated.onboarding_step < step:
            updated.onboarding_step = step

    return updated


def complete_onboarding(user: User, now: Optional[datetime] = None) -> User:
    """
    Explicitly finish onboarding.

    Raises:
        IncompleteSectionsError: If any required section is missing
    """
    updated = user.model_copy(deep=True)
    updated.refresh_data_quality()

    missing = missing_sections(updated)
    if missing:
        raise IncompleteSectionsError(missing)

    if updated.onboarding_completed and updated.session_info.completion_timestamp:
        return updated

    updated.onboarding_completed = True
    updated.onboarding_step = COMPLETED_STEP
    _stamp_completion(updated, now or utcnow(), len(REQUIRED_SECTIONS))
    return updated


def skip_onboarding(user: User, now: Optional[datetime] = None) -> User:
    """Mark onboarding finished without checking any section."""
    updated = user.model_copy(deep=True)
    if updated.onboarding_completed and updated.session_info.completion_timestamp:
        return updated

    updated.refresh_data_quality()
    updated.onboarding_completed = True
    updated.onboarding_step = COMPLETED_STEP
    _stamp_completion(
        updated,
        now or utcnow(),
        len(REQUIRED_SECTIONS) - len(missing_sections(updated)),
    )
    return updated


def onboarding_status(user: User) -> OnboardingStatus:
    quality = user.data_quality
    return OnboardingStatus(
        completed=user.onboarding_completed,
        step=user.onboarding_step,
        completeness=user.profile_completeness,
        sections_completed={
            Section.BASIC_INFO.value: quality.has_basic_info,
            Section.LIFESTYLE.value: quality.has_lifestyle,
            Section.MEDICAL_HISTORY.value: quality.has_medical_history,
            Section.GOALS.value: quality.has_goals,
            Section.PREFERENCES.value: quality.has_preferences,
        },
    )
