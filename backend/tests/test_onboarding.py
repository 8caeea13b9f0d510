"""
Unit tests for the onboarding state machine (pure transitions, no storage).
"""

from datetime import datetime, timedelta, timezone
from itertools import permutations

import pytest

from fitpath.core.exceptions import IncompleteSectionsError, InputValidationError
from fitpath.core.onboarding import (
    COMPLETED_STEP,
    apply_section_update,
    complete_onboarding,
    onboarding_status,
    skip_onboarding,
)
from fitpath.models import Section, User

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

REQUIRED_DATA = {
    "basicInfo": {"name": "Alex Doe", "dateOfBirth": "1990-05-17", "height": 180, "weight": 80},
    "lifestyle": {"wakeUpTime": "07:00", "sleepTime": "23:00", "exerciseFrequency": "3-4"},
    "medicalHistory": {"gender": "Homme"},
    "goals": {"primaryGoal": "weight-loss", "targetWeight": 75},
}


@pytest.fixture
def user():
    return User(email="alex@example.com", hashed_password="x")


def fill(user, *sections):
    for section in sections:
        user = apply_section_update(user, section, REQUIRED_DATA[section], NOW)
    return user


class TestSectionUpdate:

    def test_does_not_mutate_input(self, user):
        updated = apply_section_update(user, "basicInfo", REQUIRED_DATA["basicInfo"], NOW)
        assert user.basic_info.name is None
        assert user.onboarding_step == 0
        assert updated.basic_info.name == "Alex Doe"

    def test_first_section_sets_step_and_completeness(self, user):
        updated = fill(user, "basicInfo")
        assert updated.onboarding_step == 1
        assert updated.profile_completeness == 25
        assert updated.data_quality.has_basic_info is True
        assert updated.basic_info.completed_at == NOW

    def test_empty_update_only_stamps_completed_at(self, user):
        updated = apply_section_update(user, Section.BASIC_INFO, {}, NOW)
        assert updated.basic_info.completed_at == NOW
        assert updated.basic_info.model_dump(exclude={"completed_at"}) == \
            user.basic_info.model_dump(exclude={"completed_at"})
        assert updated.onboarding_step == 0
        assert updated.profile_completeness == 0

    def test_unknown_keys_do_not_advance_step(self, user):
        updated = apply_section_update(user, "goals", {"foo": 1, "bar": "baz"}, NOW)
        assert updated.onboarding_step == 0
        assert "foo" not in updated.goals.model_dump()
        assert updated.goals.completed_at == NOW

    def test_null_values_do_not_overwrite(self, user):
        updated = fill(user, "basicInfo")
        updated = apply_section_update(updated, "basicInfo", {"name": None, "weight": 78}, NOW)
        assert updated.basic_info.name == "Alex Doe"
        assert updated.basic_info.weight == 78

    def test_client_completed_at_is_ignored(self, user):
        later = NOW + timedelta(days=1)
        updated = apply_section_update(
            user, "lifestyle", {"wakeUpTime": "06:00", "completedAt": "2000-01-01T00:00:00Z"}, later
        )
        assert updated.lifestyle.completed_at == later

    def test_step_never_decreases(self, user):
        updated = fill(user, "goals")
        assert updated.onboarding_step == 4
        updated = fill(updated, "basicInfo")
        assert updated.onboarding_step == 4

    def test_preferences_is_step_five(self, user):
        updated = apply_section_update(user, "preferences", {"units": "metric"}, NOW)
        assert updated.onboarding_step == 5
        assert updated.data_quality.has_preferences is True
        assert updated.profile_completeness == 0

    def test_lab_results_do_not_move_step(self, user):
        updated = apply_section_update(user, "labResults", {"homaIR": 2.1, "gender": "Femme"}, NOW)
        assert updated.onboarding_step == 0
        assert updated.profile_completeness == 0
        assert updated.lab_results.homa_ir == 2.1
        assert updated.lab_results.gender == "female"
        assert updated.lab_results.submitted_at == NOW

    def test_invalid_data_raises(self, user):
        with pytest.raises(InputValidationError) as exc_info:
            apply_section_update(user, "basicInfo", {"height": 10}, NOW)
        assert exc_info.value.details

    def test_unknown_section(self, user):
        with pytest.raises(ValueError):
            apply_section_update(user, "hobbies", {"x": 1}, NOW)

    def test_vocabulary_is_normalized(self, user):
        updated = fill(user, "goals", "medicalHistory")
        assert updated.goals.primary_goal == "weightLoss"
        assert updated.medical_history.gender == "male"


class TestAutoCompletion:

    @pytest.mark.parametrize("order", list(permutations(REQUIRED_DATA)))
    def test_any_order_auto_completes(self, user, order):
        updated = fill(user, *order[:3])
        assert updated.onboarding_completed is False
        updated = fill(updated, order[3])
        assert updated.onboarding_completed is True
        assert updated.onboarding_step == COMPLETED_STEP
        assert updated.profile_completeness == 100
        assert updated.session_info.completion_timestamp == NOW
        assert updated.session_info.sections_completed == 4
        assert updated.session_info.completion_rate == "100%"

    def test_completed_never_reverts(self, user):
        updated = fill(user, *REQUIRED_DATA)
        updated = apply_section_update(updated, "preferences", {"theme": "dark"}, NOW)
        updated = apply_section_update(updated, "basicInfo", {"weight": 79}, NOW)
        assert updated.onboarding_completed is True
        assert updated.onboarding_step == COMPLETED_STEP


class TestCompleteAndSkip:

    def test_complete_with_missing_goals(self, user):
        partial = fill(user, "basicInfo", "lifestyle", "medicalHistory")
        with pytest.raises(IncompleteSectionsError) as exc_info:
            complete_onboarding(partial, NOW)
        assert exc_info.value.missing == ["goals"]
        assert exc_info.value.details == {"incompleteSections": ["goals"]}
        assert partial.onboarding_completed is False

    def test_complete_lists_all_missing(self, user):
        with pytest.raises(IncompleteSectionsError) as exc_info:
            complete_onboarding(user, NOW)
        assert exc_info.value.missing == ["basicInfo", "lifestyle", "medicalHistory", "goals"]

    def test_complete_after_auto_completion_is_noop(self, user):
        done = fill(user, *REQUIRED_DATA)
        again = complete_onboarding(done, NOW + timedelta(days=1))
        assert again.session_info.completion_timestamp == NOW

    def test_skip_fresh_user(self, user):
        skipped = skip_onboarding(user, NOW)
        assert skipped.onboarding_completed is True
        assert skipped.onboarding_step == COMPLETED_STEP
        assert skipped.profile_completeness == 0
        assert skipped.session_info.sections_completed == 0
        assert skipped.session_info.completion_date == "2024-06-01"

    def test_skip_partial_user_keeps_completeness(self, user):
        partial = fill(user, "basicInfo", "goals")
        skipped = skip_onboarding(partial, NOW)
        assert skipped.profile_completeness == 50
        assert skipped.session_info.sections_completed == 2


def test_status(user):
    status = onboarding_status(fill(user, "basicInfo"))
    assert status.completed is False
    assert status.step == 1
    assert status.completeness == 25
    assert status.sections_completed == {
        "basicInfo": True,
        "lifestyle": False,
        "medicalHistory": False,
        "goals": False,
        "preferences": False,
    }
    dumped = status.model_dump(by_alias=True)
    assert "sectionsCompleted" in dumped
