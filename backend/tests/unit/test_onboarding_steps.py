"""Tests for the onboarding step collection and progress calculation.

Covers seeding, step transitions (completed_at stamping, data merge),
the current-step pointer, progress rounding and the derived stalled view.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from serenity.services.client_onboarding import new_client_onboarding
from serenity.services.consultant_onboarding import new_consultant_onboarding
from serenity.services.onboarding_errors import InvalidStatusError, StepNotFoundError
from serenity.services.onboarding_steps import (
    OnboardingKind,
    OnboardingStatus,
    OnboardingStep,
    StepStatus,
    advance_current_step,
    calculate_progress,
    effective_status,
    elapsed_days,
    incomplete_required_steps,
    is_stalled,
    load_steps,
    parse_step_status,
    plan_step_update,
    recompute_progress,
    seed_steps,
    update_step_status,
)

_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
_LATER = _NOW + timedelta(hours=3)
_USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")


def _steps_with(
    kind: OnboardingKind, statuses: dict[int, StepStatus]
) -> list[OnboardingStep]:
    return [
        s.model_copy(update={"status": statuses.get(s.step_number, s.status)})
        for s in seed_steps(kind)
    ]


def _complete(record, kind: OnboardingKind, *step_numbers: int) -> None:
    for n in step_numbers:
        plan_step_update(record, kind, n, "completed", now=_NOW).apply_to(record, _NOW)


# =============================================================================
# Seeding
# =============================================================================


class TestSeedSteps:
    def test_client_has_eight_steps_with_two_optional(self) -> None:
        steps = seed_steps(OnboardingKind.CLIENT)

        assert [s.step_number for s in steps] == list(range(1, 9))
        assert {s.step_number for s in steps if not s.is_required} == {6, 8}
        assert steps[0].name == "Welcome"
        assert steps[6].name == "Consultant Matching"

    def test_consultant_has_twelve_required_steps(self) -> None:
        steps = seed_steps(OnboardingKind.CONSULTANT)

        assert [s.step_number for s in steps] == list(range(1, 13))
        assert all(s.is_required for s in steps)
        assert steps[11].name == "Interview Scheduling"

    def test_seeded_steps_are_pending_without_data(self) -> None:
        for step in seed_steps(OnboardingKind.CLIENT):
            assert step.status == StepStatus.PENDING
            assert step.completed_at is None
            assert step.data == {}

    def test_load_steps_orders_by_step_number(self) -> None:
        raw = [
            {"step_number": 3, "name": "C"},
            {"step_number": 1, "name": "A"},
            {"step_number": 2, "name": "B"},
        ]

        assert [s.name for s in load_steps(raw)] == ["A", "B", "C"]

    def test_load_steps_accepts_missing_column(self) -> None:
        assert load_steps(None) == []


# =============================================================================
# Step transitions
# =============================================================================


class TestUpdateStepStatus:
    def test_completing_stamps_completed_at(self) -> None:
        steps = update_step_status(
            seed_steps(OnboardingKind.CLIENT), 1, StepStatus.COMPLETED, now=_NOW
        )

        assert steps[0].status == StepStatus.COMPLETED
        assert steps[0].completed_at == _NOW

    def test_completing_again_keeps_first_timestamp(self) -> None:
        steps = update_step_status(
            seed_steps(OnboardingKind.CLIENT), 1, StepStatus.COMPLETED, now=_NOW
        )
        steps = update_step_status(steps, 1, StepStatus.COMPLETED, now=_LATER)

        assert steps[0].completed_at == _NOW

    def test_leaving_completed_clears_timestamp(self) -> None:
        steps = update_step_status(
            seed_steps(OnboardingKind.CLIENT), 1, StepStatus.COMPLETED, now=_NOW
        )
        steps = update_step_status(steps, 1, StepStatus.IN_PROGRESS, now=_LATER)

        assert steps[0].completed_at is None

    def test_data_is_merged_key_wise(self) -> None:
        steps = update_step_status(
            seed_steps(OnboardingKind.CLIENT),
            2,
            StepStatus.IN_PROGRESS,
            {"a": 1, "b": 2},
            now=_NOW,
        )
        steps = update_step_status(
            steps, 2, StepStatus.IN_PROGRESS, {"b": 3, "c": 4}, now=_NOW
        )

        assert steps[1].data == {"a": 1, "b": 3, "c": 4}

    def test_input_list_is_not_modified(self) -> None:
        original = seed_steps(OnboardingKind.CLIENT)

        update_step_status(original, 1, StepStatus.COMPLETED, now=_NOW)

        assert original[0].status == StepStatus.PENDING

    def test_unknown_step_raises(self) -> None:
        with pytest.raises(StepNotFoundError) as exc_info:
            update_step_status(
                seed_steps(OnboardingKind.CLIENT), 99, StepStatus.COMPLETED, now=_NOW
            )

        assert exc_info.value.step_number == 99
        assert exc_info.value.status_code == 404


class TestParseStepStatus:
    def test_client_rejects_returned(self) -> None:
        with pytest.raises(InvalidStatusError):
            parse_step_status(OnboardingKind.CLIENT, "returned")

    def test_consultant_accepts_returned(self) -> None:
        assert (
            parse_step_status(OnboardingKind.CONSULTANT, "returned")
            == StepStatus.RETURNED
        )

    def test_unknown_value_raises(self) -> None:
        with pytest.raises(InvalidStatusError) as exc_info:
            parse_step_status(OnboardingKind.CLIENT, "done")

        assert exc_info.value.code == "INVALID_STATUS"
        assert "done" in exc_info.value.message


# =============================================================================
# Current step pointer
# =============================================================================


class TestAdvanceCurrentStep:
    def test_moves_to_next_open_step(self) -> None:
        steps = _steps_with(OnboardingKind.CLIENT, {1: StepStatus.COMPLETED})

        assert advance_current_step(steps, OnboardingKind.CLIENT, 1, 1) == 2

    def test_skips_optional_step_when_required_one_follows(self) -> None:
        steps = _steps_with(
            OnboardingKind.CLIENT, {n: StepStatus.COMPLETED for n in range(1, 6)}
        )

        assert advance_current_step(steps, OnboardingKind.CLIENT, 5, 5) == 7

    def test_falls_back_to_optional_step(self) -> None:
        done = {n: StepStatus.COMPLETED for n in (1, 2, 3, 4, 5, 7)}
        steps = _steps_with(OnboardingKind.CLIENT, done)

        assert advance_current_step(steps, OnboardingKind.CLIENT, 7, 7) == 8

    def test_stays_when_changed_step_is_not_current(self) -> None:
        steps = _steps_with(OnboardingKind.CLIENT, {3: StepStatus.COMPLETED})

        assert advance_current_step(steps, OnboardingKind.CLIENT, 1, 3) == 1

    def test_stays_when_step_did_not_complete(self) -> None:
        steps = _steps_with(OnboardingKind.CLIENT, {1: StepStatus.IN_PROGRESS})

        assert advance_current_step(steps, OnboardingKind.CLIENT, 1, 1) == 1

    def test_stays_on_last_step(self) -> None:
        steps = _steps_with(
            OnboardingKind.CLIENT, {n: StepStatus.COMPLETED for n in range(1, 9)}
        )

        assert advance_current_step(steps, OnboardingKind.CLIENT, 8, 8) == 8

    def test_returned_consultant_step_is_open(self) -> None:
        steps = _steps_with(
            OnboardingKind.CONSULTANT,
            {1: StepStatus.COMPLETED, 2: StepStatus.COMPLETED, 3: StepStatus.RETURNED},
        )

        assert advance_current_step(steps, OnboardingKind.CONSULTANT, 2, 2) == 3


# =============================================================================
# Progress
# =============================================================================


class TestCalculateProgress:
    def test_empty_list_is_zero(self) -> None:
        assert calculate_progress([]) == 0

    def test_rounds_half_up(self) -> None:
        # 1 of 8 = 12.5%
        steps = _steps_with(OnboardingKind.CLIENT, {1: StepStatus.COMPLETED})

        assert calculate_progress(steps) == 13

    def test_skipped_counts_as_done(self) -> None:
        steps = _steps_with(
            OnboardingKind.CLIENT,
            {1: StepStatus.COMPLETED, 6: StepStatus.SKIPPED},
        )

        assert calculate_progress(steps) == 25

    def test_returned_does_not_count(self) -> None:
        steps = _steps_with(
            OnboardingKind.CONSULTANT,
            {1: StepStatus.COMPLETED, 2: StepStatus.RETURNED},
        )

        # 1 of 12 = 8.33%
        assert calculate_progress(steps) == 8

    def test_all_done_is_hundred(self) -> None:
        steps = _steps_with(
            OnboardingKind.CLIENT, {n: StepStatus.COMPLETED for n in range(1, 9)}
        )

        assert calculate_progress(steps) == 100


class TestRecomputeProgress:
    def test_no_progress_is_not_started(self) -> None:
        result = recompute_progress(
            seed_steps(OnboardingKind.CLIENT),
            OnboardingKind.CLIENT,
            "in_progress",
            None,
            now=_NOW,
        )

        assert result.status == OnboardingStatus.NOT_STARTED

    def test_partial_progress_is_in_progress(self) -> None:
        steps = _steps_with(OnboardingKind.CLIENT, {1: StepStatus.COMPLETED})

        result = recompute_progress(
            steps, OnboardingKind.CLIENT, "not_started", None, now=_NOW
        )

        assert result.status == OnboardingStatus.IN_PROGRESS
        assert result.completed_at is None

    def test_full_client_progress_completes(self) -> None:
        steps = _steps_with(
            OnboardingKind.CLIENT, {n: StepStatus.COMPLETED for n in range(1, 9)}
        )

        result = recompute_progress(
            steps, OnboardingKind.CLIENT, "in_progress", None, now=_NOW
        )

        assert result.status == OnboardingStatus.COMPLETED
        assert result.completed_at == _NOW

    def test_full_consultant_progress_goes_under_review(self) -> None:
        steps = _steps_with(
            OnboardingKind.CONSULTANT,
            {n: StepStatus.COMPLETED for n in range(1, 13)},
        )

        result = recompute_progress(
            steps, OnboardingKind.CONSULTANT, "in_progress", None, now=_NOW
        )

        assert result.status == OnboardingStatus.UNDER_REVIEW
        assert result.completed_at is None

    @pytest.mark.parametrize("status", ["under_review", "approved", "rejected"])
    def test_consultant_review_statuses_are_sticky(self, status: str) -> None:
        steps = _steps_with(OnboardingKind.CONSULTANT, {1: StepStatus.IN_PROGRESS})

        result = recompute_progress(
            steps, OnboardingKind.CONSULTANT, status, None, now=_NOW
        )

        assert result.status == OnboardingStatus(status)

    def test_completed_client_stays_completed(self) -> None:
        steps = _steps_with(OnboardingKind.CLIENT, {1: StepStatus.IN_PROGRESS})

        result = recompute_progress(
            steps, OnboardingKind.CLIENT, "completed", _NOW, now=_LATER
        )

        assert result.status == OnboardingStatus.COMPLETED
        assert result.completed_at == _NOW
        assert result.progress == 0


class TestPlanStepUpdate:
    def test_five_required_steps_give_63_percent_and_point_at_matching(self) -> None:
        record = new_client_onboarding(_USER_ID, now=_NOW)

        _complete(record, OnboardingKind.CLIENT, 1, 2, 3, 4, 5)

        assert record.progress == 63
        assert record.current_step == 7
        assert record.status == "in_progress"
        assert record.last_activity == _NOW

    def test_does_not_touch_record(self) -> None:
        record = new_client_onboarding(_USER_ID, now=_NOW)
        before = list(record.steps)

        plan_step_update(record, OnboardingKind.CLIENT, 1, "completed", now=_LATER)

        assert record.steps == before
        assert record.progress == 0
        assert record.last_activity == _NOW

    def test_invalid_status_raises_before_any_change(self) -> None:
        record = new_consultant_onboarding(_USER_ID, now=_NOW)

        with pytest.raises(InvalidStatusError):
            plan_step_update(record, OnboardingKind.CONSULTANT, 1, "archived", now=_NOW)

        assert record.status == "not_started"

    def test_completing_every_client_step_completes_record(self) -> None:
        record = new_client_onboarding(_USER_ID, now=_NOW)

        _complete(record, OnboardingKind.CLIENT, *range(1, 9))

        assert record.status == "completed"
        assert record.progress == 100
        assert record.completed_at == _NOW


class TestIncompleteRequiredSteps:
    def test_lists_open_required_steps_only(self) -> None:
        steps = _steps_with(
            OnboardingKind.CLIENT,
            {1: StepStatus.COMPLETED, 2: StepStatus.SKIPPED, 3: StepStatus.IN_PROGRESS},
        )

        assert incomplete_required_steps(steps) == [3, 4, 5, 7]


# =============================================================================
# Derived views
# =============================================================================


class TestStalled:
    def test_in_progress_past_threshold_is_stalled(self) -> None:
        last = _NOW - timedelta(days=8)

        assert is_stalled("in_progress", last, now=_NOW, threshold_days=7)
        assert (
            effective_status("in_progress", last, now=_NOW, threshold_days=7)
            == OnboardingStatus.STALLED
        )

    def test_recent_activity_is_not_stalled(self) -> None:
        last = _NOW - timedelta(days=6)

        assert not is_stalled("in_progress", last, now=_NOW, threshold_days=7)

    def test_other_statuses_never_stall(self) -> None:
        last = _NOW - timedelta(days=30)

        for status in ("not_started", "completed", "under_review"):
            assert not is_stalled(status, last, now=_NOW, threshold_days=7)
            assert effective_status(
                status, last, now=_NOW, threshold_days=7
            ) == OnboardingStatus(status)

    def test_missing_activity_is_not_stalled(self) -> None:
        assert not is_stalled("in_progress", None, now=_NOW, threshold_days=7)


class TestElapsedDays:
    def test_rounds_partial_days_up(self) -> None:
        assert elapsed_days(_NOW, _NOW + timedelta(days=2, hours=1)) == 3

    def test_whole_days(self) -> None:
        assert elapsed_days(_NOW, _NOW + timedelta(days=2)) == 2

    def test_missing_bound_is_none(self) -> None:
        assert elapsed_days(None, _NOW) is None
        assert elapsed_days(_NOW, None) is None
