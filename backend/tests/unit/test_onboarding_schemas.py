"""Tests for onboarding request schemas and read models."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from serenity.schemas.onboarding import (
    ClientOnboardingRead,
    ConsultantOnboardingRead,
    InterviewCreateRequest,
    ReminderCreateRequest,
    ReviewRequest,
    StepUpdateRequest,
)
from serenity.services.client_onboarding import new_client_onboarding
from serenity.services.consultant_onboarding import (
    add_admin_note,
    new_consultant_onboarding,
)

_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _client_record(started: datetime = _NOW):
    record = new_client_onboarding(_USER_ID, now=started)
    record.id = uuid.uuid4()
    return record


def _consultant_record():
    record = new_consultant_onboarding(_USER_ID, now=_NOW)
    record.id = uuid.uuid4()
    return record


# =============================================================================
# Requests
# =============================================================================


class TestRequests:
    def test_step_update_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            StepUpdateRequest.model_validate({"status": "completed", "step": 2})

    def test_review_decision_is_normalized(self) -> None:
        request = ReviewRequest(decision="  Approve ")

        assert request.decision == "approve"

    def test_reminder_request_builds_unsent_reminder(self) -> None:
        request = ReminderCreateRequest(
            user_type="client", type="email", message="Finish", scheduled_for=_NOW
        )

        reminder = request.to_reminder()

        assert reminder.sent is False
        assert reminder.scheduled_for == _NOW
        assert reminder.id

    def test_reminder_request_rejects_unknown_user_type(self) -> None:
        with pytest.raises(ValidationError):
            ReminderCreateRequest(
                user_type="partner", type="email", message="x", scheduled_for=_NOW
            )

    def test_interview_request_stores_interviewer_as_string(self) -> None:
        interviewer = uuid.uuid4()

        interview = InterviewCreateRequest(
            interviewer_id=interviewer, scheduled_at=_NOW
        ).to_interview()

        assert interview.interviewer_id == str(interviewer)
        assert interview.status == "scheduled"


# =============================================================================
# Read models
# =============================================================================


class TestClientOnboardingRead:
    def test_fresh_record(self) -> None:
        record = _client_record()

        read = ClientOnboardingRead.from_record(
            record, now=_NOW + timedelta(hours=5), threshold_days=7
        )

        assert read.status == "not_started"
        assert read.stored_status == "not_started"
        assert len(read.steps) == 8
        assert read.days_since_start == 1
        assert read.days_to_complete is None
        assert read.feedback is None

    def test_idle_in_progress_record_reads_as_stalled(self) -> None:
        record = _client_record(started=_NOW - timedelta(days=20))
        record.status = "in_progress"

        read = ClientOnboardingRead.from_record(record, now=_NOW, threshold_days=7)

        assert read.status == "stalled"
        assert read.stored_status == "in_progress"
        assert read.days_since_start == 20

    def test_completed_record_reports_duration(self) -> None:
        record = _client_record(started=_NOW - timedelta(days=4, hours=2))
        record.status = "completed"
        record.completed_at = _NOW

        read = ClientOnboardingRead.from_record(record, now=_NOW, threshold_days=7)

        assert read.status == "completed"
        assert read.days_to_complete == 5


class TestConsultantOnboardingRead:
    def test_private_notes_hidden_by_default(self) -> None:
        record = _consultant_record()
        add_admin_note(record, "admin", "internal", True, now=_NOW)
        add_admin_note(record, "admin", "shared", False, now=_NOW)

        public = ConsultantOnboardingRead.from_record(
            record, now=_NOW, threshold_days=7
        )
        full = ConsultantOnboardingRead.from_record(
            record, now=_NOW, threshold_days=7, include_private_notes=True
        )

        assert [n.content for n in public.admin_notes] == ["shared"]
        assert [n.content for n in full.admin_notes] == ["internal", "shared"]

    def test_empty_optional_sections_are_none(self) -> None:
        read = ConsultantOnboardingRead.from_record(
            _consultant_record(), now=_NOW, threshold_days=7
        )

        assert read.payment_information is None
        assert read.tax_information is None
        assert read.scheduling is None
        assert read.verification_checks.identity_verified.status == "pending"
        assert read.contracts.nda.signed is False
