"""Tests for the client onboarding state machine.

Step side effects on the record, recommendation bookkeeping, sessions,
documents, feedback and finalization.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from serenity.core.errors import ValidationError
from serenity.schemas.onboarding_documents import (
    ConsultantRecommendation,
    OnboardingDocument,
    OnboardingSession,
    ServiceRecommendation,
)
from serenity.services.client_onboarding import (
    attach_document,
    finalize_client_onboarding,
    new_client_onboarding,
    replace_consultant_recommendations,
    replace_service_recommendations,
    schedule_session,
    set_recommendation_status,
    submit_feedback,
    update_client_step,
    update_session_status,
)
from serenity.services.onboarding_errors import (
    IncompleteRequiredStepsError,
    InvalidStatusError,
    RecommendationNotFoundError,
    SessionNotFoundError,
)
from serenity.services.onboarding_steps import StepStatus, load_steps

_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
_LATER = _NOW + timedelta(days=1)
_CLIENT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def record():
    return new_client_onboarding(_CLIENT_ID, now=_NOW)


def _step(record, number: int):
    return load_steps(record.steps)[number - 1]


def _recommendation(consultant_id: str, score: int = 70) -> ConsultantRecommendation:
    return ConsultantRecommendation(
        consultant_id=consultant_id, match_score=score, reason="Good fit"
    )


# =============================================================================
# New record
# =============================================================================


class TestNewClientOnboarding:
    def test_starts_not_started_on_step_one(self, record) -> None:
        assert record.status == "not_started"
        assert record.progress == 0
        assert record.current_step == 1
        assert len(record.steps) == 8
        assert record.started_at == _NOW
        assert record.last_activity == _NOW
        assert record.recommended_consultants == []
        assert record.feedback is None


# =============================================================================
# Step updates
# =============================================================================


class TestUpdateClientStep:
    def test_company_info_is_merged_and_reported(self, record) -> None:
        update_client_step(
            record,
            2,
            "in_progress",
            {"company_info": {"name": "Acme", "industry": "technology"}},
            now=_NOW,
        )
        effects = update_client_step(
            record,
            2,
            "completed",
            {"company_info": {"website": "https://acme.test"}},
            now=_LATER,
        )

        assert record.company_info == {
            "name": "Acme",
            "industry": "technology",
            "website": "https://acme.test",
        }
        assert effects.company_info is not None
        assert effects.company_info.name == "Acme"
        assert effects.company_info.website == "https://acme.test"

    def test_step_data_keeps_sent_keys(self, record) -> None:
        update_client_step(
            record,
            2,
            "in_progress",
            {"company_info": {"name": "Acme"}, "note": "call back"},
            now=_NOW,
        )

        data = _step(record, 2).data
        assert data["company_info"] == {"name": "Acme"}
        assert data["note"] == "call back"

    def test_invalid_payload_leaves_record_untouched(self, record) -> None:
        before = list(record.steps)

        with pytest.raises(ValidationError) as exc_info:
            update_client_step(
                record, 2, "completed", {"company_info": {"industry": "space"}}, now=_NOW
            )

        assert exc_info.value.status_code == 400
        assert record.steps == before
        assert record.company_info == {}

    def test_invalid_status_leaves_record_untouched(self, record) -> None:
        with pytest.raises(InvalidStatusError):
            update_client_step(
                record, 2, "returned", {"company_info": {"name": "Acme"}}, now=_NOW
            )

        assert record.company_info == {}
        assert record.status == "not_started"

    def test_needs_assessment_is_merged(self, record) -> None:
        update_client_step(
            record,
            3,
            "in_progress",
            {"needs_assessment": {"challenges": ["churn"]}},
            now=_NOW,
        )
        update_client_step(
            record,
            3,
            "completed",
            {"needs_assessment": {"objectives": ["retain customers"]}},
            now=_NOW,
        )

        assert record.needs_assessment == {
            "challenges": ["churn"],
            "objectives": ["retain customers"],
        }

    def test_services_interested_replaced_and_refresh_requested(self, record) -> None:
        record.preferences = {"budget_range": "5k_15k", "services_interested": ["Old"]}

        effects = update_client_step(
            record, 4, "completed", {"services_interested": ["Strategy"]}, now=_NOW
        )

        assert record.preferences == {
            "budget_range": "5k_15k",
            "services_interested": ["Strategy"],
        }
        assert effects.refresh_service_recommendations is True

    def test_budget_and_timeframe_merge_into_preferences(self, record) -> None:
        update_client_step(
            record,
            5,
            "completed",
            {"budget_range": "15k_50k", "project_timeframe": "within_month"},
            now=_NOW,
        )

        assert record.preferences == {
            "budget_range": "15k_50k",
            "project_timeframe": "within_month",
        }

    def test_completing_matching_without_recommendations_asks_for_them(
        self, record
    ) -> None:
        effects = update_client_step(record, 7, "completed", now=_NOW)

        assert effects.generate_consultant_recommendations is True

    def test_completing_matching_with_recommendations_does_not(self, record) -> None:
        record.recommended_consultants = [_recommendation("c-1").model_dump(mode="json")]

        effects = update_client_step(record, 7, "completed", now=_NOW)

        assert effects.generate_consultant_recommendations is False

    def test_matching_in_progress_does_not_ask(self, record) -> None:
        effects = update_client_step(record, 7, "in_progress", now=_NOW)

        assert effects.generate_consultant_recommendations is False

    def test_plain_step_has_no_effects(self, record) -> None:
        effects = update_client_step(record, 1, "completed", now=_NOW)

        assert effects.company_info is None
        assert effects.refresh_service_recommendations is False
        assert effects.generate_consultant_recommendations is False
        assert record.status == "in_progress"
        assert record.current_step == 2


# =============================================================================
# Recommendations
# =============================================================================


class TestRecommendations:
    def test_service_recommendations_are_replaced(self, record) -> None:
        record.recommended_services = [{"service_id": "old"}]
        recs = [ServiceRecommendation(service_id="s-1", match_score=75, reason="x")]

        replace_service_recommendations(record, recs, now=_LATER)

        assert [r["service_id"] for r in record.recommended_services] == ["s-1"]
        assert record.last_activity == _LATER

    def test_regeneration_keeps_client_status_of_repeats(self, record) -> None:
        replace_consultant_recommendations(
            record, [_recommendation("c-1"), _recommendation("c-2")], now=_NOW
        )
        set_recommendation_status(record, "c-1", "contacted", now=_NOW)

        replace_consultant_recommendations(
            record, [_recommendation("c-1", 85), _recommendation("c-3")], now=_LATER
        )

        by_id = {r["consultant_id"]: r for r in record.recommended_consultants}
        assert set(by_id) == {"c-1", "c-3"}
        assert by_id["c-1"]["status"] == "contacted"
        assert by_id["c-1"]["match_score"] == 85
        assert by_id["c-3"]["status"] == "recommended"

    def test_set_status_updates_entry(self, record) -> None:
        replace_consultant_recommendations(record, [_recommendation("c-1")], now=_NOW)

        entry = set_recommendation_status(record, "c-1", "viewed", now=_LATER)

        assert entry.status == "viewed"
        assert record.recommended_consultants[0]["status"] == "viewed"
        assert record.last_activity == _LATER

    def test_set_status_rejects_unknown_status(self, record) -> None:
        replace_consultant_recommendations(record, [_recommendation("c-1")], now=_NOW)

        with pytest.raises(InvalidStatusError):
            set_recommendation_status(record, "c-1", "hired", now=_NOW)

        assert record.recommended_consultants[0]["status"] == "recommended"

    def test_set_status_unknown_consultant_raises(self, record) -> None:
        with pytest.raises(RecommendationNotFoundError):
            set_recommendation_status(record, "nobody", "viewed", now=_NOW)


# =============================================================================
# Sessions, documents, feedback
# =============================================================================


class TestSessions:
    def test_welcome_call_completes_scheduling_step(self, record) -> None:
        session = OnboardingSession(session_type="welcome_call", scheduled_at=_LATER)

        schedule_session(record, session, now=_NOW)

        assert len(record.sessions) == 1
        assert record.sessions[0]["id"] == session.id
        assert _step(record, 8).status == StepStatus.COMPLETED
        assert record.progress == 13

    def test_other_session_does_not_touch_steps(self, record) -> None:
        session = OnboardingSession(session_type="qa_session", scheduled_at=_LATER)

        schedule_session(record, session, now=_NOW)

        assert _step(record, 8).status == StepStatus.PENDING
        assert record.progress == 0

    def test_update_session_status_with_notes(self, record) -> None:
        session = OnboardingSession(session_type="qa_session", scheduled_at=_LATER)
        schedule_session(record, session, now=_NOW)

        updated = update_session_status(
            record, session.id, "completed", "went well", now=_LATER
        )

        assert updated.status == "completed"
        assert record.sessions[0]["notes"] == "went well"
        assert record.last_activity == _LATER

    def test_update_missing_session_raises(self, record) -> None:
        with pytest.raises(SessionNotFoundError):
            update_session_status(record, "missing", "completed", now=_NOW)

    def test_update_session_rejects_unknown_status(self, record) -> None:
        session = OnboardingSession(session_type="qa_session", scheduled_at=_LATER)
        schedule_session(record, session, now=_NOW)

        with pytest.raises(InvalidStatusError):
            update_session_status(record, session.id, "no_show", now=_NOW)


class TestDocuments:
    def test_first_document_completes_upload_step(self, record) -> None:
        document = OnboardingDocument(name="brief.pdf", type="application/pdf", url="/u/1")

        attach_document(record, document, now=_NOW)

        assert record.documents[0]["url"] == "/u/1"
        assert _step(record, 6).status == StepStatus.COMPLETED
        assert _step(record, 6).completed_at == _NOW

    def test_later_documents_keep_completion_time(self, record) -> None:
        first = OnboardingDocument(name="a.pdf", type="application/pdf", url="/u/1")
        second = OnboardingDocument(name="b.pdf", type="application/pdf", url="/u/2")

        attach_document(record, first, now=_NOW)
        attach_document(record, second, now=_LATER)

        assert len(record.documents) == 2
        assert _step(record, 6).completed_at == _NOW
        assert record.last_activity == _LATER

    def test_skipped_upload_step_stays_skipped(self, record) -> None:
        update_client_step(record, 6, "skipped", now=_NOW)
        document = OnboardingDocument(name="a.pdf", type="application/pdf", url="/u/1")

        attach_document(record, document, now=_LATER)

        assert _step(record, 6).status == StepStatus.SKIPPED


class TestFeedback:
    def test_feedback_is_stored(self, record) -> None:
        feedback = submit_feedback(record, 5, "Smooth", now=_LATER)

        assert feedback.rating == 5
        assert record.feedback["comments"] == "Smooth"
        assert record.last_activity == _LATER

    def test_rating_out_of_range_raises(self, record) -> None:
        with pytest.raises(PydanticValidationError):
            submit_feedback(record, 6, now=_NOW)

        assert record.feedback is None


# =============================================================================
# Finalization
# =============================================================================


class TestFinalize:
    def _complete_required(self, record) -> None:
        for n in (1, 2, 3, 4, 5, 7):
            update_client_step(record, n, "completed", now=_NOW)

    def test_open_required_steps_raise(self, record) -> None:
        update_client_step(record, 1, "completed", now=_NOW)

        with pytest.raises(IncompleteRequiredStepsError) as exc_info:
            finalize_client_onboarding(record, now=_LATER)

        assert exc_info.value.step_numbers == [2, 3, 4, 5, 7]
        assert exc_info.value.code == "INCOMPLETE_REQUIRED_STEPS"
        assert record.status == "in_progress"

    def test_skips_open_optional_steps(self, record) -> None:
        self._complete_required(record)

        changed = finalize_client_onboarding(record, now=_LATER)

        assert changed is True
        assert record.status == "completed"
        assert record.progress == 100
        assert record.completed_at == _LATER
        assert _step(record, 6).status == StepStatus.SKIPPED
        assert _step(record, 8).status == StepStatus.SKIPPED
        assert _step(record, 1).completed_at == _NOW

    def test_second_call_changes_nothing(self, record) -> None:
        self._complete_required(record)
        finalize_client_onboarding(record, now=_LATER)

        changed = finalize_client_onboarding(record, now=_LATER + timedelta(days=1))

        assert changed is False
        assert record.completed_at == _LATER
