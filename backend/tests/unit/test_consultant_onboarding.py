"""Tests for the consultant onboarding state machine.

Step side effects, verification sub-machines, contracts, training,
portfolio attachments, interviews and the review gate.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from serenity.core.errors import ValidationError
from serenity.schemas.onboarding_documents import (
    Interview,
    InterviewFeedback,
    PortfolioAttachment,
    TaxInformation,
)
from serenity.services.consultant_onboarding import (
    ReviewDecision,
    add_admin_note,
    add_portfolio_attachment,
    complete_consultant_onboarding,
    complete_training,
    get_contracts,
    get_training,
    get_verification_checks,
    new_consultant_onboarding,
    review,
    schedule_interview,
    sign_contract,
    submit_for_review,
    update_background_check,
    update_consultant_step,
    update_interview_status,
    update_skill_assessment,
    update_tax_information,
    verify_identity,
)
from serenity.services.onboarding_errors import (
    IncompleteRequiredStepsError,
    InterviewNotFoundError,
    InvalidContractTypeError,
    InvalidDecisionError,
    InvalidStatusError,
    InvalidTrainingTypeError,
    NotApprovedError,
    NotUnderReviewError,
    PortfolioProjectNotFoundError,
    PreconditionError,
)
from serenity.services.onboarding_steps import StepStatus, load_steps

_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
_LATER = _NOW + timedelta(days=1)
_CONSULTANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
_ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")


@pytest.fixture
def record():
    return new_consultant_onboarding(_CONSULTANT_ID, now=_NOW)


def _complete_all_steps(record) -> None:
    for n in range(1, 13):
        update_consultant_step(record, n, "completed", now=_NOW)


def _under_review(record):
    _complete_all_steps(record)
    assert record.status == "under_review"
    return record


# =============================================================================
# New record
# =============================================================================


class TestNewConsultantOnboarding:
    def test_seeds_twelve_steps_and_pending_checks(self, record) -> None:
        checks = get_verification_checks(record)

        assert len(record.steps) == 12
        assert record.status == "not_started"
        assert checks.identity_verified.status == "pending"
        assert checks.background_check.status == "pending"
        assert get_contracts(record).nda.signed is False
        assert get_training(record).platformTraining.completed is False


# =============================================================================
# Step updates
# =============================================================================


class TestUpdateConsultantStep:
    def test_professional_info_is_merged_and_reported(self, record) -> None:
        effects = update_consultant_step(
            record,
            2,
            "completed",
            {"professional_info": {"title": "Data Strategist", "years_of_experience": 9}},
            now=_NOW,
        )

        assert record.professional_info["title"] == "Data Strategist"
        assert record.professional_info["years_of_experience"] == 9
        assert effects.professional_info is not None
        assert effects.professional_info.title == "Data Strategist"

    def test_education_and_certifications_are_appended_once(self, record) -> None:
        data = {
            "education": [{"institution": "MIT", "degree": "BSc"}],
            "certifications": [{"name": "PMP", "issuer": "PMI"}],
        }

        update_consultant_step(record, 3, "in_progress", data, now=_NOW)
        update_consultant_step(record, 3, "completed", data, now=_LATER)

        assert len(record.professional_info["education"]) == 1
        assert record.professional_info["certifications"][0]["name"] == "PMP"
        assert len(record.professional_info["certifications"]) == 1

    def test_work_history_is_appended_once(self, record) -> None:
        data = {"work_history": [{"company": "Initech", "position": "Analyst"}]}

        update_consultant_step(record, 4, "in_progress", data, now=_NOW)
        update_consultant_step(record, 4, "completed", data, now=_NOW)

        assert len(record.work_history) == 1

    def test_service_offering_for_same_service_is_merged(self, record) -> None:
        update_consultant_step(
            record,
            6,
            "in_progress",
            {"service_offerings": [{"service_id": "s-1", "availability": "part_time"}]},
            now=_NOW,
        )
        update_consultant_step(
            record,
            6,
            "completed",
            {
                "service_offerings": [
                    {"service_id": "s-1", "custom_description": "Audits"},
                    {"service_id": "s-2"},
                ]
            },
            now=_NOW,
        )

        by_id = {o["service_id"]: o for o in record.service_offerings}
        assert set(by_id) == {"s-1", "s-2"}
        assert by_id["s-1"]["availability"] == "part_time"
        assert by_id["s-1"]["custom_description"] == "Audits"

    def test_identity_step_moves_identity_check(self, record) -> None:
        update_consultant_step(
            record,
            7,
            "completed",
            {"identity_verification": {"status": "verified"}},
            now=_NOW,
        )

        identity = get_verification_checks(record).identity_verified
        assert identity.status == "verified"
        assert identity.verified_at == _NOW

    def test_legal_agreements_sign_contracts(self, record) -> None:
        update_consultant_step(
            record,
            8,
            "completed",
            {"legal_agreements": {"nda": "/docs/nda.pdf"}},
            now=_NOW,
        )

        contracts = get_contracts(record)
        assert contracts.nda.signed is True
        assert contracts.nda.document_url == "/docs/nda.pdf"
        assert contracts.codeOfConduct.signed is False

    def test_payment_information_is_merged(self, record) -> None:
        update_consultant_step(
            record,
            9,
            "completed",
            {"payment_information": {"preferred_method": "paypal"}},
            now=_NOW,
        )

        assert record.payment_information == {"preferred_method": "paypal"}

    def test_training_step_records_scores(self, record) -> None:
        update_consultant_step(
            record,
            10,
            "completed",
            {"training": {"platformTraining": {"score": 92}}},
            now=_NOW,
        )

        training = get_training(record)
        assert training.platformTraining.completed is True
        assert training.platformTraining.score == 92
        assert training.clientInteractionTraining.completed is False

    def test_availability_replaces_scheduling(self, record) -> None:
        update_consultant_step(
            record,
            11,
            "completed",
            {
                "availability": {
                    "time_zone": "Europe/Berlin",
                    "availability": [
                        {
                            "day": "monday",
                            "slots": [{"start_time": "09:00", "end_time": "17:00"}],
                        }
                    ],
                }
            },
            now=_NOW,
        )

        assert record.scheduling["time_zone"] == "Europe/Berlin"
        assert record.scheduling["availability"][0]["day"] == "monday"

    def test_bad_time_slot_is_rejected(self, record) -> None:
        with pytest.raises(ValidationError):
            update_consultant_step(
                record,
                11,
                "completed",
                {
                    "availability": {
                        "availability": [
                            {
                                "day": "monday",
                                "slots": [{"start_time": "9am", "end_time": "17:00"}],
                            }
                        ]
                    }
                },
                now=_NOW,
            )

        assert record.scheduling == {}

    def test_returned_step_keeps_review_notes(self, record) -> None:
        update_consultant_step(
            record, 5, "returned", review_notes="Add client names", now=_NOW
        )

        step = load_steps(record.steps)[4]
        assert step.status == StepStatus.RETURNED
        assert step.review_notes == "Add client names"

    def test_completing_all_steps_puts_record_under_review(self, record) -> None:
        _complete_all_steps(record)

        assert record.status == "under_review"
        assert record.progress == 100
        assert record.completed_at is None


# =============================================================================
# Verification, contracts, training, tax
# =============================================================================


class TestVerification:
    def test_identity_in_progress_does_not_stamp(self, record) -> None:
        verify_identity(record, "in_progress", "pending docs", "/id.png", now=_NOW)

        identity = get_verification_checks(record).identity_verified
        assert identity.status == "in_progress"
        assert identity.verified_at is None
        assert identity.document_url == "/id.png"
        assert identity.notes == "pending docs"

    def test_identity_rejects_check_status(self, record) -> None:
        with pytest.raises(InvalidStatusError):
            verify_identity(record, "passed", now=_NOW)

    def test_background_check_passed_stamps_completion(self, record) -> None:
        update_background_check(
            record, "passed", provider="Checkr", reference_number="R-1", now=_NOW
        )

        check = get_verification_checks(record).background_check
        assert check.status == "passed"
        assert check.completed_at == _NOW
        assert check.provider == "Checkr"

    def test_background_check_in_progress_does_not_stamp(self, record) -> None:
        update_background_check(record, "in_progress", now=_NOW)

        assert get_verification_checks(record).background_check.completed_at is None

    def test_skill_assessment_records_score(self, record) -> None:
        update_skill_assessment(record, "failed", score=41.5, now=_NOW)

        assessment = get_verification_checks(record).skill_assessment
        assert assessment.status == "failed"
        assert assessment.score == 41.5
        assert assessment.completed_at == _NOW

    def test_skill_assessment_rejects_identity_status(self, record) -> None:
        with pytest.raises(InvalidStatusError):
            update_skill_assessment(record, "verified", now=_NOW)


class TestContracts:
    def test_signing_twice_replaces_url_and_time(self, record) -> None:
        sign_contract(record, "nda", "/v1.pdf", now=_NOW)
        sign_contract(record, "nda", "/v2.pdf", now=_LATER)

        nda = get_contracts(record).nda
        assert nda.signed is True
        assert nda.document_url == "/v2.pdf"
        assert nda.signed_at == _LATER

    def test_unknown_contract_type_raises(self, record) -> None:
        with pytest.raises(InvalidContractTypeError):
            sign_contract(record, "employment", "/x.pdf", now=_NOW)

        assert record.last_activity == _NOW


class TestTraining:
    def test_completes_module(self, record) -> None:
        complete_training(record, "clientInteractionTraining", 88, now=_LATER)

        result = get_training(record).clientInteractionTraining
        assert result.completed is True
        assert result.completed_at == _LATER
        assert result.score == 88

    def test_unknown_training_type_raises(self, record) -> None:
        with pytest.raises(InvalidTrainingTypeError):
            complete_training(record, "safetyTraining", now=_NOW)


class TestTaxInformation:
    def test_merges_sent_fields(self, record) -> None:
        update_tax_information(record, TaxInformation(tax_id_type="ein"), now=_NOW)
        update_tax_information(
            record, TaxInformation(tax_id_number="12-3456789"), now=_NOW
        )

        assert record.tax_information == {
            "tax_id_type": "ein",
            "tax_id_number": "12-3456789",
        }


# =============================================================================
# Portfolio, interviews, notes
# =============================================================================


class TestPortfolio:
    def test_attachment_is_added_to_project(self, record) -> None:
        update_consultant_step(
            record,
            5,
            "completed",
            {"portfolio": [{"id": "p-1", "project_title": "ERP rollout"}]},
            now=_NOW,
        )

        project = add_portfolio_attachment(
            record,
            "p-1",
            PortfolioAttachment(name="case.pdf", url="/case.pdf"),
            now=_LATER,
        )

        assert project.documents[0].url == "/case.pdf"
        assert record.portfolio[0]["documents"][0]["name"] == "case.pdf"

    def test_unknown_project_raises(self, record) -> None:
        with pytest.raises(PortfolioProjectNotFoundError):
            add_portfolio_attachment(
                record,
                "missing",
                PortfolioAttachment(name="case.pdf", url="/case.pdf"),
                now=_NOW,
            )


class TestInterviews:
    def test_scheduling_completes_interview_step(self, record) -> None:
        interview = Interview(interviewer_id=str(_ADMIN_ID), scheduled_at=_LATER)

        schedule_interview(record, interview, now=_NOW)

        assert record.interviews[0]["id"] == interview.id
        assert load_steps(record.steps)[11].status == StepStatus.COMPLETED

    def test_status_update_records_feedback(self, record) -> None:
        interview = Interview(interviewer_id=str(_ADMIN_ID), scheduled_at=_LATER)
        schedule_interview(record, interview, now=_NOW)

        updated = update_interview_status(
            record,
            interview.id,
            "completed",
            InterviewFeedback(rating=4, recommendation="approve"),
            now=_LATER,
        )

        assert updated.status == "completed"
        assert record.interviews[0]["feedback"]["rating"] == 4

    def test_unknown_interview_raises(self, record) -> None:
        with pytest.raises(InterviewNotFoundError):
            update_interview_status(record, "missing", "completed", now=_NOW)


class TestAdminNotes:
    def test_note_is_appended(self, record) -> None:
        note = add_admin_note(record, str(_ADMIN_ID), "Strong profile", False, now=_NOW)

        assert note.is_private is False
        assert record.admin_notes[0]["content"] == "Strong profile"


# =============================================================================
# Review gate
# =============================================================================


class TestSubmitForReview:
    def test_open_required_steps_raise(self, record) -> None:
        update_consultant_step(record, 1, "completed", now=_NOW)

        with pytest.raises(IncompleteRequiredStepsError) as exc_info:
            submit_for_review(record, now=_LATER)

        assert exc_info.value.step_numbers == list(range(2, 13))
        assert record.status == "in_progress"

    def test_skipped_steps_count_as_done(self, record) -> None:
        for n in range(1, 13):
            update_consultant_step(record, n, "skipped" if n == 9 else "completed", now=_NOW)

        submit_for_review(record, now=_LATER)

        assert record.status == "under_review"
        assert record.last_activity == _LATER

    def test_reviewed_record_cannot_be_resubmitted(self, record) -> None:
        _under_review(record)
        review(record, _ADMIN_ID, "approve", now=_LATER)

        with pytest.raises(PreconditionError) as exc_info:
            submit_for_review(record, now=_LATER)

        assert exc_info.value.code == "ALREADY_REVIEWED"


class TestReview:
    def test_approve(self, record) -> None:
        _under_review(record)

        outcome = review(record, _ADMIN_ID, "approve", "Great fit", now=_LATER)

        assert outcome == ReviewDecision.APPROVE
        assert record.status == "approved"
        assert record.approved_at == _LATER
        assert record.reviewed_by == _ADMIN_ID
        assert record.admin_notes[-1]["content"] == "Great fit"
        assert record.admin_notes[-1]["is_private"] is True

    def test_approve_without_notes_adds_no_note(self, record) -> None:
        _under_review(record)

        review(record, _ADMIN_ID, "approve", now=_LATER)

        assert record.admin_notes == []

    def test_reject_with_reason(self, record) -> None:
        _under_review(record)

        outcome = review(record, _ADMIN_ID, "reject", "Missing certification", now=_LATER)

        assert outcome == ReviewDecision.REJECT
        assert record.status == "rejected"
        assert record.approved_at is None
        assert record.admin_notes[-1]["content"] == "Missing certification"

    def test_reject_without_reason_raises(self, record) -> None:
        _under_review(record)

        with pytest.raises(ValidationError):
            review(record, _ADMIN_ID, "reject", "   ", now=_LATER)

        assert record.status == "under_review"
        assert record.reviewed_by is None

    def test_not_under_review_raises(self, record) -> None:
        with pytest.raises(NotUnderReviewError) as exc_info:
            review(record, _ADMIN_ID, "approve", now=_LATER)

        assert exc_info.value.current_status == "not_started"

    @pytest.mark.parametrize(
        ("decision", "notes", "settled"),
        [("approve", None, "approved"), ("reject", "Weak references", "rejected")],
    )
    def test_review_cannot_be_repeated(self, record, decision, notes, settled) -> None:
        _under_review(record)
        review(record, _ADMIN_ID, decision, notes, now=_NOW)

        with pytest.raises(NotUnderReviewError) as exc_info:
            review(record, _ADMIN_ID, "approve", now=_LATER)

        assert exc_info.value.current_status == settled
        assert record.status == settled

    def test_unknown_decision_raises(self, record) -> None:
        _under_review(record)

        with pytest.raises(InvalidDecisionError):
            review(record, _ADMIN_ID, "maybe", now=_LATER)

        assert record.status == "under_review"

    def test_rejected_status_survives_step_updates(self, record) -> None:
        _under_review(record)
        review(record, _ADMIN_ID, "reject", "Incomplete portfolio", now=_LATER)

        update_consultant_step(record, 5, "in_progress", now=_LATER)

        assert record.status == "rejected"


class TestComplete:
    def test_approved_record_completes(self, record) -> None:
        _under_review(record)
        review(record, _ADMIN_ID, "approve", now=_LATER)

        complete_consultant_onboarding(record, now=_LATER)

        assert record.status == "completed"
        assert record.completed_at == _LATER

    def test_under_review_cannot_complete(self, record) -> None:
        _under_review(record)

        with pytest.raises(NotApprovedError):
            complete_consultant_onboarding(record, now=_LATER)

        assert record.status == "under_review"

    def test_rejected_record_cannot_complete(self, record) -> None:
        _under_review(record)
        review(record, _ADMIN_ID, "reject", "insufficient experience", now=_NOW)

        with pytest.raises(NotApprovedError):
            complete_consultant_onboarding(record, now=_LATER)

        assert record.status == "rejected"
        assert record.completed_at is None
        assert record.reviewed_by == _ADMIN_ID
        assert record.admin_notes[-1]["content"] == "insufficient experience"
