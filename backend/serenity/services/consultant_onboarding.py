"""Consultant onboarding state machine.

not_started -> in_progress -> under_review -> approved | rejected
approved -> completed

Progress recompute moves a fully done record to under_review, but only an
admin review decides approved or rejected, and only approved records can be
completed. Rejected is terminal for this record.

Besides the twelve steps the record carries verification sub-machines
(identity, background check, skill assessment), signed contracts, training
results, payment and tax details, availability, interviews and admin notes.

As with the client machine, every function validates before writing so a
raised error leaves the record untouched, and collaborator work is reported
back to the orchestrator instead of performed here.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, get_args

from serenity.core.errors import ValidationError
from serenity.models.onboarding import ConsultantOnboarding
from serenity.schemas.onboarding_documents import (
    CONTRACT_TYPES,
    TRAINING_TYPES,
    AdminNote,
    Certification,
    CheckStatus,
    Contracts,
    EducationEntry,
    IdentityStatus,
    Interview,
    InterviewFeedback,
    PaymentInformation,
    PortfolioAttachment,
    PortfolioProject,
    ProfessionalInfo,
    Scheduling,
    ServiceOffering,
    SessionStatus,
    TaxInformation,
    Training,
    VerificationChecks,
    WorkHistoryEntry,
)
from serenity.schemas.step_payloads import (
    AvailabilityPayload,
    EducationCertificationsPayload,
    IdentityVerificationPayload,
    LegalAgreementsPayload,
    PaymentInformationPayload,
    PortfolioPayload,
    ProfessionalInformationPayload,
    ServiceOfferingsPayload,
    TrainingPayload,
    WorkHistoryPayload,
    parse_step_payload,
    payload_to_step_data,
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
from serenity.services.onboarding_steps import (
    OnboardingKind,
    OnboardingStatus,
    StepStatus,
    dump_steps,
    incomplete_required_steps,
    load_steps,
    plan_step_update,
    seed_steps,
)

INTERVIEW_STEP = 12

# Identity statuses a consultant may set on their own record; verified and
# failed are admin decisions.
SELF_SERVICE_IDENTITY_STATUSES = frozenset({"pending", "in_progress"})

_KIND = OnboardingKind.CONSULTANT

# Statuses from which a record can no longer be (re)submitted.
_REVIEWED_STATUSES = frozenset(
    {
        OnboardingStatus.APPROVED.value,
        OnboardingStatus.REJECTED.value,
        OnboardingStatus.COMPLETED.value,
    }
)


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class ConsultantStepEffects:
    """Follow-up work a consultant step update asks the orchestrator to run.

    Attributes:
        professional_info: Professional data to mirror into the profile.
    """

    professional_info: ProfessionalInfo | None = None


def new_consultant_onboarding(
    user_id: uuid.UUID, *, now: datetime
) -> ConsultantOnboarding:
    """Build a fresh, unsaved onboarding record with the consultant step list."""
    return ConsultantOnboarding(
        user_id=user_id,
        status=OnboardingStatus.NOT_STARTED.value,
        progress=0,
        current_step=1,
        steps=dump_steps(seed_steps(_KIND)),
        started_at=now,
        completed_at=None,
        last_activity=now,
        reviewed_by=None,
        approved_at=None,
        professional_info=ProfessionalInfo().model_dump(mode="json"),
        work_history=[],
        portfolio=[],
        service_offerings=[],
        verification_checks=VerificationChecks().model_dump(mode="json"),
        contracts=Contracts().model_dump(mode="json"),
        training=Training().model_dump(mode="json"),
        payment_information={},
        tax_information={},
        scheduling={},
        interviews=[],
        admin_notes=[],
        reminders=[],
    )


def get_professional_info(record: ConsultantOnboarding) -> ProfessionalInfo:
    return ProfessionalInfo.model_validate(record.professional_info or {})


def get_verification_checks(record: ConsultantOnboarding) -> VerificationChecks:
    return VerificationChecks.model_validate(record.verification_checks or {})


def get_contracts(record: ConsultantOnboarding) -> Contracts:
    return Contracts.model_validate(record.contracts or {})


def get_training(record: ConsultantOnboarding) -> Training:
    return Training.model_validate(record.training or {})


def _check_status(value: str, literal: Any) -> None:
    allowed = list(get_args(literal))
    if value not in allowed:
        raise InvalidStatusError(value, allowed)


# =============================================================================
# Professional data
# =============================================================================


def _append_unique(
    existing: list[dict[str, Any]],
    entries: list[Any],
    key: Any,
) -> list[dict[str, Any]]:
    """Append entries whose key is not on the list yet."""
    seen = {key(item) for item in existing}
    merged = list(existing)
    for entry in entries:
        dumped = entry.model_dump(mode="json")
        if key(dumped) in seen:
            continue
        seen.add(key(dumped))
        merged.append(dumped)
    return merged


def _education_key(item: dict[str, Any]) -> tuple:
    return (item.get("institution"), item.get("degree"))


def _certification_key(item: dict[str, Any]) -> tuple:
    return (item.get("name"), item.get("issuer"))


def _work_history_key(item: dict[str, Any]) -> tuple:
    return (item.get("company"), item.get("position"))


def _portfolio_key(item: dict[str, Any]) -> tuple:
    return (item.get("project_title"), item.get("client"))


def add_education(
    record: ConsultantOnboarding, entries: list[EducationEntry], *, now: datetime
) -> None:
    info = dict(record.professional_info or {})
    info["education"] = _append_unique(info.get("education", []), entries, _education_key)
    record.professional_info = info
    record.last_activity = now


def add_certifications(
    record: ConsultantOnboarding, entries: list[Certification], *, now: datetime
) -> None:
    info = dict(record.professional_info or {})
    info["certifications"] = _append_unique(
        info.get("certifications", []), entries, _certification_key
    )
    record.professional_info = info
    record.last_activity = now


def add_work_history(
    record: ConsultantOnboarding, entries: list[WorkHistoryEntry], *, now: datetime
) -> None:
    record.work_history = _append_unique(
        record.work_history or [], entries, _work_history_key
    )
    record.last_activity = now


def add_portfolio_projects(
    record: ConsultantOnboarding, projects: list[PortfolioProject], *, now: datetime
) -> None:
    record.portfolio = _append_unique(record.portfolio or [], projects, _portfolio_key)
    record.last_activity = now


def add_portfolio_attachment(
    record: ConsultantOnboarding,
    project_id: str,
    attachment: PortfolioAttachment,
    *,
    now: datetime,
) -> PortfolioProject:
    """Attach an uploaded document to a portfolio project.

    Raises:
        PortfolioProjectNotFoundError: If the project does not exist.
    """
    projects = [PortfolioProject.model_validate(p) for p in record.portfolio or []]
    for index, project in enumerate(projects):
        if project.id == project_id:
            projects[index] = project.model_copy(
                update={"documents": [*project.documents, attachment]}
            )
            break
    else:
        raise PortfolioProjectNotFoundError(project_id)

    record.portfolio = [p.model_dump(mode="json") for p in projects]
    record.last_activity = now
    return projects[index]


def find_portfolio_project(
    record: ConsultantOnboarding, project_id: str
) -> PortfolioProject:
    for item in record.portfolio or []:
        project = PortfolioProject.model_validate(item)
        if project.id == project_id:
            return project
    raise PortfolioProjectNotFoundError(project_id)


def upsert_service_offerings(
    record: ConsultantOnboarding, offerings: list[ServiceOffering], *, now: datetime
) -> None:
    """Add offerings, merging into an existing one for the same service."""
    merged = list(record.service_offerings or [])
    for offering in offerings:
        incoming = offering.model_dump(mode="json", exclude_unset=True)
        for index, existing in enumerate(merged):
            if existing.get("service_id") == offering.service_id:
                merged[index] = {**existing, **incoming}
                break
        else:
            merged.append(offering.model_dump(mode="json"))
    record.service_offerings = merged
    record.last_activity = now


def update_payment_information(
    record: ConsultantOnboarding, payment: PaymentInformation, *, now: datetime
) -> None:
    record.payment_information = {
        **(record.payment_information or {}),
        **payment.model_dump(mode="json", exclude_unset=True),
    }
    record.last_activity = now


def update_tax_information(
    record: ConsultantOnboarding, tax: TaxInformation, *, now: datetime
) -> None:
    record.tax_information = {
        **(record.tax_information or {}),
        **tax.model_dump(mode="json", exclude_unset=True),
    }
    record.last_activity = now


def update_availability(
    record: ConsultantOnboarding, scheduling: Scheduling, *, now: datetime
) -> None:
    record.scheduling = scheduling.model_dump(mode="json")
    record.last_activity = now


# =============================================================================
# Verification, contracts, training
# =============================================================================


def verify_identity(
    record: ConsultantOnboarding,
    status: str,
    notes: str | None = None,
    document_url: str | None = None,
    *,
    now: datetime,
) -> None:
    """Move the identity check. ``verified_at`` is stamped only on verified.

    Raises:
        InvalidStatusError: If ``status`` is not an identity status.
    """
    _check_status(status, IdentityStatus)
    checks = get_verification_checks(record)
    changes: dict[str, Any] = {"status": status}
    if status == "verified":
        changes["verified_at"] = now
    if notes:
        changes["notes"] = notes
    if document_url:
        changes["document_url"] = document_url
    checks = checks.model_copy(
        update={"identity_verified": checks.identity_verified.model_copy(update=changes)}
    )
    record.verification_checks = checks.model_dump(mode="json")
    record.last_activity = now


def update_background_check(
    record: ConsultantOnboarding,
    status: str,
    provider: str | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
    *,
    now: datetime,
) -> None:
    """Move the background check. ``completed_at`` is stamped on passed/failed.

    Raises:
        InvalidStatusError: If ``status`` is not a check status.
    """
    _check_status(status, CheckStatus)
    checks = get_verification_checks(record)
    changes: dict[str, Any] = {"status": status}
    if status in ("passed", "failed"):
        changes["completed_at"] = now
    if provider:
        changes["provider"] = provider
    if reference_number:
        changes["reference_number"] = reference_number
    if notes:
        changes["notes"] = notes
    checks = checks.model_copy(
        update={"background_check": checks.background_check.model_copy(update=changes)}
    )
    record.verification_checks = checks.model_dump(mode="json")
    record.last_activity = now


def update_skill_assessment(
    record: ConsultantOnboarding,
    status: str,
    score: float | None = None,
    notes: str | None = None,
    *,
    now: datetime,
) -> None:
    """Move the skill assessment. ``completed_at`` is stamped on passed/failed.

    Raises:
        InvalidStatusError: If ``status`` is not a check status.
    """
    _check_status(status, CheckStatus)
    checks = get_verification_checks(record)
    changes: dict[str, Any] = {"status": status}
    if status in ("passed", "failed"):
        changes["completed_at"] = now
    if score is not None:
        changes["score"] = score
    if notes:
        changes["notes"] = notes
    checks = checks.model_copy(
        update={"skill_assessment": checks.skill_assessment.model_copy(update=changes)}
    )
    record.verification_checks = checks.model_dump(mode="json")
    record.last_activity = now


def sign_contract(
    record: ConsultantOnboarding,
    contract_type: str,
    document_url: str | None,
    *,
    now: datetime,
) -> None:
    """Mark a contract signed. Signing again replaces URL and timestamp.

    Raises:
        InvalidContractTypeError: If the type is not a known contract.
    """
    if contract_type not in CONTRACT_TYPES:
        raise InvalidContractTypeError(contract_type)
    contracts = get_contracts(record)
    signature = getattr(contracts, contract_type).model_copy(
        update={"signed": True, "signed_at": now, "document_url": document_url}
    )
    contracts = contracts.model_copy(update={contract_type: signature})
    record.contracts = contracts.model_dump(mode="json")
    record.last_activity = now


def complete_training(
    record: ConsultantOnboarding,
    training_type: str,
    score: float | None = None,
    *,
    now: datetime,
) -> None:
    """Record a finished training module.

    Raises:
        InvalidTrainingTypeError: If the type is not a known training.
    """
    if training_type not in TRAINING_TYPES:
        raise InvalidTrainingTypeError(training_type)
    training = get_training(record)
    result = getattr(training, training_type).model_copy(
        update={"completed": True, "completed_at": now, "score": score}
    )
    training = training.model_copy(update={training_type: result})
    record.training = training.model_dump(mode="json")
    record.last_activity = now


# =============================================================================
# Step updates
# =============================================================================


def requested_identity_status(
    step_number: int, data: dict[str, Any] | None
) -> str | None:
    """Identity status a step update would set, if it carries one."""
    payload = parse_step_payload(_KIND, step_number, data)
    if isinstance(payload, IdentityVerificationPayload) and payload.identity_verification:
        return payload.identity_verification.status
    return None


def update_consultant_step(
    record: ConsultantOnboarding,
    step_number: int,
    status: StepStatus | str,
    data: dict[str, Any] | None = None,
    review_notes: str | None = None,
    *,
    now: datetime,
) -> ConsultantStepEffects:
    """Move a consultant step and apply its record-level effects.

    Steps 2-11 feed the matching part of the record: professional info,
    education and certifications, work history, portfolio, service
    offerings, identity verification, legal agreements, payment details,
    training and availability.

    Raises:
        ValidationError: If ``data`` does not fit the step's payload.
        InvalidStatusError: If ``status`` is not a consultant step status.
        StepNotFoundError: If the step does not exist.
    """
    payload = parse_step_payload(_KIND, step_number, data)
    transition = plan_step_update(
        record,
        _KIND,
        step_number,
        status,
        payload_to_step_data(payload),
        now=now,
        review_notes=review_notes,
    )

    professional_info: ProfessionalInfo | None = None

    if isinstance(payload, ProfessionalInformationPayload) and payload.professional_info:
        merged = {
            **(record.professional_info or {}),
            **payload.professional_info.model_dump(mode="json", exclude_unset=True),
        }
        professional_info = ProfessionalInfo.model_validate(merged)
        record.professional_info = merged
    elif isinstance(payload, EducationCertificationsPayload):
        add_education(record, payload.education, now=now)
        add_certifications(record, payload.certifications, now=now)
    elif isinstance(payload, WorkHistoryPayload):
        add_work_history(record, payload.work_history, now=now)
    elif isinstance(payload, PortfolioPayload):
        add_portfolio_projects(record, payload.portfolio, now=now)
    elif isinstance(payload, ServiceOfferingsPayload):
        upsert_service_offerings(record, payload.service_offerings, now=now)
    elif (
        isinstance(payload, IdentityVerificationPayload)
        and payload.identity_verification
    ):
        identity = payload.identity_verification
        verify_identity(
            record, identity.status, identity.notes, identity.document_url, now=now
        )
    elif isinstance(payload, LegalAgreementsPayload) and payload.legal_agreements:
        for contract_type in CONTRACT_TYPES:
            document_url = getattr(payload.legal_agreements, contract_type)
            if document_url:
                sign_contract(record, contract_type, document_url, now=now)
    elif (
        isinstance(payload, PaymentInformationPayload) and payload.payment_information
    ):
        update_payment_information(record, payload.payment_information, now=now)
    elif isinstance(payload, TrainingPayload) and payload.training:
        for training_type in TRAINING_TYPES:
            result = getattr(payload.training, training_type)
            if result is not None:
                complete_training(record, training_type, result.score, now=now)
    elif isinstance(payload, AvailabilityPayload) and payload.availability:
        update_availability(record, payload.availability, now=now)

    transition.apply_to(record, now)
    return ConsultantStepEffects(professional_info=professional_info)


# =============================================================================
# Interviews and notes
# =============================================================================


def schedule_interview(
    record: ConsultantOnboarding, interview: Interview, *, now: datetime
) -> Interview:
    """Append an interview and complete the interview scheduling step."""
    transition = plan_step_update(
        record, _KIND, INTERVIEW_STEP, StepStatus.COMPLETED, now=now
    )
    record.interviews = [*(record.interviews or []), interview.model_dump(mode="json")]
    transition.apply_to(record, now)
    return interview


def update_interview_status(
    record: ConsultantOnboarding,
    interview_id: str,
    status: str,
    feedback: InterviewFeedback | None = None,
    *,
    now: datetime,
) -> Interview:
    """Change an interview's status, optionally recording feedback.

    Raises:
        InvalidStatusError: If ``status`` is not a session status.
        InterviewNotFoundError: If the interview does not exist.
    """
    _check_status(status, SessionStatus)
    interviews = [Interview.model_validate(i) for i in record.interviews or []]
    for index, interview in enumerate(interviews):
        if interview.id == interview_id:
            changes: dict[str, Any] = {"status": status}
            if feedback is not None:
                changes["feedback"] = feedback
            interviews[index] = interview.model_copy(update=changes)
            break
    else:
        raise InterviewNotFoundError(interview_id)

    record.interviews = [i.model_dump(mode="json") for i in interviews]
    record.last_activity = now
    return interviews[index]


def add_admin_note(
    record: ConsultantOnboarding,
    author_id: str,
    content: str,
    is_private: bool = True,
    *,
    now: datetime,
) -> AdminNote:
    note = AdminNote(
        author_id=author_id, content=content, created_at=now, is_private=is_private
    )
    record.admin_notes = [*(record.admin_notes or []), note.model_dump(mode="json")]
    record.last_activity = now
    return note


# =============================================================================
# Review gate
# =============================================================================


def submit_for_review(record: ConsultantOnboarding, *, now: datetime) -> None:
    """Hand the onboarding to the admins.

    Raises:
        PreconditionError: If the record was already reviewed or completed.
        IncompleteRequiredStepsError: If a required step is still open.
    """
    if record.status in _REVIEWED_STATUSES:
        raise PreconditionError(
            f"Onboarding has already been reviewed (status: {record.status})",
            code="ALREADY_REVIEWED",
        )
    missing = incomplete_required_steps(load_steps(record.steps))
    if missing:
        raise IncompleteRequiredStepsError(missing)

    record.status = OnboardingStatus.UNDER_REVIEW.value
    record.last_activity = now


def parse_decision(decision: str) -> ReviewDecision:
    try:
        return ReviewDecision(decision)
    except ValueError as exc:
        raise InvalidDecisionError(decision) from exc


def review(
    record: ConsultantOnboarding,
    reviewer_id: uuid.UUID,
    decision: str,
    notes: str | None = None,
    *,
    now: datetime,
) -> ReviewDecision:
    """Apply an admin's approve/reject decision.

    Approval stamps ``approved_at``; both decisions record the reviewer and
    keep the notes as a private admin note. Rejection needs notes.

    Raises:
        NotUnderReviewError: If the record is not under review.
        InvalidDecisionError: If ``decision`` is neither approve nor reject.
        ValidationError: If a rejection comes without notes.
    """
    if record.status != OnboardingStatus.UNDER_REVIEW.value:
        raise NotUnderReviewError(record.status)
    parsed = parse_decision(decision)
    notes = (notes or "").strip()
    if parsed == ReviewDecision.REJECT and not notes:
        raise ValidationError("A reason is required to reject an onboarding")

    if parsed == ReviewDecision.APPROVE:
        record.status = OnboardingStatus.APPROVED.value
        record.approved_at = now
    else:
        record.status = OnboardingStatus.REJECTED.value
    record.reviewed_by = reviewer_id
    if notes:
        add_admin_note(record, str(reviewer_id), notes, now=now)
    record.last_activity = now
    return parsed


def complete_consultant_onboarding(
    record: ConsultantOnboarding, *, now: datetime
) -> None:
    """Finish an approved onboarding.

    Raises:
        NotApprovedError: Unless the record is approved.
    """
    if record.status != OnboardingStatus.APPROVED.value:
        raise NotApprovedError(record.status)
    record.status = OnboardingStatus.COMPLETED.value
    record.completed_at = now
    record.last_activity = now
