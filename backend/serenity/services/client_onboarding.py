"""Client onboarding state machine.

not_started -> in_progress -> completed, driven by step updates. A record
that sits in_progress without activity is reported as stalled at read time
(see ``onboarding_steps.effective_status``); that state is never stored.

Every function validates first and writes last: when one raises, the
record is left exactly as it was. Collaborator work (profile mirroring,
recommendation lookups, emails) is not done here. Step updates return a
``ClientStepEffects`` telling the orchestrator what to run.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, get_args

from serenity.models.onboarding import ClientOnboarding
from serenity.schemas.onboarding_documents import (
    ClientFeedback,
    ClientPreferences,
    CompanyInfo,
    ConsultantRecommendation,
    OnboardingDocument,
    OnboardingSession,
    RecommendationStatus,
    ServiceRecommendation,
    SessionStatus,
)
from serenity.schemas.step_payloads import (
    BudgetTimeframePayload,
    CompanyInformationPayload,
    NeedsAssessmentPayload,
    ServicePreferencesPayload,
    parse_step_payload,
    payload_to_step_data,
)
from serenity.services.onboarding_errors import (
    IncompleteRequiredStepsError,
    InvalidStatusError,
    RecommendationNotFoundError,
    SessionNotFoundError,
)
from serenity.services.onboarding_steps import (
    OnboardingKind,
    OnboardingStatus,
    StepStatus,
    dump_steps,
    find_step,
    incomplete_required_steps,
    load_steps,
    plan_step_update,
    seed_steps,
)

COMPANY_INFO_STEP = 2
NEEDS_ASSESSMENT_STEP = 3
SERVICE_PREFERENCES_STEP = 4
BUDGET_TIMEFRAME_STEP = 5
DOCUMENT_UPLOAD_STEP = 6
CONSULTANT_MATCHING_STEP = 7
WELCOME_CALL_STEP = 8

_KIND = OnboardingKind.CLIENT


@dataclass(frozen=True)
class ClientStepEffects:
    """Follow-up work a client step update asks the orchestrator to run.

    Attributes:
        company_info: Company data to mirror into the client profile.
        refresh_service_recommendations: Service interests changed.
        generate_consultant_recommendations: Matching step completed with
            no consultant recommendations on the record yet.
    """

    company_info: CompanyInfo | None = None
    refresh_service_recommendations: bool = False
    generate_consultant_recommendations: bool = False


def new_client_onboarding(user_id: uuid.UUID, *, now: datetime) -> ClientOnboarding:
    """Build a fresh, unsaved onboarding record with the client step list."""
    return ClientOnboarding(
        user_id=user_id,
        status=OnboardingStatus.NOT_STARTED.value,
        progress=0,
        current_step=1,
        steps=dump_steps(seed_steps(_KIND)),
        started_at=now,
        completed_at=None,
        last_activity=now,
        assigned_to=None,
        preferences={},
        needs_assessment={},
        company_info={},
        recommended_consultants=[],
        recommended_services=[],
        documents=[],
        sessions=[],
        feedback=None,
        reminders=[],
    )


def get_preferences(record: ClientOnboarding) -> ClientPreferences:
    return ClientPreferences.model_validate(record.preferences or {})


def get_company_info(record: ClientOnboarding) -> CompanyInfo:
    return CompanyInfo.model_validate(record.company_info or {})


# =============================================================================
# Step updates
# =============================================================================


def update_client_step(
    record: ClientOnboarding,
    step_number: int,
    status: StepStatus | str,
    data: dict[str, Any] | None = None,
    *,
    now: datetime,
) -> ClientStepEffects:
    """Move a client step and apply its record-level effects.

    Step 2 merges company info, step 3 merges the needs assessment, step 4
    replaces the services of interest, step 5 merges budget and timeframe.
    Completing step 7 asks for consultant recommendations when there are
    none yet.

    Raises:
        ValidationError: If ``data`` does not fit the step's payload.
        InvalidStatusError: If ``status`` is not a client step status.
        StepNotFoundError: If the step does not exist.
    """
    payload = parse_step_payload(_KIND, step_number, data)
    transition = plan_step_update(
        record, _KIND, step_number, status, payload_to_step_data(payload), now=now
    )

    company_info: CompanyInfo | None = None
    refresh_services = False
    generate_consultants = False

    if isinstance(payload, CompanyInformationPayload) and payload.company_info:
        merged = {
            **(record.company_info or {}),
            **payload.company_info.model_dump(mode="json", exclude_unset=True),
        }
        company_info = CompanyInfo.model_validate(merged)
        record.company_info = merged
    elif isinstance(payload, NeedsAssessmentPayload) and payload.needs_assessment:
        record.needs_assessment = {
            **(record.needs_assessment or {}),
            **payload.needs_assessment.model_dump(mode="json", exclude_unset=True),
        }
    elif (
        isinstance(payload, ServicePreferencesPayload)
        and payload.services_interested is not None
    ):
        record.preferences = {
            **(record.preferences or {}),
            "services_interested": list(payload.services_interested),
        }
        refresh_services = True
    elif isinstance(payload, BudgetTimeframePayload):
        changes = payload.model_dump(
            mode="json",
            include={"budget_range", "project_timeframe"},
            exclude_none=True,
        )
        if changes:
            record.preferences = {**(record.preferences or {}), **changes}
    elif (
        step_number == CONSULTANT_MATCHING_STEP
        and find_step(transition.steps, step_number).status == StepStatus.COMPLETED
        and not record.recommended_consultants
    ):
        generate_consultants = True

    transition.apply_to(record, now)
    return ClientStepEffects(
        company_info=company_info,
        refresh_service_recommendations=refresh_services,
        generate_consultant_recommendations=generate_consultants,
    )


# =============================================================================
# Recommendations
# =============================================================================


def replace_service_recommendations(
    record: ClientOnboarding,
    recommendations: list[ServiceRecommendation],
    *,
    now: datetime,
) -> None:
    record.recommended_services = [r.model_dump(mode="json") for r in recommendations]
    record.last_activity = now


def replace_consultant_recommendations(
    record: ClientOnboarding,
    recommendations: list[ConsultantRecommendation],
    *,
    now: datetime,
) -> None:
    """Replace the consultant list, keeping what the client did with repeats.

    A consultant recommended again keeps its client-facing status
    (viewed, contacted, rejected) while score and reason are refreshed.
    """
    previous = {
        entry["consultant_id"]: entry.get("status", "recommended")
        for entry in record.recommended_consultants or []
    }
    merged = []
    for rec in recommendations:
        status = previous.get(rec.consultant_id, rec.status)
        merged.append(rec.model_copy(update={"status": status}).model_dump(mode="json"))
    record.recommended_consultants = merged
    record.last_activity = now


def set_recommendation_status(
    record: ClientOnboarding,
    consultant_id: str,
    status: str,
    *,
    now: datetime,
) -> ConsultantRecommendation:
    """Record what the client did with a consultant recommendation.

    Raises:
        InvalidStatusError: If ``status`` is not a recommendation status.
        RecommendationNotFoundError: If the consultant was never recommended.
    """
    allowed = list(get_args(RecommendationStatus))
    if status not in allowed:
        raise InvalidStatusError(status, allowed)

    entries = [
        ConsultantRecommendation.model_validate(e)
        for e in record.recommended_consultants or []
    ]
    for index, entry in enumerate(entries):
        if entry.consultant_id == consultant_id:
            entries[index] = entry.model_copy(update={"status": status})
            break
    else:
        raise RecommendationNotFoundError(consultant_id)

    record.recommended_consultants = [e.model_dump(mode="json") for e in entries]
    record.last_activity = now
    return entries[index]


# =============================================================================
# Sessions, documents, feedback
# =============================================================================


def schedule_session(
    record: ClientOnboarding,
    session: OnboardingSession,
    *,
    now: datetime,
) -> OnboardingSession:
    """Append a session. A welcome call completes the welcome-call step."""
    transition = None
    if session.session_type == "welcome_call":
        transition = plan_step_update(
            record, _KIND, WELCOME_CALL_STEP, StepStatus.COMPLETED, now=now
        )

    record.sessions = [*(record.sessions or []), session.model_dump(mode="json")]
    if transition is not None:
        transition.apply_to(record, now)
    record.last_activity = now
    return session


def update_session_status(
    record: ClientOnboarding,
    session_id: str,
    status: str,
    notes: str | None = None,
    *,
    now: datetime,
) -> OnboardingSession:
    """Change the status of a scheduled session.

    Raises:
        InvalidStatusError: If ``status`` is not a session status.
        SessionNotFoundError: If the session does not exist.
    """
    allowed = list(get_args(SessionStatus))
    if status not in allowed:
        raise InvalidStatusError(status, allowed)

    sessions = [OnboardingSession.model_validate(s) for s in record.sessions or []]
    for index, session in enumerate(sessions):
        if session.id == session_id:
            changes: dict[str, Any] = {"status": status}
            if notes is not None:
                changes["notes"] = notes
            sessions[index] = session.model_copy(update=changes)
            break
    else:
        raise SessionNotFoundError(session_id)

    record.sessions = [s.model_dump(mode="json") for s in sessions]
    record.last_activity = now
    return sessions[index]


def attach_document(
    record: ClientOnboarding,
    document: OnboardingDocument,
    *,
    now: datetime,
) -> OnboardingDocument:
    """Append an uploaded document and complete the upload step if still open."""
    transition = None
    upload_step = find_step(load_steps(record.steps), DOCUMENT_UPLOAD_STEP)
    if not upload_step.is_terminal:
        transition = plan_step_update(
            record, _KIND, DOCUMENT_UPLOAD_STEP, StepStatus.COMPLETED, now=now
        )

    record.documents = [*(record.documents or []), document.model_dump(mode="json")]
    if transition is not None:
        transition.apply_to(record, now)
    record.last_activity = now
    return document


def submit_feedback(
    record: ClientOnboarding,
    rating: int,
    comments: str | None = None,
    *,
    now: datetime,
) -> ClientFeedback:
    """Store the client's onboarding feedback, replacing any earlier one.

    Raises:
        pydantic.ValidationError: If ``rating`` is outside 1-5.
    """
    feedback = ClientFeedback(rating=rating, comments=comments, submitted_at=now)
    record.feedback = feedback.model_dump(mode="json")
    record.last_activity = now
    return feedback


# =============================================================================
# Completion
# =============================================================================


def finalize_client_onboarding(record: ClientOnboarding, *, now: datetime) -> bool:
    """Complete the onboarding.

    Every required step must be completed or skipped. Steps still open
    (optional ones) are marked skipped, keeping the completion time of
    steps already done. Calling it again on a completed record changes
    nothing.

    Returns:
        True if the record changed, False if it was already complete.

    Raises:
        IncompleteRequiredStepsError: If a required step is still open.
    """
    steps = load_steps(record.steps)
    missing = incomplete_required_steps(steps)
    if missing:
        raise IncompleteRequiredStepsError(missing)

    open_steps = [s for s in steps if not s.is_terminal]
    already_done = (
        record.status == OnboardingStatus.COMPLETED.value
        and not open_steps
        and record.progress == 100
        and record.completed_at is not None
    )
    if already_done:
        return False

    finalized = [
        s if s.is_terminal else s.model_copy(update={"status": StepStatus.SKIPPED})
        for s in steps
    ]
    record.steps = dump_steps(finalized)
    record.status = OnboardingStatus.COMPLETED.value
    record.progress = 100
    record.completed_at = record.completed_at or now
    record.last_activity = now
    return True
