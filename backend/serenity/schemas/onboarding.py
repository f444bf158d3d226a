"""Onboarding API request/response schemas.

Requests use ConfigDict(extra="forbid") to reject unexpected fields; step
payloads are the exception since their shape depends on the step number
and is checked by ``serenity.schemas.step_payloads``.

Read models are built from ORM records with ``from_record`` and carry the
derived view of a record: the effective status (stalled is computed at
read time) and elapsed day counts.
"""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from serenity.models.onboarding import ClientOnboarding, ConsultantOnboarding
from serenity.schemas.onboarding_documents import (
    AdminNote,
    CheckStatus,
    ClientFeedback,
    ClientPreferences,
    CompanyInfo,
    ConsultantRecommendation,
    ContractType,
    Contracts,
    IdentityStatus,
    Interview,
    InterviewFeedback,
    NeedsAssessment,
    OnboardingDocument,
    OnboardingSession,
    PaymentInformation,
    PortfolioProject,
    ProfessionalInfo,
    RecommendationStatus,
    Reminder,
    ReminderType,
    Scheduling,
    ServiceOffering,
    ServiceRecommendation,
    SessionStatus,
    SessionType,
    TaxInformation,
    Training,
    TrainingType,
    VerificationChecks,
    WorkHistoryEntry,
)
from serenity.services.onboarding_service import (
    KindStatistics,
    OnboardingStatistics,
)
from serenity.services.onboarding_steps import (
    OnboardingStep,
    effective_status,
    elapsed_days,
    load_steps,
)

# =============================================================================
# Requests
# =============================================================================


class StepUpdateRequest(BaseModel):
    """Move one step to a new status, optionally attaching step data."""

    model_config = ConfigDict(extra="forbid")

    status: str
    data: dict[str, Any] | None = None
    review_notes: str | None = Field(default=None, max_length=2000)


class RecommendationStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: RecommendationStatus


class SessionCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_type: SessionType
    scheduled_at: datetime
    duration: int | None = Field(default=None, ge=1, le=480)
    attendees: list[str] = Field(default_factory=list, max_length=20)
    notes: str | None = Field(default=None, max_length=2000)

    def to_session(self) -> OnboardingSession:
        return OnboardingSession(**self.model_dump())


class SessionStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: SessionStatus
    notes: str | None = Field(default=None, max_length=2000)


class FeedbackRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: int = Field(ge=1, le=5)
    comments: str | None = Field(default=None, max_length=5000)


class AssignRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    assignee_id: uuid.UUID


class ReminderCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_type: Literal["client", "consultant"]
    type: ReminderType
    message: str = Field(min_length=1, max_length=1000)
    scheduled_for: datetime

    def to_reminder(self) -> Reminder:
        return Reminder(
            type=self.type, message=self.message, scheduled_for=self.scheduled_for
        )


class InterviewCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    interviewer_id: uuid.UUID
    scheduled_at: datetime
    duration: int | None = Field(default=None, ge=1, le=480)

    def to_interview(self) -> Interview:
        return Interview(
            interviewer_id=str(self.interviewer_id),
            scheduled_at=self.scheduled_at,
            duration=self.duration,
        )


class InterviewStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: SessionStatus
    feedback: InterviewFeedback | None = None


class IdentityVerificationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: IdentityStatus
    notes: str | None = Field(default=None, max_length=2000)
    document_url: str | None = None


class BackgroundCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: CheckStatus
    provider: str | None = Field(default=None, max_length=255)
    reference_number: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)


class SkillAssessmentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: CheckStatus
    score: float | None = Field(default=None, ge=0, le=100)
    notes: str | None = Field(default=None, max_length=2000)


class ContractSignRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    contract_type: ContractType
    document_url: str | None = None


class TrainingCompleteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    training_type: TrainingType
    score: float | None = Field(default=None, ge=0, le=100)


class AdminNoteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(min_length=1, max_length=5000)
    is_private: bool = True


class ReviewRequest(BaseModel):
    """Admin decision on a consultant onboarding under review."""

    model_config = ConfigDict(extra="forbid")

    decision: str
    notes: str | None = Field(default=None, max_length=5000)

    @field_validator("decision")
    @classmethod
    def normalize_decision(cls, value: str) -> str:
        return value.strip().lower()


# =============================================================================
# Read models
# =============================================================================


class _OnboardingRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    status: str
    stored_status: str
    progress: int
    current_step: int
    steps: list[OnboardingStep]
    started_at: datetime | None
    completed_at: datetime | None
    last_activity: datetime | None
    reminders: list[Reminder]
    days_since_start: int | None
    days_to_complete: int | None

    @staticmethod
    def _common(
        record: ClientOnboarding | ConsultantOnboarding,
        *,
        now: datetime,
        threshold_days: int,
    ) -> dict[str, Any]:
        return {
            "id": record.id,
            "user_id": record.user_id,
            "status": effective_status(
                record.status,
                record.last_activity,
                now=now,
                threshold_days=threshold_days,
            ).value,
            "stored_status": record.status,
            "progress": record.progress,
            "current_step": record.current_step,
            "steps": load_steps(record.steps),
            "started_at": record.started_at,
            "completed_at": record.completed_at,
            "last_activity": record.last_activity,
            "reminders": [Reminder.model_validate(r) for r in record.reminders or []],
            "days_since_start": elapsed_days(record.started_at, now),
            "days_to_complete": (
                elapsed_days(record.started_at, record.completed_at)
                if record.completed_at is not None
                else None
            ),
        }


class ClientOnboardingRead(_OnboardingRead):
    assigned_to: uuid.UUID | None
    preferences: ClientPreferences
    needs_assessment: NeedsAssessment
    company_info: CompanyInfo
    recommended_consultants: list[ConsultantRecommendation]
    recommended_services: list[ServiceRecommendation]
    documents: list[OnboardingDocument]
    sessions: list[OnboardingSession]
    feedback: ClientFeedback | None

    @classmethod
    def from_record(
        cls, record: ClientOnboarding, *, now: datetime, threshold_days: int
    ) -> "ClientOnboardingRead":
        return cls(
            **cls._common(record, now=now, threshold_days=threshold_days),
            assigned_to=record.assigned_to,
            preferences=ClientPreferences.model_validate(record.preferences or {}),
            needs_assessment=NeedsAssessment.model_validate(
                record.needs_assessment or {}
            ),
            company_info=CompanyInfo.model_validate(record.company_info or {}),
            recommended_consultants=[
                ConsultantRecommendation.model_validate(r)
                for r in record.recommended_consultants or []
            ],
            recommended_services=[
                ServiceRecommendation.model_validate(r)
                for r in record.recommended_services or []
            ],
            documents=[OnboardingDocument.model_validate(d) for d in record.documents or []],
            sessions=[OnboardingSession.model_validate(s) for s in record.sessions or []],
            feedback=(
                ClientFeedback.model_validate(record.feedback)
                if record.feedback
                else None
            ),
        )


class ConsultantOnboardingRead(_OnboardingRead):
    """Consultant onboarding as returned by the API.

    ``admin_notes`` only carries private notes when the caller is an admin.
    """

    reviewed_by: uuid.UUID | None
    approved_at: datetime | None
    professional_info: ProfessionalInfo
    work_history: list[WorkHistoryEntry]
    portfolio: list[PortfolioProject]
    service_offerings: list[ServiceOffering]
    verification_checks: VerificationChecks
    contracts: Contracts
    training: Training
    payment_information: PaymentInformation | None
    tax_information: TaxInformation | None
    scheduling: Scheduling | None
    interviews: list[Interview]
    admin_notes: list[AdminNote]

    @classmethod
    def from_record(
        cls,
        record: ConsultantOnboarding,
        *,
        now: datetime,
        threshold_days: int,
        include_private_notes: bool = False,
    ) -> "ConsultantOnboardingRead":
        notes = [AdminNote.model_validate(n) for n in record.admin_notes or []]
        if not include_private_notes:
            notes = [n for n in notes if not n.is_private]
        return cls(
            **cls._common(record, now=now, threshold_days=threshold_days),
            reviewed_by=record.reviewed_by,
            approved_at=record.approved_at,
            professional_info=ProfessionalInfo.model_validate(
                record.professional_info or {}
            ),
            work_history=[
                WorkHistoryEntry.model_validate(w) for w in record.work_history or []
            ],
            portfolio=[PortfolioProject.model_validate(p) for p in record.portfolio or []],
            service_offerings=[
                ServiceOffering.model_validate(o) for o in record.service_offerings or []
            ],
            verification_checks=VerificationChecks.model_validate(
                record.verification_checks or {}
            ),
            contracts=Contracts.model_validate(record.contracts or {}),
            training=Training.model_validate(record.training or {}),
            payment_information=(
                PaymentInformation.model_validate(record.payment_information)
                if record.payment_information
                else None
            ),
            tax_information=(
                TaxInformation.model_validate(record.tax_information)
                if record.tax_information
                else None
            ),
            scheduling=(
                Scheduling.model_validate(record.scheduling)
                if record.scheduling
                else None
            ),
            interviews=[Interview.model_validate(i) for i in record.interviews or []],
            admin_notes=notes,
        )


class StoredFileRead(BaseModel):
    url: str
    name: str
    content_type: str
    size: int


class ConsultantDocumentRead(BaseModel):
    document_type: str
    file: StoredFileRead
    result: dict[str, Any]


class KindStatisticsRead(BaseModel):
    total: int
    by_status: dict[str, int]
    stalled: int
    average_completion_days: int

    @classmethod
    def from_statistics(cls, stats: KindStatistics) -> "KindStatisticsRead":
        return cls(
            total=stats.total,
            by_status=dict(stats.by_status),
            stalled=stats.stalled,
            average_completion_days=stats.average_completion_days,
        )


class OnboardingStatisticsRead(BaseModel):
    client: KindStatisticsRead
    consultant: KindStatisticsRead

    @classmethod
    def from_statistics(cls, stats: OnboardingStatistics) -> "OnboardingStatisticsRead":
        return cls(
            client=KindStatisticsRead.from_statistics(stats.client),
            consultant=KindStatisticsRead.from_statistics(stats.consultant),
        )
