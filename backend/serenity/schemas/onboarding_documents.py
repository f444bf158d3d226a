"""Embedded onboarding documents.

Onboarding records keep their nested data (sessions, recommendations,
verification checks, contracts...) in JSONB columns. These models are the
typed shape of that JSON: services parse a column with ``model_validate``,
work on the models, and write back ``model_dump(mode="json")``.

Unknown keys are ignored on read so older rows keep loading after a field
is dropped.
"""

import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Industry = Literal[
    "technology",
    "healthcare",
    "finance",
    "education",
    "retail",
    "manufacturing",
    "media",
    "legal",
    "real_estate",
    "energy",
    "hospitality",
    "nonprofit",
    "other",
]
BudgetRange = Literal["under_5k", "5k_15k", "15k_50k", "50k_plus"]
ProjectTimeframe = Literal["immediate", "within_month", "within_quarter", "flexible"]
CommunicationChannel = Literal["email", "phone", "video", "in_person"]
CompanySize = Literal["1-10", "11-50", "51-200", "201-500", "501-1000", "1000+"]

SessionType = Literal[
    "welcome_call", "needs_assessment", "solution_presentation", "qa_session", "other"
]
SessionStatus = Literal["scheduled", "completed", "rescheduled", "cancelled"]
RecommendationStatus = Literal["recommended", "viewed", "contacted", "rejected"]
ReminderType = Literal["email", "in_app", "sms"]

IdentityStatus = Literal["pending", "in_progress", "verified", "failed"]
CheckStatus = Literal["pending", "in_progress", "passed", "failed", "waived"]
ContractType = Literal["nda", "consultingAgreement", "codeOfConduct"]
TrainingType = Literal["platformTraining", "clientInteractionTraining"]
InterviewRecommendation = Literal["approve", "reject", "additional_interview", "undecided"]

CONTRACT_TYPES: tuple[str, ...] = ("nda", "consultingAgreement", "codeOfConduct")
TRAINING_TYPES: tuple[str, ...] = ("platformTraining", "clientInteractionTraining")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EmbeddedDocument(BaseModel):
    """Base for JSONB sub-documents."""

    model_config = ConfigDict(extra="ignore")


# =============================================================================
# Client record documents
# =============================================================================


class CompanyLocation(EmbeddedDocument):
    country: str | None = None
    state: str | None = None
    city: str | None = None


class CompanyInfo(EmbeddedDocument):
    name: str | None = None
    size: CompanySize | None = None
    industry: Industry | None = None
    website: str | None = None
    linkedin: str | None = None
    founded_year: int | None = Field(default=None, ge=1800, le=2100)
    location: CompanyLocation | None = None


class ClientPreferences(EmbeddedDocument):
    industry: Industry | None = None
    budget_range: BudgetRange | None = None
    project_timeframe: ProjectTimeframe | None = None
    services_interested: list[str] = Field(default_factory=list)
    preferred_communication: CommunicationChannel | None = None


class NeedsAssessment(EmbeddedDocument):
    challenges: list[str] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
    current_solutions: str | None = None
    success_criteria: list[str] = Field(default_factory=list)
    expected_outcomes: str | None = None
    additional_info: str | None = None


class ConsultantRecommendation(EmbeddedDocument):
    """A consultant suggested to the client.

    ``status`` tracks what the client did with the suggestion.
    """

    consultant_id: str
    match_score: int = Field(ge=0, le=100)
    reason: str
    status: RecommendationStatus = "recommended"


class ServiceRecommendation(EmbeddedDocument):
    service_id: str
    match_score: int = Field(ge=0, le=100)
    reason: str


class OnboardingDocument(EmbeddedDocument):
    id: str = Field(default_factory=_new_id)
    name: str
    type: str
    url: str
    uploaded_at: datetime = Field(default_factory=_utcnow)


class ClientFeedback(EmbeddedDocument):
    rating: int = Field(ge=1, le=5)
    comments: str | None = None
    submitted_at: datetime


class OnboardingSession(EmbeddedDocument):
    id: str = Field(default_factory=_new_id)
    session_type: SessionType
    scheduled_at: datetime
    duration: int | None = Field(default=None, ge=1, description="Minutes")
    attendees: list[str] = Field(default_factory=list)
    notes: str | None = None
    status: SessionStatus = "scheduled"


class Reminder(EmbeddedDocument):
    id: str = Field(default_factory=_new_id)
    type: ReminderType
    message: str
    scheduled_for: datetime
    sent: bool = False
    sent_at: datetime | None = None


# =============================================================================
# Consultant record documents
# =============================================================================


class Certification(EmbeddedDocument):
    name: str
    issuer: str | None = None
    date_obtained: datetime | None = None
    expiry_date: datetime | None = None
    document_url: str | None = None
    verified: bool = False


class EducationEntry(EmbeddedDocument):
    institution: str
    degree: str | None = None
    field_of_study: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    document_url: str | None = None
    verified: bool = False


class LanguageSkill(EmbeddedDocument):
    language: str
    proficiency: Literal["basic", "intermediate", "fluent", "native"] | None = None


class ProfessionalInfo(EmbeddedDocument):
    title: str | None = None
    summary: str | None = None
    specialty: str | None = None
    years_of_experience: int | None = Field(default=None, ge=0, le=70)
    expertise: list[str] = Field(default_factory=list)
    industries: list[str] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    languages: list[LanguageSkill] = Field(default_factory=list)


class WorkReference(EmbeddedDocument):
    name: str | None = None
    position: str | None = None
    company: str | None = None
    email: str | None = None
    phone: str | None = None
    relationship_context: str | None = None


class WorkHistoryEntry(EmbeddedDocument):
    company: str
    position: str
    location: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    description: str | None = None
    highlights: list[str] = Field(default_factory=list)
    reference: WorkReference | None = None
    verified: bool = False


class PortfolioAttachment(EmbeddedDocument):
    name: str
    url: str
    type: str | None = None


class PortfolioImage(EmbeddedDocument):
    url: str
    caption: str | None = None


class PortfolioProject(EmbeddedDocument):
    id: str = Field(default_factory=_new_id)
    project_title: str
    client: str | None = None
    description: str | None = None
    role: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    outcomes: list[str] = Field(default_factory=list)
    skills_used: list[str] = Field(default_factory=list)
    documents: list[PortfolioAttachment] = Field(default_factory=list)
    images: list[PortfolioImage] = Field(default_factory=list)


class OfferingPricing(EmbeddedDocument):
    rate_type: Literal["hourly", "fixed", "retainer", "value_based"] | None = None
    rate: float | None = Field(default=None, ge=0)
    currency: str = "USD"
    negotiable: bool = True


class ServiceOffering(EmbeddedDocument):
    service_id: str
    custom_description: str | None = None
    pricing: OfferingPricing | None = None
    availability: (
        Literal["full_time", "part_time", "weekends", "limited", "unavailable"] | None
    ) = None


class IdentityVerification(EmbeddedDocument):
    status: IdentityStatus = "pending"
    verified_at: datetime | None = None
    document_url: str | None = None
    notes: str | None = None


class BackgroundCheck(EmbeddedDocument):
    status: CheckStatus = "pending"
    completed_at: datetime | None = None
    provider: str | None = None
    reference_number: str | None = None
    notes: str | None = None


class SkillAssessment(EmbeddedDocument):
    status: CheckStatus = "pending"
    completed_at: datetime | None = None
    score: float | None = None
    notes: str | None = None


class VerificationChecks(EmbeddedDocument):
    identity_verified: IdentityVerification = Field(default_factory=IdentityVerification)
    background_check: BackgroundCheck = Field(default_factory=BackgroundCheck)
    skill_assessment: SkillAssessment = Field(default_factory=SkillAssessment)


class ContractSignature(EmbeddedDocument):
    signed: bool = False
    signed_at: datetime | None = None
    document_url: str | None = None


class Contracts(EmbeddedDocument):
    nda: ContractSignature = Field(default_factory=ContractSignature)
    consultingAgreement: ContractSignature = Field(default_factory=ContractSignature)
    codeOfConduct: ContractSignature = Field(default_factory=ContractSignature)


class TrainingRecord(EmbeddedDocument):
    completed: bool = False
    completed_at: datetime | None = None
    score: float | None = None


class Training(EmbeddedDocument):
    platformTraining: TrainingRecord = Field(default_factory=TrainingRecord)
    clientInteractionTraining: TrainingRecord = Field(default_factory=TrainingRecord)


class TaxInformation(EmbeddedDocument):
    tax_id_type: Literal["ssn", "ein", "vat", "other"] | None = None
    tax_id_number: str | None = None
    tax_document_url: str | None = None
    verified: bool = False


class BankDetails(EmbeddedDocument):
    account_holder_name: str | None = None
    account_number: str | None = None
    routing_number: str | None = None
    bank_name: str | None = None
    bank_address: str | None = None
    account_type: Literal["checking", "savings", "business"] | None = None


class PaymentInformation(EmbeddedDocument):
    preferred_method: Literal["bank_transfer", "paypal", "stripe", "other"] | None = None
    paypal_email: str | None = None
    bank_details: BankDetails | None = None
    verified: bool = False


class TimeSlot(EmbeddedDocument):
    start_time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    end_time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class DayAvailability(EmbeddedDocument):
    day: Literal[
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
    ]
    slots: list[TimeSlot] = Field(default_factory=list)


class Scheduling(EmbeddedDocument):
    availability: list[DayAvailability] = Field(default_factory=list)
    time_zone: str | None = None
    notice_period: int = Field(default=1, ge=0, description="Days")
    max_weekly_hours: int | None = Field(default=None, ge=0)


class InterviewFeedback(EmbeddedDocument):
    rating: int | None = Field(default=None, ge=1, le=5)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    notes: str | None = None
    recommendation: InterviewRecommendation | None = None


class Interview(EmbeddedDocument):
    id: str = Field(default_factory=_new_id)
    interviewer_id: str
    scheduled_at: datetime
    duration: int | None = Field(default=None, ge=1, description="Minutes")
    status: SessionStatus = "scheduled"
    feedback: InterviewFeedback | None = None


class AdminNote(EmbeddedDocument):
    author_id: str
    content: str
    created_at: datetime
    is_private: bool = True
