"""Typed step payloads.

Step data is an open map, but the steps that feed other parts of the
record carry a known shape. Each onboarding kind has a registry from step
number to payload model; ``parse_step_payload`` validates the incoming data
against the model for that step. Unknown keys are kept so the step's own
``data`` map stays as flexible as before.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from serenity.core.errors import ValidationError
from serenity.schemas.onboarding_documents import (
    BudgetRange,
    Certification,
    CompanyInfo,
    EducationEntry,
    IdentityStatus,
    NeedsAssessment,
    PaymentInformation,
    PortfolioProject,
    ProfessionalInfo,
    ProjectTimeframe,
    Scheduling,
    ServiceOffering,
    WorkHistoryEntry,
)
from serenity.services.onboarding_steps import OnboardingKind


class StepPayload(BaseModel):
    """Payload for steps without side effects."""

    model_config = ConfigDict(extra="allow")


# =============================================================================
# Client steps
# =============================================================================


class CompanyInformationPayload(StepPayload):
    company_info: CompanyInfo | None = None


class NeedsAssessmentPayload(StepPayload):
    needs_assessment: NeedsAssessment | None = None


class ServicePreferencesPayload(StepPayload):
    services_interested: list[str] | None = None


class BudgetTimeframePayload(StepPayload):
    budget_range: BudgetRange | None = None
    project_timeframe: ProjectTimeframe | None = None


CLIENT_STEP_PAYLOADS: dict[int, type[StepPayload]] = {
    2: CompanyInformationPayload,
    3: NeedsAssessmentPayload,
    4: ServicePreferencesPayload,
    5: BudgetTimeframePayload,
}


# =============================================================================
# Consultant steps
# =============================================================================


class ProfessionalInformationPayload(StepPayload):
    professional_info: ProfessionalInfo | None = None


class EducationCertificationsPayload(StepPayload):
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)


class WorkHistoryPayload(StepPayload):
    work_history: list[WorkHistoryEntry] = Field(default_factory=list)


class PortfolioPayload(StepPayload):
    portfolio: list[PortfolioProject] = Field(default_factory=list)


class ServiceOfferingsPayload(StepPayload):
    service_offerings: list[ServiceOffering] = Field(default_factory=list)


class IdentityVerificationInput(BaseModel):
    status: IdentityStatus
    notes: str | None = None
    document_url: str | None = None


class IdentityVerificationPayload(StepPayload):
    identity_verification: IdentityVerificationInput | None = None


class LegalAgreementsInput(BaseModel):
    """Signed document URL per contract type."""

    nda: str | None = None
    consultingAgreement: str | None = None
    codeOfConduct: str | None = None


class LegalAgreementsPayload(StepPayload):
    legal_agreements: LegalAgreementsInput | None = None


class PaymentInformationPayload(StepPayload):
    payment_information: PaymentInformation | None = None


class TrainingResult(BaseModel):
    score: float | None = None


class TrainingInput(BaseModel):
    platformTraining: TrainingResult | None = None
    clientInteractionTraining: TrainingResult | None = None


class TrainingPayload(StepPayload):
    training: TrainingInput | None = None


class AvailabilityPayload(StepPayload):
    availability: Scheduling | None = None


CONSULTANT_STEP_PAYLOADS: dict[int, type[StepPayload]] = {
    2: ProfessionalInformationPayload,
    3: EducationCertificationsPayload,
    4: WorkHistoryPayload,
    5: PortfolioPayload,
    6: ServiceOfferingsPayload,
    7: IdentityVerificationPayload,
    8: LegalAgreementsPayload,
    9: PaymentInformationPayload,
    10: TrainingPayload,
    11: AvailabilityPayload,
}

_REGISTRIES: dict[OnboardingKind, dict[int, type[StepPayload]]] = {
    OnboardingKind.CLIENT: CLIENT_STEP_PAYLOADS,
    OnboardingKind.CONSULTANT: CONSULTANT_STEP_PAYLOADS,
}


def parse_step_payload(
    kind: OnboardingKind, step_number: int, data: dict[str, Any] | None
) -> StepPayload:
    """Validate step data against the payload model of its step.

    Raises:
        ValidationError: If the data does not fit the step's payload model.
    """
    model = _REGISTRIES[kind].get(step_number, StepPayload)
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid data for step {step_number}",
            details=[
                {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                for e in exc.errors()
            ],
        ) from exc


def payload_to_step_data(payload: StepPayload) -> dict[str, Any]:
    """JSON-ready map stored in the step's ``data`` (only keys the caller sent)."""
    return payload.model_dump(mode="json", exclude_unset=True)
