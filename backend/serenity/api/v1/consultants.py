"""Consultant onboarding API router.

Endpoints (all under /onboarding/consultants/{consultant_id}):
- POST   ""                                  initialize (idempotent)
- GET    ""                                  read, ?initialize=true creates lazily
- PATCH  /steps/{step_number}                update one step
- POST   /documents                          upload a typed document
- POST   /contracts                          sign a contract
- POST   /training                           record a finished training
- PUT    /tax-information                    tax details
- POST   /submit                             hand over for review
- POST   /complete                           finish an approved onboarding

Admin only:
- PUT    /verification/identity, /verification/background-check,
         /verification/skill-assessment
- POST   /interviews, PATCH /interviews/{id}
- POST   /notes
- POST   /review                             approve or reject

Owner-or-admin endpoints reject anyone else with 403.
"""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, Request, UploadFile

from serenity.api.deps import AdminActor, CurrentActor, Onboarding
from serenity.core.config import settings
from serenity.core.file_validation import (
    read_file_with_size_limit,
    validate_file_content,
)
from serenity.core.rate_limiting import limiter
from serenity.core.responses import DataResponse
from serenity.models.onboarding import ConsultantOnboarding
from serenity.schemas.onboarding import (
    AdminNoteRequest,
    BackgroundCheckRequest,
    ConsultantDocumentRead,
    ConsultantOnboardingRead,
    ContractSignRequest,
    IdentityVerificationRequest,
    InterviewCreateRequest,
    InterviewStatusRequest,
    ReviewRequest,
    SkillAssessmentRequest,
    StepUpdateRequest,
    StoredFileRead,
    TrainingCompleteRequest,
)
from serenity.schemas.onboarding_documents import AdminNote, Interview, TaxInformation
from serenity.services.collaborators import DirectoryUser
from serenity.services.onboarding_service import (
    ConsultantDocumentFields,
    OnboardingService,
    UploadedDocument,
)

router = APIRouter()


def _read(
    service: OnboardingService, record: ConsultantOnboarding, actor: DirectoryUser
) -> ConsultantOnboardingRead:
    return ConsultantOnboardingRead.from_record(
        record,
        now=service.now(),
        threshold_days=service.stalled_threshold_days,
        include_private_notes=actor.is_admin,
    )


# =============================================================================
# Record
# =============================================================================


@router.post("/{consultant_id}")
async def initialize_consultant_onboarding(
    consultant_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    """Start the consultant's onboarding, or return the one already started.

    Raises:
        NotAConsultantError: If the user is not a consultant.
    """
    service.ensure_can_access(actor, consultant_id)
    record = await service.initialize_consultant_onboarding(consultant_id)
    return DataResponse(data=_read(service, record, actor))


@router.get("/{consultant_id}")
async def get_consultant_onboarding(
    consultant_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
    initialize: Annotated[bool, Query()] = False,
) -> DataResponse[ConsultantOnboardingRead]:
    service.ensure_can_access(actor, consultant_id)
    record = await service.get_consultant_onboarding(
        consultant_id, initialize=initialize
    )
    return DataResponse(data=_read(service, record, actor))


@router.patch("/{consultant_id}/steps/{step_number}")
async def update_consultant_step(
    consultant_id: uuid.UUID,
    step_number: int,
    body: StepUpdateRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    """Move one step.

    Only admins may attach review notes or mark the identity check
    verified or failed.
    """
    service.ensure_can_access(actor, consultant_id)
    if body.review_notes is not None:
        service.ensure_admin(actor)
    record = await service.update_consultant_step(
        consultant_id,
        step_number,
        body.status,
        body.data,
        body.review_notes,
        actor=actor,
    )
    return DataResponse(data=_read(service, record, actor))


# =============================================================================
# Documents, contracts, training, tax
# =============================================================================


@router.post("/{consultant_id}/documents")
@limiter.limit(settings.rate_limit_uploads)
async def upload_consultant_document(
    request: Request,  # noqa: ARG001
    consultant_id: uuid.UUID,
    file: Annotated[UploadFile, File(...)],
    document_type: Annotated[str, Form(max_length=20)],
    actor: CurrentActor,
    service: Onboarding,
    name: Annotated[str | None, Form(max_length=255)] = None,
    issuer: Annotated[str | None, Form(max_length=255)] = None,
    institution: Annotated[str | None, Form(max_length=255)] = None,
    degree: Annotated[str | None, Form(max_length=255)] = None,
    field_of_study: Annotated[str | None, Form(max_length=255)] = None,
    date_obtained: Annotated[datetime | None, Form()] = None,
    expiry_date: Annotated[datetime | None, Form()] = None,
    start_date: Annotated[datetime | None, Form()] = None,
    end_date: Annotated[datetime | None, Form()] = None,
    project_id: Annotated[str | None, Form(max_length=64)] = None,
    contract_type: Annotated[str | None, Form(max_length=32)] = None,
) -> DataResponse[ConsultantDocumentRead]:
    """Upload a certification, education, identity, portfolio, contract or
    other document and file it on the onboarding record.

    Args:
        request: HTTP request (required by rate limiter).
    """
    service.ensure_can_access(actor, consultant_id)
    content = await read_file_with_size_limit(
        file, max_size=settings.upload_max_size_mb * 1024 * 1024
    )
    filename = file.filename or "document"
    content_type = validate_file_content(content, filename)
    outcome = await service.upload_consultant_document(
        consultant_id,
        document_type,
        UploadedDocument(content=content, filename=filename, content_type=content_type),
        ConsultantDocumentFields(
            name=name,
            issuer=issuer,
            institution=institution,
            degree=degree,
            field_of_study=field_of_study,
            date_obtained=date_obtained,
            expiry_date=expiry_date,
            start_date=start_date,
            end_date=end_date,
            project_id=project_id,
            contract_type=contract_type,
        ),
    )
    return DataResponse(
        data=ConsultantDocumentRead(
            document_type=outcome.document_type,
            file=StoredFileRead(
                url=outcome.file.url,
                name=outcome.file.name,
                content_type=outcome.file.content_type,
                size=outcome.file.size,
            ),
            result=outcome.result,
        )
    )


@router.post("/{consultant_id}/contracts")
async def sign_contract(
    consultant_id: uuid.UUID,
    body: ContractSignRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    service.ensure_can_access(actor, consultant_id)
    record = await service.sign_contract(
        consultant_id, body.contract_type, body.document_url
    )
    return DataResponse(data=_read(service, record, actor))


@router.post("/{consultant_id}/training")
async def complete_training(
    consultant_id: uuid.UUID,
    body: TrainingCompleteRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    service.ensure_can_access(actor, consultant_id)
    record = await service.complete_training(
        consultant_id, body.training_type, body.score
    )
    return DataResponse(data=_read(service, record, actor))


@router.put("/{consultant_id}/tax-information")
async def update_tax_information(
    consultant_id: uuid.UUID,
    body: TaxInformation,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    service.ensure_can_access(actor, consultant_id)
    record = await service.update_tax_information(consultant_id, body)
    return DataResponse(data=_read(service, record, actor))


# =============================================================================
# Review gate
# =============================================================================


@router.post("/{consultant_id}/submit")
async def submit_for_review(
    consultant_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    """Hand the onboarding to the admins.

    Raises:
        IncompleteRequiredStepsError: If a required step is still open.
    """
    service.ensure_can_access(actor, consultant_id)
    record = await service.submit_for_review(consultant_id)
    return DataResponse(data=_read(service, record, actor))


@router.post("/{consultant_id}/review")
async def review_consultant(
    consultant_id: uuid.UUID,
    body: ReviewRequest,
    admin: AdminActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    """Approve or reject. Rejections need notes.

    Raises:
        NotUnderReviewError: If the onboarding is not under review.
        InvalidDecisionError: If the decision is not approve or reject.
    """
    record = await service.review_consultant(
        consultant_id, admin, body.decision, body.notes
    )
    return DataResponse(data=_read(service, record, admin))


@router.post("/{consultant_id}/complete")
async def complete_consultant_onboarding(
    consultant_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    """Finish an approved onboarding.

    Raises:
        NotApprovedError: Unless the onboarding was approved.
    """
    service.ensure_can_access(actor, consultant_id)
    record = await service.complete_consultant_onboarding(consultant_id)
    return DataResponse(data=_read(service, record, actor))


# =============================================================================
# Admin: verification, interviews, notes
# =============================================================================


@router.put("/{consultant_id}/verification/identity")
async def verify_identity(
    consultant_id: uuid.UUID,
    body: IdentityVerificationRequest,
    admin: AdminActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    record = await service.verify_identity(
        consultant_id, body.status, body.notes, body.document_url
    )
    return DataResponse(data=_read(service, record, admin))


@router.put("/{consultant_id}/verification/background-check")
async def update_background_check(
    consultant_id: uuid.UUID,
    body: BackgroundCheckRequest,
    admin: AdminActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    record = await service.update_background_check(
        consultant_id, body.status, body.provider, body.reference_number, body.notes
    )
    return DataResponse(data=_read(service, record, admin))


@router.put("/{consultant_id}/verification/skill-assessment")
async def update_skill_assessment(
    consultant_id: uuid.UUID,
    body: SkillAssessmentRequest,
    admin: AdminActor,
    service: Onboarding,
) -> DataResponse[ConsultantOnboardingRead]:
    record = await service.update_skill_assessment(
        consultant_id, body.status, body.score, body.notes
    )
    return DataResponse(data=_read(service, record, admin))


@router.post("/{consultant_id}/interviews")
async def schedule_consultant_interview(
    consultant_id: uuid.UUID,
    body: InterviewCreateRequest,
    _admin: AdminActor,
    service: Onboarding,
) -> DataResponse[Interview]:
    interview = await service.schedule_consultant_interview(
        consultant_id, body.to_interview()
    )
    return DataResponse(data=interview)


@router.patch("/{consultant_id}/interviews/{interview_id}")
async def update_interview_status(
    consultant_id: uuid.UUID,
    interview_id: str,
    body: InterviewStatusRequest,
    _admin: AdminActor,
    service: Onboarding,
) -> DataResponse[Interview]:
    interview = await service.update_interview_status(
        consultant_id, interview_id, body.status, body.feedback
    )
    return DataResponse(data=interview)


@router.post("/{consultant_id}/notes")
async def add_admin_note(
    consultant_id: uuid.UUID,
    body: AdminNoteRequest,
    admin: AdminActor,
    service: Onboarding,
) -> DataResponse[AdminNote]:
    note = await service.add_admin_note(
        consultant_id, admin, body.content, body.is_private
    )
    return DataResponse(data=note)
