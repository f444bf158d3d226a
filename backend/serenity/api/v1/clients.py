"""Client onboarding API router.

Endpoints (all under /onboarding/clients/{client_id}):
- POST   ""                                   initialize (idempotent)
- GET    ""                                   read, ?initialize=true creates lazily
- PATCH  /steps/{step_number}                 update one step
- POST   /recommendations/services            rebuild service recommendations
- POST   /recommendations/consultants         rebuild consultant recommendations
- PATCH  /recommendations/consultants/{id}    client reaction to a recommendation
- POST   /sessions, PATCH /sessions/{id}      onboarding sessions
- POST   /documents                           upload a supporting document
- POST   /feedback                            onboarding feedback
- POST   /complete                            finalize the onboarding
- PUT    /assignee                            (admin) assign to staff

The caller must own the onboarding or be an admin.
"""

import uuid
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
from serenity.models.onboarding import ClientOnboarding
from serenity.schemas.onboarding import (
    AssignRequest,
    ClientOnboardingRead,
    FeedbackRequest,
    RecommendationStatusRequest,
    SessionCreateRequest,
    SessionStatusRequest,
    StepUpdateRequest,
)
from serenity.schemas.onboarding_documents import (
    ClientFeedback,
    ConsultantRecommendation,
    OnboardingDocument,
    OnboardingSession,
    ServiceRecommendation,
)
from serenity.services.onboarding_service import OnboardingService, UploadedDocument

router = APIRouter()


def _read(service: OnboardingService, record: ClientOnboarding) -> ClientOnboardingRead:
    return ClientOnboardingRead.from_record(
        record, now=service.now(), threshold_days=service.stalled_threshold_days
    )


# =============================================================================
# Record
# =============================================================================


@router.post("/{client_id}")
async def initialize_client_onboarding(
    client_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ClientOnboardingRead]:
    """Start the client's onboarding, or return the one already started.

    Raises:
        NotAClientError: If the user is not a client.
    """
    service.ensure_can_access(actor, client_id)
    record = await service.initialize_client_onboarding(client_id)
    return DataResponse(data=_read(service, record))


@router.get("/{client_id}")
async def get_client_onboarding(
    client_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
    initialize: Annotated[bool, Query()] = False,
) -> DataResponse[ClientOnboardingRead]:
    service.ensure_can_access(actor, client_id)
    record = await service.get_client_onboarding(client_id, initialize=initialize)
    return DataResponse(data=_read(service, record))


@router.patch("/{client_id}/steps/{step_number}")
async def update_client_step(
    client_id: uuid.UUID,
    step_number: int,
    body: StepUpdateRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ClientOnboardingRead]:
    """Move one step; ``data`` is validated against the step's payload."""
    service.ensure_can_access(actor, client_id)
    record = await service.update_client_step(
        client_id, step_number, body.status, body.data
    )
    return DataResponse(data=_read(service, record))


# =============================================================================
# Recommendations
# =============================================================================


@router.post("/{client_id}/recommendations/services")
async def generate_service_recommendations(
    client_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[list[ServiceRecommendation]]:
    service.ensure_can_access(actor, client_id)
    recommendations = await service.generate_service_recommendations(client_id)
    return DataResponse(data=recommendations)


@router.post("/{client_id}/recommendations/consultants")
async def generate_consultant_recommendations(
    client_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[list[ConsultantRecommendation]]:
    service.ensure_can_access(actor, client_id)
    recommendations = await service.generate_consultant_recommendations(client_id)
    return DataResponse(data=recommendations)


@router.patch("/{client_id}/recommendations/consultants/{consultant_id}")
async def update_recommendation_status(
    client_id: uuid.UUID,
    consultant_id: str,
    body: RecommendationStatusRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ConsultantRecommendation]:
    service.ensure_can_access(actor, client_id)
    entry = await service.update_recommendation_status(
        client_id, consultant_id, body.status
    )
    return DataResponse(data=entry)


# =============================================================================
# Sessions, documents, feedback
# =============================================================================


@router.post("/{client_id}/sessions")
async def schedule_client_session(
    client_id: uuid.UUID,
    body: SessionCreateRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[OnboardingSession]:
    """Schedule a session. A welcome call completes the welcome-call step."""
    service.ensure_can_access(actor, client_id)
    session = await service.schedule_client_session(client_id, body.to_session())
    return DataResponse(data=session)


@router.patch("/{client_id}/sessions/{session_id}")
async def update_client_session_status(
    client_id: uuid.UUID,
    session_id: str,
    body: SessionStatusRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[OnboardingSession]:
    service.ensure_can_access(actor, client_id)
    session = await service.update_client_session_status(
        client_id, session_id, body.status, body.notes
    )
    return DataResponse(data=session)


@router.post("/{client_id}/documents")
@limiter.limit(settings.rate_limit_uploads)
async def upload_client_document(
    request: Request,  # noqa: ARG001
    client_id: uuid.UUID,
    file: Annotated[UploadFile, File(...)],
    actor: CurrentActor,
    service: Onboarding,
    name: Annotated[str | None, Form(max_length=255)] = None,
) -> DataResponse[OnboardingDocument]:
    """Upload a supporting document (PDF, DOCX, PNG or JPEG).

    Args:
        request: HTTP request (required by rate limiter).

    Raises:
        ValidationError: If the file is empty, too large or of a
            disallowed type.
    """
    service.ensure_can_access(actor, client_id)
    content = await read_file_with_size_limit(
        file, max_size=settings.upload_max_size_mb * 1024 * 1024
    )
    filename = file.filename or "document"
    content_type = validate_file_content(content, filename)
    document = await service.upload_client_document(
        client_id,
        UploadedDocument(content=content, filename=filename, content_type=content_type),
        name=name,
    )
    return DataResponse(data=document)


@router.post("/{client_id}/feedback")
async def submit_client_feedback(
    client_id: uuid.UUID,
    body: FeedbackRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ClientFeedback]:
    service.ensure_can_access(actor, client_id)
    feedback = await service.submit_client_feedback(
        client_id, body.rating, body.comments
    )
    return DataResponse(data=feedback)


@router.post("/{client_id}/complete")
async def complete_client_onboarding(
    client_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
) -> DataResponse[ClientOnboardingRead]:
    """Finalize the onboarding; open optional steps are skipped.

    Raises:
        IncompleteRequiredStepsError: If a required step is still open.
    """
    service.ensure_can_access(actor, client_id)
    record = await service.complete_client_onboarding(client_id)
    return DataResponse(data=_read(service, record))


# =============================================================================
# Admin actions
# =============================================================================


@router.put("/{client_id}/assignee")
async def assign_client_onboarding(
    client_id: uuid.UUID,
    body: AssignRequest,
    _admin: AdminActor,
    service: Onboarding,
) -> DataResponse[ClientOnboardingRead]:
    record = await service.assign_client_onboarding(client_id, body.assignee_id)
    return DataResponse(data=_read(service, record))


