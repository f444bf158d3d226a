"""Onboarding admin API router.

Reporting and follow-up endpoints under /onboarding/admin:
- GET  /statistics                         counts, stalled, average days
- GET  /clients, /consultants              by status (``stalled`` included)
- GET  /stalled                            stalled onboardings of one kind
- GET  /pending-review                     consultants under review
- GET  /assignees/{assignee_id}/clients    open client onboardings of a staff member
- POST /reminders/{user_id}                attach a reminder
- POST /reminders/{user_id}/{reminder_id}/sent
"""

import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query

from serenity.api.deps import AdminActor, CurrentActor, Onboarding
from serenity.core.pagination import PaginationParams, pagination_params
from serenity.core.responses import DataResponse, ListResponse, PaginationMeta
from serenity.schemas.onboarding import (
    ClientOnboardingRead,
    ConsultantOnboardingRead,
    OnboardingStatisticsRead,
    ReminderCreateRequest,
)
from serenity.schemas.onboarding_documents import Reminder
from serenity.services.onboarding_service import OnboardingService
from serenity.services.onboarding_steps import OnboardingKind

router = APIRouter()

Pagination = Annotated[PaginationParams, Depends(pagination_params)]


def _client_page(
    service: OnboardingService, records: list, pagination: PaginationParams
) -> ListResponse[ClientOnboardingRead]:
    now = service.now()
    return ListResponse(
        data=[
            ClientOnboardingRead.from_record(
                r, now=now, threshold_days=service.stalled_threshold_days
            )
            for r in pagination.slice(records)
        ],
        meta=PaginationMeta(
            total=len(records), page=pagination.page, per_page=pagination.per_page
        ),
    )


def _consultant_page(
    service: OnboardingService, records: list, pagination: PaginationParams
) -> ListResponse[ConsultantOnboardingRead]:
    now = service.now()
    return ListResponse(
        data=[
            ConsultantOnboardingRead.from_record(
                r,
                now=now,
                threshold_days=service.stalled_threshold_days,
                include_private_notes=True,
            )
            for r in pagination.slice(records)
        ],
        meta=PaginationMeta(
            total=len(records), page=pagination.page, per_page=pagination.per_page
        ),
    )


# =============================================================================
# Reporting
# =============================================================================


@router.get("/statistics")
async def get_statistics(
    _admin: AdminActor,
    service: Onboarding,
) -> DataResponse[OnboardingStatisticsRead]:
    stats = await service.get_statistics()
    return DataResponse(data=OnboardingStatisticsRead.from_statistics(stats))


@router.get("/clients")
async def list_client_onboardings(
    _admin: AdminActor,
    service: Onboarding,
    pagination: Pagination,
    status: Annotated[str, Query(max_length=20)] = "in_progress",
) -> ListResponse[ClientOnboardingRead]:
    records = await service.onboardings_by_status(OnboardingKind.CLIENT, status)
    return _client_page(service, records, pagination)


@router.get("/consultants")
async def list_consultant_onboardings(
    _admin: AdminActor,
    service: Onboarding,
    pagination: Pagination,
    status: Annotated[str, Query(max_length=20)] = "in_progress",
) -> ListResponse[ConsultantOnboardingRead]:
    records = await service.onboardings_by_status(OnboardingKind.CONSULTANT, status)
    return _consultant_page(service, records, pagination)


@router.get("/stalled")
async def list_stalled_onboardings(
    _admin: AdminActor,
    service: Onboarding,
    pagination: Pagination,
    kind: Annotated[Literal["client", "consultant"], Query()] = "client",
    threshold_days: Annotated[int | None, Query(ge=1, le=365)] = None,
) -> ListResponse[ClientOnboardingRead] | ListResponse[ConsultantOnboardingRead]:
    """In-progress onboardings idle for longer than the threshold."""
    records = await service.stalled_onboardings(OnboardingKind(kind), threshold_days)
    if kind == "client":
        return _client_page(service, records, pagination)
    return _consultant_page(service, records, pagination)


@router.get("/pending-review")
async def list_pending_review(
    _admin: AdminActor,
    service: Onboarding,
    pagination: Pagination,
) -> ListResponse[ConsultantOnboardingRead]:
    records = await service.consultants_pending_review()
    return _consultant_page(service, records, pagination)


@router.get("/assignees/{assignee_id}/clients")
async def list_assigned_client_onboardings(
    assignee_id: uuid.UUID,
    actor: CurrentActor,
    service: Onboarding,
    pagination: Pagination,
) -> ListResponse[ClientOnboardingRead]:
    """Open client onboardings owned by a staff member (self or admin)."""
    service.ensure_can_access(actor, assignee_id)
    records = await service.client_onboardings_by_assignee(assignee_id)
    return _client_page(service, records, pagination)


# =============================================================================
# Reminders
# =============================================================================


@router.post("/reminders/{user_id}")
async def add_reminder(
    user_id: uuid.UUID,
    body: ReminderCreateRequest,
    _admin: AdminActor,
    service: Onboarding,
) -> DataResponse[Reminder]:
    reminder = await service.add_reminder(user_id, body.user_type, body.to_reminder())
    return DataResponse(data=reminder)


@router.post("/reminders/{user_id}/{reminder_id}/sent")
async def mark_reminder_sent(
    user_id: uuid.UUID,
    reminder_id: str,
    _admin: AdminActor,
    service: Onboarding,
    user_type: Annotated[Literal["client", "consultant"], Query()] = "client",
) -> DataResponse[Reminder]:
    reminder = await service.mark_reminder_sent(
        user_id, OnboardingKind(user_type), reminder_id
    )
    return DataResponse(data=reminder)
