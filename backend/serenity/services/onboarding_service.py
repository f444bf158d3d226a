"""Onboarding orchestrator.

Service-layer façade over the client and consultant state machines. It
loads and saves records, enforces who may act on them, and runs the
collaborator work the machines ask for: profile mirroring, recommendation
lookups, account activation, notification emails.

Collaborator side effects are best-effort. Their failures are logged and
swallowed, and database side effects run inside a savepoint, so the
primary state change is committed either way.
"""

import logging
import math
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.core.config import settings
from serenity.core.file_storage import FileStore, StoredFile
from serenity.models.onboarding import ClientOnboarding, ConsultantOnboarding
from serenity.repositories.onboarding_repository import OnboardingRepository
from serenity.schemas.onboarding_documents import (
    CONTRACT_TYPES,
    AdminNote,
    Certification,
    ClientFeedback,
    ConsultantRecommendation,
    EducationEntry,
    Interview,
    InterviewFeedback,
    OnboardingDocument,
    OnboardingSession,
    PortfolioAttachment,
    Reminder,
    ServiceRecommendation,
    TaxInformation,
)
from serenity.services import client_onboarding as client_machine
from serenity.services import consultant_onboarding as consultant_machine
from serenity.services.collaborators import (
    CandidateCatalog,
    DirectoryUser,
    IdentityDirectory,
    NotificationDispatcher,
    NotificationKind,
    ProfileMirror,
    UserRole,
)
from serenity.services.onboarding_errors import (
    InvalidAssigneeError,
    InvalidContractTypeError,
    InvalidStatusError,
    NotAClientError,
    NotAConsultantError,
    OnboardingNotFoundError,
    OnboardingPermissionError,
    PreconditionError,
    UserNotFoundError,
)
from serenity.services.onboarding_reminders import add_reminder, mark_reminder_sent
from serenity.services.onboarding_steps import (
    OnboardingKind,
    OnboardingStatus,
    StepStatus,
)
from serenity.services.recommendation_engine import (
    ClientContext,
    recommend_consultants,
    recommend_services,
)

logger = logging.getLogger(__name__)

OnboardingRecord = ClientOnboarding | ConsultantOnboarding

_MODELS: dict[OnboardingKind, type[ClientOnboarding] | type[ConsultantOnboarding]] = {
    OnboardingKind.CLIENT: ClientOnboarding,
    OnboardingKind.CONSULTANT: ConsultantOnboarding,
}

_STORED_STATUSES: dict[OnboardingKind, tuple[OnboardingStatus, ...]] = {
    OnboardingKind.CLIENT: (
        OnboardingStatus.NOT_STARTED,
        OnboardingStatus.IN_PROGRESS,
        OnboardingStatus.COMPLETED,
    ),
    OnboardingKind.CONSULTANT: (
        OnboardingStatus.NOT_STARTED,
        OnboardingStatus.IN_PROGRESS,
        OnboardingStatus.UNDER_REVIEW,
        OnboardingStatus.APPROVED,
        OnboardingStatus.REJECTED,
        OnboardingStatus.COMPLETED,
    ),
}

CONSULTANT_DOCUMENT_TYPES: tuple[str, ...] = (
    "certification",
    "education",
    "identity",
    "portfolio",
    "contract",
    "other",
)

_CLIENT_UPLOAD_FOLDER = "client-onboarding"
_CONSULTANT_UPLOAD_FOLDER = "consultant-onboarding"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# =============================================================================
# Result types
# =============================================================================


@dataclass(frozen=True)
class KindStatistics:
    """Aggregates for one onboarding kind.

    Attributes:
        total: Number of records.
        by_status: Record count per stored status (zero for unused ones).
        stalled: In-progress records past the inactivity threshold.
        average_completion_days: Mean whole days from start to completion
            over completed records, 0 when none.
    """

    total: int
    by_status: dict[str, int]
    stalled: int
    average_completion_days: int


@dataclass(frozen=True)
class OnboardingStatistics:
    client: KindStatistics
    consultant: KindStatistics


@dataclass(frozen=True)
class UploadedDocument:
    """A validated upload on its way to the file store."""

    content: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class ConsultantDocumentFields:
    """Form fields accompanying a consultant document upload."""

    name: str | None = None
    issuer: str | None = None
    institution: str | None = None
    degree: str | None = None
    field_of_study: str | None = None
    date_obtained: datetime | None = None
    expiry_date: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    project_id: str | None = None
    contract_type: str | None = None


@dataclass(frozen=True)
class ConsultantDocumentResult:
    document_type: str
    file: StoredFile
    result: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Service
# =============================================================================


class OnboardingService:
    """Orchestrates client and consultant onboarding.

    Args:
        db: Async database session (caller commits).
        directory: Looks up users and their roles.
        notifier: Sends onboarding emails.
        catalog: Service and consultant candidates for recommendations.
        profiles: Best-effort writes into client/consultant profiles.
        file_store: Storage for uploaded documents.
        clock: Source of the current time.
        stalled_threshold_days: Inactivity after which in-progress
            records count as stalled.
        recommendation_limit: Maximum entries per recommendation list.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        directory: IdentityDirectory,
        notifier: NotificationDispatcher,
        catalog: CandidateCatalog,
        profiles: ProfileMirror,
        file_store: FileStore,
        clock: Callable[[], datetime] = _utcnow,
        stalled_threshold_days: int | None = None,
        recommendation_limit: int | None = None,
    ) -> None:
        self._db = db
        self._directory = directory
        self._notifier = notifier
        self._catalog = catalog
        self._profiles = profiles
        self._file_store = file_store
        self._clock = clock
        self.stalled_threshold_days = (
            stalled_threshold_days or settings.onboarding_stalled_threshold_days
        )
        self.recommendation_limit = (
            recommendation_limit or settings.onboarding_recommendation_limit
        )

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def now(self) -> datetime:
        return self._clock()

    async def _best_effort(
        self,
        description: str,
        action: Callable[[], Awaitable[Any]],
        *,
        savepoint: bool = False,
    ) -> None:
        """Run a side effect, logging and swallowing any failure."""
        try:
            if savepoint:
                async with self._db.begin_nested():
                    await action()
            else:
                await action()
        except Exception:
            logger.warning("%s failed", description, exc_info=True)

    async def _notify(
        self, recipient: DirectoryUser, kind: NotificationKind, **payload: Any
    ) -> None:
        await self._best_effort(
            f"{kind.value} notification to {recipient.id}",
            lambda: self._notifier.notify(
                recipient.email,
                kind,
                {"name": recipient.greeting_name, **payload},
            ),
        )

    async def _require_user(self, user_id: uuid.UUID) -> DirectoryUser:
        user = await self._directory.find_user(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def _load(self, kind: OnboardingKind, user_id: uuid.UUID) -> Any:
        record = await OnboardingRepository.get_for_user(
            self._db, _MODELS[kind], user_id
        )
        if record is None:
            raise OnboardingNotFoundError(kind.value, str(user_id))
        return record

    async def _load_client(self, client_id: uuid.UUID) -> ClientOnboarding:
        return await self._load(OnboardingKind.CLIENT, client_id)

    async def _load_consultant(self, consultant_id: uuid.UUID) -> ConsultantOnboarding:
        return await self._load(OnboardingKind.CONSULTANT, consultant_id)

    async def _save(self, record: OnboardingRecord) -> OnboardingRecord:
        return await OnboardingRepository.save(self._db, record)

    # -----------------------------------------------------------------------
    # Access control
    # -----------------------------------------------------------------------

    @staticmethod
    def ensure_can_access(actor: DirectoryUser, owner_id: uuid.UUID) -> None:
        """Owners and admins may act on an onboarding.

        Raises:
            OnboardingPermissionError: For anyone else.
        """
        if actor.is_admin or actor.id == owner_id:
            return
        raise OnboardingPermissionError()

    @staticmethod
    def ensure_admin(actor: DirectoryUser) -> None:
        if not actor.is_admin:
            raise OnboardingPermissionError("Admin access required")

    # -----------------------------------------------------------------------
    # Initialize / get
    # -----------------------------------------------------------------------

    async def _initialize(
        self, kind: OnboardingKind, user_id: uuid.UUID
    ) -> OnboardingRecord:
        user = await self._require_user(user_id)
        expected_role = UserRole(kind.value)
        if user.role != expected_role:
            if kind == OnboardingKind.CLIENT:
                raise NotAClientError(str(user_id))
            raise NotAConsultantError(str(user_id))

        existing = await OnboardingRepository.get_for_user(
            self._db, _MODELS[kind], user_id
        )
        if existing is not None:
            return existing

        now = self.now()
        if kind == OnboardingKind.CLIENT:
            record: OnboardingRecord = client_machine.new_client_onboarding(
                user_id, now=now
            )
        else:
            record = consultant_machine.new_consultant_onboarding(user_id, now=now)

        try:
            async with self._db.begin_nested():
                record = await OnboardingRepository.create(self._db, record)
        except IntegrityError:
            # Concurrent initialization won the unique constraint.
            existing = await OnboardingRepository.get_for_user(
                self._db, _MODELS[kind], user_id
            )
            if existing is None:
                raise
            return existing

        logger.info("Initialized %s onboarding for %s", kind.value, user_id)
        welcome = (
            NotificationKind.CLIENT_WELCOME
            if kind == OnboardingKind.CLIENT
            else NotificationKind.CONSULTANT_WELCOME
        )
        await self._notify(user, welcome)
        return record

    async def initialize_client_onboarding(
        self, client_id: uuid.UUID
    ) -> ClientOnboarding:
        """Create the client's onboarding, or return the existing one.

        Raises:
            UserNotFoundError: If the user does not exist.
            NotAClientError: If the user is not a client.
        """
        return await self._initialize(OnboardingKind.CLIENT, client_id)

    async def initialize_consultant_onboarding(
        self, consultant_id: uuid.UUID
    ) -> ConsultantOnboarding:
        """Create the consultant's onboarding, or return the existing one.

        Raises:
            UserNotFoundError: If the user does not exist.
            NotAConsultantError: If the user is not a consultant.
        """
        return await self._initialize(OnboardingKind.CONSULTANT, consultant_id)

    async def get_client_onboarding(
        self, client_id: uuid.UUID, *, initialize: bool = False
    ) -> ClientOnboarding:
        if initialize:
            return await self.initialize_client_onboarding(client_id)
        return await self._load_client(client_id)

    async def get_consultant_onboarding(
        self, consultant_id: uuid.UUID, *, initialize: bool = False
    ) -> ConsultantOnboarding:
        if initialize:
            return await self.initialize_consultant_onboarding(consultant_id)
        return await self._load_consultant(consultant_id)

    # -----------------------------------------------------------------------
    # Client steps and recommendations
    # -----------------------------------------------------------------------

    async def update_client_step(
        self,
        client_id: uuid.UUID,
        step_number: int,
        status: StepStatus | str,
        data: dict[str, Any] | None = None,
    ) -> ClientOnboarding:
        """Move a client step and run the side effects it triggers."""
        record = await self._load_client(client_id)
        effects = client_machine.update_client_step(
            record, step_number, status, data, now=self.now()
        )
        await self._save(record)

        if effects.company_info is not None:
            company_info = effects.company_info
            await self._best_effort(
                f"Company info mirror for {client_id}",
                lambda: self._profiles.mirror_company_info(client_id, company_info),
                savepoint=True,
            )
        if effects.refresh_service_recommendations:
            await self._best_effort(
                f"Service recommendations for {client_id}",
                lambda: self._generate_service_recommendations(record),
                savepoint=True,
            )
        if effects.generate_consultant_recommendations:
            await self._best_effort(
                f"Consultant recommendations for {client_id}",
                lambda: self._generate_consultant_recommendations(record),
                savepoint=True,
            )
        return record

    def _client_context(self, record: ClientOnboarding) -> ClientContext:
        return ClientContext.from_onboarding(
            client_machine.get_preferences(record),
            client_machine.get_company_info(record),
        )

    async def _generate_service_recommendations(
        self, record: ClientOnboarding
    ) -> list[ServiceRecommendation]:
        context = self._client_context(record)
        candidates = await self._catalog.published_services(
            context, self.recommendation_limit
        )
        recommendations = recommend_services(
            candidates, context, self.recommendation_limit
        )
        client_machine.replace_service_recommendations(
            record, recommendations, now=self.now()
        )
        await self._save(record)
        return recommendations

    async def _generate_consultant_recommendations(
        self, record: ClientOnboarding
    ) -> list[ConsultantRecommendation]:
        context = self._client_context(record)
        candidates = await self._catalog.available_consultants(
            context, self.recommendation_limit
        )
        recommendations = recommend_consultants(
            candidates, context, self.recommendation_limit
        )
        client_machine.replace_consultant_recommendations(
            record, recommendations, now=self.now()
        )
        await self._save(record)
        return [
            ConsultantRecommendation.model_validate(r)
            for r in record.recommended_consultants
        ]

    async def generate_service_recommendations(
        self, client_id: uuid.UUID
    ) -> list[ServiceRecommendation]:
        """Rebuild the client's service recommendations."""
        record = await self._load_client(client_id)
        return await self._generate_service_recommendations(record)

    async def generate_consultant_recommendations(
        self, client_id: uuid.UUID
    ) -> list[ConsultantRecommendation]:
        """Rebuild the client's consultant recommendations."""
        record = await self._load_client(client_id)
        return await self._generate_consultant_recommendations(record)

    async def update_recommendation_status(
        self, client_id: uuid.UUID, consultant_id: str, status: str
    ) -> ConsultantRecommendation:
        record = await self._load_client(client_id)
        entry = client_machine.set_recommendation_status(
            record, consultant_id, status, now=self.now()
        )
        await self._save(record)
        return entry

    # -----------------------------------------------------------------------
    # Client sessions, documents, feedback
    # -----------------------------------------------------------------------

    async def schedule_client_session(
        self, client_id: uuid.UUID, session: OnboardingSession
    ) -> OnboardingSession:
        """Schedule a session; a welcome call completes its step and emails."""
        record = await self._load_client(client_id)
        client_machine.schedule_session(record, session, now=self.now())
        await self._save(record)

        if session.session_type == "welcome_call":
            client = await self._directory.find_user(client_id)
            if client is not None:
                await self._notify(
                    client,
                    NotificationKind.SESSION_SCHEDULED,
                    session_type="welcome call",
                    scheduled_at=session.scheduled_at.isoformat(),
                )
        return session

    async def update_client_session_status(
        self,
        client_id: uuid.UUID,
        session_id: str,
        status: str,
        notes: str | None = None,
    ) -> OnboardingSession:
        record = await self._load_client(client_id)
        session = client_machine.update_session_status(
            record, session_id, status, notes, now=self.now()
        )
        await self._save(record)
        return session

    async def upload_client_document(
        self,
        client_id: uuid.UUID,
        upload: UploadedDocument,
        *,
        name: str | None = None,
    ) -> OnboardingDocument:
        """Store a client document and attach it to the onboarding."""
        record = await self._load_client(client_id)
        stored = await self._file_store.upload_file(
            upload.content, upload.filename, upload.content_type, _CLIENT_UPLOAD_FOLDER
        )
        now = self.now()
        document = OnboardingDocument(
            name=name or upload.filename,
            type=stored.content_type,
            url=stored.url,
            uploaded_at=now,
        )
        client_machine.attach_document(record, document, now=now)
        await self._save(record)
        return document

    async def submit_client_feedback(
        self, client_id: uuid.UUID, rating: int, comments: str | None = None
    ) -> ClientFeedback:
        record = await self._load_client(client_id)
        feedback = client_machine.submit_feedback(
            record, rating, comments, now=self.now()
        )
        await self._save(record)
        return feedback

    # -----------------------------------------------------------------------
    # Client completion and ownership
    # -----------------------------------------------------------------------

    async def complete_client_onboarding(
        self, client_id: uuid.UUID
    ) -> ClientOnboarding:
        """Finalize the client onboarding and activate the account."""
        record = await self._load_client(client_id)
        changed = client_machine.finalize_client_onboarding(record, now=self.now())
        await self._save(record)
        if changed:
            await self._best_effort(
                f"Client profile completion for {client_id}",
                lambda: self._profiles.mark_client_onboarded(client_id),
                savepoint=True,
            )
            await self._best_effort(
                f"Account activation for {client_id}",
                lambda: self._directory.activate_account(client_id),
                savepoint=True,
            )
        return record

    async def assign_client_onboarding(
        self, client_id: uuid.UUID, assignee_id: uuid.UUID
    ) -> ClientOnboarding:
        """Give a client onboarding to an admin or consultant.

        Raises:
            UserNotFoundError: If the assignee does not exist.
            InvalidAssigneeError: If the assignee is a client.
        """
        assignee = await self._require_user(assignee_id)
        if assignee.role not in (UserRole.ADMIN, UserRole.CONSULTANT):
            raise InvalidAssigneeError(str(assignee_id))

        record = await self._load_client(client_id)
        record.assigned_to = assignee_id
        record.last_activity = self.now()
        await self._save(record)

        client = await self._directory.find_user(client_id)
        await self._notify(
            assignee,
            NotificationKind.ONBOARDING_ASSIGNED,
            client_name=client.display_name if client else str(client_id),
            onboarding_url=f"{settings.frontend_url}/admin/onboarding/client/{client_id}",
        )
        return record

    # -----------------------------------------------------------------------
    # Consultant steps and sub-machines
    # -----------------------------------------------------------------------

    async def update_consultant_step(
        self,
        consultant_id: uuid.UUID,
        step_number: int,
        status: StepStatus | str,
        data: dict[str, Any] | None = None,
        review_notes: str | None = None,
        *,
        actor: DirectoryUser | None = None,
    ) -> ConsultantOnboarding:
        """Move a consultant step on behalf of ``actor``.

        Raises:
            OnboardingPermissionError: If a non-admin tries to mark their
                identity verified or failed.
        """
        if actor is not None and not actor.is_admin:
            requested = consultant_machine.requested_identity_status(step_number, data)
            if (
                requested is not None
                and requested not in consultant_machine.SELF_SERVICE_IDENTITY_STATUSES
            ):
                raise OnboardingPermissionError(
                    "Only admins may decide identity verification"
                )
        record = await self._load_consultant(consultant_id)
        effects = consultant_machine.update_consultant_step(
            record, step_number, status, data, review_notes, now=self.now()
        )
        await self._save(record)

        if effects.professional_info is not None:
            info = effects.professional_info
            await self._best_effort(
                f"Professional info mirror for {consultant_id}",
                lambda: self._profiles.mirror_professional_info(consultant_id, info),
                savepoint=True,
            )
        return record

    async def verify_identity(
        self,
        consultant_id: uuid.UUID,
        status: str,
        notes: str | None = None,
        document_url: str | None = None,
    ) -> ConsultantOnboarding:
        record = await self._load_consultant(consultant_id)
        consultant_machine.verify_identity(
            record, status, notes, document_url, now=self.now()
        )
        return await self._save(record)

    async def update_background_check(
        self,
        consultant_id: uuid.UUID,
        status: str,
        provider: str | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> ConsultantOnboarding:
        record = await self._load_consultant(consultant_id)
        consultant_machine.update_background_check(
            record, status, provider, reference_number, notes, now=self.now()
        )
        return await self._save(record)

    async def update_skill_assessment(
        self,
        consultant_id: uuid.UUID,
        status: str,
        score: float | None = None,
        notes: str | None = None,
    ) -> ConsultantOnboarding:
        record = await self._load_consultant(consultant_id)
        consultant_machine.update_skill_assessment(
            record, status, score, notes, now=self.now()
        )
        return await self._save(record)

    async def sign_contract(
        self, consultant_id: uuid.UUID, contract_type: str, document_url: str | None
    ) -> ConsultantOnboarding:
        record = await self._load_consultant(consultant_id)
        consultant_machine.sign_contract(
            record, contract_type, document_url, now=self.now()
        )
        return await self._save(record)

    async def complete_training(
        self, consultant_id: uuid.UUID, training_type: str, score: float | None = None
    ) -> ConsultantOnboarding:
        record = await self._load_consultant(consultant_id)
        consultant_machine.complete_training(
            record, training_type, score, now=self.now()
        )
        return await self._save(record)

    async def update_tax_information(
        self, consultant_id: uuid.UUID, tax: TaxInformation
    ) -> ConsultantOnboarding:
        record = await self._load_consultant(consultant_id)
        consultant_machine.update_tax_information(record, tax, now=self.now())
        return await self._save(record)

    async def add_admin_note(
        self,
        consultant_id: uuid.UUID,
        author: DirectoryUser,
        content: str,
        is_private: bool = True,
    ) -> AdminNote:
        self.ensure_admin(author)
        record = await self._load_consultant(consultant_id)
        note = consultant_machine.add_admin_note(
            record, str(author.id), content, is_private, now=self.now()
        )
        await self._save(record)
        return note

    async def upload_consultant_document(
        self,
        consultant_id: uuid.UUID,
        document_type: str,
        upload: UploadedDocument,
        fields: ConsultantDocumentFields | None = None,
    ) -> ConsultantDocumentResult:
        """Store a consultant document and file it under its type.

        Types: certification, education, identity (puts identity
        verification in progress), portfolio (needs ``project_id``),
        contract (needs a valid ``contract_type``) and other.

        Raises:
            InvalidStatusError: If the document type is unknown.
            PreconditionError: If a portfolio upload has no project id.
            PortfolioProjectNotFoundError: If the project does not exist.
            InvalidContractTypeError: If a contract upload has no valid type.
        """
        fields = fields or ConsultantDocumentFields()
        if document_type not in CONSULTANT_DOCUMENT_TYPES:
            raise InvalidStatusError(document_type, list(CONSULTANT_DOCUMENT_TYPES))

        record = await self._load_consultant(consultant_id)
        if document_type == "portfolio":
            if not fields.project_id:
                raise PreconditionError(
                    "Project ID is required for portfolio documents",
                    code="PROJECT_ID_REQUIRED",
                )
            consultant_machine.find_portfolio_project(record, fields.project_id)
        if document_type == "contract" and fields.contract_type not in CONTRACT_TYPES:
            raise InvalidContractTypeError(str(fields.contract_type))

        stored = await self._file_store.upload_file(
            upload.content,
            upload.filename,
            upload.content_type,
            _CONSULTANT_UPLOAD_FOLDER,
        )
        now = self.now()
        display_name = fields.name or upload.filename
        result: dict[str, Any]

        if document_type == "certification":
            certification = Certification(
                name=display_name,
                issuer=fields.issuer,
                date_obtained=fields.date_obtained or now,
                expiry_date=fields.expiry_date,
                document_url=stored.url,
            )
            consultant_machine.add_certifications(record, [certification], now=now)
            result = certification.model_dump(mode="json")
        elif document_type == "education":
            education = EducationEntry(
                institution=fields.institution or display_name,
                degree=fields.degree,
                field_of_study=fields.field_of_study,
                start_date=fields.start_date,
                end_date=fields.end_date,
                document_url=stored.url,
            )
            consultant_machine.add_education(record, [education], now=now)
            result = education.model_dump(mode="json")
        elif document_type == "identity":
            consultant_machine.verify_identity(
                record,
                "in_progress",
                "Document uploaded, pending verification",
                stored.url,
                now=now,
            )
            result = record.verification_checks["identity_verified"]
        elif document_type == "portfolio":
            project = consultant_machine.add_portfolio_attachment(
                record,
                str(fields.project_id),
                PortfolioAttachment(
                    name=display_name, url=stored.url, type=stored.content_type
                ),
                now=now,
            )
            result = project.model_dump(mode="json")
        elif document_type == "contract":
            consultant_machine.sign_contract(
                record, str(fields.contract_type), stored.url, now=now
            )
            result = record.contracts
        else:
            result = {
                "name": display_name,
                "type": stored.content_type,
                "url": stored.url,
            }

        await self._save(record)
        return ConsultantDocumentResult(
            document_type=document_type, file=stored, result=result
        )

    # -----------------------------------------------------------------------
    # Interviews
    # -----------------------------------------------------------------------

    async def schedule_consultant_interview(
        self, consultant_id: uuid.UUID, interview: Interview
    ) -> Interview:
        """Schedule an interview and complete the interview step.

        Raises:
            UserNotFoundError: If the interviewer does not exist.
        """
        interviewer = await self._require_user(uuid.UUID(interview.interviewer_id))
        record = await self._load_consultant(consultant_id)
        consultant_machine.schedule_interview(record, interview, now=self.now())
        await self._save(record)

        consultant = await self._directory.find_user(consultant_id)
        if consultant is not None:
            await self._notify(
                consultant,
                NotificationKind.INTERVIEW_SCHEDULED,
                interviewer_name=interviewer.display_name,
                scheduled_at=interview.scheduled_at.isoformat(),
            )
        return interview

    async def update_interview_status(
        self,
        consultant_id: uuid.UUID,
        interview_id: str,
        status: str,
        feedback: InterviewFeedback | None = None,
    ) -> Interview:
        record = await self._load_consultant(consultant_id)
        interview = consultant_machine.update_interview_status(
            record, interview_id, status, feedback, now=self.now()
        )
        await self._save(record)
        return interview

    # -----------------------------------------------------------------------
    # Review gate
    # -----------------------------------------------------------------------

    async def submit_for_review(self, consultant_id: uuid.UUID) -> ConsultantOnboarding:
        """Put the consultant onboarding under review and tell an admin."""
        record = await self._load_consultant(consultant_id)
        consultant_machine.submit_for_review(record, now=self.now())
        await self._save(record)

        admins = await self._directory.find_admins()
        if admins:
            consultant = await self._directory.find_user(consultant_id)
            await self._notify(
                admins[0],
                NotificationKind.REVIEW_REQUESTED,
                consultant_name=(
                    consultant.display_name if consultant else str(consultant_id)
                ),
                review_url=(
                    f"{settings.frontend_url}/admin/onboarding/consultant/{consultant_id}"
                ),
            )
        else:
            logger.warning("No admin to notify about review of %s", consultant_id)
        return record

    async def review_consultant(
        self,
        consultant_id: uuid.UUID,
        reviewer: DirectoryUser,
        decision: str,
        notes: str | None = None,
    ) -> ConsultantOnboarding:
        """Approve or reject a consultant onboarding under review.

        Approval publishes the consultant profile and activates the
        account; both outcomes email the consultant.

        Raises:
            OnboardingPermissionError: If the reviewer is not an admin.
        """
        self.ensure_admin(reviewer)
        record = await self._load_consultant(consultant_id)
        outcome = consultant_machine.review(
            record, reviewer.id, decision, notes, now=self.now()
        )
        await self._save(record)
        logger.info(
            "Consultant onboarding %s %sd by %s", consultant_id, outcome.value, reviewer.id
        )

        consultant = await self._directory.find_user(consultant_id)
        if outcome == consultant_machine.ReviewDecision.APPROVE:
            await self._best_effort(
                f"Profile publication for {consultant_id}",
                lambda: self._profiles.publish_consultant(consultant_id),
                savepoint=True,
            )
            await self._best_effort(
                f"Account activation for {consultant_id}",
                lambda: self._directory.activate_account(consultant_id),
                savepoint=True,
            )
            if consultant is not None:
                await self._notify(consultant, NotificationKind.CONSULTANT_APPROVED)
        elif consultant is not None:
            await self._notify(
                consultant, NotificationKind.CONSULTANT_REJECTED, reason=notes or ""
            )
        return record

    async def complete_consultant_onboarding(
        self, consultant_id: uuid.UUID
    ) -> ConsultantOnboarding:
        record = await self._load_consultant(consultant_id)
        consultant_machine.complete_consultant_onboarding(record, now=self.now())
        await self._save(record)
        await self._best_effort(
            f"Consultant profile completion for {consultant_id}",
            lambda: self._profiles.mark_consultant_onboarded(consultant_id),
            savepoint=True,
        )
        return record

    # -----------------------------------------------------------------------
    # Reminders
    # -----------------------------------------------------------------------

    async def add_reminder(
        self, user_id: uuid.UUID, kind: OnboardingKind | str, reminder: Reminder
    ) -> Reminder:
        """Attach a reminder to a client or consultant onboarding.

        Raises:
            PreconditionError: If ``kind`` is neither client nor consultant.
        """
        try:
            kind = OnboardingKind(kind)
        except ValueError as exc:
            raise PreconditionError(
                f"Invalid user type: {kind}", code="INVALID_USER_TYPE"
            ) from exc
        record = await self._load(kind, user_id)
        add_reminder(record, reminder)
        await self._save(record)
        return reminder

    async def mark_reminder_sent(
        self, user_id: uuid.UUID, kind: OnboardingKind, reminder_id: str
    ) -> Reminder:
        record = await self._load(kind, user_id)
        reminder = mark_reminder_sent(record, reminder_id, now=self.now())
        await self._save(record)
        return reminder

    # -----------------------------------------------------------------------
    # Queries and statistics
    # -----------------------------------------------------------------------

    def _inactive_since(self, threshold_days: int | None) -> datetime:
        days = threshold_days or self.stalled_threshold_days
        return self.now() - timedelta(days=days)

    async def stalled_onboardings(
        self, kind: OnboardingKind, threshold_days: int | None = None
    ) -> list[OnboardingRecord]:
        return await OnboardingRepository.list_stalled(
            self._db, _MODELS[kind], self._inactive_since(threshold_days)
        )

    async def consultants_pending_review(self) -> list[ConsultantOnboarding]:
        return await OnboardingRepository.list_by_status(
            self._db, ConsultantOnboarding, OnboardingStatus.UNDER_REVIEW.value
        )

    async def client_onboardings_by_assignee(
        self, assignee_id: uuid.UUID
    ) -> list[ClientOnboarding]:
        return await OnboardingRepository.list_client_by_assignee(
            self._db, assignee_id
        )

    async def onboardings_by_status(
        self, kind: OnboardingKind, status: str
    ) -> list[OnboardingRecord]:
        """Records of one kind in a status; ``stalled`` runs the stalled query.

        Raises:
            InvalidStatusError: If the status does not exist for ``kind``.
        """
        if status == OnboardingStatus.STALLED.value:
            return await self.stalled_onboardings(kind)
        allowed = [s.value for s in _STORED_STATUSES[kind]]
        if status not in allowed:
            raise InvalidStatusError(status, [*allowed, OnboardingStatus.STALLED.value])
        return await OnboardingRepository.list_by_status(
            self._db, _MODELS[kind], status
        )

    async def _kind_statistics(self, kind: OnboardingKind) -> KindStatistics:
        model = _MODELS[kind]
        counts = await OnboardingRepository.count_by_status(self._db, model)
        by_status = {s.value: 0 for s in _STORED_STATUSES[kind]}
        for status, count in counts.items():
            by_status[status] = by_status.get(status, 0) + count
        stalled = await OnboardingRepository.count_stalled(
            self._db, model, self._inactive_since(None)
        )
        spans = await OnboardingRepository.completion_spans(self._db, model)
        days = [
            _round_half_up((completed - started).total_seconds() / 86400)
            for started, completed in spans
        ]
        average = _round_half_up(sum(days) / len(days)) if days else 0
        return KindStatistics(
            total=sum(by_status.values()),
            by_status=by_status,
            stalled=stalled,
            average_completion_days=average,
        )

    async def get_statistics(self) -> OnboardingStatistics:
        """Counts by status, stalled counts and mean completion days."""
        return OnboardingStatistics(
            client=await self._kind_statistics(OnboardingKind.CLIENT),
            consultant=await self._kind_statistics(OnboardingKind.CONSULTANT),
        )
