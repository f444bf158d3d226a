"""Onboarding step collection and progress calculation.

Both onboarding records (client and consultant) own an ordered list of
steps fixed at initialization. This module holds the step model, the
seeded step lists, and the pure functions that move a step between
statuses and derive the record's progress, overall status and current
step pointer from the step list.

Nothing here touches the database: functions take step lists and return
new ones so a failed validation never leaves a half-updated record.

Client step status values:  pending, in_progress, completed, skipped
Consultant adds:            returned (sent back to the consultant for revision)
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from serenity.services.onboarding_errors import InvalidStatusError, StepNotFoundError

# =============================================================================
# Enums
# =============================================================================


class StepStatus(str, Enum):
    """Status of a single onboarding step."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    RETURNED = "returned"
    SKIPPED = "skipped"


class OnboardingStatus(str, Enum):
    """Overall status of an onboarding record.

    STALLED is never stored. It is derived at read time from
    ``last_activity`` (see ``is_stalled``).
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    STALLED = "stalled"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class OnboardingKind(str, Enum):
    CLIENT = "client"
    CONSULTANT = "consultant"


CLIENT_STEP_STATUSES: frozenset[StepStatus] = frozenset(
    {
        StepStatus.PENDING,
        StepStatus.IN_PROGRESS,
        StepStatus.COMPLETED,
        StepStatus.SKIPPED,
    }
)
CONSULTANT_STEP_STATUSES: frozenset[StepStatus] = frozenset(StepStatus)

TERMINAL_STEP_STATUSES: frozenset[StepStatus] = frozenset(
    {StepStatus.COMPLETED, StepStatus.SKIPPED}
)

# Steps the current-step pointer may move onto.
_OPEN_STEP_STATUSES: dict[OnboardingKind, frozenset[StepStatus]] = {
    OnboardingKind.CLIENT: frozenset({StepStatus.PENDING, StepStatus.IN_PROGRESS}),
    OnboardingKind.CONSULTANT: frozenset(
        {StepStatus.PENDING, StepStatus.IN_PROGRESS, StepStatus.RETURNED}
    ),
}

# Statuses a progress recompute must never overwrite.
_STICKY_STATUSES: dict[OnboardingKind, frozenset[OnboardingStatus]] = {
    OnboardingKind.CLIENT: frozenset({OnboardingStatus.COMPLETED}),
    OnboardingKind.CONSULTANT: frozenset(
        {
            OnboardingStatus.UNDER_REVIEW,
            OnboardingStatus.APPROVED,
            OnboardingStatus.REJECTED,
            OnboardingStatus.COMPLETED,
        }
    ),
}

_ALLOWED_STEP_STATUSES: dict[OnboardingKind, frozenset[StepStatus]] = {
    OnboardingKind.CLIENT: CLIENT_STEP_STATUSES,
    OnboardingKind.CONSULTANT: CONSULTANT_STEP_STATUSES,
}


# =============================================================================
# Step model and seeded step lists
# =============================================================================


class OnboardingStep(BaseModel):
    """One unit of onboarding work, stored in the record's ``steps`` JSONB."""

    model_config = ConfigDict(extra="ignore")

    step_number: int = Field(ge=1)
    name: str
    description: str = ""
    status: StepStatus = StepStatus.PENDING
    is_required: bool = True
    completed_at: datetime | None = None
    review_notes: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STEP_STATUSES


@dataclass(frozen=True)
class StepDefinition:
    step_number: int
    name: str
    description: str
    is_required: bool = True


CLIENT_STEP_DEFINITIONS: tuple[StepDefinition, ...] = (
    StepDefinition(1, "Welcome", "Introduction to the platform and onboarding process"),
    StepDefinition(2, "Company Information", "Basic information about your company"),
    StepDefinition(
        3,
        "Business Needs Assessment",
        "Understanding your business challenges and objectives",
    ),
    StepDefinition(
        4, "Service Preferences", "Selecting services and consulting areas of interest"
    ),
    StepDefinition(
        5, "Budget and Timeframe", "Setting expectations for budget and project timing"
    ),
    StepDefinition(
        6,
        "Document Upload",
        "Sharing relevant documents for consultant review",
        is_required=False,
    ),
    StepDefinition(
        7, "Consultant Matching", "Reviewing recommended consultants for your needs"
    ),
    StepDefinition(
        8,
        "Welcome Call Scheduling",
        "Scheduling an introductory call with your account manager",
        is_required=False,
    ),
)

CONSULTANT_STEP_DEFINITIONS: tuple[StepDefinition, ...] = (
    StepDefinition(1, "Welcome", "Introduction to the platform and onboarding process"),
    StepDefinition(
        2, "Professional Information", "Your professional background and expertise"
    ),
    StepDefinition(
        3, "Education and Certifications", "Academic background and certifications"
    ),
    StepDefinition(4, "Work History", "Previous positions and professional experience"),
    StepDefinition(5, "Portfolio", "Examples of past projects and client work"),
    StepDefinition(
        6, "Service Offerings", "Services you provide and your pricing structure"
    ),
    StepDefinition(7, "Identity Verification", "Verification of your identity"),
    StepDefinition(8, "Legal Agreements", "Review and signing of required agreements"),
    StepDefinition(9, "Payment Information", "Setting up how you will receive payments"),
    StepDefinition(10, "Training", "Platform and client interaction training"),
    StepDefinition(11, "Availability", "Your working hours and scheduling preferences"),
    StepDefinition(
        12, "Interview Scheduling", "Scheduling an interview with the platform team"
    ),
)

STEP_DEFINITIONS: dict[OnboardingKind, tuple[StepDefinition, ...]] = {
    OnboardingKind.CLIENT: CLIENT_STEP_DEFINITIONS,
    OnboardingKind.CONSULTANT: CONSULTANT_STEP_DEFINITIONS,
}


def seed_steps(kind: OnboardingKind) -> list[OnboardingStep]:
    """Build the fresh step list for a new onboarding record."""
    return [
        OnboardingStep(
            step_number=d.step_number,
            name=d.name,
            description=d.description,
            is_required=d.is_required,
        )
        for d in STEP_DEFINITIONS[kind]
    ]


def load_steps(raw: list[dict[str, Any]] | None) -> list[OnboardingStep]:
    """Parse the JSONB ``steps`` column, ordered by step number."""
    steps = [OnboardingStep.model_validate(item) for item in raw or []]
    return sorted(steps, key=lambda s: s.step_number)


def dump_steps(steps: list[OnboardingStep]) -> list[dict[str, Any]]:
    return [step.model_dump(mode="json") for step in steps]


# =============================================================================
# Step transitions
# =============================================================================


def find_step(steps: list[OnboardingStep], step_number: int) -> OnboardingStep:
    """Return the step with the given number.

    Raises:
        StepNotFoundError: If no such step exists.
    """
    for step in steps:
        if step.step_number == step_number:
            return step
    raise StepNotFoundError(step_number)


def merge_step_data(
    existing: dict[str, Any], incoming: dict[str, Any] | None
) -> dict[str, Any]:
    """Shallow key-wise union: incoming keys overwrite, others are kept."""
    merged = dict(existing)
    if incoming:
        merged.update(incoming)
    return merged


def parse_step_status(kind: OnboardingKind, value: str | StepStatus) -> StepStatus:
    """Validate a step status for the given onboarding kind.

    Raises:
        InvalidStatusError: If the value is unknown or not allowed for the kind.
    """
    allowed = _ALLOWED_STEP_STATUSES[kind]
    try:
        status = StepStatus(value)
    except ValueError:
        status = None
    if status is None or status not in allowed:
        raise InvalidStatusError(
            str(getattr(value, "value", value)),
            sorted(s.value for s in allowed),
        )
    return status


def update_step_status(
    steps: list[OnboardingStep],
    step_number: int,
    status: StepStatus,
    data: dict[str, Any] | None = None,
    *,
    now: datetime,
    review_notes: str | None = None,
) -> list[OnboardingStep]:
    """Return a new step list with one step moved to ``status``.

    ``completed_at`` is stamped only when the step enters COMPLETED, so
    repeating the same update leaves the list unchanged. A step leaving
    COMPLETED loses its timestamp.

    Raises:
        StepNotFoundError: If ``step_number`` is not in the list.
    """
    target = find_step(steps, step_number)

    completed_at = target.completed_at
    if status == StepStatus.COMPLETED and target.status != StepStatus.COMPLETED:
        completed_at = now
    elif status != StepStatus.COMPLETED:
        completed_at = None

    updated = target.model_copy(
        update={
            "status": status,
            "completed_at": completed_at,
            "data": merge_step_data(target.data, data),
            "review_notes": (
                review_notes if review_notes is not None else target.review_notes
            ),
        }
    )
    return [updated if s.step_number == step_number else s for s in steps]


def advance_current_step(
    steps: list[OnboardingStep],
    kind: OnboardingKind,
    current_step: int,
    changed_step: int,
) -> int:
    """Move the current-step pointer after ``changed_step`` completed.

    The pointer only moves when the completed step was the current one.
    It lands on the lowest later open required step; optional steps are
    only pointed at once no required step after it is open. With nothing
    open after it the pointer stays where it is.

    Required steps go first so that finishing steps 1-5 of a client
    onboarding lands on required step 7, not on optional step 6.
    """
    if changed_step != current_step:
        return current_step
    if find_step(steps, changed_step).status != StepStatus.COMPLETED:
        return current_step

    open_statuses = _OPEN_STEP_STATUSES[kind]
    later_open = [
        s for s in steps if s.step_number > changed_step and s.status in open_statuses
    ]
    required = [s for s in later_open if s.is_required]
    candidates = required or later_open
    if not candidates:
        return current_step
    return min(s.step_number for s in candidates)


def incomplete_required_steps(steps: list[OnboardingStep]) -> list[int]:
    """Step numbers of required steps that are neither completed nor skipped."""
    return [s.step_number for s in steps if s.is_required and not s.is_terminal]


# =============================================================================
# Progress
# =============================================================================


@dataclass(frozen=True)
class ProgressResult:
    """Derived progress fields of an onboarding record.

    Attributes:
        progress: 0-100 share of steps completed or skipped.
        status: Overall status after recompute.
        completed_at: Record completion timestamp (set once, never moved).
    """

    progress: int
    status: OnboardingStatus
    completed_at: datetime | None


def calculate_progress(steps: list[OnboardingStep]) -> int:
    """Percentage of terminal steps, rounded half up. 0 for an empty list."""
    total = len(steps)
    if total == 0:
        return 0
    done = sum(1 for s in steps if s.is_terminal)
    return (200 * done + total) // (2 * total)


def recompute_progress(
    steps: list[OnboardingStep],
    kind: OnboardingKind,
    current_status: OnboardingStatus | str,
    completed_at: datetime | None,
    *,
    now: datetime,
) -> ProgressResult:
    """Derive progress and overall status from the step list.

    A fully done client record becomes COMPLETED; a fully done consultant
    record goes to UNDER_REVIEW since completion needs admin approval.
    Sticky statuses (client: completed; consultant: under_review,
    approved, rejected, completed) survive any recompute.
    """
    current = OnboardingStatus(current_status)
    progress = calculate_progress(steps)

    if current in _STICKY_STATUSES[kind]:
        return ProgressResult(progress, current, completed_at)

    if progress == 0:
        return ProgressResult(progress, OnboardingStatus.NOT_STARTED, completed_at)

    if progress == 100:
        if kind == OnboardingKind.CONSULTANT:
            return ProgressResult(progress, OnboardingStatus.UNDER_REVIEW, completed_at)
        return ProgressResult(progress, OnboardingStatus.COMPLETED, completed_at or now)

    return ProgressResult(progress, OnboardingStatus.IN_PROGRESS, completed_at)


@dataclass(frozen=True)
class StepTransition:
    """Outcome of one step update, ready to be written to a record."""

    steps: list[OnboardingStep]
    current_step: int
    progress: ProgressResult

    def apply_to(self, record: Any, now: datetime) -> None:
        """Write the derived fields onto an onboarding record."""
        record.steps = dump_steps(self.steps)
        record.current_step = self.current_step
        record.progress = self.progress.progress
        record.status = self.progress.status.value
        record.completed_at = self.progress.completed_at
        record.last_activity = now


def plan_step_update(
    record: Any,
    kind: OnboardingKind,
    step_number: int,
    status: StepStatus | str,
    data: dict[str, Any] | None = None,
    *,
    now: datetime,
    review_notes: str | None = None,
) -> StepTransition:
    """Compute a step update against a record without modifying it.

    Raises:
        InvalidStatusError: If ``status`` is not valid for ``kind``.
        StepNotFoundError: If ``step_number`` is not in the record.
    """
    new_status = parse_step_status(kind, status)
    steps = update_step_status(
        load_steps(record.steps),
        step_number,
        new_status,
        data,
        now=now,
        review_notes=review_notes,
    )
    current_step = advance_current_step(steps, kind, record.current_step, step_number)
    progress = recompute_progress(
        steps, kind, record.status, record.completed_at, now=now
    )
    return StepTransition(steps=steps, current_step=current_step, progress=progress)


# =============================================================================
# Derived views
# =============================================================================


def is_stalled(
    status: OnboardingStatus | str,
    last_activity: datetime | None,
    *,
    now: datetime,
    threshold_days: int,
) -> bool:
    """In progress with no activity for longer than the threshold."""
    if OnboardingStatus(status) != OnboardingStatus.IN_PROGRESS or last_activity is None:
        return False
    return last_activity < now - timedelta(days=threshold_days)


def effective_status(
    status: OnboardingStatus | str,
    last_activity: datetime | None,
    *,
    now: datetime,
    threshold_days: int,
) -> OnboardingStatus:
    """Stored status, or STALLED when the record has gone quiet."""
    if is_stalled(status, last_activity, now=now, threshold_days=threshold_days):
        return OnboardingStatus.STALLED
    return OnboardingStatus(status)


def elapsed_days(start: datetime | None, end: datetime | None) -> int | None:
    """Whole days from start to end, rounded up. None if either is missing."""
    if start is None or end is None:
        return None
    seconds = (end - start).total_seconds()
    return math.ceil(seconds / 86400)
