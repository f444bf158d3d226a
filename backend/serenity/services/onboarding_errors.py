"""Onboarding error taxonomy.

Three families, each mapped onto the core API errors so the exception
handlers render them without special cases:

- not found (404): a record, step, session, recommendation... is absent
- precondition (422): wrong role, wrong status, incomplete required steps,
  unknown enum value
- permission (403): the caller may not act on this onboarding
"""

from serenity.core.errors import APIError, ForbiddenError, NotFoundError

# =============================================================================
# Not found
# =============================================================================


class OnboardingNotFoundError(NotFoundError):
    def __init__(self, kind: str, user_id: str) -> None:
        super().__init__(f"{kind.capitalize()} onboarding", user_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__("User", user_id)


class StepNotFoundError(NotFoundError):
    def __init__(self, step_number: int) -> None:
        self.step_number = step_number
        super().__init__("Onboarding step", str(step_number))


class RecommendationNotFoundError(NotFoundError):
    def __init__(self, target_id: str) -> None:
        super().__init__("Recommendation", target_id)


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str) -> None:
        super().__init__("Onboarding session", session_id)


class InterviewNotFoundError(NotFoundError):
    def __init__(self, interview_id: str) -> None:
        super().__init__("Interview", interview_id)


class ReminderNotFoundError(NotFoundError):
    def __init__(self, reminder_id: str) -> None:
        super().__init__("Reminder", reminder_id)


class PortfolioProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str) -> None:
        super().__init__("Portfolio project", project_id)


# =============================================================================
# Preconditions
# =============================================================================


class PreconditionError(APIError):
    """Request is well-formed but the onboarding cannot accept it (422)."""

    def __init__(
        self,
        message: str,
        code: str = "PRECONDITION_FAILED",
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details,
        )


class NotAClientError(PreconditionError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User '{user_id}' is not a client", code="NOT_A_CLIENT")


class NotAConsultantError(PreconditionError):
    def __init__(self, user_id: str) -> None:
        super().__init__(
            f"User '{user_id}' is not a consultant", code="NOT_A_CONSULTANT"
        )


class IncompleteRequiredStepsError(PreconditionError):
    """Raised when required steps are still open.

    Attributes:
        step_numbers: The required steps that are neither completed nor skipped.
    """

    def __init__(self, step_numbers: list[int]) -> None:
        self.step_numbers = step_numbers
        super().__init__(
            "All required steps must be completed first",
            code="INCOMPLETE_REQUIRED_STEPS",
            details=[{"step_number": n} for n in step_numbers],
        )


class NotUnderReviewError(PreconditionError):
    def __init__(self, current_status: str) -> None:
        self.current_status = current_status
        super().__init__(
            f"Onboarding is not under review (status: {current_status})",
            code="NOT_UNDER_REVIEW",
        )


class NotApprovedError(PreconditionError):
    def __init__(self, current_status: str) -> None:
        self.current_status = current_status
        super().__init__(
            f"Onboarding must be approved before completion (status: {current_status})",
            code="NOT_APPROVED",
        )


class InvalidContractTypeError(PreconditionError):
    def __init__(self, contract_type: str) -> None:
        super().__init__(
            f"Invalid contract type: {contract_type}", code="INVALID_CONTRACT_TYPE"
        )


class InvalidTrainingTypeError(PreconditionError):
    def __init__(self, training_type: str) -> None:
        super().__init__(
            f"Invalid training type: {training_type}", code="INVALID_TRAINING_TYPE"
        )


class InvalidAssigneeError(PreconditionError):
    def __init__(self, assignee_id: str) -> None:
        super().__init__(
            f"User '{assignee_id}' cannot own an onboarding; "
            "assignee must be an admin or consultant",
            code="INVALID_ASSIGNEE",
        )


class InvalidStatusError(PreconditionError):
    def __init__(self, status: str, allowed: list[str] | None = None) -> None:
        message = f"Invalid status: {status}"
        if allowed:
            message += f". Allowed: {', '.join(allowed)}"
        super().__init__(message, code="INVALID_STATUS")


class InvalidDecisionError(PreconditionError):
    def __init__(self, decision: str) -> None:
        super().__init__(
            f"Invalid review decision: {decision}. Allowed: approve, reject",
            code="INVALID_DECISION",
        )


# =============================================================================
# Permission
# =============================================================================


class OnboardingPermissionError(ForbiddenError):
    def __init__(self, message: str = "Not allowed to access this onboarding") -> None:
        super().__init__(message)
