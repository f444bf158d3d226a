"""API error classes.

Every error carries a machine-readable code, a human-readable message and
the HTTP status the exception handlers in ``serenity.main`` return. Services
raise these directly so the same taxonomy flows from the state machines to
the response envelope. Onboarding-specific errors live in
``serenity.services.onboarding_errors`` and subclass these.
"""


class APIError(Exception):
    """Base class for API errors.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Malformed input (400): bad step data, rejected uploads, missing reasons."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class ForbiddenError(APIError):
    """Authenticated, but not allowed to touch this onboarding (403)."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(code="FORBIDDEN", message=message, status_code=403)


class AdminRequiredError(ForbiddenError):
    """Admin-only endpoint called by a client or consultant (403)."""

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="ADMIN_REQUIRED",
            message="Admin access required",
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(code="NOT_FOUND", message=message, status_code=404)
