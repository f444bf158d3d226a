"""Response envelope models.

Every endpoint answers with ``{"data": ...}`` on success and
``{"error": {...}}`` on failure. List endpoints add a ``meta`` block.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata for collections.

    Attributes:
        total: Total number of items across all pages.
        page: Current page number (1-indexed).
        per_page: Number of items per page.
    """

    total: int
    page: int
    per_page: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        """Number of pages needed to display all items (0 when empty)."""
        if self.total == 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/{client_id}")
        async def get_client_onboarding(...) -> DataResponse[ClientOnboardingRead]:
            record = await service.get_client_onboarding(client_id)
            return DataResponse(data=ClientOnboardingRead.from_record(record))
    """

    data: T


class ListResponse(BaseModel, Generic[T]):
    """Standard response envelope for collections."""

    data: list[T]
    meta: PaginationMeta


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail
