"""Response envelope models.

Every success response is ``{"data": ...}``; collections add ``meta`` with
pagination. Every error is ``{"error": {code, message, details}}``.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata for collections.

    Attributes:
        total: Total number of items across all pages.
        page: Current page number (1-indexed).
        limit: Number of items per page.
    """

    total: int
    page: int
    limit: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        """Number of pages needed to display all items (0 when empty)."""
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/listings/{listing_id}")
        async def get_listing(listing_id: UUID) -> DataResponse[ListingResponse]:
            listing = await ListingRepository.get_by_id(db, listing_id)
            return DataResponse(data=ListingResponse.from_model(listing))
    """

    data: T


class ListResponse(BaseModel, Generic[T]):
    """Standard response envelope for collections.

    Usage:
        items, total = await ListingRepository.list_public(db, ...)
        return ListResponse(
            data=items,
            meta=PaginationMeta(total=total, page=p.page, limit=p.limit),
        )
    """

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
