# ledgerfolio/schemas/pagination.py
"""
Offset pagination for ledger listings.

OperationService.list_operations() returns an OperationPage (items, total,
skip, limit); the metadata below is derived from it for callers that render
page controls.

Usage:
    page = operation_service.list_operations(user_id, skip=20, limit=20)
    response = OperationListResponse.from_page(page)
    response.pagination.page      # 2
    response.pagination.has_next  # total > 40
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

ItemT = TypeVar("ItemT")


class PaginationMeta(BaseModel):
    """Position of one page within a filtered operation listing."""

    total: int = Field(..., ge=0, description="Operations matching the filters")
    skip: int = Field(..., ge=0, description="Operations before this page")
    limit: int = Field(..., ge=1, description="Page size")

    @computed_field
    @property
    def page(self) -> int:
        """1-based number of this page."""
        return self.skip // self.limit + 1

    @computed_field
    @property
    def pages(self) -> int:
        # an empty listing still has one (empty) page
        full, partial = divmod(self.total, self.limit)
        return max(1, full + (1 if partial else 0))

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.total > self.skip + self.limit

    @computed_field
    @property
    def has_previous(self) -> bool:
        return self.skip > 0

    @classmethod
    def create(cls, total: int, skip: int, limit: int) -> "PaginationMeta":
        return cls(total=total, skip=skip, limit=limit)


class PaginatedResponse(BaseModel, Generic[ItemT]):
    """Items of one page plus where that page sits in the listing."""

    items: list[ItemT] = Field(default_factory=list)
    pagination: PaginationMeta

    @classmethod
    def from_page(cls, page: Any) -> "PaginatedResponse[ItemT]":
        """
        Build from any object with items, total, skip and limit attributes
        (OperationPage in practice).
        """
        return cls.model_validate(
            {
                "items": page.items,
                "pagination": PaginationMeta.create(total=page.total, skip=page.skip, limit=page.limit),
            },
            from_attributes=True,
        )
