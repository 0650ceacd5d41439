# ledgerfolio/schemas/__init__.py
"""
Pydantic schemas for input validation and serialization.
"""

from ledgerfolio.schemas.goals import (
    GoalCreate,
    GoalProgressResponse,
    GoalResponse,
    GoalUpdate,
)
from ledgerfolio.schemas.operations import (
    OperationCreate,
    OperationListResponse,
    OperationQuery,
    OperationResponse,
)
from ledgerfolio.schemas.pagination import PaginatedResponse, PaginationMeta
from ledgerfolio.schemas.valuation import (
    AssetTypeBreakdown,
    HoldingSummaryResponse,
    PortfolioSummaryResponse,
)

__all__ = [
    # Operations
    "OperationCreate",
    "OperationResponse",
    "OperationListResponse",
    "OperationQuery",
    # Goals
    "GoalCreate",
    "GoalUpdate",
    "GoalResponse",
    "GoalProgressResponse",
    # Valuation
    "HoldingSummaryResponse",
    "AssetTypeBreakdown",
    "PortfolioSummaryResponse",
    # Pagination
    "PaginationMeta",
    "PaginatedResponse",
]
