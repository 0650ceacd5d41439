# ledgerfolio/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP
knowledge. The calling service maps them to request errors.

Missing market data (no quote, no exchange rate) is deliberately NOT an
exception: it propagates as None through holdings, portfolio and goal values.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── InvalidGoalScopeError
    │   └── InsufficientQuantityError
    └── NotFoundError
        ├── AssetNotFoundError
        ├── GoalNotFoundError
        └── OperationNotFoundError
"""

from datetime import datetime
from decimal import Decimal


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input is rejected before any evaluation happens.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidGoalScopeError(ValidationError):
    """Raised when scope and asset_id of a goal are inconsistent."""

    def __init__(self, message: str) -> None:
        super().__init__(message, field="asset_id")


class InsufficientQuantityError(ValidationError):
    """
    Raised when a SELL would exceed the quantity held at that point in time.

    Attributes:
        asset_id: Asset whose ledger is inconsistent
        requested: Quantity the SELL asks for
        available: Quantity held just before the SELL
        occurred_at: Timestamp of the offending SELL
    """

    def __init__(
            self,
            asset_id: int | None,
            requested: Decimal,
            available: Decimal,
            occurred_at: datetime | None = None,
    ) -> None:
        self.asset_id = asset_id
        self.requested = requested
        self.available = available
        self.occurred_at = occurred_at
        when = f" at {occurred_at.isoformat()}" if occurred_at else ""
        super().__init__(
            f"Cannot sell {requested} units of asset {asset_id}{when}: "
            f"only {available} held",
            field="quantity",
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Asset", "Goal")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class AssetNotFoundError(NotFoundError):
    """Raised when an operation or goal references an unknown asset."""

    def __init__(self, asset_id: int) -> None:
        self.asset_id = asset_id
        super().__init__(
            f"Asset {asset_id} not found",
            resource_type="Asset",
            resource_id=asset_id,
        )


class GoalNotFoundError(NotFoundError):
    """Raised when a goal does not exist or belongs to another user."""

    def __init__(self, goal_id: int) -> None:
        self.goal_id = goal_id
        super().__init__(
            f"Goal {goal_id} not found",
            resource_type="Goal",
            resource_id=goal_id,
        )


class OperationNotFoundError(NotFoundError):
    """Raised when an operation does not exist, is deleted, or belongs to another user."""

    def __init__(self, operation_id: int) -> None:
        self.operation_id = operation_id
        super().__init__(
            f"Operation {operation_id} not found",
            resource_type="Operation",
            resource_id=operation_id,
        )
