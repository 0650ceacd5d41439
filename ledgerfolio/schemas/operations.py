# ledgerfolio/schemas/operations.py
"""
Pydantic schemas for ledger operations.

These schemas define:
- What data callers must send to record an operation (Create)
- What data is returned for a recorded operation (Response)
- Filters accepted when listing operations (Query)

Field semantics depend on the operation type:
    BUY / SELL   quantity units at price_per_unit, fees on top
    DIVIDEND     price_per_unit is the total cash received
    SPLIT        quantity is the split ratio (e.g. 2 for 2-for-1)
    FEE          quantity × price_per_unit + fees is added to cost

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ledgerfolio.models import OperationType
from ledgerfolio.schemas.pagination import PaginatedResponse
from ledgerfolio.schemas.validators import (
    ensure_utc,
    validate_datetime_range,
    validate_quote_currency,
)


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class OperationCreate(BaseModel):
    """
    Schema for recording a new operation.

    currency defaults to the asset's home currency when omitted.
    """

    asset_id: int = Field(..., gt=0, description="Asset the operation applies to")

    type: OperationType = Field(..., description="Operation type")

    quantity: Decimal = Field(
        ...,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Units traded, or the split ratio for SPLIT",
        examples=["10", "0.5", "2"]
    )

    price_per_unit: Decimal = Field(
        ...,
        ge=0,
        max_digits=18,
        decimal_places=6,
        description="Unit price, or the total cash amount for DIVIDEND",
        examples=["150.50", "42.00"]
    )

    fees: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=18,
        decimal_places=2,
        description="Commission/fees (0 or positive)",
        examples=["0", "9.99"]
    )

    currency: str | None = Field(
        default=None,
        description="Currency of the operation (ISO 4217 or pence code)",
        examples=["USD", "EUR", "GBp"]
    )

    occurred_at: datetime = Field(
        ...,
        description="When the operation happened",
        examples=["2026-01-15T14:30:00Z"]
    )

    notes: str | None = Field(default=None, max_length=2000)

    @field_validator('currency')
    @classmethod
    def check_currency(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_quote_currency(v)

    @field_validator('occurred_at')
    @classmethod
    def attach_timezone(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        return ensure_utc(v)


# =============================================================================
# RESPONSE SCHEMA
# =============================================================================

class OperationResponse(BaseModel):
    """Recorded operation as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_id: int
    type: OperationType
    quantity: Decimal
    price_per_unit: Decimal
    total_amount: Decimal
    fees: Decimal
    currency: str
    occurred_at: datetime
    notes: str | None = None
    created_at: datetime


class OperationListResponse(PaginatedResponse[OperationResponse]):
    pass


# =============================================================================
# QUERY SCHEMA
# =============================================================================

class OperationQuery(BaseModel):
    """Filters for listing operations. All filters are optional."""

    asset_id: int | None = Field(default=None, gt=0)
    type: OperationType | None = None
    start: datetime | None = Field(default=None, description="Inclusive lower bound on occurred_at")
    end: datetime | None = Field(default=None, description="Inclusive upper bound on occurred_at")
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=20, ge=1, le=1000)

    @model_validator(mode='after')
    def check_range(self) -> 'OperationQuery':
        self.start, self.end = validate_datetime_range(self.start, self.end)
        return self
