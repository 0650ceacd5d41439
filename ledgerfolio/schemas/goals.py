# ledgerfolio/schemas/goals.py
"""
Pydantic schemas for investment goals.

Validation layers:
- Field constraints: name length, positive target, currency format
- Model validator: asset_id is required for ASSET goals and forbidden otherwise
- GoalService: asset existence, ownership, alert re-arming
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ledgerfolio.models import GoalScope, NotificationKind
from ledgerfolio.schemas.validators import ensure_utc, validate_currency


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class GoalCreate(BaseModel):
    """Schema for creating a goal."""

    name: str = Field(..., min_length=1, max_length=120)

    scope: GoalScope = Field(default=GoalScope.PORTFOLIO)

    asset_id: int | None = Field(
        default=None,
        gt=0,
        description="Required for ASSET goals, must be empty for PORTFOLIO goals"
    )

    target_amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=2,
        examples=["10000", "2500.50"]
    )

    currency: str = Field(default="USD", examples=["USD", "EUR"])

    target_date: datetime | None = None

    alert_at_80: bool = True
    alert_at_100: bool = True

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Name cannot be blank")
        return stripped

    @field_validator('currency')
    @classmethod
    def check_currency(cls, v: str) -> str:
        return validate_currency(v)

    @field_validator('target_date')
    @classmethod
    def attach_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode='after')
    def check_scope(self) -> 'GoalCreate':
        if self.scope == GoalScope.ASSET and self.asset_id is None:
            raise ValueError("asset_id is required for ASSET goals")
        if self.scope == GoalScope.PORTFOLIO and self.asset_id is not None:
            raise ValueError("asset_id must be empty for PORTFOLIO goals")
        return self


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class GoalUpdate(BaseModel):
    """
    Schema for editing a goal. Only fields that are sent are applied.

    Scope/asset consistency is checked against the stored goal by
    GoalService, since a partial update may send only one of the two.
    """

    name: str | None = Field(default=None, min_length=1, max_length=120)
    scope: GoalScope | None = None
    asset_id: int | None = Field(default=None, gt=0)
    target_amount: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=2,
    )
    currency: str | None = None
    target_date: datetime | None = None
    alert_at_80: bool | None = None
    alert_at_100: bool | None = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        stripped = v.strip()
        if not stripped:
            raise ValueError("Name cannot be blank")
        return stripped

    @field_validator('currency')
    @classmethod
    def check_currency(cls, v: str | None) -> str | None:
        return validate_currency(v) if v is not None else None

    @field_validator('target_date')
    @classmethod
    def attach_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class GoalResponse(BaseModel):
    """Stored goal."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    scope: GoalScope
    asset_id: int | None
    target_amount: Decimal
    currency: str
    target_date: datetime | None
    alert_at_80: bool
    alert_at_100: bool
    alert_80_sent: bool
    alert_100_sent: bool
    achieved_at: datetime | None


class GoalProgressResponse(BaseModel):
    """
    Goal with its evaluated progress.

    current_amount and progress_percent are None when they cannot be
    computed (missing price or exchange rate), never 0.
    """

    model_config = ConfigDict(from_attributes=True)

    goal: GoalResponse
    current_amount: Decimal | None
    progress_percent: Decimal | None
    alerts_sent: list[NotificationKind] = Field(default_factory=list)
