# ledgerfolio/schemas/valuation.py
"""
Pydantic schemas for valuation output.

Built from the service dataclasses with from_attributes:

    HoldingSummaryResponse.model_validate(holding)
    PortfolioSummaryResponse.model_validate(summary)

Optional Decimal fields are None when the value cannot be computed.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class HoldingSummaryResponse(BaseModel):
    """Valuation of one asset position, in the asset's home currency."""

    model_config = ConfigDict(from_attributes=True)

    asset_id: int
    symbol: str
    name: str
    type: str
    quantity: Decimal
    average_cost: Decimal
    total_invested: Decimal
    current_price: Decimal | None = None
    current_value: Decimal | None = None
    unrealized_pnl: Decimal | None = None
    unrealized_pnl_percent: Decimal | None = None
    realized_pnl: Decimal
    currency: str
    warnings: list[str] = Field(default_factory=list)


class AssetTypeBreakdown(BaseModel):
    """Totals of one asset type."""

    model_config = ConfigDict(from_attributes=True)

    invested: Decimal
    current_value: Decimal | None = None
    count: int


class PortfolioSummaryResponse(BaseModel):
    """
    Whole-portfolio totals.

    total_current_value and total_unrealized_pnl are None as soon as any
    holding's value is unknown.
    """

    model_config = ConfigDict(from_attributes=True)

    total_invested: Decimal
    total_current_value: Decimal | None = None
    total_unrealized_pnl: Decimal | None = None
    total_realized_pnl: Decimal
    holdings: list[HoldingSummaryResponse]
    by_asset_type: dict[str, AssetTypeBreakdown]
