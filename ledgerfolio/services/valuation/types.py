# ledgerfolio/services/valuation/types.py
"""
Internal data types for the Valuation Service.

These dataclasses are used internally by the ledger replayer and the
aggregators. They are NOT Pydantic schemas - those are defined in
ledgerfolio/schemas/valuation.py for serialization.

Design Principles:
- Use Decimal for ALL financial values (never float)
- Unknown values are None, never zero or NaN
- Immutable where possible (frozen=True for value objects)

Type Hierarchy:
    Lot                 - One FIFO lot inside a replay
    ReplayResult        - Replayed state of one asset's ledger
    PriceQuote          - Raw quote from a price provider
    NormalizedPrice     - Quote after pence correction
    HoldingSummary      - Valuation of one asset position
    AssetTypeBreakdown  - Per-asset-type bucket of a portfolio
    PortfolioSummary    - Whole-portfolio aggregate
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from ledgerfolio.services.constants import MONEY_EPSILON, ZERO


# =============================================================================
# LEDGER REPLAY
# =============================================================================

@dataclass
class Lot:
    """
    A quantity acquired at one cost per unit.

    Mutable: SELLs shrink quantity in place and SPLITs rescale both fields.
    quantity × cost_per_unit is the lot's remaining total cost.
    """

    quantity: Decimal
    cost_per_unit: Decimal

    @property
    def total_cost(self) -> Decimal:
        return self.quantity * self.cost_per_unit


@dataclass
class ReplayResult:
    """
    Result of replaying one asset's operations.

    Attributes:
        quantity: Units held after the last operation
        total_cost: Cost of the held units, including BUY fees and FEE charges
        realized_pnl: Locked-in profit from SELLs and DIVIDENDs
        remaining_lots: FIFO queue, oldest first
        warnings: Ledger anomalies met while replaying (e.g. oversell)
    """

    quantity: Decimal = ZERO
    total_cost: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    remaining_lots: list[Lot] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_position(self) -> bool:
        """True if there are units currently held."""
        return self.quantity > ZERO

    @property
    def is_reportable(self) -> bool:
        """Open positions, and closed ones that still carry realized P&L."""
        return self.has_position or abs(self.realized_pnl) > MONEY_EPSILON

    @property
    def average_cost(self) -> Decimal:
        if not self.has_position:
            return ZERO
        return self.total_cost / self.quantity


# =============================================================================
# PRICES
# =============================================================================

@dataclass(frozen=True)
class PriceQuote:
    """Latest quote exactly as the price source reported it."""

    price: Decimal
    currency: str | None
    fetched_at: datetime | None = None


@dataclass(frozen=True)
class NormalizedPrice:
    """A price expressed in a canonical currency (pence rescaled to pounds)."""

    price: Decimal
    currency: str


# =============================================================================
# HOLDINGS
# =============================================================================

@dataclass
class HoldingSummary:
    """
    Valuation of one asset position, in the asset's home currency.

    Attributes:
        asset_id: Asset identifier
        symbol: Ticker symbol
        name: Display name
        type: Asset type (e.g. "STOCK", "ETF")
        quantity: Units held (0 for a closed position)
        average_cost: total_invested / quantity (0 for a closed position)
        total_invested: Cost basis of the held units
        current_price: Latest price in home currency (None if unknown)
        current_value: quantity × current_price (None if unknown)
        unrealized_pnl: current_value - total_invested (None if unknown)
        unrealized_pnl_percent: unrealized / invested × 100 (None if unknown)
        realized_pnl: Locked-in P&L, always known
        currency: Asset home currency

    Note:
        None means "cannot be computed". Consumers must never read it as 0.
    """

    asset_id: int
    symbol: str
    name: str
    type: str
    quantity: Decimal
    average_cost: Decimal
    total_invested: Decimal
    current_price: Decimal | None
    current_value: Decimal | None
    unrealized_pnl: Decimal | None
    unrealized_pnl_percent: Decimal | None
    realized_pnl: Decimal
    currency: str
    warnings: list[str] = field(default_factory=list)

    @property
    def has_position(self) -> bool:
        return self.quantity > ZERO

    @property
    def has_complete_data(self) -> bool:
        """True if the holding's current value is known."""
        return self.current_value is not None

    @property
    def value_or_invested(self) -> Decimal:
        """Current value when known, otherwise the invested amount."""
        if self.current_value is not None:
            return self.current_value
        return self.total_invested


# =============================================================================
# PORTFOLIO
# =============================================================================

@dataclass
class AssetTypeBreakdown:
    """Totals for all holdings of one asset type."""

    invested: Decimal = ZERO
    current_value: Decimal | None = ZERO
    count: int = 0


@dataclass
class PortfolioSummary:
    """
    Aggregate of all holdings.

    Attributes:
        total_invested: Sum of holding cost bases (always known)
        total_current_value: Sum of holding values (None if ANY is unknown)
        total_unrealized_pnl: Sum of unrealized P&L (None if ANY is unknown)
        total_realized_pnl: Sum of realized P&L (always known)
        holdings: The holdings that were summed
        by_asset_type: Buckets keyed by asset type

    Note:
        Holdings in different home currencies are summed as-is; callers that
        need a single currency convert holdings first (see goal evaluation).
    """

    total_invested: Decimal
    total_current_value: Decimal | None
    total_unrealized_pnl: Decimal | None
    total_realized_pnl: Decimal
    holdings: list[HoldingSummary]
    by_asset_type: dict[str, AssetTypeBreakdown] = field(default_factory=dict)

    @property
    def has_complete_data(self) -> bool:
        return self.total_current_value is not None
