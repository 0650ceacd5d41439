# ledgerfolio/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

- HoldingsCalculator: Turns one asset's replay + latest quote into a HoldingSummary
- PortfolioAggregator: Sums HoldingSummary records into a PortfolioSummary

Design Principles:
- Stateless (no per-call instance state)
- Receives all dependencies explicitly
- Decimal for ALL financial values; unknown is None, never 0
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from ledgerfolio.services.constants import HUNDRED, ZERO
from ledgerfolio.services.valuation.pricing import CurrencyConverter, normalize_price
from ledgerfolio.services.valuation.types import (
    AssetTypeBreakdown,
    HoldingSummary,
    PortfolioSummary,
    PriceQuote,
    ReplayResult,
)

if TYPE_CHECKING:
    from ledgerfolio.models import Asset

logger = logging.getLogger(__name__)


def _type_name(value) -> str:
    return getattr(value, "value", value)


# =============================================================================
# HOLDINGS CALCULATOR
# =============================================================================

class HoldingsCalculator:
    """
    Values a replayed position against the asset's latest price.

    The latest quote is normalized (pence -> pounds) and, when its currency
    differs from the asset's home currency, converted through the
    CurrencyConverter. If either the quote or the rate is missing, price,
    value and unrealized P&L are all None.
    """

    def __init__(self, converter: CurrencyConverter) -> None:
        self._converter = converter

    def calculate(
            self,
            asset: Asset,
            replay: ReplayResult,
            quote: PriceQuote | None,
    ) -> HoldingSummary:
        """
        Build the HoldingSummary for one asset.

        Args:
            asset: Asset (symbol, name, type, home currency)
            replay: Replayed ledger of the asset
            quote: Latest raw quote, or None if the provider has none

        Returns:
            HoldingSummary in the asset's home currency
        """
        if not replay.has_position:
            return self._closed_holding(asset, replay)

        warnings = list(replay.warnings)
        quantity = replay.quantity
        total_invested = replay.total_cost

        current_price = self.effective_price(asset, quote, warnings)

        current_value: Decimal | None = None
        unrealized_pnl: Decimal | None = None
        unrealized_pct: Decimal | None = None

        if current_price is not None:
            current_value = quantity * current_price
            unrealized_pnl = current_value - total_invested
            if total_invested > ZERO:
                unrealized_pct = unrealized_pnl / total_invested * HUNDRED

        return HoldingSummary(
            asset_id=asset.id,
            symbol=asset.symbol,
            name=asset.name,
            type=_type_name(asset.type),
            quantity=quantity,
            average_cost=replay.average_cost,
            total_invested=total_invested,
            current_price=current_price,
            current_value=current_value,
            unrealized_pnl=unrealized_pnl,
            unrealized_pnl_percent=unrealized_pct,
            realized_pnl=replay.realized_pnl,
            currency=asset.currency,
            warnings=warnings,
        )

    def effective_price(
            self,
            asset: Asset,
            quote: PriceQuote | None,
            warnings: list[str] | None = None,
    ) -> Decimal | None:
        """
        Latest price of the asset expressed in its home currency.

        Returns None when there is no quote or no usable exchange rate.
        """
        warnings = warnings if warnings is not None else []

        if quote is None or quote.price is None:
            warnings.append(f"No price data available for {asset.symbol}")
            logger.warning(f"No price quote for asset {asset.id} ({asset.symbol})")
            return None

        normalized = normalize_price(Decimal(quote.price), quote.currency or asset.currency)

        if normalized.currency == asset.currency:
            return normalized.price

        converted = self._converter.convert(normalized.price, normalized.currency, asset.currency)
        if converted is None:
            warnings.append(
                f"No exchange rate available for {normalized.currency}/{asset.currency}"
            )
        return converted

    @staticmethod
    def _closed_holding(asset: Asset, replay: ReplayResult) -> HoldingSummary:
        """
        Fully closed position kept for its realized P&L.

        Nothing is held, so its value is a known zero rather than unknown.
        """
        return HoldingSummary(
            asset_id=asset.id,
            symbol=asset.symbol,
            name=asset.name,
            type=_type_name(asset.type),
            quantity=ZERO,
            average_cost=ZERO,
            total_invested=ZERO,
            current_price=None,
            current_value=ZERO,
            unrealized_pnl=ZERO,
            unrealized_pnl_percent=ZERO,
            realized_pnl=replay.realized_pnl,
            currency=asset.currency,
            warnings=list(replay.warnings),
        )

    @staticmethod
    def sort_holdings(holdings: list[HoldingSummary]) -> list[HoldingSummary]:
        """Largest first by current value, falling back to invested amount."""
        return sorted(holdings, key=lambda h: h.value_or_invested, reverse=True)


# =============================================================================
# PORTFOLIO AGGREGATOR
# =============================================================================

class PortfolioAggregator:
    """
    Sums holdings into a PortfolioSummary.

    total_invested and total_realized_pnl are always known. Current value and
    unrealized P&L stay None from the first unknown holding onwards: a
    partial sum would understate the portfolio. Each asset-type bucket
    applies the same rule on its own.
    """

    def summarize(self, holdings: list[HoldingSummary]) -> PortfolioSummary:
        total_invested = ZERO
        total_realized = ZERO
        total_value: Decimal | None = ZERO
        total_unrealized: Decimal | None = ZERO
        by_type: dict[str, AssetTypeBreakdown] = {}

        for holding in holdings:
            total_invested += holding.total_invested
            total_realized += holding.realized_pnl

            total_value = _add_known(total_value, holding.current_value)
            total_unrealized = _add_known(total_unrealized, holding.unrealized_pnl)

            bucket = by_type.setdefault(holding.type, AssetTypeBreakdown())
            bucket.invested += holding.total_invested
            bucket.current_value = _add_known(bucket.current_value, holding.current_value)
            bucket.count += 1

        if total_value is None:
            logger.info("Portfolio value incomplete: at least one holding has no known value")

        return PortfolioSummary(
            total_invested=total_invested,
            total_current_value=total_value,
            total_unrealized_pnl=total_unrealized,
            total_realized_pnl=total_realized,
            holdings=holdings,
            by_asset_type=by_type,
        )


def _add_known(total: Decimal | None, value: Decimal | None) -> Decimal | None:
    """total + value, where an unknown on either side makes the result unknown."""
    if total is None or value is None:
        return None
    return total + value
