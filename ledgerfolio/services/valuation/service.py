# ledgerfolio/services/valuation/service.py
"""
Valuation Service - orchestrator for holdings and portfolio valuation.

Entry points:
- get_holdings(): One HoldingSummary per asset with a position or realized P&L
- get_portfolio_summary(): Totals and per-asset-type breakdown

Design Principles:
- Dependency Injection: every collaborator is passed to the constructor
- Stateless: each call re-reads the ledger and recomputes from scratch
- Failure isolation: a failing asset or price lookup affects only that asset
- No HTTP Knowledge: raises domain exceptions, never HTTP errors

Usage:
    service = ValuationService(
        ledger=SqlLedgerSource(db),
        assets=SqlAssetRepository(db),
        prices=SqlPriceProvider(db),
        rates=SqlExchangeRateProvider(db),
    )
    summary = service.get_portfolio_summary(user_id=1)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from ledgerfolio.services.valuation.calculators import HoldingsCalculator, PortfolioAggregator
from ledgerfolio.services.valuation.ledger import LedgerReplayer, sort_operations
from ledgerfolio.services.valuation.pricing import CurrencyConverter
from ledgerfolio.services.valuation.types import HoldingSummary, PortfolioSummary, PriceQuote
from ledgerfolio.utils.context import valuation_context

if TYPE_CHECKING:
    from ledgerfolio.models import InvestmentOperation
    from ledgerfolio.services.protocols import (
        AssetRepository,
        ExchangeRateProvider,
        LedgerSource,
        PriceProvider,
    )

logger = logging.getLogger(__name__)


class ValuationService:
    """
    Main service for holdings and portfolio valuation.

    Attributes:
        converter: CurrencyConverter shared with goal evaluation
    """

    def __init__(
            self,
            ledger: LedgerSource,
            assets: AssetRepository,
            prices: PriceProvider,
            rates: ExchangeRateProvider,
    ) -> None:
        self._ledger = ledger
        self._assets = assets
        self._prices = prices
        self.converter = CurrencyConverter(rates)

        self._replayer = LedgerReplayer()
        self._holdings_calc = HoldingsCalculator(self.converter)
        self._aggregator = PortfolioAggregator()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_holdings(self, user_id: int) -> list[HoldingSummary]:
        """
        Build one HoldingSummary per asset the user has traded.

        Assets whose position is closed with zero realized P&L are omitted.

        Returns:
            Holdings sorted by current value (or invested amount) descending
        """
        with valuation_context(user_id):
            operations = self._ledger.list_operations(user_id)
            grouped = self._group_by_asset(operations)

            logger.info(
                f"Valuing {len(grouped)} assets from {len(operations)} operations for user {user_id}"
            )

            holdings: list[HoldingSummary] = []
            for asset_id, asset_operations in grouped.items():
                holding = self._value_asset(asset_id, asset_operations)
                if holding is not None:
                    holdings.append(holding)

            return HoldingsCalculator.sort_holdings(holdings)

    build_holdings = get_holdings

    def get_portfolio_summary(self, user_id: int) -> PortfolioSummary:
        """Aggregate the user's holdings into a PortfolioSummary."""
        return self._aggregator.summarize(self.get_holdings(user_id))

    def summarize(self, holdings: list[HoldingSummary]) -> PortfolioSummary:
        """Aggregate already-built holdings."""
        return self._aggregator.summarize(holdings)

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    @staticmethod
    def _group_by_asset(
            operations: list[InvestmentOperation],
    ) -> dict[int, list[InvestmentOperation]]:
        grouped: dict[int, list[InvestmentOperation]] = defaultdict(list)
        for operation in sort_operations(operations):
            grouped[operation.asset_id].append(operation)
        return dict(grouped)

    def _value_asset(
            self,
            asset_id: int,
            operations: list[InvestmentOperation],
    ) -> HoldingSummary | None:
        try:
            asset = self._assets.get_asset(asset_id)
        except Exception:
            logger.exception(f"Asset lookup failed for asset {asset_id}, skipping")
            return None

        if asset is None:
            logger.warning(f"Asset {asset_id} not found, skipping {len(operations)} operations")
            return None

        replay = self._replayer.replay(operations, presorted=True)
        if not replay.is_reportable:
            logger.debug(f"Asset {asset_id} closed with no realized P&L, omitted")
            return None

        quote = self._latest_quote(asset_id) if replay.has_position else None
        return self._holdings_calc.calculate(asset, replay, quote)

    def _latest_quote(self, asset_id: int) -> PriceQuote | None:
        try:
            return self._prices.get_latest_price(asset_id)
        except Exception:
            logger.exception(f"Price lookup failed for asset {asset_id}")
            return None
