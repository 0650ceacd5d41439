# ledgerfolio/services/valuation/__init__.py
"""
Valuation Service Package.

Replays the operation ledger into holdings and aggregates a portfolio summary.

Usage:
    from ledgerfolio.services.valuation import ValuationService

    service = ValuationService(ledger, assets, prices, rates)
    holdings = service.get_holdings(user_id=1)
    summary = service.get_portfolio_summary(user_id=1)

Architecture:
    valuation/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Internal data classes
    ├── ledger.py         # FIFO lot replay
    ├── pricing.py        # Pence normalization, currency conversion
    ├── calculators.py    # Holdings calculator, portfolio aggregator
    └── service.py        # ValuationService (orchestrator)

Data Flow:
    Operations → LedgerReplayer → ReplayResult
    ReplayResult + PriceQuote → HoldingsCalculator → HoldingSummary
    HoldingSummary[] → PortfolioAggregator → PortfolioSummary
"""

from ledgerfolio.services.valuation.calculators import HoldingsCalculator, PortfolioAggregator
from ledgerfolio.services.valuation.ledger import LedgerReplayer, sort_operations
from ledgerfolio.services.valuation.pricing import CurrencyConverter, normalize_price
from ledgerfolio.services.valuation.service import ValuationService
from ledgerfolio.services.valuation.types import (
    AssetTypeBreakdown,
    HoldingSummary,
    Lot,
    NormalizedPrice,
    PortfolioSummary,
    PriceQuote,
    ReplayResult,
)

__all__ = [
    # Main service
    "ValuationService",

    # Data types
    "Lot",
    "ReplayResult",
    "PriceQuote",
    "NormalizedPrice",
    "HoldingSummary",
    "AssetTypeBreakdown",
    "PortfolioSummary",

    # Building blocks
    "LedgerReplayer",
    "sort_operations",
    "normalize_price",
    "CurrencyConverter",
    "HoldingsCalculator",
    "PortfolioAggregator",
]
