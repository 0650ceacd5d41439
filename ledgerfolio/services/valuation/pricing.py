# ledgerfolio/services/valuation/pricing.py
"""
Price normalization and currency conversion.

London listings are commonly quoted in pence ("GBp" or "GBX"). Treating such
a quote as pounds overstates a position 100×, so every raw quote and every
currency conversion goes through normalize_price() first.

Conventions:
    ExchangeRateProvider.get_rate(from, to) returns rate where
    1 from_currency = rate × to_currency, so: amount_to = amount_from × rate
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from ledgerfolio.services.constants import (
    ONE,
    PENCE_BASE_CURRENCY,
    PENCE_CURRENCIES,
    PENCE_TO_POUNDS,
    ZERO,
)
from ledgerfolio.services.valuation.types import NormalizedPrice

if TYPE_CHECKING:
    from ledgerfolio.services.protocols import ExchangeRateProvider

logger = logging.getLogger(__name__)


def is_pence_currency(currency: str | None) -> bool:
    """True for GBp/GBX. Case-sensitive: GBP is pounds."""
    return currency in PENCE_CURRENCIES


def normalize_price(price: Decimal, currency: str) -> NormalizedPrice:
    """
    Express a raw quote in its canonical currency.

    Example:
        normalize_price(Decimal("150"), "GBp") -> NormalizedPrice(Decimal("1.50"), "GBP")
        normalize_price(Decimal("150"), "USD") -> NormalizedPrice(Decimal("150"), "USD")
    """
    if is_pence_currency(currency):
        return NormalizedPrice(price=price * PENCE_TO_POUNDS, currency=PENCE_BASE_CURRENCY)
    return NormalizedPrice(price=price, currency=currency)


def canonical_currency(currency: str) -> str:
    """Currency a normalized amount of `currency` is expressed in."""
    return PENCE_BASE_CURRENCY if is_pence_currency(currency) else currency


class CurrencyConverter:
    """
    Converts amounts between currencies using an exchange-rate provider.

    Both sides are normalized first, so pence <-> pounds never needs a rate
    and a GBp amount converts to USD through the GBP/USD rate.

    Returns None (never raises) when no rate is available: a missing rate is
    missing market data, not an error.
    """

    def __init__(self, rate_provider: ExchangeRateProvider) -> None:
        self._rates = rate_provider

    def get_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        """Rate between two canonical currencies, or None."""
        if from_currency.upper() == to_currency.upper():
            return ONE
        try:
            rate = self._rates.get_rate(from_currency, to_currency)
        except Exception:
            logger.exception(f"Exchange-rate lookup failed for {from_currency}/{to_currency}")
            return None
        if rate is None:
            logger.warning(f"No exchange rate available for {from_currency}/{to_currency}")
            return None
        if rate <= 0:
            logger.warning(f"Ignoring non-positive rate {rate} for {from_currency}/{to_currency}")
            return None
        return Decimal(rate)

    def convert(
            self,
            amount: Decimal,
            from_currency: str,
            to_currency: str,
    ) -> Decimal | None:
        """
        Convert `amount` from one currency to another.

        Args:
            amount: Amount expressed in from_currency (may be a pence code)
            from_currency: Source currency code
            to_currency: Target currency code (may be a pence code)

        Returns:
            Converted amount, or None if no rate is available. Zero converts
            to zero without a rate lookup.
        """
        if amount == ZERO:
            return ZERO

        source = normalize_price(amount, from_currency)
        target_canonical = canonical_currency(to_currency)

        rate = self.get_rate(source.currency, target_canonical)
        if rate is None:
            return None

        converted = source.price * rate
        if is_pence_currency(to_currency):
            converted = converted / PENCE_TO_POUNDS
        return converted
