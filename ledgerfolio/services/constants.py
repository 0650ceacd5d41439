# ledgerfolio/services/constants.py
"""
Centralized constants for the valuation and goal services.

Usage:
    from ledgerfolio.services.constants import PENCE_CURRENCIES, GOAL_ALERT_THRESHOLD
"""

from decimal import Decimal


# =============================================================================
# ARITHMETIC
# =============================================================================

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")
HUNDRED: Decimal = Decimal("100")

# Money amounts smaller than this are division residue (e.g. fees spread
# over a lot), not real profit or loss
MONEY_EPSILON: Decimal = Decimal("1E-12")


# =============================================================================
# PRICE NORMALIZATION
# =============================================================================

# London listings are often quoted in pence. Codes are case-sensitive:
# "GBp" is pence while "GBP" is pounds.
PENCE_CURRENCIES: frozenset[str] = frozenset({"GBp", "GBX"})

# Currency reported after rescaling a pence quote
PENCE_BASE_CURRENCY: str = "GBP"

# Multiplier applied to a pence amount to get pounds
PENCE_TO_POUNDS: Decimal = Decimal("0.01")


# =============================================================================
# GOAL EVALUATION
# =============================================================================

# Progress percentage that triggers the early-warning alert
GOAL_ALERT_THRESHOLD: Decimal = Decimal("80")

# Progress percentage at which a goal counts as achieved
GOAL_ACHIEVED_THRESHOLD: Decimal = Decimal("100")

# Default cap on reported progress (overridable via settings)
DEFAULT_PROGRESS_CAP_PERCENT: Decimal = Decimal("1000")
