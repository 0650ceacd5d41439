# ledgerfolio/utils/__init__.py
"""
Cross-cutting utilities:
- logging: Logging configuration with correlation/user context
- context: contextvars holding the current correlation ID and user

Usage:
    from ledgerfolio.utils import setup_logging, valuation_context
"""

from ledgerfolio.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_user_id,
    valuation_context,
)
from ledgerfolio.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_user_id",
    "valuation_context",
]
