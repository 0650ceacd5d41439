# ledgerfolio/utils/context.py
"""
Evaluation context for log correlation.

Stores per-call data that log records pick up automatically:
- Correlation ID supplied by the calling service (request id, job id)
- User ID whose ledger is being valued

Uses contextvars so concurrent valuations in threads or tasks never see
each other's context.

Usage:
    from ledgerfolio.utils.context import valuation_context

    with valuation_context(user_id=42, correlation_id="req-1"):
        service.get_portfolio_summary(42)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_user_id_var: ContextVar[int | None] = ContextVar("user_id", default=None)


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """Return the current correlation ID, or None if not set."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current context.

    Args:
        correlation_id: Identifier supplied by the caller
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID."""
    _correlation_id_var.set(None)


# =============================================================================
# USER ID
# =============================================================================

def get_user_id() -> int | None:
    """Return the user whose ledger is currently being processed."""
    return _user_id_var.get()


@contextmanager
def valuation_context(
        user_id: int,
        correlation_id: str | None = None,
) -> Iterator[None]:
    """
    Bind a user (and optionally a correlation ID) for the duration of a block.

    Previous values are restored on exit, so contexts nest safely.
    """
    user_token = _user_id_var.set(user_id)
    correlation_token = None
    if correlation_id is not None:
        correlation_token = _correlation_id_var.set(correlation_id)
    try:
        yield
    finally:
        _user_id_var.reset(user_token)
        if correlation_token is not None:
            _correlation_id_var.reset(correlation_token)
