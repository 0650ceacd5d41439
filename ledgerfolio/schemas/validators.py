# ledgerfolio/schemas/validators.py
"""
Field validators shared by the operation and goal schemas.

Currencies come in two flavours: ISO 4217 codes, normalized to upper case,
and the London pence quote codes (GBp, GBX), which are case-sensitive and
must reach the engine untouched.
"""

import re
from datetime import datetime, timezone

from ledgerfolio.services.constants import PENCE_CURRENCIES

ISO_CURRENCY = re.compile(r"^[A-Z]{3}$")


def validate_currency(value: str) -> str:
    """
    Upper-case and check an ISO currency code ("eur " -> "EUR").

    Raises:
        ValueError: Empty or not three letters
    """
    if not value or not value.strip():
        raise ValueError("Currency cannot be empty")

    code = value.strip().upper()
    if ISO_CURRENCY.match(code) is None:
        raise ValueError(f"'{value}' is not a 3-letter ISO currency code (e.g. USD, EUR)")
    return code


def validate_quote_currency(value: str) -> str:
    """Like validate_currency, but GBp/GBX pass through as sent."""
    if value and value.strip() in PENCE_CURRENCIES:
        return value.strip()
    return validate_currency(value)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def validate_datetime_range(
    start: datetime | None,
    end: datetime | None,
) -> tuple[datetime | None, datetime | None]:
    """
    Coerce both ends to UTC and check their order.

    Raises:
        ValueError: start is after end
    """
    if start is not None:
        start = ensure_utc(start)
    if end is not None:
        end = ensure_utc(end)
    if start is not None and end is not None and start > end:
        raise ValueError("start must be before or equal to end")
    return start, end
