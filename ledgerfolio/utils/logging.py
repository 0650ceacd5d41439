# ledgerfolio/utils/logging.py
"""
Logging setup for hosts embedding the valuation engine.

Engine modules only do `logger = logging.getLogger(__name__)`; a host calls
setup_logging() once at startup to get a stdout handler whose records carry
the correlation ID and the user being valued (see utils.context).

What the engine logs:
    DEBUG    replay steps, rate lookups
    INFO     one line per valuation or goal pass, alerts sent
    WARNING  missing quotes or rates, oversold ledgers
    ERROR    a collaborator failed for one asset or goal (with traceback)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from ledgerfolio.config import settings
from ledgerfolio.utils.context import get_correlation_id, get_user_id

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(correlation_id)s user=%(user_id)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"
NO_USER = "-"

# Quietened to WARNING unless the host opts out
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Attributes every LogRecord has; anything else came in through `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "correlation_id", "user_id", "taskName",
}


class ContextFilter(logging.Filter):
    """Stamp records with correlation_id and user_id from the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        user_id = get_user_id()
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        record.user_id = NO_USER if user_id is None else user_id
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, e.g.:

        {"timestamp": "...", "level": "WARNING",
         "logger": "ledgerfolio.services.valuation.calculators",
         "correlation_id": "req-1", "user_id": 42,
         "message": "No exchange rate GBP->USD for asset 7"}

    Values passed through `extra=` go under "extra"; non-JSON values are
    stringified.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "user_id": getattr(record, "user_id", NO_USER),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra
        return json.dumps(entry, default=str)


def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Replace the root logger's handlers with one context-aware stdout handler.

    Args:
        level: Level name; settings.log_level when omitted.
        log_format: "text" or "json"; settings.log_format when omitted.
        suppress_noisy_loggers: Raise NOISY_LOGGERS to WARNING.
    """
    level_name = level or settings.log_level
    log_level = _get_log_level(level_name)
    format_name = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    if format_name == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured: level={level_name}, format={format_name}")


def _get_log_level(level_name: str) -> int:
    """
    Raises:
        ValueError: Unknown level name
    """
    key = level_name.strip().upper()
    if key not in LEVELS:
        raise ValueError(f"Invalid log level: '{level_name}'. Valid levels are: {', '.join(LEVELS)}")
    return LEVELS[key]
