# ledgerfolio/config.py
"""
Settings for the valuation engine and its SQLAlchemy adapters.

Every field can be set through an environment variable of the same name
(upper case) or a .env file next to the package:

    ENVIRONMENT=production
    DATABASE_URL=postgresql://ledgerfolio:secret@db:5432/ledgerfolio
    LOG_FORMAT=json
    GOAL_PROGRESS_CAP_PERCENT=1000
    FX_RATE_MAX_AGE_HOURS=1

Database rules per environment:
    test         DATABASE_URL optional, defaults to in-memory SQLite
    development  SQLite accepted with a warning
    production   must be PostgreSQL

Outside tests DATABASE_URL is only needed once an engine is built
(ledgerfolio.database.create_db_engine), so the engine can be imported and
used with in-memory collaborators without one.
"""
import warnings
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"

IN_MEMORY_SQLITE = "sqlite:///:memory:"
POSTGRES_SCHEMES = ("postgresql://", "postgresql+psycopg2://")


class Settings(BaseSettings):
    """Environment-driven settings; see the module docstring for variables."""

    environment: Literal["development", "test", "production"] = "development"

    # Logging (ledgerfolio.utils.logging.setup_logging)
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    log_format: Literal["text", "json"] = "text"

    # Persistence (ledgerfolio.database)
    database_url: str | None = Field(default=None, description="SQLAlchemy URL of the ledger database")
    debug: bool = Field(default=False, description="Echo SQL statements")
    app_name: str = "ledgerfolio"

    # Valuation engine
    goal_progress_cap_percent: Decimal = Field(
        default=Decimal("1000"),
        gt=0,
        description="Goal progress above this percentage is reported as the cap",
    )
    fx_rate_max_age_hours: int = Field(
        default=1,
        ge=0,
        description="Stored rates older than this are still used, but logged as stale",
    )

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_database_url(self) -> "Settings":
        if self.database_url is None:
            if self.is_test:
                object.__setattr__(self, "database_url", IN_MEMORY_SQLITE)
            return self

        if self.is_production and not self.database_url.lower().startswith(POSTGRES_SCHEMES):
            raise ValueError(
                f"Production requires PostgreSQL, DATABASE_URL starts with "
                f"'{self.database_url.split(':', 1)[0]}'"
            )

        if self.environment == "development" and self.is_sqlite:
            warnings.warn(
                "SQLite stores NUMERIC amounts as floats; valuations may differ "
                "from PostgreSQL in the last decimal places",
                UserWarning,
                stacklevel=2,
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        return bool(self.database_url) and self.database_url.lower().startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"


settings = Settings()
