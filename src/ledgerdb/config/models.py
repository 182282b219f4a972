"""Pydantic models for ledgerdb configuration.

Classes:
    PersistenceConfig: Database connection settings
    LoggingConfig: Logging settings
    LedgerConfig: Top-level configuration combining all sections
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_DATABASE_FILE = "ledger.db"


def get_config_dir() -> Path:
    """Get the ledgerdb configuration directory.

    Returns:
        ``$LEDGERDB_HOME`` if set, otherwise ~/.ledgerdb/
    """
    home = os.environ.get("LEDGERDB_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".ledgerdb"


def default_database_url() -> str:
    return f"sqlite+aiosqlite:///{get_config_dir() / DEFAULT_DATABASE_FILE}"


class PersistenceConfig(BaseModel, frozen=True):
    """Database configuration.

    Attributes:
        database_url: SQLAlchemy async URL, e.g.
            ``postgresql+asyncpg://user@host/db`` or
            ``sqlite+aiosqlite:///path/to/ledger.db``.
        echo: Log every SQL statement.
        sqlite_busy_timeout: Seconds a SQLite writer waits for the database
            lock before failing.
    """

    database_url: str = Field(default_factory=default_database_url)
    echo: bool = False
    sqlite_busy_timeout: float = Field(default=5.0, gt=0.0)

    @field_validator("database_url")
    @classmethod
    def validate_async_driver(cls, v: str) -> str:
        """Require an async driver in the URL."""
        if "+" not in v.split("://", 1)[0]:
            msg = f"database_url must name an async driver (e.g. sqlite+aiosqlite): {v}"
            raise ValueError(msg)
        return v


class LoggingConfig(BaseModel, frozen=True):
    """Logging configuration.

    Attributes:
        level: Minimum log level.
        mode: "dev" for console output, "prod" for JSON.
        log_path: Log file path relative to the config dir, or None to
            disable file logging.
    """

    level: Literal["debug", "info", "warning", "error"] = "info"
    mode: Literal["dev", "prod"] = "dev"
    log_path: str | None = "logs/ledgerdb.log"


class LedgerConfig(BaseModel, frozen=True):
    """Top-level ledgerdb configuration.

    Attributes:
        persistence: Database settings.
        logging: Logging settings.
    """

    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_config() -> LedgerConfig:
    return LedgerConfig()
