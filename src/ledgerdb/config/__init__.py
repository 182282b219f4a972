"""Configuration module for ledgerdb.

Configuration is read from ~/.ledgerdb/config.yaml (or ``$LEDGERDB_HOME``)
with ``LEDGERDB_*`` environment overrides.

Usage:
    from ledgerdb.config import load_config, load_schema

    config = load_config()
    schema = load_schema(Path("schema.yaml"))
"""

from ledgerdb.config.loader import ensure_config_dir, load_config, load_schema
from ledgerdb.config.models import (
    LedgerConfig,
    LoggingConfig,
    PersistenceConfig,
    default_database_url,
    get_config_dir,
    get_default_config,
)

__all__ = [
    # Models
    "LedgerConfig",
    "LoggingConfig",
    "PersistenceConfig",
    # Loader functions
    "ensure_config_dir",
    "load_config",
    "load_schema",
    # Model helpers
    "default_database_url",
    "get_config_dir",
    "get_default_config",
]
