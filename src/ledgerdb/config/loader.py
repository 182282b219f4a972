"""Configuration and schema loading for ledgerdb.

Functions:
    load_config: Load configuration from YAML with environment overrides
    load_schema: Load a declarative table schema from YAML
    ensure_config_dir: Ensure the configuration directory exists
"""

import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError as PydanticValidationError
import yaml

from ledgerdb.config.models import LedgerConfig, get_config_dir
from ledgerdb.core.errors import ConfigError, SchemaError
from ledgerdb.schema.types import TableColumns, normalize_schema

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "LEDGERDB_DATABASE_URL": ("persistence", "database_url"),
    "LEDGERDB_LOG_LEVEL": ("logging", "level"),
    "LEDGERDB_LOG_MODE": ("logging", "mode"),
}


def ensure_config_dir() -> Path:
    """Create the configuration directory and its logs/ subdirectory."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "logs").mkdir(exist_ok=True)
    return config_dir


def _read_yaml(path: Path) -> Any:
    try:
        with path.open() as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML file: {e}",
            config_file=str(path),
            details={"yaml_error": str(e)},
        ) from e


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            section_dict = dict(config_dict.get(section) or {})
            section_dict[key] = value.lower() if section == "logging" else value
            config_dict[section] = section_dict
    return config_dict


def load_config(config_path: Path | None = None) -> LedgerConfig:
    """Load configuration from YAML.

    A missing default config file yields the default configuration; a
    missing explicit path is an error. Values from ``LEDGERDB_*`` environment
    variables (including a ``.env`` file in the working directory) override
    the file.

    Args:
        config_path: Path to config file. Defaults to ~/.ledgerdb/config.yaml.

    Returns:
        Validated LedgerConfig instance.

    Raises:
        ConfigError: If the file is missing, malformed, or fails validation.
    """
    load_dotenv(find_dotenv(usecwd=True))

    explicit = config_path is not None
    if config_path is None:
        config_path = get_config_dir() / "config.yaml"

    config_dict: dict[str, Any] = {}
    if config_path.exists():
        loaded = _read_yaml(config_path)
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(
                "Configuration file must contain a mapping",
                config_file=str(config_path),
            )
        config_dict = loaded or {}
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            config_file=str(config_path),
        )

    try:
        return LedgerConfig.model_validate(_apply_env_overrides(config_dict))
    except PydanticValidationError as e:
        error_messages = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            error_messages.append(f"  - {loc}: {error['msg']}")

        raise ConfigError(
            "Configuration validation failed:\n" + "\n".join(error_messages),
            config_file=str(config_path),
            details={"validation_errors": e.errors()},
        ) from e


def load_schema(schema_path: Path) -> dict[str, TableColumns]:
    """Load a table schema from YAML.

    The file maps table names to ordered mappings of column name -> type tag:

        items:
          name: text
          value: int4

    Raises:
        ConfigError: If the file is missing, malformed, or not a valid schema.
    """
    if not schema_path.exists():
        raise ConfigError(
            f"Schema file not found: {schema_path}",
            config_file=str(schema_path),
        )

    loaded = _read_yaml(schema_path)
    if not isinstance(loaded, dict) or not all(
        isinstance(columns, dict) for columns in loaded.values()
    ):
        raise ConfigError(
            "Schema file must map table names to column mappings",
            config_file=str(schema_path),
        )

    try:
        return normalize_schema(loaded)
    except SchemaError as e:
        raise ConfigError(
            f"Invalid schema: {e.message}",
            config_file=str(schema_path),
            details={"table": e.table, "column": e.column},
        ) from e
