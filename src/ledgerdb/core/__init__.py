"""ledgerdb core module - shared types and errors."""

from ledgerdb.core.errors import (
    CommandDefinitionError,
    ConfigError,
    DispatchError,
    DuplicateCommandError,
    DuplicateReducerError,
    LedgerError,
    MissingRowIdError,
    PersistenceError,
    RegistrationError,
    RegistryFrozenError,
    ReplayError,
    RowNotFoundError,
    SchemaError,
    UnlockedRowError,
    ValidationError,
)
from ledgerdb.core.types import EventPayload, Result, Row, RowPatch

__all__ = [
    # Types
    "Result",
    "Row",
    "RowPatch",
    "EventPayload",
    # Errors
    "LedgerError",
    "ConfigError",
    "SchemaError",
    "RegistrationError",
    "DuplicateCommandError",
    "DuplicateReducerError",
    "CommandDefinitionError",
    "RegistryFrozenError",
    "ValidationError",
    "PersistenceError",
    "DispatchError",
    "MissingRowIdError",
    "UnlockedRowError",
    "ReplayError",
    "RowNotFoundError",
]
