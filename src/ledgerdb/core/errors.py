"""Error hierarchy for ledgerdb.

Registration mistakes are raised immediately at start-up. Runtime failures
inside a command dispatch are caught by the dispatcher, rolled back, and
returned as the error side of a Result.

Exception Hierarchy:
    LedgerError (base)
    ├── ConfigError             - Configuration loading issues
    ├── SchemaError             - Invalid schema or unknown table
    ├── RegistrationError       - Start-up registration mistakes
    │   ├── DuplicateCommandError
    │   ├── DuplicateReducerError
    │   ├── CommandDefinitionError
    │   └── RegistryFrozenError
    ├── ValidationError         - Command input rejected by validate()
    ├── PersistenceError        - Database and storage issues
    ├── DispatchError           - Fatal apply-time conditions
    │   ├── MissingRowIdError
    │   └── UnlockedRowError
    └── ReplayError             - Event log cannot be folded
        └── RowNotFoundError
"""

from typing import Any


class LedgerError(Exception):
    """Base exception for all ledgerdb errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dict with additional context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigError(LedgerError):
    """Error from configuration operations.

    Attributes:
        config_key: The configuration key that caused the error.
        config_file: Path to the config file if applicable.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class SchemaError(LedgerError):
    """Invalid schema declaration or reference to an unknown table.

    Attributes:
        table: The table involved, if any.
        column: The column involved, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        column: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.table = table
        self.column = column


class RegistrationError(LedgerError):
    """Base for mistakes made while registering commands and reducers."""


class DuplicateCommandError(RegistrationError):
    """A command with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate command name {name}", details={"command": name})
        self.name = name


class DuplicateReducerError(RegistrationError):
    """A reducer for the same (table, event name) pair is already registered."""

    def __init__(self, table: str, name: str) -> None:
        super().__init__(
            f"Duplicate event handler {name} for table {table}",
            details={"table": table, "event": name},
        )
        self.table = table
        self.name = name


class CommandDefinitionError(RegistrationError):
    """A command definition is internally inconsistent."""


class RegistryFrozenError(RegistrationError):
    """Registration attempted after the registry entered its serving phase."""


class ValidationError(LedgerError):
    """Command input rejected by a validate callback.

    Raise this from ``validate`` or ``plan_actions`` to abort a command.

    Attributes:
        field: The field that failed validation.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field

    def __str__(self) -> str:
        base = self.message
        if self.field:
            base = f"{base} (field: {self.field})"
        if self.details:
            base = f"{base} (details: {self.details})"
        return base


class PersistenceError(LedgerError):
    """Error from database and storage operations.

    Attributes:
        operation: The operation that failed (e.g., "insert", "select").
        table: The database table involved if applicable.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.operation = operation
        self.table = table


class DispatchError(LedgerError):
    """Fatal condition while applying events; aborts the whole command."""


class MissingRowIdError(DispatchError):
    """An insert did not return a usable row identifier."""

    def __init__(self, table: str) -> None:
        super().__init__("failed to get ID from inserted row", details={"table": table})
        self.table = table


class UnlockedRowError(DispatchError):
    """A modification targets a row that was not locked by the mutator."""

    def __init__(self, table: str, row_id: str) -> None:
        super().__init__(
            "Tried to update a row that wasn't requested in mutator",
            details={"table": table, "row_id": row_id},
        )
        self.table = table
        self.row_id = row_id


class ReplayError(LedgerError):
    """The event log of a row cannot be folded into a state.

    Attributes:
        table: The table of the row being reconstructed.
        row_id: The row being reconstructed.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str,
        row_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.table = table
        self.row_id = row_id


class RowNotFoundError(ReplayError):
    """No event-log entries exist for the requested row."""

    def __init__(self, table: str, row_id: str) -> None:
        super().__init__(
            f"Row not found: {table}/{row_id}",
            table=table,
            row_id=row_id,
        )
