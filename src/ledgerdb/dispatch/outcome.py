"""Outcome types of a command dispatch.

``run_command`` returns ``Result[CommandReceipt, CommandFailure]``: a receipt
for a committed transaction, or a failure describing where and why the
transaction was rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from ledgerdb.commands.events import EventKind
from ledgerdb.core.errors import (
    LedgerError,
    MissingRowIdError,
    PersistenceError,
    SchemaError,
    UnlockedRowError,
    ValidationError,
)


class DispatchPhase(StrEnum):
    """States of the dispatch state machine, in order."""

    BEGIN = "begin"
    LOCK = "lock"
    PLAN = "plan"
    APPLY = "apply"
    COMMIT = "commit"


class FailureReason(StrEnum):
    """Why a command was rolled back."""

    INVALID_INPUT = "invalid_input"
    REJECTED = "rejected"
    UNKNOWN_TABLE = "unknown_table"
    MISSING_ROW_ID = "missing_row_id"
    UNLOCKED_ROW = "unlocked_row"
    STORE = "store"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True, slots=True)
class AppliedEvent:
    """An event that was applied and appended to the event log."""

    name: str
    table: str
    row_id: str
    kind: EventKind


@dataclass(frozen=True, slots=True)
class CommandReceipt:
    """Summary of a committed command.

    Attributes:
        command: Command name.
        actor_id: Actor attributed to every log entry.
        applied: Applied events in application order.
        skipped: Events dropped because no reducer matched.
        anomalies: Events ignored because of an event/reducer kind mismatch
            or because they were not built by a command.
    """

    command: str
    actor_id: str
    applied: tuple[AppliedEvent, ...] = field(default_factory=tuple)
    skipped: int = 0
    anomalies: int = 0

    @property
    def created_ids(self) -> list[str]:
        """Row ids created by this command, in creation order."""
        return [e.row_id for e in self.applied if e.kind is EventKind.CREATE]

    @property
    def modified_ids(self) -> list[str]:
        return [e.row_id for e in self.applied if e.kind is EventKind.MODIFY]


def classify(exc: BaseException, phase: DispatchPhase) -> FailureReason:
    """Map an exception raised during dispatch to a FailureReason."""
    if isinstance(exc, PydanticValidationError):
        return FailureReason.INVALID_INPUT
    if isinstance(exc, ValidationError):
        return FailureReason.REJECTED
    if isinstance(exc, MissingRowIdError):
        return FailureReason.MISSING_ROW_ID
    if isinstance(exc, UnlockedRowError):
        return FailureReason.UNLOCKED_ROW
    if isinstance(exc, SchemaError):
        return FailureReason.UNKNOWN_TABLE
    if isinstance(exc, SQLAlchemyError | PersistenceError):
        return FailureReason.STORE
    if phase is DispatchPhase.PLAN:
        # validate() may signal failure with any exception type.
        return FailureReason.REJECTED
    return FailureReason.UNEXPECTED


class CommandFailure(LedgerError):
    """A command that was rolled back.

    Attributes:
        command: Command name.
        phase: Phase in which the failure occurred.
        reason: Classified failure reason.
        cause: The original exception.
    """

    def __init__(
        self,
        command: str,
        phase: DispatchPhase,
        reason: FailureReason,
        cause: BaseException,
    ) -> None:
        super().__init__(
            f"Command {command} rolled back during {phase.value}: {cause}",
            details={"phase": phase.value, "reason": reason.value},
        )
        self.command = command
        self.phase = phase
        self.reason = reason
        self.cause = cause

    @classmethod
    def from_exception(
        cls, exc: BaseException, *, command: str, phase: DispatchPhase
    ) -> CommandFailure:
        """Build a failure, wrapping raw driver errors in PersistenceError."""
        cause = exc
        if isinstance(exc, SQLAlchemyError):
            cause = PersistenceError(
                f"Store operation failed: {exc}",
                operation=phase.value,
                details={"command": command, "error_type": type(exc).__name__},
            )
            cause.__cause__ = exc
        failure = cls(command, phase, classify(exc, phase), cause)
        failure.__cause__ = cause
        return failure
