"""ledgerdb commands module - command registry and the events it builds."""

from ledgerdb.commands.events import (
    CreationEvent,
    Event,
    EventKind,
    ModificationEvent,
    split_table,
)
from ledgerdb.commands.registry import (
    Command,
    CommandKind,
    CommandRegistry,
    LockedRows,
    LockTarget,
    Mutator,
    PlanActions,
    Validate,
)

__all__ = [
    "Command",
    "CommandKind",
    "CommandRegistry",
    "CreationEvent",
    "Event",
    "EventKind",
    "LockTarget",
    "LockedRows",
    "ModificationEvent",
    "Mutator",
    "PlanActions",
    "Validate",
    "split_table",
]
