"""ledgerdb dispatch module - transactional command execution and replay."""

from ledgerdb.dispatch.dispatcher import Dispatcher
from ledgerdb.dispatch.outcome import (
    AppliedEvent,
    CommandFailure,
    CommandReceipt,
    DispatchPhase,
    FailureReason,
    classify,
)
from ledgerdb.dispatch.replay import RowReconstructor

__all__ = [
    "AppliedEvent",
    "CommandFailure",
    "CommandReceipt",
    "DispatchPhase",
    "Dispatcher",
    "FailureReason",
    "RowReconstructor",
    "classify",
]
