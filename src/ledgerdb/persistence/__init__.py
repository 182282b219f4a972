"""Persistence layer: engine management and the append-only event log."""

from ledgerdb.persistence.event_log import LogEntry, fetch_log
from ledgerdb.persistence.store import LedgerStore

__all__ = [
    "LedgerStore",
    "LogEntry",
    "fetch_log",
]
