"""ledgerdb - event-sourcing command dispatch over a relational store.

Declare tables, commands and reducers; every command runs in one locked
transaction and every applied event lands in an append-only log.

Example:
    # Using CLI
    ledgerdb schema show schema.yaml
    ledgerdb db init schema.yaml

    # Using Python
    from ledgerdb import EventSourcing, LedgerStore
"""

__version__ = "0.4.0"

from ledgerdb.persistence.store import LedgerStore  # noqa: E402
from ledgerdb.system import EventSourcing  # noqa: E402

__all__ = ["EventSourcing", "LedgerStore", "__version__", "main"]


def main() -> None:
    """Main entry point for the ledgerdb CLI."""
    from ledgerdb.cli.main import app

    app()
