"""Row reconstruction from the event log.

``reduce_row`` folds a row's log entries, in insertion order, through the
table's reducers: the first entry must have a creator and seeds the state,
each later entry merges its updater's patch on top. Only the ``events``
table is read; live table storage is never consulted.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncConnection
import structlog

from ledgerdb.core.errors import ReplayError, RowNotFoundError
from ledgerdb.core.types import Row
from ledgerdb.persistence.event_log import LogEntry, fetch_log
from ledgerdb.reducers.registry import (
    CreatorReducer,
    ReducerRegistry,
    UpdaterReducer,
    merge_patch,
)
from ledgerdb.schema.compiler import CompiledSchema, TableDescriptor
from ledgerdb.schema.types import ID_COLUMN

log = structlog.get_logger(__name__)


class RowReconstructor:
    """Derives current row state by replaying the event log."""

    def __init__(self, schema: CompiledSchema, reducers: ReducerRegistry) -> None:
        self._schema = schema
        self._reducers = reducers

    async def reduce_row(self, conn: AsyncConnection, table: str, row_id: str) -> Row:
        """Reconstruct a row from its event log.

        Args:
            conn: Connection to read from. A transaction is opened if none
                is in progress.
            table: Table of the row.
            row_id: Identifier of the row.

        Returns:
            Row mapping with ``id`` and every declared column.

        Raises:
            SchemaError: If the table is unknown.
            RowNotFoundError: If the row has no log entries.
            ReplayError: If the first entry has no creator reducer.
        """
        descriptor = self._schema.table(table)
        if conn.in_transaction():
            entries = await fetch_log(conn, self._schema.events, table, row_id)
        else:
            async with conn.begin():
                entries = await fetch_log(conn, self._schema.events, table, row_id)

        if not entries:
            raise RowNotFoundError(table, row_id)
        state = self.fold(descriptor, row_id, entries)
        log.debug("replay.row.reduced", table=table, row_id=row_id, entries=len(entries))
        return state

    def fold(self, descriptor: TableDescriptor, row_id: str, entries: list[LogEntry]) -> Row:
        """Fold ordered log entries of one row into its state."""
        table = descriptor.name
        first, *rest = entries

        creator = self._reducers.lookup(table, first.name)
        if not isinstance(creator, CreatorReducer):
            raise ReplayError(
                f"First log entry {first.name} of {table}/{row_id} has no creator reducer",
                table=table,
                row_id=row_id,
                details={"entry_id": first.id},
            )
        created = creator.fn(dict(first.data or {}))
        state: Row = {ID_COLUMN: row_id}
        state.update(zip(descriptor.columns, descriptor.project(created), strict=True))

        for entry in rest:
            reducer = self._reducers.lookup(table, entry.name)
            if reducer is None:
                log.debug("replay.entry.skipped", table=table, row_id=row_id, event_name=entry.name)
                continue
            if not isinstance(reducer, UpdaterReducer):
                log.warning(
                    "replay.reducer.kind_mismatch",
                    table=table,
                    row_id=row_id,
                    event_name=entry.name,
                    entry_id=entry.id,
                )
                continue
            patch = reducer.fn(dict(state), dict(entry.data or {}))
            state = merge_patch(
                state, {k: v for k, v in patch.items() if k in descriptor.columns}
            )
        return state
