"""Event-log entries and reads.

The ``events`` table is append-only. Its auto-incrementing ``id`` is the
store's insertion order and the only ordering key used for replay; two
entries written by the same command share ``created_at``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncConnection

from ledgerdb.schema.compiler import EventLogDescriptor


class LogEntry(BaseModel, frozen=True):
    """One persisted event-log entry.

    Attributes:
        id: Insertion sequence number.
        name: Name of the command that emitted the event.
        table_name: Table of the affected row.
        row_id: Identifier of the affected row.
        actor_id: Actor that ran the command.
        data: Event payload as stored.
        created_at: Time the command started.
    """

    id: int
    name: str
    table_name: str
    row_id: str
    actor_id: str
    data: Any = None
    created_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> LogEntry:
        return cls(
            id=row["id"],
            name=row["name"],
            table_name=row["table_name"],
            row_id=row["row_id"],
            actor_id=row["actor_id"],
            data=row["data"],
            created_at=row["created_at"],
        )


async def fetch_log(
    conn: AsyncConnection, events: EventLogDescriptor, table: str, row_id: str
) -> list[LogEntry]:
    """Read the log of one row in ascending insertion order."""
    result = await conn.execute(events.read, {"table_name": table, "row_id": row_id})
    return [LogEntry.from_db_row(dict(row)) for row in result.mappings().all()]
