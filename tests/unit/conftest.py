"""Shared fixtures: a counter schema wired to commands, reducers and a store."""

from typing import Any

from pydantic import BaseModel
import pytest
from sqlalchemy.ext.asyncio import AsyncConnection

from ledgerdb.commands import LockedRows, LockTarget
from ledgerdb.core.errors import ValidationError
from ledgerdb.persistence.store import LedgerStore
from ledgerdb.system import EventSourcing

COUNTER_SCHEMA: dict[str, dict[str, str]] = {
    "counters": {"name": "text", "value": "int4", "tags": "jsonb"},
    "audits": {"counter_id": "uuid", "note": "text"},
}


class CounterInput(BaseModel):
    name: str
    value: int = 0


class IncrementInput(BaseModel):
    counter_id: str


async def accept(conn: AsyncConnection, input: Any, locked: LockedRows) -> None:
    return None


async def locked_counter(conn: AsyncConnection, input: Any, locked: LockedRows) -> str:
    if "counter" not in locked:
        raise ValidationError("Counter does not exist", field="counter_id")
    return input.counter_id


def lock_counter(input: Any) -> dict[str, LockTarget]:
    return {"counter": LockTarget("counters", input.counter_id)}


@pytest.fixture
def actor_id() -> str:
    return "7d7d2a4e-3f0e-4b1e-9d55-0c8c8f0a1b2c"


@pytest.fixture
def counter_system() -> EventSourcing:
    """EventSourcing with create_counter / increment registered, not yet frozen."""
    system = EventSourcing(COUNTER_SCHEMA)

    create_counter = system.create_command(
        name="create_counter",
        kind="create",
        table="counters",
        input_model=CounterInput,
        validate=accept,
    )
    increment = system.create_command(
        name="increment",
        kind="modify",
        table="counters",
        input_model=IncrementInput,
        mutator=lock_counter,
        validate=locked_counter,
    )

    counters = system.reducer("counters")
    counters.creator(create_counter, lambda data: {"name": data["name"], "value": data["value"]})
    counters.updater(increment, lambda prev, data: {"value": prev["value"] + 1})
    return system


@pytest.fixture
async def store(tmp_path, counter_system: EventSourcing):
    """Initialized LedgerStore on a file-backed SQLite database."""
    db_path = tmp_path / "ledger.db"
    ledger_store = LedgerStore(counter_system.schema, f"sqlite+aiosqlite:///{db_path}")
    await ledger_store.initialize()
    yield ledger_store
    await ledger_store.close()
