"""Unit tests for ledgerdb.persistence.store."""

from datetime import UTC, datetime

import pytest
from sqlalchemy import inspect

from ledgerdb.config.models import PersistenceConfig
from ledgerdb.core.errors import PersistenceError
from ledgerdb.persistence.store import LedgerStore
from ledgerdb.schema.compiler import compile_schema

SCHEMA = compile_schema({"items": {"title": "text", "qty": "int4"}})


class TestInitialization:
    """Tests for LedgerStore.initialize()."""

    async def test_creates_tables(self, tmp_path) -> None:
        """initialize() creates the declared tables and the event log."""
        store = LedgerStore(SCHEMA, f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
        await store.initialize()

        async with store.connect() as conn:
            names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        await store.close()

        assert set(names) == {"items", "events"}

    async def test_initialize_is_idempotent(self, tmp_path) -> None:
        store = LedgerStore(SCHEMA, f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
        await store.initialize()
        await store.initialize()
        await store.close()

    async def test_creates_parent_directory(self, tmp_path) -> None:
        db_path = tmp_path / "nested" / "dir" / "ledger.db"
        store = LedgerStore(SCHEMA, f"sqlite+aiosqlite:///{db_path}")
        await store.initialize()
        await store.close()
        assert db_path.exists()

    async def test_in_memory_database(self) -> None:
        """An in-memory database keeps its tables across connections."""
        store = LedgerStore(SCHEMA, "sqlite+aiosqlite:///:memory:")
        await store.initialize()
        assert await store.read_log("items", "row-1") == []
        await store.close()

    async def test_default_url_uses_config_dir(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("LEDGERDB_HOME", str(tmp_path))
        store = LedgerStore(SCHEMA)
        assert store.database_url == f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"

    def test_from_config(self, tmp_path) -> None:
        config = PersistenceConfig(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}",
            sqlite_busy_timeout=1.5,
        )
        store = LedgerStore.from_config(SCHEMA, config)
        assert store.database_url == config.database_url
        assert store.schema is SCHEMA

    def test_engine_before_initialize_raises(self) -> None:
        store = LedgerStore(SCHEMA, "sqlite+aiosqlite:///:memory:")
        with pytest.raises(PersistenceError):
            _ = store.engine


class TestReadLog:
    """Tests for LedgerStore.read_log()."""

    async def test_entries_in_insertion_order(self, tmp_path) -> None:
        """Entries come back ordered by append sequence, not timestamp."""
        store = LedgerStore(SCHEMA, f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
        await store.initialize()
        events = SCHEMA.events
        later = datetime(2026, 5, 1, tzinfo=UTC)
        earlier = datetime(2026, 1, 1, tzinfo=UTC)

        async with store.connect() as conn, conn.begin():
            for name, stamp in (("first", later), ("second", earlier)):
                await conn.execute(
                    events.append,
                    events.append_params([name, "items", "row-1", "actor", {"n": name}, stamp]),
                )
            await conn.execute(
                events.append,
                events.append_params(["other", "items", "row-2", "actor", None, later]),
            )

        entries = await store.read_log("items", "row-1")
        await store.close()

        assert [e.name for e in entries] == ["first", "second"]
        assert entries[0].id < entries[1].id
        assert entries[0].data == {"n": "first"}
        assert entries[0].table_name == "items"

    async def test_read_log_before_initialize_raises(self) -> None:
        store = LedgerStore(SCHEMA, "sqlite+aiosqlite:///:memory:")
        with pytest.raises(PersistenceError):
            await store.read_log("items", "row-1")
