"""LedgerStore: engine and connection management for a compiled schema.

Uses SQLAlchemy Core with an async driver: aiosqlite for local files and
tests, asyncpg for PostgreSQL.

SQLite has no ``SELECT ... FOR UPDATE``. To keep concurrent commands from
losing updates, every transaction on a SQLite engine starts with
``BEGIN IMMEDIATE``, which takes the database write lock up front; a second
writer waits up to ``sqlite_busy_timeout`` seconds for it. On PostgreSQL the
compiled lock statements do the work and nothing extra is installed.

An in-memory SQLite database lives on one shared connection, so the store
hands it out to one caller at a time: concurrent ``connect()`` calls wait
for the previous connection to be released.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool
import structlog

from ledgerdb.config.models import PersistenceConfig, default_database_url
from ledgerdb.core.errors import PersistenceError
from ledgerdb.persistence.event_log import LogEntry, fetch_log
from ledgerdb.schema.compiler import CompiledSchema
from ledgerdb.schema.types import EVENTS_TABLE

log = structlog.get_logger(__name__)


def _is_memory_sqlite(database: str | None) -> bool:
    return database in (None, "", ":memory:") or (
        database is not None and database.startswith("file::memory:")
    )


def _install_sqlite_locking(engine: AsyncEngine) -> None:
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection: Any, _record: Any) -> None:
        # Stop the driver from issuing its own deferred BEGIN.
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def _begin_immediate(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class LedgerStore:
    """Database access for one compiled schema.

    Usage:
        store = LedgerStore(schema, "sqlite+aiosqlite:///ledger.db")
        await store.initialize()

        async with store.connect() as conn:
            result = await system.run_command(conn, "increment", payload, actor_id)

        await store.close()
    """

    def __init__(
        self,
        schema: CompiledSchema,
        database_url: str | None = None,
        *,
        echo: bool = False,
        sqlite_busy_timeout: float = 5.0,
    ) -> None:
        """Initialize LedgerStore.

        Args:
            schema: Compiled schema whose tables this store manages.
            database_url: SQLAlchemy async URL. Defaults to
                ~/.ledgerdb/ledger.db (or under ``$LEDGERDB_HOME``).
            echo: Log every SQL statement.
            sqlite_busy_timeout: Seconds a SQLite writer waits for the lock.
        """
        self._schema = schema
        self._database_url = database_url or default_database_url()
        self._echo = echo
        self._sqlite_busy_timeout = sqlite_busy_timeout
        self._engine: AsyncEngine | None = None
        # Set for in-memory SQLite, where every caller shares one connection.
        self._shared_lock: asyncio.Lock | None = None

    @classmethod
    def from_config(cls, schema: CompiledSchema, config: PersistenceConfig) -> LedgerStore:
        return cls(
            schema,
            config.database_url,
            echo=config.echo,
            sqlite_busy_timeout=config.sqlite_busy_timeout,
        )

    @property
    def schema(self) -> CompiledSchema:
        return self._schema

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def engine(self) -> AsyncEngine:
        """The underlying engine.

        Raises:
            PersistenceError: If initialize() has not been called.
        """
        if self._engine is None:
            raise PersistenceError(
                "LedgerStore not initialized. Call initialize() first.",
                operation="engine",
            )
        return self._engine

    def _create_engine(self) -> AsyncEngine:
        url = make_url(self._database_url)
        if url.get_backend_name() != "sqlite":
            return create_async_engine(url, echo=self._echo)

        connect_args = {"timeout": self._sqlite_busy_timeout}
        if _is_memory_sqlite(url.database):
            # A single shared connection keeps the in-memory database alive.
            self._shared_lock = asyncio.Lock()
            engine = create_async_engine(
                url, echo=self._echo, connect_args=connect_args, poolclass=StaticPool
            )
        else:
            if url.database:
                Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
            engine = create_async_engine(
                url, echo=self._echo, connect_args=connect_args, poolclass=NullPool
            )
        _install_sqlite_locking(engine)
        return engine

    async def initialize(self) -> None:
        """Create the engine and every table of the schema, plus the event log.

        Idempotent: existing tables are left untouched.

        Raises:
            PersistenceError: If the tables cannot be created.
        """
        if self._engine is None:
            self._engine = self._create_engine()

        try:
            async with self.connect() as conn, conn.begin():
                await conn.run_sync(self._schema.metadata.create_all)
        except Exception as e:
            raise PersistenceError(
                f"Failed to initialize store: {e}",
                operation="create_all",
            ) from e

        log.info(
            "store.initialized",
            dialect=self._engine.dialect.name,
            tables=len(self._schema.tables),
        )

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """Open a connection with no transaction in progress.

        The connection is the unit handed to ``run_command`` and
        ``reduce_row``; one connection serves one call at a time. On an
        in-memory database this waits until no other caller holds the shared
        connection, so do not nest ``connect()`` or ``read_log()`` inside it.
        """
        engine = self.engine
        if self._shared_lock is None:
            async with engine.connect() as conn:
                yield conn
            return

        async with self._shared_lock, engine.connect() as conn:
            yield conn

    async def read_log(self, table: str, row_id: str) -> list[LogEntry]:
        """Read the event log of one row in insertion order.

        Raises:
            PersistenceError: If the query fails.
        """
        try:
            async with self.connect() as conn, conn.begin():
                return await fetch_log(conn, self._schema.events, table, row_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Failed to read event log: {e}",
                operation="select",
                table=EVENTS_TABLE,
                details={"table_name": table, "row_id": row_id},
            ) from e

    async def close(self) -> None:
        """Dispose of the engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._shared_lock = None
