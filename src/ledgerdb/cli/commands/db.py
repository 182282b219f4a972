"""Database command group for ledgerdb.

Create the tables of a schema and read the event log of a row.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from ledgerdb.cli.formatters.panels import print_error, print_info, print_success
from ledgerdb.cli.formatters.tables import create_log_table, print_table
from ledgerdb.config.loader import load_config, load_schema
from ledgerdb.config.models import LedgerConfig
from ledgerdb.core.errors import LedgerError
from ledgerdb.observability.logging import configure_logging, set_console_logging
from ledgerdb.persistence.event_log import LogEntry
from ledgerdb.persistence.store import LedgerStore
from ledgerdb.schema.compiler import compile_schema

app = typer.Typer(
    name="db",
    help="Create tables and read the event log.",
    no_args_is_help=True,
)

SchemaFile = Annotated[Path, typer.Argument(help="Path to the YAML schema file.")]
DatabaseUrl = Annotated[
    str | None,
    typer.Option("--database-url", help="SQLAlchemy async URL. Defaults to the configured one."),
]
ConfigFile = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config.yaml."),
]
Verbose = Annotated[bool, typer.Option("--verbose", "-v", help="Print log output.")]


def _open_store(
    schema_file: Path, database_url: str | None, config_file: Path | None, verbose: bool
) -> LedgerStore:
    config: LedgerConfig = load_config(config_file)
    configure_logging(config.logging)
    set_console_logging(verbose)

    compiled = compile_schema(load_schema(schema_file))
    if database_url:
        return LedgerStore(
            compiled,
            database_url,
            echo=config.persistence.echo,
            sqlite_busy_timeout=config.persistence.sqlite_busy_timeout,
        )
    return LedgerStore.from_config(compiled, config.persistence)


async def _init(store: LedgerStore) -> None:
    try:
        await store.initialize()
    finally:
        await store.close()


async def _read_log(store: LedgerStore, table: str, row_id: str) -> list[LogEntry]:
    try:
        await store.initialize()
        store.schema.table(table)
        return await store.read_log(table, row_id)
    finally:
        await store.close()


@app.command()
def init(
    schema_file: SchemaFile,
    database_url: DatabaseUrl = None,
    config_file: ConfigFile = None,
    verbose: Verbose = False,
) -> None:
    """Create every table of the schema and the event log."""
    try:
        store = _open_store(schema_file, database_url, config_file, verbose)
        asyncio.run(_init(store))
    except LedgerError as e:
        print_error(e.message)
        raise typer.Exit(1) from e

    tables = ", ".join(store.schema.tables)
    print_success(f"Initialized {tables} and events at {store.database_url}")


@app.command()
def log(
    schema_file: SchemaFile,
    table: Annotated[str, typer.Argument(help="Table of the row.")],
    row_id: Annotated[str, typer.Argument(help="Row identifier.")],
    database_url: DatabaseUrl = None,
    config_file: ConfigFile = None,
    verbose: Verbose = False,
) -> None:
    """Print the event log of one row in insertion order."""
    try:
        store = _open_store(schema_file, database_url, config_file, verbose)
        entries = asyncio.run(_read_log(store, table, row_id))
    except LedgerError as e:
        print_error(e.message)
        raise typer.Exit(1) from e

    if not entries:
        print_info(f"No events recorded for {table}/{row_id}")
        return
    print_table(create_log_table(entries, f"{table}/{row_id}"))


__all__ = ["app"]
