"""Schema command group for ledgerdb.

Inspect the statements compiled from a YAML schema.
"""

from pathlib import Path
from typing import Annotated

import typer

from ledgerdb.cli.formatters.panels import print_error
from ledgerdb.cli.formatters.tables import create_statements_table, print_table
from ledgerdb.config.loader import load_schema
from ledgerdb.core.errors import LedgerError
from ledgerdb.schema.compiler import compile_schema

app = typer.Typer(
    name="schema",
    help="Inspect compiled schemas.",
    no_args_is_help=True,
)


@app.command()
def show(
    schema_file: Annotated[
        Path,
        typer.Argument(help="Path to the YAML schema file."),
    ],
    dialect: Annotated[
        str,
        typer.Option("--dialect", "-d", help="SQL dialect: postgresql or sqlite."),
    ] = "postgresql",
) -> None:
    """Print the lock, insert and update statements of every table."""
    try:
        compiled = compile_schema(load_schema(schema_file))
        for descriptor in compiled.tables.values():
            print_table(create_statements_table(descriptor, dialect))
    except LedgerError as e:
        print_error(e.message)
        raise typer.Exit(1) from e


__all__ = ["app"]
