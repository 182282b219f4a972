"""ledgerdb CLI main entry point.

Defines the main Typer application and registers the command groups.
"""

from typing import Annotated

import typer

from ledgerdb import __version__
from ledgerdb.cli.commands import db, schema
from ledgerdb.cli.formatters import console

app = typer.Typer(
    name="ledgerdb",
    help="ledgerdb - event-sourced command dispatch over SQL",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(schema.app, name="schema")
app.add_typer(db.app, name="db")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]ledgerdb[/] version [green]{__version__}[/]")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """ledgerdb - event-sourced command dispatch over SQL.

    Use [bold cyan]ledgerdb COMMAND --help[/] for command-specific help.
    """


__all__ = ["app", "main"]
