"""Rich tables for schemas and event logs."""

from collections.abc import Sequence
import json
from typing import Any

from rich.markup import escape
from rich.table import Table

from ledgerdb.cli.formatters import console
from ledgerdb.persistence.event_log import LogEntry
from ledgerdb.schema.compiler import TableDescriptor


def create_table(
    title: str | None = None,
    *,
    show_header: bool = True,
    show_lines: bool = False,
    border_style: str = "blue",
    header_style: str = "bold cyan",
) -> Table:
    """Create a Rich Table with consistent ledgerdb styling.

    Args:
        title: Optional table title.
        show_header: Whether to show the header row.
        show_lines: Whether to show lines between rows.
        border_style: Style for table borders.
        header_style: Style for header row.

    Returns:
        Configured Rich Table instance.
    """
    return Table(
        title=title,
        show_header=show_header,
        show_lines=show_lines,
        border_style=border_style,
        header_style=header_style,
        row_styles=["", "dim"],
    )


def create_key_value_table(
    data: dict[str, Any],
    title: str | None = None,
    *,
    key_style: str = "cyan",
) -> Table:
    """Create a two-column table for key-value data."""
    table = create_table(title, show_header=False)
    table.add_column("Key", style=key_style, no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(str(key), str(value))

    return table


def create_statements_table(descriptor: TableDescriptor, dialect: str) -> Table:
    """Table of the compiled lock/insert/update statements of one table."""
    table = create_table(f"{descriptor.name} ({', '.join(descriptor.columns)})", show_lines=True)
    table.add_column("Statement", style="cyan", no_wrap=True)
    table.add_column("SQL")

    for kind, sql in descriptor.render(dialect).items():
        table.add_row(kind, sql)

    return table


def create_log_table(entries: Sequence[LogEntry], title: str | None = None) -> Table:
    """Table of event-log entries in insertion order."""
    table = create_table(title)
    table.add_column("#", justify="right", style="muted")
    table.add_column("Event", style="cyan", no_wrap=True)
    table.add_column("Actor", no_wrap=True)
    table.add_column("Created", no_wrap=True)
    table.add_column("Data")

    for entry in entries:
        table.add_row(
            str(entry.id),
            entry.name,
            entry.actor_id,
            entry.created_at.isoformat(),
            escape(json.dumps(entry.data, sort_keys=True, default=str)),
        )

    return table


def print_table(table: Table) -> None:
    console.print(table)


__all__ = [
    "create_key_value_table",
    "create_log_table",
    "create_statements_table",
    "create_table",
    "print_table",
]
