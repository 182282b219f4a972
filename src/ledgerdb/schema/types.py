"""Declarative schema types.

A schema maps table name -> ordered mapping of column name -> ColumnType.
Column order is significant: it fixes the bind order of every compiled
statement for the table.

The ``events`` table is reserved for the event log and has a fixed shape.
"""

from collections.abc import Mapping
from enum import StrEnum
import re

from ledgerdb.core.errors import SchemaError


class ColumnType(StrEnum):
    """Semantic type tag of a column."""

    BOOL = "bool"
    INT2 = "int2"
    INT4 = "int4"
    INT8 = "int8"
    UUID = "uuid"
    TEXT = "text"
    JSON = "json"
    TIMESTAMP = "timestamp"
    JSON_ARRAY = "json_array"
    JSONB = "jsonb"
    JSONB_ARRAY = "jsonb_array"


EVENTS_TABLE = "events"

# Fixed shape of the reserved event-log table.
EVENTS_COLUMNS: Mapping[str, ColumnType] = {
    "created_at": ColumnType.TIMESTAMP,
    "name": ColumnType.TEXT,
    "table_name": ColumnType.TEXT,
    "row_id": ColumnType.UUID,
    "actor_id": ColumnType.UUID,
    "data": ColumnType.JSONB,
}

ID_COLUMN = "id"

SchemaInput = Mapping[str, Mapping[str, ColumnType | str]]
"""Schema as declared by client code or loaded from YAML."""

TableColumns = dict[str, ColumnType]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(kind: str, name: str, *, table: str | None = None) -> None:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise SchemaError(
            f"Invalid {kind} name: {name!r}",
            table=table,
            column=name if kind == "column" else None,
        )


def _parse_type(table: str, column: str, tag: ColumnType | str) -> ColumnType:
    try:
        return ColumnType(tag)
    except ValueError as e:
        raise SchemaError(
            f"Unknown column type {tag!r} for {table}.{column}",
            table=table,
            column=column,
            details={"allowed": [t.value for t in ColumnType]},
        ) from e


def normalize_schema(schema: SchemaInput) -> dict[str, TableColumns]:
    """Validate a schema and convert every type tag to ColumnType.

    The reserved ``events`` table is dropped; its shape is fixed.

    Raises:
        SchemaError: On invalid identifiers, unknown type tags, a declared
            ``id`` column, or a table without columns.
    """
    tables: dict[str, TableColumns] = {}
    for table, columns in schema.items():
        _check_identifier("table", table)
        if table == EVENTS_TABLE:
            continue
        if not columns:
            raise SchemaError(f"Table {table} declares no columns", table=table)

        parsed: TableColumns = {}
        for column, tag in columns.items():
            _check_identifier("column", column, table=table)
            if column == ID_COLUMN:
                raise SchemaError(
                    f"Column {table}.id is implicit and may not be declared",
                    table=table,
                    column=column,
                )
            parsed[column] = _parse_type(table, column, tag)
        tables[table] = parsed
    return tables
