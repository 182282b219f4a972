"""ledgerdb schema module - declarative tables compiled to SQL statements."""

from ledgerdb.schema.compiler import (
    EVENT_LOG_BIND_ORDER,
    CompiledSchema,
    EventLogDescriptor,
    TableDescriptor,
    compile_schema,
    sql_type,
)
from ledgerdb.schema.types import (
    EVENTS_COLUMNS,
    EVENTS_TABLE,
    ColumnType,
    SchemaInput,
    normalize_schema,
)

__all__ = [
    "ColumnType",
    "SchemaInput",
    "EVENTS_TABLE",
    "EVENTS_COLUMNS",
    "EVENT_LOG_BIND_ORDER",
    "CompiledSchema",
    "EventLogDescriptor",
    "TableDescriptor",
    "compile_schema",
    "normalize_schema",
    "sql_type",
]
