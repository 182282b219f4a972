"""Schema compilation into SQLAlchemy Core tables and statements.

SQLAlchemy Core is used (not ORM) so that every statement the dispatcher runs
is explicit. For each declared table the compiler produces:

    lock    SELECT id, <columns> FROM t WHERE id = :row_id FOR UPDATE
    insert  INSERT INTO t (id, <columns>) VALUES (...) RETURNING id
    update  UPDATE t SET c = COALESCE(:new_c, c), ... WHERE id = :target_id

Binding is positional at the API level: values are supplied in column
declaration order and mapped onto the named parameters here.

Compilation is pure: no connection is opened and nothing is executed.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Insert,
    Integer,
    MetaData,
    Select,
    SmallInteger,
    String,
    Table,
    Text,
    Update,
    bindparam,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeEngine

from ledgerdb.core.errors import SchemaError
from ledgerdb.core.types import Row
from ledgerdb.schema.types import (
    EVENTS_COLUMNS,
    EVENTS_TABLE,
    ID_COLUMN,
    ColumnType,
    SchemaInput,
    normalize_schema,
)

ROW_ID_PARAM = "row_id"
TARGET_ID_PARAM = "target_id"
NEW_VALUE_PREFIX = "new_"

# Order in which an event-log append binds its values.
EVENT_LOG_BIND_ORDER = ("name", "table_name", "row_id", "actor_id", "data", "created_at")

_DIALECTS: dict[str, Dialect] = {
    "postgresql": postgresql.dialect(),
    "sqlite": sqlite.dialect(),
}


def _json(*, binary: bool) -> TypeEngine[Any]:
    # none_as_null: Python None binds SQL NULL, so COALESCE keeps the old value.
    base = JSON(none_as_null=True)
    if binary:
        return base.with_variant(postgresql.JSONB(none_as_null=True), "postgresql")
    return base


def sql_type(column_type: ColumnType) -> TypeEngine[Any]:
    """Map a semantic column type to a SQLAlchemy type."""
    match column_type:
        case ColumnType.BOOL:
            return Boolean()
        case ColumnType.INT2:
            return SmallInteger()
        case ColumnType.INT4:
            return Integer()
        case ColumnType.INT8:
            return BigInteger()
        case ColumnType.UUID:
            return String(36)
        case ColumnType.TEXT:
            return Text()
        case ColumnType.TIMESTAMP:
            return DateTime(timezone=True)
        case ColumnType.JSON | ColumnType.JSON_ARRAY:
            return _json(binary=False)
        case ColumnType.JSONB | ColumnType.JSONB_ARRAY:
            return _json(binary=True)
    raise SchemaError(f"Unsupported column type: {column_type!r}")


def _new_row_id() -> str:
    return str(uuid4())


@dataclass(frozen=True, slots=True)
class TableDescriptor:
    """Compiled statements and column order for one table.

    Attributes:
        name: Table name.
        columns: Column names in declaration order (``id`` excluded).
        table: The SQLAlchemy Table.
        lock: Row-locking select keyed by ``:row_id``.
        insert: Insert of all columns returning the new id.
        update: COALESCE partial update keyed by ``:target_id``.
    """

    name: str
    columns: tuple[str, ...]
    table: Table
    lock: Select[Any]
    insert: Insert
    update: Update

    def project(self, data: Mapping[str, Any]) -> list[Any]:
        """Project a row mapping onto column order; absent fields become None."""
        return [data.get(column) for column in self.columns]

    def lock_params(self, row_id: str) -> dict[str, Any]:
        return {ROW_ID_PARAM: row_id}

    def insert_params(self, values: Sequence[Any]) -> dict[str, Any]:
        """Bind ordered values to the insert statement."""
        self._check_arity(values)
        return dict(zip(self.columns, values, strict=True))

    def update_params(self, values: Sequence[Any], row_id: str) -> dict[str, Any]:
        """Bind ordered values to the update statement, row id last."""
        self._check_arity(values)
        params = {
            f"{NEW_VALUE_PREFIX}{column}": value
            for column, value in zip(self.columns, values, strict=True)
        }
        params[TARGET_ID_PARAM] = row_id
        return params

    def materialize(self, row: Sequence[Any]) -> Row:
        """Turn a row returned by the lock statement into a mapping with id."""
        return dict(zip((ID_COLUMN, *self.columns), row, strict=True))

    def render(self, dialect: str = "postgresql") -> dict[str, str]:
        """Render the three statements as SQL text for a dialect.

        Raises:
            SchemaError: If the dialect is not supported.
        """
        if dialect not in _DIALECTS:
            raise SchemaError(
                f"Unsupported dialect: {dialect}",
                details={"supported": sorted(_DIALECTS)},
            )
        target = _DIALECTS[dialect]
        return {
            "lock": str(self.lock.compile(dialect=target)),
            "insert": str(self.insert.compile(dialect=target)),
            "update": str(self.update.compile(dialect=target)),
        }

    def _check_arity(self, values: Sequence[Any]) -> None:
        if len(values) != len(self.columns):
            raise SchemaError(
                f"Expected {len(self.columns)} values for {self.name}, got {len(values)}",
                table=self.name,
            )


@dataclass(frozen=True, slots=True)
class EventLogDescriptor:
    """Statements for the reserved append-only event log."""

    table: Table
    append: Insert
    read: Select[Any]

    def append_params(self, values: Sequence[Any]) -> dict[str, Any]:
        """Bind the six ordered values of an event-log append."""
        if len(values) != len(EVENT_LOG_BIND_ORDER):
            raise SchemaError(
                f"Event log append takes {len(EVENT_LOG_BIND_ORDER)} values, got {len(values)}",
                table=EVENTS_TABLE,
            )
        return dict(zip(EVENT_LOG_BIND_ORDER, values, strict=True))


@dataclass(frozen=True, slots=True)
class CompiledSchema:
    """Immutable result of compiling a schema.

    Attributes:
        metadata: MetaData holding every table, including the event log.
        tables: Descriptor per declared table, in declaration order.
        events: Event-log descriptor.
    """

    metadata: MetaData
    tables: Mapping[str, TableDescriptor]
    events: EventLogDescriptor

    def table(self, name: str) -> TableDescriptor:
        """Return the descriptor for a table.

        Raises:
            SchemaError: If the table is not part of the schema.
        """
        try:
            return self.tables[name]
        except KeyError:
            raise SchemaError(f"Unknown table: {name}", table=name) from None

    def __contains__(self, name: object) -> bool:
        return name in self.tables


def _compile_table(
    metadata: MetaData, name: str, columns: Mapping[str, ColumnType]
) -> TableDescriptor:
    table = Table(
        name,
        metadata,
        Column(ID_COLUMN, String(36), primary_key=True, default=_new_row_id),
        *(Column(column, sql_type(tag), nullable=True) for column, tag in columns.items()),
    )
    names = tuple(columns)
    id_col = table.c[ID_COLUMN]

    lock = (
        select(id_col, *(table.c[n] for n in names))
        .where(id_col == bindparam(ROW_ID_PARAM, type_=String(36)))
        .with_for_update()
    )
    create = insert(table).returning(id_col)
    modify = (
        update(table)
        .where(id_col == bindparam(TARGET_ID_PARAM, type_=String(36)))
        .values(
            {
                n: func.coalesce(
                    bindparam(f"{NEW_VALUE_PREFIX}{n}", type_=table.c[n].type),
                    table.c[n],
                )
                for n in names
            }
        )
    )
    return TableDescriptor(
        name=name,
        columns=names,
        table=table,
        lock=lock,
        insert=create,
        update=modify,
    )


def _compile_event_log(metadata: MetaData) -> EventLogDescriptor:
    table = Table(
        EVENTS_TABLE,
        metadata,
        # Insertion order is the replay order.
        Column(ID_COLUMN, Integer, primary_key=True, autoincrement=True),
        *(
            Column(column, sql_type(tag), nullable=(column == "data"))
            for column, tag in EVENTS_COLUMNS.items()
        ),
        Index("ix_events_table_row", "table_name", "row_id"),
    )
    read = (
        select(
            table.c.id,
            table.c.name,
            table.c.table_name,
            table.c.row_id,
            table.c.actor_id,
            table.c.data,
            table.c.created_at,
        )
        .where(table.c.table_name == bindparam("table_name", type_=Text()))
        .where(table.c.row_id == bindparam("row_id", type_=String(36)))
        .order_by(table.c.id.asc())
    )
    return EventLogDescriptor(
        table=table,
        append=insert(table),
        read=read,
    )


def compile_schema(schema: SchemaInput) -> CompiledSchema:
    """Compile a declarative schema.

    Args:
        schema: Table name -> ordered column name -> ColumnType (or its value).
            An ``events`` entry is skipped; the event log shape is fixed.

    Returns:
        CompiledSchema with one descriptor per declared table.

    Raises:
        SchemaError: If the schema is invalid.
    """
    normalized = normalize_schema(schema)
    metadata = MetaData()
    tables = {
        name: _compile_table(metadata, name, columns) for name, columns in normalized.items()
    }
    events = _compile_event_log(metadata)
    return CompiledSchema(metadata=metadata, tables=tables, events=events)
