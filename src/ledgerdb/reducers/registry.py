"""Reducer registry.

A reducer turns an event payload into row data for one table:

- creator(payload) -> full row to insert
- updater(previous_row, payload) -> partial row to merge

Exactly one reducer may exist per (table, event name). The event name is the
name of the command that emits the event.

Example:
    items = registry.reducer("items")

    @items.creator(create_item)
    def _(data):
        return {"name": data["name"], "value": data["value"]}

    items.updater(bump_item, lambda prev, data: {"value": prev["value"] + 1})
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

import structlog

from ledgerdb.commands.events import EventKind
from ledgerdb.core.errors import DuplicateReducerError, RegistryFrozenError
from ledgerdb.core.types import EventPayload, Row, RowPatch
from ledgerdb.schema.compiler import CompiledSchema

log = structlog.get_logger(__name__)

CreatorFn = Callable[[EventPayload], Mapping[str, Any]]
UpdaterFn = Callable[[Row, EventPayload], RowPatch]


class EventDescriptor(Protocol):
    """Anything with a ``name``; registered commands satisfy this."""

    @property
    def name(self) -> str: ...


@dataclass(frozen=True, slots=True)
class CreatorReducer:
    kind: ClassVar[EventKind] = EventKind.CREATE

    fn: CreatorFn


@dataclass(frozen=True, slots=True)
class UpdaterReducer:
    kind: ClassVar[EventKind] = EventKind.MODIFY

    fn: UpdaterFn


Reducer = CreatorReducer | UpdaterReducer


def merge_patch(row: Mapping[str, Any], patch: RowPatch) -> Row:
    """Merge an updater's patch into a row.

    ``None`` values are dropped, matching the COALESCE update which leaves
    such columns unchanged in the store.
    """
    merged = dict(row)
    merged.update({key: value for key, value in patch.items() if value is not None})
    return merged


class TableReducers:
    """Builder registering reducers for a single table."""

    def __init__(self, registry: ReducerRegistry, table: str) -> None:
        self._registry = registry
        self.table = table

    def creator(self, event: EventDescriptor, fn: CreatorFn | None = None) -> Any:
        """Register ``fn`` as the creator for ``event`` on this table.

        Without ``fn``, returns a decorator.
        """
        if fn is None:

            def decorator(func: CreatorFn) -> CreatorFn:
                self._registry.add(self.table, event.name, CreatorReducer(func))
                return func

            return decorator
        self._registry.add(self.table, event.name, CreatorReducer(fn))
        return fn

    def updater(self, event: EventDescriptor, fn: UpdaterFn | None = None) -> Any:
        """Register ``fn`` as the updater for ``event`` on this table.

        Without ``fn``, returns a decorator.
        """
        if fn is None:

            def decorator(func: UpdaterFn) -> UpdaterFn:
                self._registry.add(self.table, event.name, UpdaterReducer(func))
                return func

            return decorator
        self._registry.add(self.table, event.name, UpdaterReducer(fn))
        return fn


class ReducerRegistry:
    """Reducers keyed by table, then by event name."""

    def __init__(self, schema: CompiledSchema | None = None) -> None:
        self._schema = schema
        self._reducers: dict[str, dict[str, Reducer]] = {}
        self._frozen = False

    def reducer(self, table: str) -> TableReducers:
        """Return a builder for ``table``.

        Raises:
            SchemaError: If the table is not part of the schema.
        """
        if self._schema is not None:
            self._schema.table(table)
        return TableReducers(self, table)

    def add(self, table: str, name: str, reducer: Reducer) -> None:
        """Register a reducer under (table, name).

        Raises:
            RegistryFrozenError: If the registry is frozen.
            DuplicateReducerError: If the pair is already registered.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register reducer {name} for {table}: registry is frozen",
                details={"table": table, "event": name},
            )
        handlers = self._reducers.setdefault(table, {})
        if name in handlers:
            raise DuplicateReducerError(table, name)
        handlers[name] = reducer
        log.debug("registry.reducer.registered", table=table, event_name=name, kind=reducer.kind)

    def lookup(self, table: str, name: str) -> Reducer | None:
        return self._reducers.get(table, {}).get(name)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return sum(len(handlers) for handlers in self._reducers.values())
