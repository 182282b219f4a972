"""Transient events produced by command planning.

An event is either a CreationEvent or a ModificationEvent. Events are never
persisted as-is: the dispatcher applies them through reducers and appends a
log entry per applied event.

Instances can only be built through a registered command (see
``Command.create_event`` / ``Command.modify_event``). Direct construction
raises TypeError, so the dispatcher can trust that ``name`` matches a real
command.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel

from ledgerdb.core.errors import ValidationError
from ledgerdb.core.types import EventPayload

TABLE_FIELD = "table"

_FACTORY_KEY = object()


class EventKind(StrEnum):
    """Discriminant shared by events and reducers."""

    CREATE = "create"
    MODIFY = "modify"


def _guard(key: object, cls_name: str) -> None:
    if key is not _FACTORY_KEY:
        msg = f"{cls_name} instances are built by a registered command's event factory"
        raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class CreationEvent:
    """Request to create one row in ``table``.

    Attributes:
        name: Name of the originating command.
        table: Target table.
        payload: Event data handed to the table's creator reducer.
    """

    kind: ClassVar[EventKind] = EventKind.CREATE

    name: str
    table: str
    payload: EventPayload
    _key: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        _guard(self._key, type(self).__name__)


@dataclass(frozen=True, slots=True)
class ModificationEvent:
    """Request to patch the row ``row_id`` in ``table``.

    Attributes:
        name: Name of the originating command.
        table: Target table.
        row_id: Identifier of the row to patch; must be locked by the mutator.
        payload: Event data handed to the table's updater reducer.
    """

    kind: ClassVar[EventKind] = EventKind.MODIFY

    name: str
    table: str
    row_id: str
    payload: EventPayload
    _key: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        _guard(self._key, type(self).__name__)


Event = CreationEvent | ModificationEvent


def split_table(data: Any) -> tuple[str | None, EventPayload]:
    """Separate the caller-facing ``table`` field from the event payload.

    Args:
        data: Command input, either a pydantic model or a mapping.

    Returns:
        Tuple of (table or None, payload without ``table``).

    Raises:
        ValidationError: If data is neither a model nor a mapping.
    """
    if isinstance(data, BaseModel):
        payload = data.model_dump(mode="json")
    elif isinstance(data, Mapping):
        payload = dict(data)
    else:
        raise ValidationError(
            f"Event data must be a mapping or a pydantic model, got {type(data).__name__}"
        )
    table = payload.pop(TABLE_FIELD, None)
    return table, payload


def _new_creation(name: str, table: str, payload: EventPayload) -> CreationEvent:
    return CreationEvent(name=name, table=table, payload=payload, _key=_FACTORY_KEY)


def _new_modification(
    name: str, table: str, row_id: str, payload: EventPayload
) -> ModificationEvent:
    return ModificationEvent(
        name=name, table=table, row_id=row_id, payload=payload, _key=_FACTORY_KEY
    )
