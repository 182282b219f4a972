"""Command registry.

A command names the rows it needs (``mutator``), checks its input against
the locked rows (``validate``) and plans events. Three kinds exist:

- create:   validate, then one CreationEvent for the command's table
- modify:   validate returns the target row id, then one ModificationEvent
- dispatch: ``plan_actions`` supplied directly, any number of events

The registry has two phases. During start-up commands are registered; after
``freeze()`` it is read-only and safe to share between concurrent dispatches.
"""

from collections.abc import Awaitable, Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncConnection
import structlog

from ledgerdb.commands.events import (
    CreationEvent,
    Event,
    ModificationEvent,
    _new_creation,
    _new_modification,
    split_table,
)
from ledgerdb.core.errors import (
    CommandDefinitionError,
    DuplicateCommandError,
    RegistryFrozenError,
    ValidationError,
)
from ledgerdb.core.types import Row
from ledgerdb.schema.compiler import CompiledSchema

log = structlog.get_logger(__name__)

H = TypeVar("H")


class CommandKind(StrEnum):
    """How a command plans its events."""

    CREATE = "create"
    MODIFY = "modify"
    DISPATCH = "dispatch"


@dataclass(frozen=True, slots=True)
class LockTarget:
    """A row a command must lock before planning."""

    table: str
    row_id: str


LockedRows = dict[str, Row]
"""Mutator field -> locked row. Fields whose row does not exist are absent."""

Mutator = Callable[[Any], Mapping[str, LockTarget]]
Validate = Callable[[AsyncConnection, Any, LockedRows], Awaitable[str | None]]
PlanActions = Callable[[AsyncConnection, Any, LockedRows], Awaitable[Sequence[Event | None]]]


def _no_rows(_input: Any) -> Mapping[str, LockTarget]:
    return {}


@dataclass(frozen=True, slots=True, eq=False)
class Command:
    """A registered, dispatchable command.

    Attributes:
        name: Unique command name; also the name of every event it emits.
        kind: Planning kind.
        mutator: Maps input to the rows that must be locked.
        table: Fixed target table, or None when the input carries ``table``.
        input_model: Optional pydantic model used to parse mapping inputs.
    """

    name: str
    kind: CommandKind
    mutator: Mutator
    table: str | None = None
    input_model: type[BaseModel] | None = None
    validate: Validate | None = None
    planner: PlanActions | None = None

    def parse_input(self, raw: Any) -> Any:
        """Validate a raw mapping input against ``input_model``.

        Model instances and inputs of commands without a model pass through.

        Raises:
            pydantic.ValidationError: If the input does not match the model.
        """
        if self.input_model is None or isinstance(raw, self.input_model):
            return raw
        return self.input_model.model_validate(raw)

    def create_event(self, data: Any) -> CreationEvent:
        """Build a creation event for this command.

        ``table`` is taken from the command, or else from ``data["table"]``;
        it is always removed from the payload.
        """
        if self.kind is not CommandKind.CREATE:
            raise CommandDefinitionError(
                f"Command {self.name} is not a create command",
                details={"kind": self.kind.value},
            )
        table, payload = split_table(data)
        return _new_creation(self.name, self._resolve_table(table), payload)

    def modify_event(self, row_id: str, data: Any) -> ModificationEvent:
        """Build a modification event for row ``row_id``."""
        if self.kind is not CommandKind.MODIFY:
            raise CommandDefinitionError(
                f"Command {self.name} is not a modify command",
                details={"kind": self.kind.value},
            )
        table, payload = split_table(data)
        return _new_modification(self.name, self._resolve_table(table), row_id, payload)

    async def plan_actions(
        self, conn: AsyncConnection, input: Any, locked: LockedRows
    ) -> list[Event | None]:
        """Plan the events of one execution.

        Whatever ``validate`` raises propagates and aborts the command.
        """
        match self.kind:
            case CommandKind.CREATE:
                await self._hook(self.validate, "validate")(conn, input, locked)
                return [self.create_event(input)]
            case CommandKind.MODIFY:
                row_id = await self._hook(self.validate, "validate")(conn, input, locked)
                if not isinstance(row_id, str):
                    raise ValidationError(
                        f"validate() of {self.name} must return the target row id",
                        details={"returned": type(row_id).__name__},
                    )
                return [self.modify_event(row_id, input)]
            case _:
                return list(await self._hook(self.planner, "plan_actions")(conn, input, locked))

    def _hook(self, hook: H | None, hook_name: str) -> H:
        if hook is None:
            raise CommandDefinitionError(
                f"Command {self.name} of kind {self.kind.value} has no {hook_name}",
                details={"command": self.name, "kind": self.kind.value},
            )
        return hook

    def _resolve_table(self, from_input: Any) -> str:
        table = self.table or from_input
        if not isinstance(table, str) or not table:
            raise ValidationError(
                f"Command {self.name} has no fixed table and the input names none",
                field="table",
            )
        return table


class CommandRegistry:
    """Registry of commands keyed by unique name.

    Usage:
        registry = CommandRegistry(compiled)
        create_item = registry.create_command(
            name="create_item",
            kind="create",
            table="items",
            validate=check_item,
        )
        registry.freeze()
    """

    def __init__(self, schema: CompiledSchema | None = None) -> None:
        self._schema = schema
        self._commands: dict[str, Command] = {}
        self._frozen = False

    def create_command(
        self,
        *,
        name: str,
        mutator: Mutator | None = None,
        kind: CommandKind | str | None = None,
        table: str | None = None,
        input_model: type[BaseModel] | None = None,
        validate: Validate | None = None,
        plan_actions: PlanActions | None = None,
    ) -> Command:
        """Register a command and return its dispatchable form.

        Args:
            name: Unique command name.
            mutator: Input -> rows to lock. Defaults to locking nothing.
            kind: "create", "modify" or "dispatch". Defaults to "dispatch"
                when ``plan_actions`` is given.
            table: Fixed target table for create/modify commands.
            input_model: Pydantic model for parsing mapping inputs.
            validate: Check for create/modify commands; modify commands
                return the target row id from it.
            plan_actions: Planner for dispatch commands.

        Raises:
            RegistryFrozenError: If the registry is frozen.
            DuplicateCommandError: If ``name`` is already registered.
            CommandDefinitionError: If the definition is inconsistent.
            SchemaError: If ``table`` is not part of the schema.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register command {name}: registry is frozen",
                details={"command": name},
            )
        if name in self._commands:
            raise DuplicateCommandError(name)
        if not isinstance(name, str) or not name:
            raise CommandDefinitionError("Command name must be a non-empty string")

        resolved = self._resolve_kind(name, kind, validate, plan_actions)
        if resolved is CommandKind.DISPATCH:
            if validate is not None or table is not None:
                raise CommandDefinitionError(
                    f"Dispatch command {name} takes plan_actions only",
                    details={"command": name},
                )
        elif plan_actions is not None:
            raise CommandDefinitionError(
                f"Command {name} of kind {resolved.value} takes validate, not plan_actions",
                details={"command": name},
            )
        if table is not None and self._schema is not None:
            self._schema.table(table)

        command = Command(
            name=name,
            kind=resolved,
            mutator=mutator or _no_rows,
            table=table,
            input_model=input_model,
            validate=validate,
            planner=plan_actions,
        )
        self._commands[name] = command
        log.debug("registry.command.registered", command=name, kind=resolved.value)
        return command

    @staticmethod
    def _resolve_kind(
        name: str,
        kind: CommandKind | str | None,
        validate: Validate | None,
        plan_actions: PlanActions | None,
    ) -> CommandKind:
        if kind is None:
            if plan_actions is None:
                raise CommandDefinitionError(
                    f"Command {name} needs a kind or plan_actions",
                    details={"command": name},
                )
            return CommandKind.DISPATCH
        try:
            resolved = CommandKind(kind)
        except ValueError:
            raise CommandDefinitionError(
                f"Unknown command kind: {kind!r}",
                details={"command": name, "allowed": [k.value for k in CommandKind]},
            ) from None
        if resolved is CommandKind.DISPATCH and plan_actions is None:
            raise CommandDefinitionError(
                f"Dispatch command {name} needs plan_actions", details={"command": name}
            )
        if resolved is not CommandKind.DISPATCH and validate is None:
            raise CommandDefinitionError(
                f"Command {name} of kind {resolved.value} needs validate",
                details={"command": name},
            )
        return resolved

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    def freeze(self) -> None:
        """Enter the read-only serving phase."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)
