"""EventSourcing: one schema wired to its registries, dispatcher and replay.

Usage:
    system = EventSourcing({"counters": {"name": "text", "value": "int4"}})

    create_counter = system.create_command(
        name="create_counter",
        kind="create",
        table="counters",
        validate=check_counter,
    )
    system.reducer("counters").creator(create_counter, lambda data: data)

    async with store.connect() as conn:
        result = await system.run_command(conn, create_counter, {...}, actor_id)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncConnection
import structlog

from ledgerdb.commands.registry import (
    Command,
    CommandKind,
    CommandRegistry,
    Mutator,
    PlanActions,
    Validate,
)
from ledgerdb.core.errors import RegistrationError
from ledgerdb.core.types import Result, Row
from ledgerdb.dispatch.dispatcher import Dispatcher
from ledgerdb.dispatch.outcome import CommandFailure, CommandReceipt
from ledgerdb.dispatch.replay import RowReconstructor
from ledgerdb.reducers.registry import ReducerRegistry, TableReducers
from ledgerdb.schema.compiler import CompiledSchema, compile_schema
from ledgerdb.schema.types import SchemaInput

log = structlog.get_logger(__name__)


class EventSourcing:
    """Event-sourcing engine for one schema.

    Registration happens during start-up. The first ``run_command`` call
    freezes both registries; later registrations raise RegistryFrozenError.
    """

    def __init__(self, schema: SchemaInput | CompiledSchema) -> None:
        self._schema = schema if isinstance(schema, CompiledSchema) else compile_schema(schema)
        self._commands = CommandRegistry(self._schema)
        self._reducers = ReducerRegistry(self._schema)
        self._dispatcher = Dispatcher(self._schema, self._reducers)
        self._replay = RowReconstructor(self._schema, self._reducers)

    @property
    def schema(self) -> CompiledSchema:
        return self._schema

    @property
    def commands(self) -> CommandRegistry:
        return self._commands

    @property
    def reducers(self) -> ReducerRegistry:
        return self._reducers

    def create_command(
        self,
        *,
        name: str,
        mutator: Mutator | None = None,
        kind: CommandKind | str | None = None,
        table: str | None = None,
        input_model: Any = None,
        validate: Validate | None = None,
        plan_actions: PlanActions | None = None,
    ) -> Command:
        """Register a command. See CommandRegistry.create_command."""
        return self._commands.create_command(
            name=name,
            mutator=mutator,
            kind=kind,
            table=table,
            input_model=input_model,
            validate=validate,
            plan_actions=plan_actions,
        )

    def reducer(self, table: str) -> TableReducers:
        """Return the reducer builder for ``table``."""
        return self._reducers.reducer(table)

    def freeze(self) -> None:
        """End the build phase; both registries become read-only."""
        if self._commands.frozen and self._reducers.frozen:
            return
        self._commands.freeze()
        self._reducers.freeze()
        log.info(
            "registry.frozen",
            commands=len(self._commands),
            reducers=len(self._reducers),
        )

    async def run_command(
        self,
        conn: AsyncConnection,
        command: Command | str,
        input: Any,
        actor_id: str,
    ) -> Result[CommandReceipt, CommandFailure]:
        """Execute a command in one transaction on ``conn``.

        Args:
            conn: Connection with no transaction in progress.
            command: Registered command or its name.
            input: Command input.
            actor_id: Actor recorded on every log entry.

        Raises:
            RegistrationError: If ``command`` is not registered here.
        """
        resolved = self._resolve(command)
        self.freeze()
        return await self._dispatcher.run_command(conn, resolved, input, actor_id)

    async def reduce_row(self, conn: AsyncConnection, table: str, row_id: str) -> Row:
        """Rebuild a row from its event log. See RowReconstructor.reduce_row."""
        return await self._replay.reduce_row(conn, table, row_id)

    def _resolve(self, command: Command | str) -> Command:
        name = command if isinstance(command, str) else command.name
        registered = self._commands.get(name)
        if registered is None or (isinstance(command, Command) and registered is not command):
            raise RegistrationError(
                f"Command {name} is not registered with this system",
                details={"command": name},
            )
        return registered
