"""Transactional command dispatcher.

Every ``run_command`` call is one transaction driven through the phases:

    BEGIN -> LOCK -> PLAN -> APPLY -> COMMIT

Any exception in any phase rolls the whole transaction back: no row mutation
and no event-log entry of a failed command is ever visible. The caller gets a
Result telling a committed command from a rolled-back one.

Locking:
    LOCK runs the table's ``SELECT ... FOR UPDATE`` for every row named by the
    mutator before planning starts, so concurrent commands touching the same
    row serialize on it. Locks are taken one after another on the caller's
    connection.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncConnection
import structlog

from ledgerdb.commands.events import CreationEvent, ModificationEvent
from ledgerdb.commands.registry import Command, LockedRows, LockTarget
from ledgerdb.core.errors import MissingRowIdError, UnlockedRowError
from ledgerdb.core.types import Result, Row
from ledgerdb.dispatch.outcome import (
    AppliedEvent,
    CommandFailure,
    CommandReceipt,
    DispatchPhase,
)
from ledgerdb.reducers.registry import (
    CreatorReducer,
    ReducerRegistry,
    UpdaterReducer,
    merge_patch,
)
from ledgerdb.schema.compiler import CompiledSchema

log = structlog.get_logger(__name__)

RowKey = tuple[str, str]


@dataclass(slots=True)
class _Progress:
    applied: list[AppliedEvent] = field(default_factory=list)
    skipped: int = 0
    anomalies: int = 0


class Dispatcher:
    """Runs commands against a compiled schema and a reducer registry.

    The dispatcher holds no per-call state; one instance serves any number of
    concurrent ``run_command`` calls, each on its own connection.
    """

    def __init__(self, schema: CompiledSchema, reducers: ReducerRegistry) -> None:
        self._schema = schema
        self._reducers = reducers

    async def run_command(
        self,
        conn: AsyncConnection,
        command: Command,
        input: Any,
        actor_id: str,
    ) -> Result[CommandReceipt, CommandFailure]:
        """Execute one command in its own transaction.

        Args:
            conn: Connection with no transaction in progress; owned by this
                call until it returns.
            command: A registered command.
            input: Command input (pydantic model or mapping).
            actor_id: Actor recorded on every event-log entry.

        Returns:
            Result.ok(CommandReceipt) if committed,
            Result.err(CommandFailure) if rolled back.
        """
        now = datetime.now(UTC)
        phase = DispatchPhase.BEGIN
        progress = _Progress()
        bound = log.bind(command=command.name, actor_id=actor_id)

        try:
            parsed = command.parse_input(input)
            async with conn.begin():
                phase = DispatchPhase.LOCK
                locked, cache = await self._lock_rows(conn, command.mutator(parsed))

                phase = DispatchPhase.PLAN
                events = await command.plan_actions(conn, parsed, locked)

                phase = DispatchPhase.APPLY
                for event in events:
                    await self._apply(conn, event, cache, actor_id, now, progress)

                phase = DispatchPhase.COMMIT
        except Exception as e:
            failure = CommandFailure.from_exception(e, command=command.name, phase=phase)
            bound.warning(
                "dispatch.command.rolled_back",
                phase=phase.value,
                reason=failure.reason.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Result.err(failure)

        receipt = CommandReceipt(
            command=command.name,
            actor_id=actor_id,
            applied=tuple(progress.applied),
            skipped=progress.skipped,
            anomalies=progress.anomalies,
        )
        bound.info(
            "dispatch.command.committed",
            applied=len(receipt.applied),
            skipped=receipt.skipped,
            anomalies=receipt.anomalies,
        )
        return Result.ok(receipt)

    async def _lock_rows(
        self, conn: AsyncConnection, targets: Mapping[str, LockTarget]
    ) -> tuple[LockedRows, dict[RowKey, Row]]:
        locked: LockedRows = {}
        cache: dict[RowKey, Row] = {}
        for field_name, target in targets.items():
            descriptor = self._schema.table(target.table)
            result = await conn.execute(descriptor.lock, descriptor.lock_params(target.row_id))
            row = result.first()
            if row is None:
                log.debug(
                    "dispatch.lock.row_missing",
                    field=field_name,
                    table=target.table,
                    row_id=target.row_id,
                )
                continue
            data = descriptor.materialize(row)
            cache[(target.table, target.row_id)] = data
            locked[field_name] = dict(data)
        return locked, cache

    async def _apply(
        self,
        conn: AsyncConnection,
        event: Any,
        cache: dict[RowKey, Row],
        actor_id: str,
        now: datetime,
        progress: _Progress,
    ) -> None:
        if event is None:
            return
        if not isinstance(event, CreationEvent | ModificationEvent):
            log.warning("dispatch.event.invalid", event_type=type(event).__name__)
            progress.anomalies += 1
            return

        reducer = self._reducers.lookup(event.table, event.name)
        if reducer is None:
            log.debug("dispatch.event.skipped", event_name=event.name, table=event.table)
            progress.skipped += 1
            return

        if isinstance(event, CreationEvent) and isinstance(reducer, CreatorReducer):
            row_id = await self._create(conn, event, reducer)
        elif isinstance(event, ModificationEvent) and isinstance(reducer, UpdaterReducer):
            row_id = await self._modify(conn, event, reducer, cache)
        else:
            log.warning(
                "dispatch.reducer.kind_mismatch",
                event_name=event.name,
                table=event.table,
                event_kind=event.kind.value,
                reducer_kind=reducer.kind.value,
            )
            progress.anomalies += 1
            return

        events = self._schema.events
        await conn.execute(
            events.append,
            events.append_params(
                [event.name, event.table, row_id, actor_id, event.payload, now]
            ),
        )
        progress.applied.append(
            AppliedEvent(name=event.name, table=event.table, row_id=row_id, kind=event.kind)
        )

    async def _create(
        self, conn: AsyncConnection, event: CreationEvent, reducer: CreatorReducer
    ) -> str:
        descriptor = self._schema.table(event.table)
        data = reducer.fn(dict(event.payload))
        result = await conn.execute(
            descriptor.insert, descriptor.insert_params(descriptor.project(data))
        )
        row_id = result.scalar_one_or_none()
        if not isinstance(row_id, str) or not row_id:
            raise MissingRowIdError(event.table)
        return row_id

    async def _modify(
        self,
        conn: AsyncConnection,
        event: ModificationEvent,
        reducer: UpdaterReducer,
        cache: dict[RowKey, Row],
    ) -> str:
        key = (event.table, event.row_id)
        previous = cache.get(key)
        if previous is None:
            raise UnlockedRowError(event.table, event.row_id)

        descriptor = self._schema.table(event.table)
        patch = reducer.fn(dict(previous), dict(event.payload))
        # Later events of the same command see the merged row.
        cache[key] = merge_patch(previous, patch)
        await conn.execute(
            descriptor.update,
            descriptor.update_params(descriptor.project(patch), event.row_id),
        )
        return event.row_id
