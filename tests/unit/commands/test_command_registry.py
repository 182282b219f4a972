"""Unit tests for ledgerdb.commands.registry and ledgerdb.commands.events."""

from typing import Any

from pydantic import BaseModel
import pytest

from ledgerdb.commands import (
    Command,
    CommandKind,
    CommandRegistry,
    CreationEvent,
    LockTarget,
    ModificationEvent,
)
from ledgerdb.core.errors import (
    CommandDefinitionError,
    DuplicateCommandError,
    RegistryFrozenError,
    SchemaError,
    ValidationError,
)
from ledgerdb.schema.compiler import compile_schema


class ItemInput(BaseModel):
    table: str | None = None
    title: str
    qty: int = 1


async def _accept(conn: Any, input: Any, locked: Any) -> None:
    return None


async def _return_none(conn: Any, input: Any, locked: Any) -> None:
    return None


async def _target(conn: Any, input: Any, locked: Any) -> str:
    return input["row_id"]


async def _reject(conn: Any, input: Any, locked: Any) -> None:
    raise ValidationError("qty must be positive", field="qty")


@pytest.fixture
def registry() -> CommandRegistry:
    return CommandRegistry(compile_schema({"items": {"title": "text", "qty": "int4"}}))


class TestRegistration:
    """Tests for create_command."""

    def test_registers_and_looks_up(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="create_item", kind="create", table="items", validate=_accept
        )
        assert registry.get("create_item") is command
        assert command.kind is CommandKind.CREATE
        assert "create_item" in registry
        assert len(registry) == 1
        assert list(registry) == [command]

    def test_duplicate_name_raises(self, registry: CommandRegistry) -> None:
        """A second command with the same name is refused."""
        registry.create_command(name="create_item", kind="create", validate=_accept)

        with pytest.raises(DuplicateCommandError) as exc_info:
            registry.create_command(name="create_item", kind="create", validate=_accept)
        assert exc_info.value.name == "create_item"

    def test_frozen_registry_refuses(self, registry: CommandRegistry) -> None:
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.create_command(name="late", kind="create", validate=_accept)

    def test_kind_defaults_to_dispatch(self, registry: CommandRegistry) -> None:
        command = registry.create_command(name="plan", plan_actions=_plan_nothing)
        assert command.kind is CommandKind.DISPATCH

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"kind": "create"},
            {"kind": "modify"},
            {"kind": "dispatch"},
            {"kind": "upsert", "validate": _accept},
            {"kind": "create", "validate": _accept, "plan_actions": _accept},
            {"kind": "dispatch", "plan_actions": _accept, "validate": _accept},
            {"plan_actions": _accept, "table": "items"},
        ],
    )
    def test_inconsistent_definitions_raise(
        self, registry: CommandRegistry, kwargs: dict[str, Any]
    ) -> None:
        with pytest.raises(CommandDefinitionError):
            registry.create_command(name="broken", **kwargs)

    def test_empty_name_raises(self, registry: CommandRegistry) -> None:
        with pytest.raises(CommandDefinitionError):
            registry.create_command(name="", kind="create", validate=_accept)

    def test_unknown_table_raises(self, registry: CommandRegistry) -> None:
        with pytest.raises(SchemaError):
            registry.create_command(
                name="create_ghost", kind="create", table="ghosts", validate=_accept
            )

    def test_default_mutator_locks_nothing(self, registry: CommandRegistry) -> None:
        command = registry.create_command(name="create_item", kind="create", validate=_accept)
        assert command.mutator({"anything": 1}) == {}


async def _plan_nothing(conn: Any, input: Any, locked: Any) -> list[Any]:
    return []


class TestEvents:
    """Tests for event construction."""

    def test_direct_construction_is_refused(self) -> None:
        """Events can only be built through a registered command."""
        with pytest.raises(TypeError):
            CreationEvent(name="x", table="items", payload={})
        with pytest.raises(TypeError):
            ModificationEvent(name="x", table="items", row_id="r", payload={})

    def test_create_event_strips_table(self, registry: CommandRegistry) -> None:
        command = registry.create_command(name="create_item", kind="create", validate=_accept)

        event = command.create_event({"table": "items", "title": "a"})

        assert isinstance(event, CreationEvent)
        assert event.name == "create_item"
        assert event.table == "items"
        assert event.payload == {"title": "a"}

    def test_fixed_table_wins(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="create_item", kind="create", table="items", validate=_accept
        )
        event = command.create_event({"table": "other", "title": "a"})
        assert event.table == "items"
        assert "table" not in event.payload

    def test_model_input_is_dumped(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="create_item", kind="create", input_model=ItemInput, validate=_accept
        )
        event = command.create_event(ItemInput(table="items", title="a", qty=2))
        assert event.payload == {"title": "a", "qty": 2}

    def test_modify_event(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="rename_item", kind="modify", table="items", validate=_target
        )
        event = command.modify_event("row-1", {"title": "b"})
        assert isinstance(event, ModificationEvent)
        assert event.row_id == "row-1"
        assert event.payload == {"title": "b"}

    def test_event_factory_checks_kind(self, registry: CommandRegistry) -> None:
        create = registry.create_command(name="create_item", kind="create", validate=_accept)
        modify = registry.create_command(name="rename_item", kind="modify", validate=_target)
        with pytest.raises(CommandDefinitionError):
            create.modify_event("row-1", {})
        with pytest.raises(CommandDefinitionError):
            modify.create_event({})

    def test_non_mapping_data_raises(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="create_item", kind="create", table="items", validate=_accept
        )
        with pytest.raises(ValidationError):
            command.create_event(["not", "a", "mapping"])


class TestPlanActions:
    """Tests for synthesized plan_actions."""

    async def test_create_plans_one_event(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="create_item", kind="create", table="items", validate=_accept
        )
        events = await command.plan_actions(None, {"title": "a"}, {})
        assert len(events) == 1
        assert events[0].table == "items"

    async def test_validate_failure_propagates(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="create_item", kind="create", table="items", validate=_reject
        )
        with pytest.raises(ValidationError, match="qty must be positive"):
            await command.plan_actions(None, {"title": "a"}, {})

    async def test_modify_targets_returned_row(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="rename_item",
            kind="modify",
            table="items",
            mutator=lambda input: {"item": LockTarget("items", input["row_id"])},
            validate=_target,
        )
        events = await command.plan_actions(None, {"row_id": "row-9", "title": "b"}, {})
        assert events[0].row_id == "row-9"
        assert events[0].payload == {"row_id": "row-9", "title": "b"}

    async def test_modify_requires_row_id(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="rename_item", kind="modify", table="items", validate=_return_none
        )
        with pytest.raises(ValidationError):
            await command.plan_actions(None, {"title": "b"}, {})

    async def test_dispatch_uses_planner(self, registry: CommandRegistry) -> None:
        create = registry.create_command(
            name="create_item", kind="create", table="items", validate=_accept
        )

        async def two_items(conn: Any, input: Any, locked: Any) -> tuple[Any, ...]:
            return (create.create_event({"title": "a"}), None, create.create_event({"title": "b"}))

        command = registry.create_command(name="create_two", plan_actions=two_items)
        events = await command.plan_actions(None, {}, {})
        assert [e.payload["title"] if e else None for e in events] == ["a", None, "b"]

    @pytest.mark.parametrize(
        ("kind", "missing"),
        [
            (CommandKind.CREATE, "validate"),
            (CommandKind.MODIFY, "validate"),
            (CommandKind.DISPATCH, "plan_actions"),
        ],
    )
    async def test_hand_built_command_without_hook(
        self, kind: CommandKind, missing: str
    ) -> None:
        """A command built outside the registry reports its missing hook."""
        command = Command(name="bare", kind=kind, mutator=lambda input: {}, table="items")
        with pytest.raises(CommandDefinitionError, match=f"has no {missing}"):
            await command.plan_actions(None, {"title": "a"}, {})

    def test_parse_input(self, registry: CommandRegistry) -> None:
        command = registry.create_command(
            name="create_item", kind="create", input_model=ItemInput, validate=_accept
        )
        parsed = command.parse_input({"title": "a"})
        assert isinstance(parsed, ItemInput)
        assert command.parse_input(parsed) is parsed
