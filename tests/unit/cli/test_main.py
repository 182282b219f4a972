"""Unit tests for the ledgerdb CLI."""

import asyncio
import logging
from pathlib import Path
import re

import pytest
from typer.testing import CliRunner
import yaml

from ledgerdb import __version__
from ledgerdb.cli.main import app
from ledgerdb.config.loader import load_schema
from ledgerdb.observability.logging import reset_logging
from ledgerdb.persistence.store import LedgerStore
from ledgerdb.system import EventSourcing

runner = CliRunner()


def _clean(output: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", output)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and log files inside tmp_path."""
    monkeypatch.setenv("LEDGERDB_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("LEDGERDB_DATABASE_URL", raising=False)
    yield
    reset_logging()
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
        handler.close()


@pytest.fixture
def schema_file(tmp_path) -> Path:
    path = tmp_path / "schema.yaml"
    path.write_text(
        yaml.safe_dump({"counters": {"name": "text", "value": "int4"}}, sort_keys=False)
    )
    return path


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


class TestMainApp:
    """Tests for the main Typer application."""

    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "ledgerdb" in result.output

    def test_version(self) -> None:
        for flag in ("--version", "-V"):
            result = runner.invoke(app, [flag])
            assert result.exit_code == 0
            assert __version__ in _clean(result.output)

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert result.exit_code == 2
        assert "schema" in result.output


class TestSchemaShow:
    """Tests for `ledgerdb schema show`."""

    def test_postgresql_statements(self, schema_file: Path) -> None:
        result = runner.invoke(app, ["schema", "show", str(schema_file)])

        output = _clean(result.output)
        assert result.exit_code == 0
        assert "counters" in output
        assert "RETURNING" in output
        assert "coalesce" in output
        assert "%(row_id)s" in output

    def test_sqlite_statements(self, schema_file: Path) -> None:
        result = runner.invoke(app, ["schema", "show", str(schema_file), "--dialect", "sqlite"])

        assert result.exit_code == 0
        assert "?" in _clean(result.output)

    def test_unknown_dialect(self, schema_file: Path) -> None:
        result = runner.invoke(app, ["schema", "show", str(schema_file), "-d", "oracle"])
        assert result.exit_code == 1
        assert "Unsupported dialect" in _clean(result.output)

    def test_invalid_schema_file(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"counters": {"name": "varchar"}}))

        result = runner.invoke(app, ["schema", "show", str(path)])

        assert result.exit_code == 1
        assert "Invalid schema" in _clean(result.output)


class TestDb:
    """Tests for `ledgerdb db`."""

    def test_init_creates_database(self, schema_file: Path, database_url: str, tmp_path) -> None:
        result = runner.invoke(
            app, ["db", "init", str(schema_file), "--database-url", database_url]
        )

        assert result.exit_code == 0, result.output
        assert "Initialized" in _clean(result.output)
        assert (tmp_path / "ledger.db").exists()

    def test_init_uses_configured_url(self, schema_file: Path, tmp_path) -> None:
        result = runner.invoke(app, ["db", "init", str(schema_file)])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "home" / "ledger.db").exists()

    def test_log_of_unknown_row(self, schema_file: Path, database_url: str) -> None:
        result = runner.invoke(
            app, ["db", "log", str(schema_file), "counters", "nope", "--database-url", database_url]
        )

        assert result.exit_code == 0, result.output
        assert "No events recorded" in _clean(result.output)

    def test_log_of_unknown_table(self, schema_file: Path, database_url: str) -> None:
        result = runner.invoke(
            app, ["db", "log", str(schema_file), "ghosts", "x", "--database-url", database_url]
        )

        assert result.exit_code == 1
        assert "Unknown table" in _clean(result.output)

    def test_log_lists_entries(self, schema_file: Path, database_url: str) -> None:
        """Entries written through run_command are listed in order."""
        row_id = asyncio.run(_seed(schema_file, database_url))

        result = runner.invoke(
            app, ["db", "log", str(schema_file), "counters", row_id, "--database-url", database_url]
        )

        output = _clean(result.output)
        assert result.exit_code == 0, result.output
        assert "create_counter" in output
        assert "cli" in output


async def _accept(conn, input, locked) -> None:
    return None


async def _seed(schema_file: Path, database_url: str) -> str:
    system = EventSourcing(load_schema(schema_file))
    create_counter = system.create_command(
        name="create_counter", kind="create", table="counters", validate=_accept
    )
    system.reducer("counters").creator(create_counter, lambda data: data)

    store = LedgerStore(system.schema, database_url)
    await store.initialize()
    try:
        async with store.connect() as conn:
            result = await system.run_command(
                conn, create_counter, {"name": "hits", "value": 1}, "cli"
            )
        return result.value.created_ids[0]
    finally:
        await store.close()
