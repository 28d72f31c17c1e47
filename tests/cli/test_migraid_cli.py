"""Tests for migraid.cli: create / up / status / config show.

The database is the in-memory client from ``conftest``; ``connect`` is
patched so the real database-name check still runs.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from pymongo.errors import OperationFailure
from typer.testing import CliRunner

from migraid.cli import app
from migraid.core.connection import connect

runner = CliRunner()


@pytest.fixture
def db_client(client):
    with patch("migraid.cli.app.connect", lambda settings: connect(settings, client=client)):
        yield client


def _up(migrations_dir: Path, *extra: str):
    return runner.invoke(
        app, [*extra, "up", "--database", "app", "--directory", str(migrations_dir)]
    )


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("migraid ")


class TestCreate:
    def test_creates_file(self, migrations_dir: Path):
        result = runner.invoke(app, ["create", "Add users", "--directory", str(migrations_dir)])

        assert result.exit_code == 0, result.output
        assert "Created migration file" in result.output
        (created,) = migrations_dir.iterdir()
        assert created.name.endswith(".add-users.py")

    def test_missing_name_prints_usage_and_fails(self, migrations_dir: Path):
        result = runner.invoke(app, ["create", "--directory", str(migrations_dir)])

        assert result.exit_code == 1
        assert "Please specify a migration name." in result.output
        assert "Usage" in result.output
        assert list(migrations_dir.iterdir()) == []

    def test_unwritable_directory_fails(self, tmp_path: Path):
        result = runner.invoke(app, ["create", "init", "--directory", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "FILE_WRITE" in result.output


class TestUp:
    def test_applies_pending_in_order(self, db_client, migrations_dir: Path, write_migration):
        write_migration("20240102_000000.second")
        write_migration("20240101_000000.first")

        result = _up(migrations_dir)

        assert result.exit_code == 0, result.output
        assert "== Migrating '20240101_000000.first.py'..." in result.output
        assert "== Migrated '20240102_000000.second.py'." in result.output
        assert "Applied 2 migration(s)." in result.output
        assert db_client["app"]["_migrations"].ids == [
            "20240101_000000.first.py",
            "20240102_000000.second.py",
        ]
        assert db_client["app"]["log"].ids == ["20240101_000000.first", "20240102_000000.second"]
        assert db_client.closed is True

    def test_nothing_pending_reports_last_applied(self, db_client, migrations_dir: Path, write_migration):
        write_migration("20240101_000000.first")
        assert _up(migrations_dir).exit_code == 0

        result = _up(migrations_dir)

        assert result.exit_code == 0, result.output
        assert "No new migration scripts found." in result.output
        assert "20240101_000000.first.py" in result.output

    def test_failure_exits_nonzero_and_keeps_prefix(self, db_client, migrations_dir: Path, write_migration):
        write_migration("20240101_000000.first")
        write_migration(
            "20240102_000000.broken",
            body="""\
                async def up(db):
                    raise RuntimeError("boom")
                """,
        )
        write_migration("20240103_000000.third")

        result = _up(migrations_dir)

        assert result.exit_code == 1
        assert "MIGRATION_EXECUTION" in result.output
        assert "Applied before the failure" in result.output
        assert db_client["app"]["_migrations"].ids == ["20240101_000000.first.py"]

    def test_store_failure_reports_applied_prefix(
        self, db_client, migrations_dir: Path, write_migration, monkeypatch: pytest.MonkeyPatch
    ):
        write_migration("20240101_000000.first")
        write_migration("20240102_000000.second")
        records = db_client["app"]["_migrations"]
        insert_one = records.insert_one

        async def not_primary_after_first(doc):
            if records.docs:
                raise OperationFailure("not primary")
            await insert_one(doc)

        monkeypatch.setattr(records, "insert_one", not_primary_after_first)

        result = _up(migrations_dir)

        assert result.exit_code == 1
        assert "DATABASE_OPERATION" in result.output
        assert "Applied before the failure" in result.output
        assert records.ids == ["20240101_000000.first.py"]

    def test_invalid_filename_aborts_before_running(self, db_client, migrations_dir: Path, write_migration):
        write_migration("20240101_000000.first")
        (migrations_dir / "notes.py").write_text("", encoding="utf-8")

        result = _up(migrations_dir)

        assert result.exit_code == 1
        assert "INVALID_FILENAME_FORMAT" in result.output
        assert db_client["app"]["_migrations"].ids == []

    def test_missing_database_name(self, db_client, migrations_dir: Path):
        result = runner.invoke(app, ["up", "--directory", str(migrations_dir)])

        assert result.exit_code == 1
        assert "DATABASE_CONNECTION" in result.output

    def test_unreachable_database(self, db_client, migrations_dir: Path):
        db_client.reachable = False

        result = _up(migrations_dir)

        assert result.exit_code == 1
        assert "DATABASE_CONNECTION" in result.output


class TestBetaCheckout:
    @pytest.fixture
    def beta_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
        cwd = tmp_path / "service-beta"
        cwd.mkdir()
        monkeypatch.chdir(cwd)
        return cwd

    def test_refuses_production(self, beta_cwd, db_client, migrations_dir: Path, write_migration):
        write_migration("20240101_000000.first")

        result = _up(migrations_dir, "--env", "production")

        assert result.exit_code == 1
        assert "Detected BETA directory" in result.output
        assert db_client["app"]["_migrations"].ids == []

    def test_refuses_unset_environment(self, beta_cwd, db_client, migrations_dir: Path):
        result = _up(migrations_dir)
        assert result.exit_code == 1

    def test_runs_with_beta_environment(self, beta_cwd, db_client, migrations_dir: Path, write_migration):
        write_migration("20240101_000000.first")

        result = _up(migrations_dir, "--env", "beta")

        assert result.exit_code == 0, result.output
        assert db_client["app"]["_migrations"].ids == ["20240101_000000.first.py"]

    def test_create_refuses_production(self, beta_cwd, migrations_dir: Path):
        result = runner.invoke(
            app, ["--env", "production", "create", "init", "--directory", str(migrations_dir)]
        )

        assert result.exit_code == 1
        assert "Detected BETA directory" in result.output
        assert list(migrations_dir.iterdir()) == []

    def test_config_show_refuses_unset_environment(self, beta_cwd):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 1
        assert "CONFIG" in result.output

    def test_create_allowed_with_beta_environment(self, beta_cwd, migrations_dir: Path):
        result = runner.invoke(app, ["--env", "beta", "create", "init", "--directory", str(migrations_dir)])

        assert result.exit_code == 0, result.output
        assert len(list(migrations_dir.iterdir())) == 1


class TestStatus:
    def test_json(self, db_client, migrations_dir: Path, write_migration):
        write_migration("20240101_000000.first")
        assert _up(migrations_dir).exit_code == 0
        write_migration("20240102_000000.second")

        result = runner.invoke(
            app, ["status", "--database", "app", "--directory", str(migrations_dir), "--json"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["up_to_date"] is False
        assert [(m["migration"], m["state"]) for m in data["migrations"]] == [
            ("20240101_000000.first.py", "applied"),
            ("20240102_000000.second.py", "pending"),
        ]

    def test_table_up_to_date(self, db_client, migrations_dir: Path, write_migration):
        write_migration("20240101_000000.first")
        assert _up(migrations_dir).exit_code == 0

        result = runner.invoke(app, ["status", "--database", "app", "--directory", str(migrations_dir)])

        assert result.exit_code == 0, result.output
        assert "Database is up to date." in result.output


class TestConfigShow:
    def test_env_format(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MIGRAID_DATABASE", "app")

        result = runner.invoke(app, ["config", "show", "--format", "env"])

        assert result.exit_code == 0, result.output
        assert "MIGRAID_DATABASE=app" in result.output
        assert "MIGRAID_COLLECTION=_migrations" in result.output

    def test_json_format(self):
        result = runner.invoke(app, ["config", "show", "--format", "json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["collection"] == "_migrations"

    def test_table_format_uses_environment_file(self, tmp_path: Path):
        (tmp_path / "project" / ".env.staging").write_text("MIGRAID_DATABASE=staging_db\n")

        result = runner.invoke(app, ["--env", "staging", "config", "show"])

        assert result.exit_code == 0, result.output
        assert "staging" in result.output
        assert "staging_db" in result.output
        assert "Compiled artifacts: not required" in result.output

    def test_invalid_setting_fails(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MIGRAID_PORT", "0")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 1
        assert "INVALID_CONFIG" in result.output
