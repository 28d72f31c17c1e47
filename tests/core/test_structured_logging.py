"""
Tests for the logging module.

Tests verify:
- Console and JSON output carry the event and its fields
- LogContext fields are merged into events and removed afterwards
- Events below the configured level are dropped
"""

import io
import json

import pytest
import structlog

from migraid.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestConfigureLogging:
    def test_json_output_uses_ecs_field_names(self):
        stream = io.StringIO()
        configure_logging(level="INFO", json_format=True, stream=stream)

        get_logger("migraid.test").info("migration.applied", migration="a.py")

        (event,) = _lines(stream)
        assert event["event"] == "migration.applied"
        assert event["migration"] == "a.py"
        assert event["log.level"] == "info"
        assert event["service.name"] == "migraid"
        assert "@timestamp" in event

    def test_console_output(self):
        stream = io.StringIO()
        configure_logging(level="INFO", json_format=False, stream=stream)

        get_logger("migraid.test").info("database.connected", uri="mongodb://x")

        output = stream.getvalue()
        assert "database.connected" in output
        assert "mongodb://x" in output

    def test_level_filters_lower_events(self):
        stream = io.StringIO()
        configure_logging(level="WARNING", json_format=True, stream=stream)

        log = get_logger("migraid.test")
        log.info("ignored")
        log.warning("kept")

        assert [e["event"] for e in _lines(stream)] == ["kept"]

    def test_named_logger_error_events(self):
        stream = io.StringIO()
        configure_logging(level="WARNING", json_format=True, stream=stream)

        get_logger("migraid.core.migrations.store").error("migration.duplicate_record", migration="a.py")

        (event,) = _lines(stream)
        assert event["log.logger"] == "migraid.core.migrations.store"
        assert event["log.level"] == "error"

    def test_named_logger_console_error(self):
        stream = io.StringIO()
        configure_logging(level="WARNING", json_format=False, stream=stream)

        get_logger("migraid.core.connection").error("database.connect_failed", uri="mongodb://x")

        assert "database.connect_failed" in stream.getvalue()
        assert "migraid.core.connection" in stream.getvalue()

    def test_unknown_level_falls_back_to_info(self):
        stream = io.StringIO()
        configure_logging(level="chatty", json_format=True, stream=stream)

        log = get_logger("migraid.test")
        log.debug("ignored")
        log.info("kept")

        assert [e["event"] for e in _lines(stream)] == ["kept"]


class TestLogContext:
    def test_scoped_fields(self):
        stream = io.StringIO()
        configure_logging(level="INFO", json_format=True, stream=stream)
        log = get_logger("migraid.test")

        with LogContext(migration="a.py"):
            log.info("migration.started")
        log.info("run.finished")

        started, finished = _lines(stream)
        assert started["migration"] == "a.py"
        assert "migration" not in finished

    @pytest.mark.asyncio
    async def test_async_scoped_fields(self):
        stream = io.StringIO()
        configure_logging(level="INFO", json_format=True, stream=stream)
        bind_context(run="r1")

        async with LogContext(migration="b.py"):
            get_logger().info("migration.started")

        (event,) = _lines(stream)
        assert event["run"] == "r1"
        assert event["migration"] == "b.py"
