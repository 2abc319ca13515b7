"""
Tests for isolator.core.logging.

Tests verify:
- Verbosity maps to DEBUG / WARNING
- JSON output carries ECS field names and bound context
- DEBUG logs are suppressed at WARNING level
"""

import io
import json

import structlog

from isolator.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    ensure_logging,
    get_logger,
    level_for,
)


def _configure(level: str = "DEBUG") -> io.StringIO:
    stream = io.StringIO()
    configure_logging(level=level, json_format=True, stream=stream)
    return stream


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestLevels:
    def test_level_for(self):
        assert level_for(True) == "DEBUG"
        assert level_for(False) == "WARNING"

    def test_debug_suppressed_at_warning(self):
        stream = _configure("WARNING")
        logger = get_logger("test")
        logger.debug("hidden")
        logger.warning("shown")
        events = [e["event"] for e in _lines(stream)]
        assert events == ["shown"]


class TestJsonFormat:
    def test_ecs_fields(self):
        stream = _configure()
        get_logger("test").info("member.copied", source="a.js")
        (line,) = _lines(stream)
        assert line["event"] == "member.copied"
        assert line["source"] == "a.js"
        assert line["log.level"] == "info"
        assert line["service.name"] == "isolator"
        assert "@timestamp" in line

    def test_bound_context(self):
        stream = _configure()
        bind_context(run_id="abc123")
        get_logger("test").info("closure.traced")
        clear_context()
        get_logger("test").info("after")
        first, second = _lines(stream)
        assert first["run_id"] == "abc123"
        assert "run_id" not in second

    def test_log_context_manager(self):
        stream = _configure()
        with LogContext(run_id="r1"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")
        inside, outside = _lines(stream)
        assert inside["run_id"] == "r1"
        assert "run_id" not in outside


class TestGetLogger:
    def test_named_logger_logs(self):
        stream = _configure()
        get_logger("x").info("workspace.located", root="/repo")
        (line,) = _lines(stream)
        assert line["event"] == "workspace.located"
        assert line["logger_name"] == "x"

    def test_module_level_logger_follows_reconfiguration(self):
        logger = get_logger("isolator.isolation.pipeline")
        first = _configure()
        logger.info("one")
        second = _configure()
        logger.info("two")
        assert [e["event"] for e in _lines(first)] == ["one"]
        assert [e["event"] for e in _lines(second)] == ["two"]

    def test_unnamed_logger(self):
        stream = _configure()
        get_logger().info("plain")
        (line,) = _lines(stream)
        assert "logger_name" not in line


class TestEnsureLogging:
    def test_installs_quiet_default(self, capsys):
        assert not structlog.is_configured()
        ensure_logging()
        assert structlog.is_configured()
        get_logger("x").debug("hidden")
        get_logger("x").warning("shown")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "hidden" not in captured.err
        assert "shown" in captured.err

    def test_keeps_existing_configuration(self):
        stream = _configure("DEBUG")
        ensure_logging()
        get_logger("x").debug("kept")
        assert [e["event"] for e in _lines(stream)] == ["kept"]
