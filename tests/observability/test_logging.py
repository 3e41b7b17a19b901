"""
Tests for observability/logging.py - structlog setup and processors.
"""
import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog

import config as config_module
from config import Config, Environment, LoggingSettings
from observability import logging as lifecycle_logging
from observability.logging import (
    LoggingConfig,
    add_service_context,
    add_trace_context,
    bind_context,
    get_logger,
    setup_logging,
    unbind_context,
)


@pytest.fixture
def fresh_logging(monkeypatch):
    """Unconfigured logging, restoring the root logger afterwards."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    monkeypatch.setattr(lifecycle_logging, "_configured", False)
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    structlog.reset_defaults()


def read_records(path):
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestLoggingConfig:
    def test_from_config(self):
        config = Config(
            service_name="worker",
            environment=Environment.STAGING,
            logging=LoggingSettings(level="DEBUG", json_format=True, log_file="/tmp/worker.log"),
        )

        logging_config = LoggingConfig.from_config(config)

        assert logging_config.service_name == "worker"
        assert logging_config.level == "DEBUG"
        assert logging_config.json_format is True
        assert str(logging_config.log_file_path) == "/tmp/worker.log"
        assert logging_config.environment == "staging"

    def test_from_config_defaults_to_singleton(self, monkeypatch):
        monkeypatch.setattr(
            config_module,
            "_config",
            Config(service_name="singleton", logging=LoggingSettings(level="ERROR", json_format=False, log_file=None)),
        )

        logging_config = LoggingConfig.from_config()

        assert logging_config.service_name == "singleton"
        assert logging_config.level == "ERROR"
        assert logging_config.log_file_path is None


class TestSetupLogging:
    def test_setup_is_idempotent(self, fresh_logging):
        setup_logging(LoggingConfig(level="WARNING", log_to_console=True))
        setup_logging(LoggingConfig(level="DEBUG"))

        assert logging.getLogger().level == logging.WARNING

    def test_setup_without_arguments_uses_app_config(self, fresh_logging, monkeypatch, tmp_path):
        path = tmp_path / "app.log"
        monkeypatch.setattr(
            config_module,
            "_config",
            Config(service_name="billing", logging=LoggingSettings(level="ERROR", json_format=True, log_file=str(path))),
        )

        setup_logging()
        logging.getLogger("lifecycle.test").warning("dropped")
        logging.getLogger("lifecycle.test").error("kept")

        records = read_records(path)
        assert [r["event"] for r in records] == ["kept"]
        assert records[0]["service"] == "billing"

    def test_stdlib_and_structlog_share_the_chain(self, fresh_logging, tmp_path):
        path = tmp_path / "logs" / "lifecycle.log"
        setup_logging(LoggingConfig(service_name="api", log_to_console=False, log_file_path=path))

        bind_context(instance_id="3f2a9c1e")
        try:
            logging.getLogger("lifecycle.application").warning("from %s", "stdlib")
            get_logger("lifecycle.hook").info("from structlog", phase="startup")
        finally:
            unbind_context("instance_id")

        stdlib_record, structlog_record = read_records(path)
        assert stdlib_record["event"] == "from stdlib"
        assert stdlib_record["level"] == "warning"
        assert stdlib_record["logger"] == "lifecycle.application"
        assert structlog_record["event"] == "from structlog"
        assert structlog_record["phase"] == "startup"
        for record in (stdlib_record, structlog_record):
            assert record["service"] == "api"
            assert record["instance_id"] == "3f2a9c1e"
            assert "timestamp" in record

    def test_exceptions_are_rendered(self, fresh_logging, tmp_path):
        path = tmp_path / "errors.log"
        setup_logging(LoggingConfig(log_to_console=False, log_file_path=path))

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logging.getLogger("lifecycle.termination").exception("terminated")

        (record,) = read_records(path)
        assert record["event"] == "terminated"
        assert "RuntimeError: boom" in record["exception"]


class TestProcessors:
    def test_service_context(self):
        processor = add_service_context("api", "production")

        event = processor(None, "info", {"event": "hello"})

        assert event == {"event": "hello", "service": "api", "environment": "production"}

    def test_trace_context_without_span(self):
        assert add_trace_context(None, "info", {"event": "hello"}) == {"event": "hello"}

    def test_trace_context_with_recording_span(self):
        span = MagicMock()
        span.is_recording.return_value = True
        span.get_span_context.return_value = MagicMock(trace_id=1, span_id=2)

        with patch.object(lifecycle_logging.trace, "get_current_span", return_value=span):
            event = add_trace_context(None, "info", {})

        assert event["trace_id"] == "0" * 31 + "1"
        assert event["span_id"] == "0" * 15 + "2"
