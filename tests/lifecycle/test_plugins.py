"""
Tests for the built-in logging and tracing plugins.
"""
from unittest.mock import MagicMock

import pytest

import config as config_module
from config import Config, LoggingSettings
from lifecycle import LoggingPlugin, PluginFuncs, TracingPlugin
from observability.logging import LoggingConfig
from observability.tracing import TracingConfig


@pytest.fixture
def fake_logging(monkeypatch):
    logger = MagicMock(name="logger")
    setup = MagicMock(name="setup_logging")
    monkeypatch.setattr("lifecycle.plugins.setup_logging", setup)
    monkeypatch.setattr("lifecycle.plugins.get_logger", MagicMock(return_value=logger))
    return setup, logger


class TestLoggingPlugin:
    @pytest.mark.asyncio
    async def test_installs_itself_as_hook(self, new_app, fake_logging):
        setup, logger = fake_logging
        config = LoggingConfig(level="DEBUG")
        plugin = LoggingPlugin(config)
        app = new_app()

        await app.initialize(plugin)
        await app.run()

        setup.assert_called_once_with(config)
        logger.info.assert_called_once_with("Application terminated", phase="terminated")

    @pytest.mark.asyncio
    async def test_defaults_to_application_config(self, new_app, fake_logging, monkeypatch):
        setup, _ = fake_logging
        monkeypatch.setattr(
            config_module,
            "_config",
            Config(service_name="billing", logging=LoggingSettings(level="ERROR", json_format=True, log_file=None)),
        )
        app = new_app()

        await app.initialize(LoggingPlugin())
        await app.run()

        (logging_config,), _ = setup.call_args
        assert logging_config.service_name == "billing"
        assert logging_config.level == "ERROR"
        assert logging_config.json_format is True

    @pytest.mark.asyncio
    async def test_logs_failed_phases(self, new_app, fake_logging, terminator):
        _, logger = fake_logging
        app = new_app()

        def fail(app):
            raise RuntimeError("port in use")

        await app.initialize(LoggingPlugin(), PluginFuncs(start_func=fail))
        await app.start()

        logger.error.assert_any_call(
            "Lifecycle phase failed",
            phase="startup",
            error="port in use",
            error_type="RuntimeError",
        )
        logger.error.assert_any_call(
            "Application terminated with error",
            phase="terminated",
            error="port in use",
        )
        assert str(terminator.calls[0]) == "port in use"


class TestTracingPlugin:
    @pytest.mark.asyncio
    async def test_owns_tracer_provider(self, new_app, monkeypatch):
        setup = MagicMock(name="setup_tracing")
        shutdown = MagicMock(name="shutdown_tracing")
        monkeypatch.setattr("lifecycle.plugins.setup_tracing", setup)
        monkeypatch.setattr("lifecycle.plugins.shutdown_tracing", shutdown)
        config = TracingConfig(enabled=False)
        app = new_app()

        await app.initialize(TracingPlugin(config))
        setup.assert_called_once_with(config)
        shutdown.assert_not_called()

        await app.run()
        shutdown.assert_called_once_with()
