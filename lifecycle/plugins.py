"""
Lifecycle - Built-in plugins.

LoggingPlugin wires the application hook to structured logging, which is the
usual way a process learns about failed phases. TracingPlugin installs an
OpenTelemetry tracer provider for the lifetime of the application.

Register them first so that they initialize before, and shut down after,
the plugins they observe.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from lifecycle.phases import Phase
from lifecycle.plugin import PluginBase
from observability.logging import (
    LoggingConfig,
    bind_context,
    get_logger,
    setup_logging,
    unbind_context,
)
from observability.tracing import TracingConfig, setup_tracing, shutdown_tracing

if TYPE_CHECKING:
    from lifecycle.application import Application


class LoggingPlugin(PluginBase):
    """
    Configures structlog and logs every phase transition.

    Without an explicit LoggingConfig the settings come from
    ``config.get_config().logging`` when the plugin initializes.
    """

    def __init__(self, config: Optional[LoggingConfig] = None):
        super().__init__("LoggingPlugin")
        self._config = config
        self._logger = None

    async def initialize(self, app: "Application") -> None:
        setup_logging(self._config or LoggingConfig.from_config())
        bind_context(instance_id=app.instance_id)
        self._logger = get_logger("lifecycle.hook")
        app.with_hook(self.log_phase)

    def log_phase(self, phase: str, error: Optional[BaseException]) -> None:
        logger = self._logger or get_logger("lifecycle.hook")
        if phase == Phase.TERMINATED:
            if error is None:
                logger.info("Application terminated", phase=phase)
            else:
                logger.error("Application terminated with error", phase=phase, error=str(error))
            unbind_context("instance_id")
            return

        logger.error(
            "Lifecycle phase failed",
            phase=phase,
            error=str(error),
            error_type=type(error).__name__,
        )


class TracingPlugin(PluginBase):
    """Owns the tracer provider: set up on initialize, flushed on shutdown."""

    def __init__(self, config: Optional[TracingConfig] = None):
        super().__init__("TracingPlugin")
        self._config = config

    async def initialize(self, app: "Application") -> None:
        setup_tracing(self._config)

    async def shutdown(self, app: "Application") -> None:
        shutdown_tracing()


__all__ = ["LoggingPlugin", "TracingPlugin"]
