"""
Lifecycle - Structured Logging with Trace Context

The supervisor's own modules log through stdlib ``logging`` loggers named
``lifecycle.<module>``; plugins usually log through structlog. Both streams
are rendered by the same structlog processor chain, so every line carries
the service, the bound application instance and, while a phase span is
active, its trace_id and span_id.

Usage:
    from observability.logging import setup_logging, get_logger

    setup_logging()                      # settings from config.get_config()

    logger = get_logger(__name__)
    logger.info("Plugin initialized", plugin="database")
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor, WrappedLogger

from config import Config, get_config

_configured: bool = False


@dataclass
class LoggingConfig:
    """Resolved logging settings; build from the application config."""

    service_name: str = "lifecycle"
    environment: str = "development"
    level: str = "INFO"
    json_format: bool = False
    log_file_path: Optional[Path] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    enable_trace_context: bool = True
    log_to_console: bool = True

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "LoggingConfig":
        """Translate ``Config.logging`` (default: the config singleton)."""
        config = config or get_config()
        return cls(
            service_name=config.service_name,
            environment=config.environment.value,
            level=config.logging.level,
            json_format=config.logging.json_format,
            log_file_path=Path(config.logging.log_file) if config.logging.log_file else None,
        )


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add the current span's trace_id/span_id, if a span is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_service_context(service_name: str, environment: str) -> Processor:
    """Processor stamping every event with the service and environment."""

    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("environment", environment)
        return event_dict

    return processor


def _shared_processors(config: LoggingConfig) -> List[Processor]:
    """Processors applied to both structlog and stdlib records."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.environment),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if config.enable_trace_context:
        processors.append(add_trace_context)
    return processors


def _formatter(config: LoggingConfig, json_format: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_format:
        renderers: List[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(config),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog and route the root logger through it.

    Subsequent calls are ignored, so the first configuration wins.
    """
    global _configured

    if _configured:
        return

    config = config or LoggingConfig.from_config()
    level = getattr(logging, config.level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            *_shared_processors(config),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: List[logging.Handler] = []
    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_formatter(config, config.json_format))
        handlers.append(console_handler)

    if config.log_file_path is not None:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
        # Files are always machine-readable
        file_handler.setFormatter(_formatter(config, json_format=True))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(level)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, configuring logging on first use."""
    if not _configured:
        setup_logging()
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields (e.g. the application instance) to every later log line."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


__all__ = [
    "LoggingConfig",
    "setup_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "add_trace_context",
    "add_service_context",
]
