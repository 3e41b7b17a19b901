"""
Lifecycle - Observability Package

Structured logging and distributed tracing for the supervisor.

Components:
- logging: structlog rendering for structlog and stdlib records, with trace context
- tracing: OpenTelemetry tracer provider setup and phase spans

Usage:
    from observability import setup_logging, setup_tracing, get_logger

    setup_logging()
    setup_tracing()
    logger = get_logger(__name__)
"""
from .logging import (
    LoggingConfig,
    bind_context,
    get_logger,
    setup_logging,
    unbind_context,
)
from .tracing import (
    TracingConfig,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
    start_phase_span,
)

__all__ = [
    # Logging
    "LoggingConfig",
    "bind_context",
    "get_logger",
    "setup_logging",
    "unbind_context",
    # Tracing
    "TracingConfig",
    "get_tracer",
    "setup_tracing",
    "shutdown_tracing",
    "start_phase_span",
]
