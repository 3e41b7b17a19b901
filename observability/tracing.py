"""
Lifecycle - Distributed Tracing with OpenTelemetry

Phase loops run inside spans so that slow or failing plugins show up as
children of the phase that invoked them. Library code only talks to the
OpenTelemetry API; nothing is exported until ``setup_tracing`` installs an
SDK tracer provider (usually through ``TracingPlugin``).

Usage:
    from observability.tracing import setup_tracing, TracingConfig

    setup_tracing(TracingConfig(service_name="billing-worker"))

    with start_phase_span("startup", plugin_count=3) as span:
        ...
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.sampling import (
    ParentBased,
    TraceIdRatioBased,
    ALWAYS_ON,
    ALWAYS_OFF,
)
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

logger = logging.getLogger("lifecycle.tracing")

TRACER_NAME = "lifecycle"

# Global state
_tracer_provider: Optional[TracerProvider] = None


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing."""

    service_name: str = field(
        default_factory=lambda: os.getenv("LIFECYCLE_SERVICE_NAME", "lifecycle")
    )
    service_version: str = "1.0.0"
    otlp_endpoint: str = field(
        default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    )
    enabled: bool = field(
        default_factory=lambda: os.getenv("OTEL_TRACING_ENABLED", "true").lower() == "true"
    )
    sample_rate: float = field(
        default_factory=lambda: float(os.getenv("OTEL_SAMPLE_RATE", "1.0"))
    )
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )
    console_export: bool = field(
        default_factory=lambda: os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true"
    )
    batch_export: bool = True

    # Additional resource attributes
    extra_attributes: Dict[str, str] = field(default_factory=dict)


def setup_tracing(config: Optional[TracingConfig] = None) -> Optional[TracerProvider]:
    """
    Install an SDK tracer provider as the global provider.

    Returns None when tracing is disabled. Calling again returns the
    provider installed by the first call.
    """
    global _tracer_provider

    if _tracer_provider is not None:
        return _tracer_provider

    config = config or TracingConfig()
    if not config.enabled:
        logger.debug("Tracing disabled")
        return None

    resource = Resource.create({
        SERVICE_NAME: config.service_name,
        SERVICE_VERSION: config.service_version,
        "deployment.environment": config.environment,
        **config.extra_attributes,
    })

    if config.sample_rate <= 0.0:
        sampler = ALWAYS_OFF
    elif config.sample_rate >= 1.0:
        sampler = ALWAYS_ON
    else:
        sampler = ParentBased(root=TraceIdRatioBased(config.sample_rate))

    provider = TracerProvider(resource=resource, sampler=sampler)

    if config.otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True)
        if config.batch_export:
            provider.add_span_processor(BatchSpanProcessor(exporter))
        else:
            provider.add_span_processor(SimpleSpanProcessor(exporter))

    if config.console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    logger.debug(f"Tracing configured (service={config.service_name})")
    return provider


def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    """Get a tracer from the global provider (no-op until tracing is set up)."""
    return trace.get_tracer(name)


def shutdown_tracing() -> None:
    """Flush pending spans and release the provider installed by setup_tracing."""
    global _tracer_provider
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
    _tracer_provider = None


@contextmanager
def start_phase_span(
    phase: str,
    plugin_count: int,
    attributes: Optional[Dict[str, Any]] = None,
) -> Iterator[Span]:
    """
    Span around a full phase loop.

    Exceptions escaping the block are recorded on the span and re-raised.
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(f"lifecycle.{phase}", kind=SpanKind.INTERNAL) as span:
        span.set_attribute("lifecycle.phase", phase)
        span.set_attribute("lifecycle.plugin_count", plugin_count)
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


__all__ = [
    "TracingConfig",
    "setup_tracing",
    "get_tracer",
    "shutdown_tracing",
    "start_phase_span",
]
