"""
Lifecycle - Error Taxonomy

Errors raised by the supervisor itself. Plugin-reported errors are never
wrapped: whatever a plugin raises is what the hook and the terminator see.

Categories:
- Guard violations: a phase was requested from a state that forbids it
- Resource store errors: missing keys or mistyped values

Every LifecycleError records itself on the current OpenTelemetry span so
guard violations show up next to the phase spans that produced them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Type

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    """Error severity levels."""

    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"  # The application cannot continue and will terminate


@dataclass
class ErrorContext:
    """Structured context describing where an error was raised."""

    operation: str
    component: str = "application"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class LifecycleError(Exception):
    """
    Base exception for errors raised by the supervisor.

    Provides:
    - Error code and severity
    - Optional structured context
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "LIFECYCLE_ERROR"
    default_message: str = "lifecycle error"

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.context = context
        self.severity = severity or self.default_severity
        self.timestamp = datetime.now(timezone.utc)

        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if span and span.is_recording():
            span.set_status(Status(StatusCode.ERROR, self.message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            span.set_attribute("error.severity", self.severity.value)
            if self.context:
                span.set_attribute("error.operation", self.context.operation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
        }

    def __str__(self) -> str:
        return self.message


class GuardViolationError(LifecycleError):
    """A phase entry point was invoked from a state that does not permit it."""

    error_code = "GUARD_VIOLATION"
    default_severity = ErrorSeverity.FATAL
    default_message = "phase requested from an illegal state"

    def __init__(self, message: Optional[str] = None, state: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.state = state


class InitializeAfterStartupError(GuardViolationError):
    """Initialize was called after run or start."""

    error_code = "INITIALIZE_AFTER_STARTUP"
    default_message = "cannot initialize application after startup"


class RunOrStartError(GuardViolationError):
    """Both run and start were requested on the same application."""

    error_code = "RUN_OR_START"
    default_message = "cannot start and run an application in the same execution context"


class ResourceNotFoundError(LifecycleError, KeyError):
    """No value has been published for a resource key."""

    error_code = "RESOURCE_NOT_FOUND"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, key: Any, **kwargs: Any):
        super().__init__(f"no resource published for {key}", **kwargs)
        self.key = key

    def __str__(self) -> str:
        return self.message


class ResourceTypeError(LifecycleError, TypeError):
    """A published value does not match the type declared by its key."""

    error_code = "RESOURCE_TYPE_MISMATCH"

    def __init__(self, key: Any, expected: Type, actual: Any, **kwargs: Any):
        super().__init__(
            f"resource {key} expects {expected.__name__}, got {type(actual).__name__}",
            **kwargs,
        )
        self.key = key
        self.expected_type = expected
        self.actual_value = actual


__all__ = [
    "ErrorSeverity",
    "ErrorContext",
    "LifecycleError",
    "GuardViolationError",
    "InitializeAfterStartupError",
    "RunOrStartError",
    "ResourceNotFoundError",
    "ResourceTypeError",
]
