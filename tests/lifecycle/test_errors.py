"""
Tests for the lifecycle error taxonomy.
"""
from unittest.mock import MagicMock, patch

from lifecycle import (
    ErrorContext,
    ErrorSeverity,
    GuardViolationError,
    InitializeAfterStartupError,
    LifecycleError,
    RunOrStartError,
    State,
)


class TestLifecycleError:
    def test_default_message(self):
        error = LifecycleError()

        assert str(error) == "lifecycle error"
        assert error.severity == ErrorSeverity.ERROR

    def test_to_dict_includes_context(self):
        error = LifecycleError("boom", context=ErrorContext(operation="run", metadata={"a": 1}))
        data = error.to_dict()

        assert data["error_code"] == "LIFECYCLE_ERROR"
        assert data["message"] == "boom"
        assert data["context"]["operation"] == "run"
        assert data["context"]["component"] == "application"
        assert data["context"]["metadata"] == {"a": 1}

    def test_records_to_current_span(self):
        span = MagicMock()
        span.is_recording.return_value = True

        with patch("lifecycle.errors.trace.get_current_span", return_value=span):
            error = RunOrStartError(state=State.STARTED, context=ErrorContext(operation="run"))

        span.record_exception.assert_called_once_with(error)
        span.set_attribute.assert_any_call("error.code", "RUN_OR_START")
        span.set_attribute.assert_any_call("error.operation", "run")


class TestGuardViolations:
    def test_initialize_after_startup_message(self):
        error = InitializeAfterStartupError(state=State.STARTED)

        assert str(error) == "cannot initialize application after startup"
        assert error.state == State.STARTED
        assert error.severity == ErrorSeverity.FATAL
        assert isinstance(error, GuardViolationError)

    def test_run_or_start_message(self):
        error = RunOrStartError(state=State.RUNNING)

        assert str(error) == "cannot start and run an application in the same execution context"
        assert error.error_code == "RUN_OR_START"
        assert isinstance(error, LifecycleError)
