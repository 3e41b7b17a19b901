"""
Lifecycle - Application

The supervisor. An Application drives an ordered list of plugins through
initialization, exactly one of run (one-shot) or start (serve until
shutdown), and a reverse-order teardown that every registered plugin takes
part in exactly once.

Lifecycle:
    INITIAL → RUNNING | STARTED → SHUTDOWN → TERMINATED

Control flow:
    - initialize() appends plugins and initializes them in order
    - run() / start() iterate plugins forward behind a compare-and-swap guard
    - any error, any guard violation and any SIGTERM/SIGINT converge on the
      shutdown coordinator, which tears plugins down in reverse order once
    - shutdown() then reports "terminated" to the hook and hands the
      terminal error to the terminator

Public phase methods never raise plugin errors to the caller. Outcomes are
reported through the hook and the terminator only.

Usage:
    async def main() -> None:
        app = Application()
        await app.initialize(LoggingPlugin(), DatabasePlugin(), ServerPlugin())
        await app.start()

    asyncio.run(main())
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)
from uuid import UUID, uuid4

from opentelemetry.trace import Status, StatusCode

from config import SupervisorConfig, get_config
from lifecycle.errors import (
    ErrorContext,
    GuardViolationError,
    InitializeAfterStartupError,
    RunOrStartError,
)
from lifecycle.phases import Hook, Phase, noop_hook, notify
from lifecycle.plugin import invoke, plugin_name
from lifecycle.shutdown import ShutdownCoordinator
from lifecycle.signals import SignalWatcher
from lifecycle.state import State, StateMachine
from lifecycle.store import ResourceKey, ResourceStore
from lifecycle.termination import Terminator, exit_on_error
from observability.tracing import start_phase_span

logger = logging.getLogger("lifecycle.application")

T = TypeVar("T")


# =============================================================================
# LIFECYCLE EVENTS
# =============================================================================


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    """Immutable record of a single plugin invocation."""
    event_id: UUID
    timestamp: float
    phase: Phase
    component: str
    success: bool
    duration_ms: float
    error: Optional[str] = None
    error_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success_event(cls, phase: Phase, component: str, duration_ms: float) -> "LifecycleEvent":
        return cls(
            event_id=uuid4(),
            timestamp=time.time(),
            phase=phase,
            component=component,
            success=True,
            duration_ms=duration_ms,
        )

    @classmethod
    def failure_event(
        cls,
        phase: Phase,
        component: str,
        error: BaseException,
        duration_ms: float,
    ) -> "LifecycleEvent":
        return cls(
            event_id=uuid4(),
            timestamp=time.time(),
            phase=phase,
            component=component,
            success=False,
            duration_ms=duration_ms,
            error=str(error),
            error_type=type(error).__name__,
        )


# =============================================================================
# APPLICATION CORE
# =============================================================================


_CAPABILITIES = {
    Phase.INITIALIZATION: "initialize",
    Phase.RUNNING: "run",
    Phase.STARTUP: "start",
    Phase.SHUTDOWN: "shutdown",
}


class Application:
    """
    Pluggable container that manages a process's lifecycle.

    Must be constructed inside a running event loop: the shutdown listener
    task and the signal handlers are set up eagerly by the constructor.

    Responsibilities:
        - Plugin registration and ordered phase execution
        - Guarded state transitions
        - Signal handling for graceful shutdown
        - Exactly-once reverse teardown and termination
        - Sharing resources between plugins through the resource store
    """

    __slots__ = (
        "_config",
        "_state",
        "_plugins",
        "_hook",
        "_terminator",
        "_context",
        "_signals",
        "_coordinator",
        "_listener",
        "_lifecycle_events",
        "_instance_id",
    )

    def __init__(
        self,
        hook: Optional[Hook] = None,
        terminator: Optional[Terminator] = None,
        parent_store: Optional[ResourceStore] = None,
        config: Optional[SupervisorConfig] = None,
        handle_signals: Optional[bool] = None,
    ):
        loop = asyncio.get_running_loop()

        self._config = config or get_config().supervisor
        self._instance_id = str(uuid4())[:8]
        self._state = StateMachine(State.INITIAL)
        self._plugins: List[Any] = []
        self._hook: Hook = hook or noop_hook
        self._terminator: Terminator = terminator or exit_on_error(self._config.failure_exit_code)
        self._context = (parent_store or ResourceStore()).derive()
        self._lifecycle_events: List[LifecycleEvent] = []

        if handle_signals is None:
            handle_signals = self._config.handle_signals
        self._signals: Optional[SignalWatcher] = None
        if handle_signals:
            self._signals = SignalWatcher(self._on_signal, self._config.signals, loop)

        self._coordinator = ShutdownCoordinator(
            self._plugins,
            self._state,
            self._context,
            self._teardown_plugin,
            self._signals,
        )

        if self._signals is not None:
            self._signals.install()
        self._listener = loop.create_task(
            self._coordinator.listen(),
            name=f"lifecycle:shutdown-listener:{self._instance_id}",
        )
        logger.debug(f"Application created (instance={self._instance_id})")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> State:
        """Current lifecycle state."""
        return self._state.state

    @property
    def plugins(self) -> Tuple[Any, ...]:
        """Registered plugins, in registration order."""
        return tuple(self._plugins)

    @property
    def context(self) -> ResourceStore:
        """The resource store shared with plugins."""
        return self._context

    @property
    def config(self) -> SupervisorConfig:
        return self._config

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def done(self) -> bool:
        """Whether the teardown loop has completed."""
        return self._coordinator.done

    @property
    def terminal_error(self) -> Optional[BaseException]:
        """The error that initiated shutdown, if any."""
        return self._coordinator.error

    @property
    def events(self) -> Tuple[LifecycleEvent, ...]:
        return tuple(self._lifecycle_events)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def with_hook(self, hook: Hook) -> "Application":
        """
        Configure the listener for state transitions. The last hook set wins.
        Typically called by a logging plugin during its initialization.
        """
        self._hook = hook
        return self

    def with_value(self, key: ResourceKey[T], value: T) -> "Application":
        """Publish a resource for other plugins or the caller."""
        self._context.set(key, value)
        return self

    def get_value(self, key: ResourceKey[T]) -> T:
        return self._context.resolve(key)

    def try_get_value(self, key: ResourceKey[T], default: Optional[T] = None) -> Optional[T]:
        return self._context.try_resolve(key, default)

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def initialize(self, *plugins: Any) -> None:
        """
        Append plugins and initialize each of them in order.

        Must be called before run or start. The first failure stops the batch
        and shuts the application down; plugins that were appended but never
        initialized are still torn down.
        """
        if self._state.state > State.INITIAL:
            error = InitializeAfterStartupError(
                state=self.state,
                context=ErrorContext(operation="initialize"),
            )
            await self._reject(Phase.INITIALIZATION, error)
            return

        self._plugins.extend(plugins)
        error = await self._run_phase(plugins, Phase.INITIALIZATION)
        if error is not None:
            notify(self._hook, Phase.INITIALIZATION, error)
            await self.shutdown(error)

    async def run(self) -> None:
        """
        Execute each plugin's run method once, then shut down.

        Run is one-shot: it always ends in termination, with a None terminal
        error when every plugin succeeded.
        """
        if not self._state.compare_and_swap(State.INITIAL, State.RUNNING):
            error = RunOrStartError(state=self.state, context=ErrorContext(operation="run"))
            await self._reject(Phase.RUNNING, error)
            return

        error = await self._run_phase(self.plugins, Phase.RUNNING)
        if error is not None:
            notify(self._hook, Phase.RUNNING, error)
        await self.shutdown(error)

    async def start(self) -> None:
        """
        Execute each plugin's start method, then block until shutdown completes.
        """
        if not self._state.compare_and_swap(State.INITIAL, State.STARTED):
            error = RunOrStartError(state=self.state, context=ErrorContext(operation="start"))
            await self._reject(Phase.STARTUP, error)
            return

        error = await self._run_phase(self.plugins, Phase.STARTUP)
        if error is not None:
            notify(self._hook, Phase.STARTUP, error)
            await self.shutdown(error)
            return

        logger.info(f"Application started (instance={self._instance_id}, plugins={len(self._plugins)})")
        await self._coordinator.wait_done()
        self._terminate()

    async def shutdown(self, error: Optional[BaseException] = None) -> None:
        """
        Trigger teardown, wait for it, then terminate.

        If a shutdown is already under way this only waits for it; the
        terminal error stays the one that initiated the sequence.
        """
        reason = "completed" if error is None else f"error: {error!r}"
        self._coordinator.trigger(error, reason=reason)
        await self._coordinator.wait_done()
        self._terminate()

    def request_shutdown(self, reason: str = "requested") -> bool:
        """Trigger teardown without waiting. Returns False if already triggered."""
        return self._coordinator.trigger(None, reason=reason)

    async def wait_done(self) -> None:
        """Block until the teardown loop has completed."""
        await self._coordinator.wait_done()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _on_signal(self, sig: Any) -> None:
        self.request_shutdown(reason=f"signal {sig.name}")

    async def _reject(self, phase: Phase, error: GuardViolationError) -> None:
        """
        Report a guard violation and route it into shutdown.

        When another shutdown already owns the terminal error, the violation
        is still handed to the terminator once that shutdown has completed.
        """
        logger.error(f"Guard violation in {phase.value} (state={error.state.name}): {error}")
        notify(self._hook, phase, error)

        accepted = self._coordinator.trigger(error, reason=f"guard violation: {error!r}")
        await self._coordinator.wait_done()
        self._terminate()
        if not accepted:
            self._terminator(error)

    async def _run_phase(self, plugins: Sequence[Any], phase: Phase) -> Optional[Exception]:
        """Invoke one capability on each plugin in order; return the first error."""
        with start_phase_span(phase.value, len(plugins), {"lifecycle.instance": self._instance_id}) as span:
            for plugin in plugins:
                if self._coordinator.triggered:
                    logger.debug(f"Shutdown triggered; skipping remaining {phase.value} plugins")
                    break
                error = await self._invoke(plugin, phase)
                if error is not None:
                    span.set_status(Status(StatusCode.ERROR, str(error)))
                    return error
        return None

    async def _invoke(self, plugin: Any, phase: Phase) -> Optional[Exception]:
        name = plugin_name(plugin)
        start = time.time()
        try:
            await invoke(plugin, _CAPABILITIES[phase], self)
        except Exception as e:
            duration_ms = (time.time() - start) * 1000
            self._record_event(LifecycleEvent.failure_event(phase, name, e, duration_ms))
            return e

        duration_ms = (time.time() - start) * 1000
        self._record_event(LifecycleEvent.success_event(phase, name, duration_ms))
        return None

    async def _teardown_plugin(self, plugin: Any) -> None:
        error = await self._invoke(plugin, Phase.SHUTDOWN)
        if error is not None:
            notify(self._hook, Phase.SHUTDOWN, error)

    def _terminate(self) -> None:
        if not self._state.mark_terminated():
            return
        error = self._coordinator.error
        notify(self._hook, Phase.TERMINATED, error)
        self._terminator(error)

    def _record_event(self, event: LifecycleEvent) -> None:
        self._lifecycle_events.append(event)

        if event.success:
            logger.debug(f"Lifecycle: {event.phase.value} {event.component} ({event.duration_ms:.0f}ms)")
        else:
            logger.warning(f"Lifecycle failed: {event.phase.value} {event.component} - {event.error}")

    def get_lifecycle_report(self) -> Dict[str, Any]:
        """Summary of the application's lifecycle so far."""
        terminal_error = self._coordinator.error
        return {
            "instance_id": self._instance_id,
            "state": self.state.name,
            "plugins": [plugin_name(p) for p in self._plugins],
            "shutdown_reason": self._coordinator.reason,
            "terminal_error": str(terminal_error) if terminal_error is not None else None,
            "events": [
                {
                    "event_id": str(e.event_id),
                    "timestamp": e.timestamp,
                    "phase": e.phase.value,
                    "component": e.component,
                    "success": e.success,
                    "duration_ms": e.duration_ms,
                    "error": e.error,
                    "error_type": e.error_type,
                }
                for e in self._lifecycle_events
            ],
            "total_events": len(self._lifecycle_events),
            "failed_events": sum(1 for e in self._lifecycle_events if not e.success),
        }

    def __repr__(self) -> str:
        return f"<Application {self._instance_id} state={self.state.name} plugins={len(self._plugins)}>"


# =============================================================================
# CONVENIENCE
# =============================================================================


def run_application(
    main: Callable[[Application], Awaitable[Any]],
    **kwargs: Any,
) -> None:
    """
    Run ``main`` against a fresh Application on a new event loop.

    Usage:
        async def main(app: Application):
            await app.initialize(LoggingPlugin(), MigrationPlugin())
            await app.run()

        run_application(main)
    """

    async def _entrypoint() -> None:
        app = Application(**kwargs)
        await main(app)

    asyncio.run(_entrypoint())


__all__ = [
    "LifecycleEvent",
    "Application",
    "run_application",
]
