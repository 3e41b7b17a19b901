"""
Lifecycle - Shutdown Coordinator

Orchestrates the one-time reverse teardown of every registered plugin. It is
the rendezvous point between the normal phase flow (a phase loop ending in
``Application.shutdown``) and asynchronous OS signals.

Triggering is guarded by a check-and-set flag: the first trigger wins and
records the terminal error, later triggers are dropped. The background
listener waits for that trigger, runs the teardown loop once, cancels the
resource store and then marks the coordinator done.

Known limitation: there are no deadlines. A plugin whose shutdown never
returns blocks termination indefinitely, and a plugin that awaits
``Application.shutdown`` from inside its own shutdown deadlocks.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Optional, Sequence

from lifecycle.signals import SignalWatcher
from lifecycle.state import StateMachine
from lifecycle.store import ResourceStore

logger = logging.getLogger("lifecycle.shutdown")

Teardown = Callable[[Any], Awaitable[Any]]


class ShutdownCoordinator:
    """
    Runs the reverse teardown loop exactly once.

    Example:
        coordinator = ShutdownCoordinator(plugins, state, store, teardown)
        listener = asyncio.create_task(coordinator.listen())

        coordinator.trigger(error, reason="run failed")
        await coordinator.wait_done()
    """

    def __init__(
        self,
        plugins: Sequence[Any],
        state: StateMachine,
        store: ResourceStore,
        teardown: Teardown,
        signals: Optional[SignalWatcher] = None,
    ):
        self._plugins = plugins
        self._state = state
        self._store = store
        self._teardown = teardown
        self._signals = signals

        self._lock = threading.Lock()
        self._triggered = False
        self._error: Optional[BaseException] = None
        self._reason: Optional[str] = None
        self._trigger_event = asyncio.Event()
        self._done = asyncio.Event()

    @property
    def triggered(self) -> bool:
        return self._triggered

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        """The error carried by the trigger that initiated shutdown."""
        return self._error

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def trigger(self, error: Optional[BaseException] = None, reason: str = "requested") -> bool:
        """
        Request teardown. Returns False if a trigger was already accepted.
        """
        with self._lock:
            if self._triggered:
                logger.debug(f"Shutdown already triggered ({self._reason}); dropping '{reason}'")
                return False
            self._triggered = True
            self._error = error
            self._reason = reason

        self._trigger_event.set()
        return True

    async def listen(self) -> None:
        """Background task: wait for the trigger, then tear everything down."""
        await self._trigger_event.wait()

        logger.info(f"Initiating shutdown sequence (reason={self._reason})")
        if self._signals is not None:
            self._signals.stop()

        self._state.mark_shutdown()
        shutdown_start = time.time()

        try:
            # Snapshot: registration is closed once shutdown has begun
            for plugin in reversed(list(self._plugins)):
                await self._teardown(plugin)
        finally:
            self._store.cancel()
            self._done.set()
            shutdown_duration = (time.time() - shutdown_start) * 1000
            logger.info(f"Shutdown sequence complete (duration={shutdown_duration:.0f}ms)")

    async def wait_done(self) -> None:
        await self._done.wait()


__all__ = ["ShutdownCoordinator", "Teardown"]
