"""
Lifecycle - Signal Watcher

Converts OS termination requests (SIGTERM, SIGINT) into the same shutdown
trigger used for internal errors. Handlers are installed on the running
event loop, so the callback always runs on the loop thread.

An event loop keeps one handler per signal. When several applications share
a loop, the most recently installed watcher receives the signal (a warning
is logged when it takes over from another one), and a watcher only removes
handlers it still owns. The displaced watcher is not reinstated when the
newer one stops.
"""
from __future__ import annotations

import asyncio
import logging
import signal
import sys
import weakref
from typing import Callable, Optional, Sequence, Tuple

logger = logging.getLogger("lifecycle.signals")

DEFAULT_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGTERM, signal.SIGINT)

# Current owner of each signal handler, per event loop
_owners: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, weakref.WeakValueDictionary[signal.Signals, SignalWatcher]]" = (
    weakref.WeakKeyDictionary()
)


class SignalWatcher:
    """Installs loop signal handlers and forwards deliveries to a callback."""

    def __init__(
        self,
        callback: Callable[[signal.Signals], None],
        signals: Sequence[signal.Signals] = DEFAULT_SIGNALS,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._callback = callback
        self._signals = tuple(signals)
        self._loop = loop
        self._installed: Tuple[signal.Signals, ...] = ()

    @property
    def signals(self) -> Tuple[signal.Signals, ...]:
        return self._signals

    @property
    def is_installed(self) -> bool:
        return bool(self._installed)

    def install(self) -> None:
        """Register handlers for every watched signal."""
        if self._installed:
            return

        if sys.platform == "win32":
            logger.warning("Signal handlers are not supported on this platform; skipping")
            return

        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        owners = _owners.setdefault(loop, weakref.WeakValueDictionary())
        installed = []
        for sig in self._signals:
            previous = owners.get(sig)
            try:
                loop.add_signal_handler(sig, self._deliver, sig)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                logger.warning(f"Could not install handler for {sig.name}: {e}")
                continue
            if previous is not None and previous is not self:
                logger.warning(f"Handler for {sig.name} replaced one installed by another watcher on this loop")
            owners[sig] = self
            installed.append(sig)

        self._installed = tuple(installed)
        if installed:
            logger.debug(f"Signal handlers installed ({', '.join(s.name for s in installed)})")

    def _deliver(self, sig: signal.Signals) -> None:
        logger.info(f"Signal {sig.name} received, triggering shutdown")
        self._callback(sig)

    def stop(self) -> None:
        """Remove the handlers this watcher still owns."""
        if not self._installed or self._loop is None:
            return
        owners = _owners.get(self._loop, {})
        for sig in self._installed:
            if owners.get(sig) is not self:
                logger.debug(f"Handler for {sig.name} now belongs to another watcher; leaving it")
                continue
            del owners[sig]
            try:
                self._loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                logger.debug(f"Could not remove handler for {sig.name}: {e}")
        self._installed = ()


__all__ = ["SignalWatcher", "DEFAULT_SIGNALS"]
