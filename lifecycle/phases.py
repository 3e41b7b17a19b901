"""
Lifecycle - Phase labels and the observability hook.

The hook is a single callback fired at every phase boundary with a phase
label and an optional error. It is purely observational: it returns nothing
and cannot veto a transition.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger("lifecycle.phases")


class Phase(str, Enum):
    """Labels passed to the hook."""
    INITIALIZATION = "initialization"
    RUNNING = "running"
    STARTUP = "startup"
    SHUTDOWN = "shutdown"
    TERMINATED = "terminated"

    def __str__(self) -> str:
        return self.value


Hook = Callable[[str, Optional[BaseException]], None]


def noop_hook(phase: str, error: Optional[BaseException]) -> None:
    """Default hook."""


def notify(hook: Hook, phase: Phase, error: Optional[BaseException]) -> None:
    """Invoke the hook, logging (not propagating) anything it raises."""
    try:
        hook(phase.value, error)
    except Exception:
        logger.exception(f"Lifecycle hook failed while reporting phase '{phase.value}'")


__all__ = ["Phase", "Hook", "noop_hook", "notify"]
