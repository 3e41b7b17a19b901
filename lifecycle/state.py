"""
Lifecycle - State Machine

A single lock-guarded state variable with a fixed transition graph:

    INITIAL -> RUNNING | STARTED | SHUTDOWN
    RUNNING -> SHUTDOWN
    STARTED -> SHUTDOWN
    SHUTDOWN -> TERMINATED

Every phase entry point performs a compare-and-swap against this machine
before doing any work. TERMINATED is final.
"""
from __future__ import annotations

import threading
from enum import IntEnum
from typing import Dict, FrozenSet


class State(IntEnum):
    """States an application may be in. Ordering is significant."""
    INVALID = 0
    INITIAL = 1
    RUNNING = 2
    STARTED = 3
    SHUTDOWN = 4
    TERMINATED = 5


TRANSITIONS: Dict[State, FrozenSet[State]] = {
    State.INVALID: frozenset(),
    State.INITIAL: frozenset({State.RUNNING, State.STARTED, State.SHUTDOWN}),
    State.RUNNING: frozenset({State.SHUTDOWN}),
    State.STARTED: frozenset({State.SHUTDOWN}),
    State.SHUTDOWN: frozenset({State.TERMINATED}),
    State.TERMINATED: frozenset(),
}


class StateMachine:
    """Atomic holder for an application's state."""

    __slots__ = ("_state", "_lock")

    def __init__(self, initial: State = State.INITIAL):
        self._state = initial
        self._lock = threading.Lock()

    @property
    def state(self) -> State:
        with self._lock:
            return self._state

    def can_transition(self, source: State, target: State) -> bool:
        return target in TRANSITIONS[source]

    def compare_and_swap(self, expected: State, target: State) -> bool:
        """Move to ``target`` only if currently ``expected`` and the graph allows it."""
        with self._lock:
            if self._state != expected or not self.can_transition(expected, target):
                return False
            self._state = target
            return True

    def mark_shutdown(self) -> bool:
        """Enter SHUTDOWN from any live state."""
        with self._lock:
            if self._state in (State.SHUTDOWN, State.TERMINATED):
                return False
            self._state = State.SHUTDOWN
            return True

    def mark_terminated(self) -> bool:
        """Enter TERMINATED exactly once, after teardown; False otherwise."""
        with self._lock:
            if self._state != State.SHUTDOWN:
                return False
            self._state = State.TERMINATED
            return True

    def __repr__(self) -> str:
        return f"StateMachine(state={self.state.name})"


__all__ = ["State", "StateMachine", "TRANSITIONS"]
