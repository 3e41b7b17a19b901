"""
Shared test doubles for lifecycle tests.
"""
from collections import Counter
from typing import Any, List, Optional, Tuple

from lifecycle import PluginBase


class TerminationRecorder:
    """Terminator that records the terminal error instead of exiting."""

    def __init__(self):
        self.calls: List[Optional[BaseException]] = []

    def __call__(self, error: Optional[BaseException]) -> None:
        self.calls.append(error)


class CountingPlugin(PluginBase):
    """Counts capability calls and appends (name, capability) to a shared journal."""

    def __init__(self, name: str = "counting", journal: Optional[List[Tuple[str, str]]] = None):
        super().__init__(name)
        self.counts: Counter = Counter()
        self.journal = journal if journal is not None else []

    def _record(self, capability: str) -> None:
        self.counts[capability] += 1
        self.journal.append((self.name, capability))

    async def initialize(self, app: Any) -> None:
        self._record("initialize")

    async def run(self, app: Any) -> None:
        self._record("run")

    async def start(self, app: Any) -> None:
        self._record("start")

    async def shutdown(self, app: Any) -> None:
        self._record("shutdown")


def shutdown_order(journal: List[Tuple[str, str]]) -> List[str]:
    return [name for name, capability in journal if capability == "shutdown"]
