"""
Lifecycle - Plugin capability interface.

A plugin ties into the four lifecycle phases of an Application. Each
capability receives the application and signals failure by raising. Plugins
must tolerate shutdown being called even when their own initialize or start
never ran, since every registered plugin is torn down.
"""
from __future__ import annotations

import inspect
from abc import ABC
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

if TYPE_CHECKING:
    from lifecycle.application import Application

PluginResult = Union[None, Awaitable[None]]
PluginFunc = Callable[["Application"], PluginResult]


@runtime_checkable
class IPlugin(Protocol):
    """
    Protocol for plugins. Methods may be coroutines or plain functions.
    """

    def initialize(self, app: "Application") -> PluginResult:
        """Create resources and publish them on the application."""
        ...

    def run(self, app: "Application") -> PluginResult:
        """Execute one-off runtime logic (e.g. migrations)."""
        ...

    def start(self, app: "Application") -> PluginResult:
        """Spin up long lived components (servers, loops) and return."""
        ...

    def shutdown(self, app: "Application") -> PluginResult:
        """Release resources. Called once, in reverse registration order."""
        ...


class PluginBase(ABC):
    """
    Base class for plugins with no-op defaults.

    Inherit from this and override only the phases you need.
    """

    def __init__(self, name: Optional[str] = None):
        self._name = name or self.__class__.__name__

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self, app: "Application") -> None:
        pass

    async def run(self, app: "Application") -> None:
        pass

    async def start(self, app: "Application") -> None:
        pass

    async def shutdown(self, app: "Application") -> None:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._name!r}>"


@dataclass
class PluginFuncs:
    """
    Partial, stateless plugin built from optional callables.

    Any callable left as None is a no-op.
    """
    initialize_func: Optional[PluginFunc] = None
    run_func: Optional[PluginFunc] = None
    start_func: Optional[PluginFunc] = None
    shutdown_func: Optional[PluginFunc] = None
    name: str = "PluginFuncs"

    async def initialize(self, app: "Application") -> None:
        await _call(self.initialize_func, app)

    async def run(self, app: "Application") -> None:
        await _call(self.run_func, app)

    async def start(self, app: "Application") -> None:
        await _call(self.start_func, app)

    async def shutdown(self, app: "Application") -> None:
        await _call(self.shutdown_func, app)


async def _call(func: Optional[PluginFunc], app: "Application") -> None:
    if func is None:
        return
    result = func(app)
    if inspect.isawaitable(result):
        await result


async def invoke(plugin: Any, capability: str, app: "Application") -> None:
    """Call ``plugin.<capability>(app)``, awaiting the result if needed."""
    method = getattr(plugin, capability, None)
    if method is None:
        return
    result = method(app)
    if inspect.isawaitable(result):
        await result


def plugin_name(plugin: Any) -> str:
    name = getattr(plugin, "name", None)
    if isinstance(name, str) and name:
        return name
    return plugin.__class__.__name__


__all__ = [
    "IPlugin",
    "PluginBase",
    "PluginFuncs",
    "PluginFunc",
    "invoke",
    "plugin_name",
]
