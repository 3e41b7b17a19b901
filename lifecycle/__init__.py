"""
Lifecycle - Plugin Lifecycle Supervisor

Manages the phases of a process's life. Plugins are initialized, run or
started, and shut down according to how the application was invoked, and
every registered plugin gets exactly one chance to release its resources no
matter whether the process ends normally, on an error, or on SIGTERM/SIGINT.

The CLI glue is intentionally left out so consumers can wrap an Application
with their tooling of choice.

Usage:
    from lifecycle import Application, LoggingPlugin, PluginFuncs

    async def main() -> None:
        app = Application()
        await app.initialize(
            LoggingPlugin(),
            PluginFuncs(start_func=start_server, shutdown_func=stop_server),
        )
        await app.start()
"""

from lifecycle.application import Application, LifecycleEvent, run_application
from lifecycle.errors import (
    ErrorContext,
    ErrorSeverity,
    GuardViolationError,
    InitializeAfterStartupError,
    LifecycleError,
    ResourceNotFoundError,
    ResourceTypeError,
    RunOrStartError,
)
from lifecycle.phases import Hook, Phase, noop_hook
from lifecycle.plugin import IPlugin, PluginBase, PluginFuncs
from lifecycle.plugins import LoggingPlugin, TracingPlugin
from lifecycle.shutdown import ShutdownCoordinator
from lifecycle.signals import SignalWatcher
from lifecycle.state import State, StateMachine
from lifecycle.store import ResourceKey, ResourceStore
from lifecycle.termination import Terminator, exit_on_error

__all__ = [
    # Application
    "Application",
    "LifecycleEvent",
    "run_application",
    # Plugins
    "IPlugin",
    "PluginBase",
    "PluginFuncs",
    "LoggingPlugin",
    "TracingPlugin",
    # Phases, hooks and termination
    "Phase",
    "Hook",
    "noop_hook",
    "Terminator",
    "exit_on_error",
    # State
    "State",
    "StateMachine",
    # Shutdown
    "ShutdownCoordinator",
    "SignalWatcher",
    # Resources
    "ResourceKey",
    "ResourceStore",
    # Errors
    "ErrorContext",
    "ErrorSeverity",
    "LifecycleError",
    "GuardViolationError",
    "InitializeAfterStartupError",
    "RunOrStartError",
    "ResourceNotFoundError",
    "ResourceTypeError",
]
