"""
Tests for the plugin interface and capability dispatch.
"""
import pytest

from lifecycle import IPlugin, PluginBase, PluginFuncs
from lifecycle.plugin import invoke, plugin_name


class Bare:
    """Plugin that only implements shutdown, synchronously."""

    def __init__(self):
        self.closed = False

    def shutdown(self, app):
        self.closed = True


class TestPluginBase:
    @pytest.mark.asyncio
    async def test_defaults_are_no_ops(self):
        plugin = PluginBase("noop")

        for capability in ("initialize", "run", "start", "shutdown"):
            await invoke(plugin, capability, None)

        assert plugin.name == "noop"
        assert isinstance(plugin, IPlugin)

    def test_name_defaults_to_class_name(self):
        class CachePlugin(PluginBase):
            pass

        assert CachePlugin().name == "CachePlugin"
        assert repr(CachePlugin()) == "<CachePlugin 'CachePlugin'>"


class TestPluginFuncs:
    @pytest.mark.asyncio
    async def test_missing_functions_are_no_ops(self):
        plugin = PluginFuncs()

        await plugin.initialize(None)
        await plugin.run(None)
        await plugin.start(None)
        await plugin.shutdown(None)

        assert isinstance(plugin, IPlugin)

    @pytest.mark.asyncio
    async def test_sync_and_async_functions(self):
        calls = []

        async def start(app):
            calls.append(("start", app))

        plugin = PluginFuncs(run_func=lambda app: calls.append(("run", app)), start_func=start)

        await plugin.run("app")
        await plugin.start("app")

        assert calls == [("run", "app"), ("start", "app")]

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        def fail(app):
            raise ValueError("bad config")

        with pytest.raises(ValueError, match="bad config"):
            await PluginFuncs(initialize_func=fail).initialize(None)


class TestInvoke:
    @pytest.mark.asyncio
    async def test_duck_typed_plugin(self):
        plugin = Bare()

        await invoke(plugin, "initialize", None)
        await invoke(plugin, "shutdown", None)

        assert plugin.closed

    def test_plugin_name(self):
        assert plugin_name(PluginFuncs(name="server")) == "server"
        assert plugin_name(Bare()) == "Bare"
