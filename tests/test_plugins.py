"""Tests for nightcap/plugins.py — plugin ordering and task registration."""

import pytest
from pydantic import ValidationError

from nightcap.core.config import NightcapConfig
from nightcap.core.exceptions import ConfigError, PluginDependencyCycleError, PluginError
from nightcap.plugins import (
    Plugin,
    apply_config_plugins,
    load_plugin,
    register_plugin_tasks,
    resolve_plugin_list,
)
from nightcap.tasks.context import build_context
from tests import cli_actions
from tests.conftest import make_task, recording_action


def _ids(plugins):
    return [plugin.id for plugin in plugins]


class TestPlugin:
    def test_defaults(self):
        plugin = Plugin(id="a")
        assert plugin.dependencies == []
        assert plugin.tasks == []
        assert plugin.package is None

    def test_blank_id_rejected(self):
        with pytest.raises(ValidationError, match="non-empty"):
            Plugin(id="  ")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            Plugin(id="a", hooks={})

    def test_dependency_instances_kept(self):
        dep = Plugin(id="dep")
        plugin = Plugin(id="a", dependencies=[dep])
        assert plugin.dependencies[0] is dep


class TestResolvePluginList:
    def test_empty(self):
        assert resolve_plugin_list([]) == []

    def test_dependencies_first(self):
        a = Plugin(id="a")
        b = Plugin(id="b", dependencies=[a])
        c = Plugin(id="c", dependencies=[b])
        assert _ids(resolve_plugin_list([c])) == ["a", "b", "c"]

    def test_list_order_kept_for_independent_plugins(self):
        a, b, c = Plugin(id="a"), Plugin(id="b"), Plugin(id="c")
        assert _ids(resolve_plugin_list([b, a, c])) == ["b", "a", "c"]

    def test_shared_dependency_once(self):
        base = Plugin(id="base")
        left = Plugin(id="left", dependencies=[base])
        right = Plugin(id="right", dependencies=[base])
        assert _ids(resolve_plugin_list([left, right, base])) == ["base", "left", "right"]

    def test_same_instance_listed_twice(self):
        a = Plugin(id="a")
        assert _ids(resolve_plugin_list([a, a])) == ["a"]

    def test_duplicate_id_different_instances(self):
        with pytest.raises(PluginError, match="duplicate plugin id") as exc_info:
            resolve_plugin_list([Plugin(id="a"), Plugin(id="a")])
        assert exc_info.value.plugin_id == "a"

    def test_cycle(self):
        a = Plugin(id="a")
        b = Plugin(id="b", dependencies=[a])
        a.dependencies.append(b)

        with pytest.raises(PluginDependencyCycleError) as exc_info:
            resolve_plugin_list([a])

        assert exc_info.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc_info.value)

    def test_self_dependency(self):
        a = Plugin(id="a")
        a.dependencies.append(a)
        with pytest.raises(PluginDependencyCycleError, match="a -> a"):
            resolve_plugin_list([a])

    def test_dependency_by_import_string(self):
        plugin = Plugin(id="top", dependencies=["tests.cli_actions:base_plugin"])
        resolved = resolve_plugin_list([plugin])
        assert _ids(resolved) == ["base", "top"]
        assert resolved[0] is cli_actions.base_plugin

    def test_unloadable_dependency(self):
        plugin = Plugin(id="top", dependencies=["nightcap_no_such_module:plugin"])
        with pytest.raises(PluginError, match="Failed to load dependency of plugin 'top'"):
            resolve_plugin_list([plugin])

    def test_non_plugin_rejected(self):
        with pytest.raises(PluginError, match="Expected a Plugin"):
            resolve_plugin_list([{"id": "a"}])

    def test_deep_chain(self):
        plugin = Plugin(id="p0")
        for i in range(1, 1500):
            plugin = Plugin(id=f"p{i}", dependencies=[plugin])
        resolved = resolve_plugin_list([plugin])
        assert len(resolved) == 1500
        assert resolved[0].id == "p0"


class TestRegisterPluginTasks:
    def test_registers_in_resolved_order(self, registry):
        base = Plugin(id="base", tasks=[make_task("compile")])
        extra = Plugin(id="extra", dependencies=[base], tasks=[make_task("deploy", ["compile"])])

        names = register_plugin_tasks(registry, [extra])

        assert names == ["compile", "deploy"]
        assert [t.name for t in registry.get_all_tasks()] == ["compile", "deploy"]

    def test_plugin_task_overrides_existing(self, registry, runner, config):
        calls = []

        def wrapped(ctx):
            calls.append("plugin")
            ctx.run_super()

        registry.register(make_task("compile", action=recording_action(calls, "builtin")))
        register_plugin_tasks(registry, [Plugin(id="p", tasks=[make_task("compile", action=wrapped)])])

        results = runner.run("compile", build_context(registry, "compile", config))

        assert results[0].success is True
        assert calls == ["plugin", "builtin"]

    def test_later_plugin_overrides_dependency_plugin(self, registry):
        base = Plugin(id="base", tasks=[make_task("compile", description="base")])
        top = Plugin(id="top", dependencies=[base], tasks=[make_task("compile", description="top")])

        register_plugin_tasks(registry, [top])

        assert registry.get("compile").description == "top"
        assert registry.get_original("compile").description == "base"

    def test_nothing_registered_on_cycle(self, registry):
        a = Plugin(id="a", tasks=[make_task("x")])
        a.dependencies.append(a)
        with pytest.raises(PluginDependencyCycleError):
            register_plugin_tasks(registry, [a])
        assert registry.get_all_tasks() == []


class TestLoadPlugin:
    def test_loads_plugin(self):
        assert load_plugin("tests.cli_actions:plugin") is cli_actions.plugin

    def test_not_a_plugin(self):
        with pytest.raises(ConfigError, match="not a Plugin instance"):
            load_plugin("tests.cli_actions:first")

    def test_missing_module(self):
        with pytest.raises(ConfigError, match="Cannot import module"):
            load_plugin("nightcap_no_such_module:plugin")


class TestApplyConfigPlugins:
    def test_registers_config_plugins(self, registry):
        config = NightcapConfig(plugins=["tests.cli_actions:plugin"])
        registry.register(make_task("networks"))

        names = apply_config_plugins(registry, config)

        assert names == ["lint", "networks"]
        assert registry.get("networks").description == "Networks, wrapped"
        assert registry.has_original("networks") is True

    def test_no_plugins(self, registry):
        assert apply_config_plugins(registry, NightcapConfig()) == []
