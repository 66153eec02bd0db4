"""Tests for nightcap/tasks/context.py — params and run_super delegation."""

import asyncio

import pytest

from nightcap.core.config import NetworkConfig, NightcapConfig
from nightcap.core.exceptions import ConfigError, TaskParamError, UnknownTaskError
from nightcap.core.models import TaskParamDefinition
from nightcap.tasks.context import build_context, resolve_params
from tests.conftest import make_task


def _task_with_params(**params):
    task = make_task("deploy")
    return task.model_copy(update={"params": params})


class TestResolveParams:
    def test_no_params(self):
        assert resolve_params(make_task("a")) == {}

    def test_defaults_applied(self):
        task = _task_with_params(
            retries=TaskParamDefinition(type="number", default=3),
            dry_run=TaskParamDefinition(type="boolean", default=False),
        )
        assert resolve_params(task, {}) == {"retries": 3, "dry_run": False}

    def test_string_values_coerced(self):
        task = _task_with_params(
            retries=TaskParamDefinition(type="number"),
            ratio=TaskParamDefinition(type="number"),
            dry_run=TaskParamDefinition(type="boolean"),
            target=TaskParamDefinition(type="string"),
        )
        resolved = resolve_params(task, {"retries": "5", "ratio": "0.5", "dry_run": "yes", "target": "x"})
        assert resolved == {"retries": 5, "ratio": 0.5, "dry_run": True, "target": "x"}

    def test_required_missing(self):
        task = _task_with_params(contract=TaskParamDefinition(required=True))
        with pytest.raises(TaskParamError, match="'contract': is required") as exc_info:
            resolve_params(task, {})
        assert exc_info.value.param == "contract"

    def test_none_counts_as_absent(self):
        task = _task_with_params(contract=TaskParamDefinition(required=True))
        with pytest.raises(TaskParamError):
            resolve_params(task, {"contract": None})

    def test_undeclared_param(self):
        with pytest.raises(TaskParamError, match="not declared"):
            resolve_params(make_task("a"), {"bogus": "1"})

    def test_bad_number(self):
        task = _task_with_params(retries=TaskParamDefinition(type="number"))
        with pytest.raises(TaskParamError, match="expected a number"):
            resolve_params(task, {"retries": "many"})

    def test_bad_boolean(self):
        task = _task_with_params(dry_run=TaskParamDefinition(type="boolean"))
        with pytest.raises(TaskParamError, match="expected a boolean"):
            resolve_params(task, {"dry_run": "maybe"})


class TestBuildContext:
    def test_defaults(self, registry, config):
        registry.register(make_task("a"))
        context = build_context(registry, "a", config)
        assert context.network_name == "localnet"
        assert context.network.is_local is True
        assert context.params == {}
        assert context.verbose is False
        assert context.run_super is None

    def test_selected_network(self, registry, config):
        registry.register(make_task("a"))
        context = build_context(registry, "a", config, network_name="devnet", verbose=True)
        assert context.network_name == "devnet"
        assert context.network.name == "devnet"
        assert context.verbose is True

    def test_unknown_network(self, registry, config):
        registry.register(make_task("a"))
        with pytest.raises(ConfigError, match="Unknown network: moon"):
            build_context(registry, "a", config, network_name="moon")

    def test_unknown_task(self, registry, config):
        registry.register(make_task("compile"))
        with pytest.raises(UnknownTaskError) as exc_info:
            build_context(registry, "complie", config)
        assert exc_info.value.suggestions == ["compile"]

    def test_run_super_calls_replaced_action(self, registry, config):
        calls = []
        registry.register(make_task("compile", action=lambda ctx: calls.append(("original", ctx))))

        def wrapper(ctx):
            calls.append(("wrapper", ctx))
            ctx.run_super()

        registry.register(make_task("compile", action=wrapper))
        context = build_context(registry, "compile", config)
        registry.get("compile").action(context)

        assert calls == [("wrapper", context), ("original", context)]

    def test_run_super_with_async_original(self, registry, runner, config):
        calls = []

        async def original(ctx):
            await asyncio.sleep(0)
            calls.append("original")

        async def wrapper(ctx):
            calls.append("wrapper")
            await ctx.run_super()

        registry.register(make_task("compile", action=original))
        registry.register(make_task("compile", action=wrapper))
        context = build_context(registry, "compile", config)

        results = runner.run("compile", context)

        assert results[0].success is True
        assert calls == ["wrapper", "original"]

    def test_run_super_uses_most_recent_original(self, registry, config):
        calls = []
        registry.register(make_task("t", action=lambda ctx: calls.append("v1")))
        registry.register(make_task("t", action=lambda ctx: calls.append("v2")))
        registry.register(make_task("t", action=lambda ctx: calls.append("v3")))

        build_context(registry, "t", config).run_super()

        assert calls == ["v2"]

    def test_custom_network_from_config(self, registry):
        config = NightcapConfig(
            default_network="staging",
            networks={"staging": NetworkConfig(name="staging", node_url="http://staging:9944")},
        )
        registry.register(make_task("a"))
        context = build_context(registry, "a", config)
        assert context.network.node_url == "http://staging:9944"
