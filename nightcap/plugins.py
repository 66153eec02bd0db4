"""Plugins: bundles of task definitions with their own dependencies.

A plugin lists the plugins it needs, either as Plugin objects or as import
strings that are loaded on demand. ``resolve_plugin_list`` orders the
closure so every plugin comes after its dependencies, and
``register_plugin_tasks`` registers their tasks in that order. A plugin task
registered under an existing name overrides it and can delegate to the
replaced definition through ``run_super``.

Usage:
    plugin = Plugin(id="midnight-js", tasks=[deploy_task])
    register_plugin_tasks(registry, [plugin])
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nightcap.core.config import NightcapConfig
from nightcap.core.exceptions import ConfigError, PluginDependencyCycleError, PluginError
from nightcap.core.models import TaskDefinition
from nightcap.tasks.graph import post_order
from nightcap.tasks.loader import import_object
from nightcap.tasks.registry import TaskRegistry

logger = logging.getLogger("nightcap.plugins")


class Plugin(BaseModel):
    """A named set of tasks.

    ``dependencies`` entries may be Plugin objects or import strings
    (``"pkg.module:plugin"``) naming one.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    package: Optional[str] = None
    dependencies: list[Union[Plugin, str]] = Field(default_factory=list)
    tasks: list[TaskDefinition] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("plugin id must be a non-empty string")
        return value


def load_plugin(path: str) -> Plugin:
    """Import the Plugin object named by ``path``.

    Raises:
        ConfigError: The path cannot be imported or is not a Plugin.
    """
    target: Any = import_object(path, "plugin")
    if not isinstance(target, Plugin):
        raise ConfigError(f"Plugin '{path}' is not a Plugin instance (got {type(target).__name__})")
    return target


def _dependencies_of(plugin: Plugin) -> list[Plugin]:
    loaded: list[Plugin] = []
    for dependency in plugin.dependencies:
        if isinstance(dependency, str):
            try:
                dependency = load_plugin(dependency)
            except ConfigError as exc:
                raise PluginError(
                    plugin.id, f"Failed to load dependency of plugin '{plugin.id}': {exc}"
                ) from exc
        loaded.append(dependency)
    return loaded


def _duplicate(plugin: Plugin) -> PluginError:
    return PluginError(
        plugin.id,
        f"Plugin '{plugin.id}': duplicate plugin id with different instances. "
        "Add each plugin to the plugin list only once.",
    )


def resolve_plugin_list(plugins: Sequence[Plugin]) -> list[Plugin]:
    """Order ``plugins`` and their dependencies, dependencies first.

    Each plugin appears once. Plugins are visited in list order and
    dependencies in declared order.

    Raises:
        PluginDependencyCycleError: Plugins depend on each other in a loop.
        PluginError: Two different Plugin objects share an id, or a
            dependency cannot be loaded.
    """
    for plugin in plugins:
        if not isinstance(plugin, Plugin):
            raise PluginError("unknown", f"Expected a Plugin, got {type(plugin).__name__}")

    return post_order(
        plugins,
        _dependencies_of,
        on_cycle=PluginDependencyCycleError,
        key=lambda plugin: plugin.id,
        on_conflict=_duplicate,
    )


def register_plugin_tasks(registry: TaskRegistry, plugins: Sequence[Plugin]) -> list[str]:
    """Register every task of the resolved plugin list.

    Returns:
        Task names in registration order.
    """
    registered: list[str] = []
    for plugin in resolve_plugin_list(plugins):
        for task in plugin.tasks:
            overriding = registry.has(task.name)
            registry.register(task)
            logger.debug(
                "%s task '%s' from plugin '%s'",
                "Overrode" if overriding else "Registered", task.name, plugin.id,
            )
            registered.append(task.name)
    return registered


def apply_config_plugins(registry: TaskRegistry, config: NightcapConfig) -> list[str]:
    """Load the plugins named in ``config.plugins`` and register their tasks."""
    plugins = [load_plugin(path) for path in config.plugins]
    if plugins:
        logger.debug("Loaded %d plugin(s) from config", len(plugins))
    return register_plugin_tasks(registry, plugins)
