"""Custom exception hierarchy for Nightcap.

All exceptions inherit from NightcapError so callers can catch broadly
or narrowly as needed. Errors raised by a task's own action are never
part of this hierarchy: the runner reports them as TaskResult data.
"""

from __future__ import annotations


class NightcapError(Exception):
    """Base exception for all Nightcap errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigError(NightcapError):
    """Invalid or missing configuration."""


# ---------------------------------------------------------------------------
# Task graph
# ---------------------------------------------------------------------------

class TaskError(NightcapError):
    """Task registry or task graph failure."""


class TaskNotFoundError(TaskError):
    """An operation required an existing task definition."""

    def __init__(self, task_name: str, message: str | None = None):
        self.task_name = task_name
        super().__init__(message or f"Cannot override non-existent task: {task_name}")


class UnknownTaskError(TaskError):
    """A task (or one of its dependencies) has no registered definition."""

    def __init__(self, task_name: str, suggestions: list[str] | None = None):
        self.task_name = task_name
        self.suggestions = list(suggestions or [])
        message = f"Unknown task: {task_name}"
        if self.suggestions:
            message += f"\nDid you mean: {', '.join(self.suggestions)}?"
        super().__init__(message)


class CircularDependencyError(TaskError):
    """The dependency graph reachable from a task contains a cycle."""

    def __init__(self, task_name: str):
        self.task_name = task_name
        super().__init__(f"Circular dependency detected: {task_name}")


class TaskParamError(TaskError):
    """A task parameter is missing, undeclared, or has the wrong type."""

    def __init__(self, task_name: str, param: str, message: str):
        self.task_name = task_name
        self.param = param
        super().__init__(f"Task '{task_name}' parameter '{param}': {message}")


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------

class PluginError(NightcapError):
    """A plugin list cannot be resolved."""

    def __init__(self, plugin_id: str, message: str):
        self.plugin_id = plugin_id
        super().__init__(message)


class PluginDependencyCycleError(PluginError):
    """Plugins depend on each other in a loop."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(
            self.cycle[-1],
            f"Circular dependency detected in plugins: {' -> '.join(self.cycle)}",
        )
