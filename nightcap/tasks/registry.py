"""Task registry for Nightcap.

Holds the current definition for every task name plus the single
most-recently-superseded definition, which the calling layer uses to let an
overriding task delegate to the version it replaced.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Type, Union

from pydantic import ValidationError

from nightcap.core.exceptions import ConfigError, NightcapError, TaskError, TaskNotFoundError
from nightcap.core.models import TaskDefinition, TaskOverride
from nightcap.tasks.suggestions import DEFAULT_MAX_DISTANCE, suggest

logger = logging.getLogger("nightcap.tasks.registry")

OverrideFields = Union[TaskOverride, Mapping[str, Any]]


def _as_override(name: str, overrides: OverrideFields, error: Type[NightcapError]) -> TaskOverride:
    if isinstance(overrides, TaskOverride):
        return overrides
    try:
        return TaskOverride(**overrides)
    except ValidationError as exc:
        raise error(f"Invalid fields for task '{name}': {exc}") from exc


class TaskRegistry:
    """Registry of task definitions with override support.

    Registering a name that already exists replaces it and keeps the previous
    definition as the "original". Only one prior version is retained: a
    later override replaces the stored original.

    Usage:
        registry = TaskRegistry()
        registry.register(TaskDefinition(name="compile", description="...", action=fn))
        registry.override("compile", {"description": "Compile contracts"})
    """

    def __init__(self, max_distance: int = DEFAULT_MAX_DISTANCE):
        self.max_distance = max_distance
        self._tasks: dict[str, TaskDefinition] = {}
        self._originals: dict[str, TaskDefinition] = {}

    def register(self, task: TaskDefinition) -> None:
        """Register a new task or replace an existing one."""
        self._install(task.name, task)

    def override(self, name: str, overrides: OverrideFields) -> TaskDefinition:
        """Override specific fields of an existing task.

        Fields omitted from ``overrides`` (most importantly ``action``) are
        taken from the existing definition.

        Raises:
            TaskNotFoundError: No task is registered under ``name``.
            TaskError: ``overrides`` has unknown or invalid fields.
        """
        existing = self._tasks.get(name)
        if existing is None:
            raise TaskNotFoundError(name)

        fields = _as_override(name, overrides, TaskError).set_fields()

        merged = existing.model_copy(update={**fields, "name": name})
        self._install(name, merged)
        return merged

    def register_custom(self, name: str, overrides: OverrideFields) -> TaskDefinition:
        """Register a configuration-supplied task, extending any existing one.

        With an existing task, ``params`` are merged key by key and the
        existing action is kept unless a new one is given. Without one, an
        action is mandatory.

        Raises:
            ConfigError: No action was provided and no task exists to extend,
                or ``overrides`` has unknown or invalid fields.
        """
        custom = _as_override(name, overrides, ConfigError)
        fields = custom.set_fields()
        existing = self._tasks.get(name)

        if existing is not None:
            fields["action"] = custom.action or existing.action
            if "params" in fields:
                fields["params"] = {**(existing.params or {}), **(custom.params or {})}
            task = existing.model_copy(update={**fields, "name": name})
        elif custom.action is not None:
            task = TaskDefinition(
                name=name,
                description=custom.description or f"Custom task: {name}",
                dependencies=custom.dependencies,
                params=custom.params,
                action=custom.action,
            )
        else:
            raise ConfigError(
                f"Cannot register custom task '{name}': "
                "no action provided and no existing task to extend"
            )

        self._install(name, task)
        return task

    def get(self, name: str) -> Optional[TaskDefinition]:
        return self._tasks.get(name)

    def has(self, name: str) -> bool:
        return name in self._tasks

    def get_all_tasks(self) -> list[TaskDefinition]:
        """All current definitions, in first-registration order."""
        return list(self._tasks.values())

    def get_original(self, name: str) -> Optional[TaskDefinition]:
        """The definition most recently replaced under ``name``, if any."""
        return self._originals.get(name)

    def has_original(self, name: str) -> bool:
        return name in self._originals

    def get_suggestions(self, query: str) -> list[str]:
        """Registered names that look like ``query``, in registration order."""
        return suggest(self._tasks.keys(), query, self.max_distance)

    def _install(self, name: str, task: TaskDefinition) -> None:
        existing = self._tasks.get(name)
        if existing is not None:
            self._originals[name] = existing
            logger.debug("Task '%s' overridden; previous definition kept as original", name)
        self._tasks[name] = task
