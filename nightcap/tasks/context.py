"""Per-run context assembly for Nightcap tasks.

The calling layer builds one TaskContext per invocation: resolved config,
selected network, typed parameter values and, for overridden tasks, a
``run_super`` callable bound to the definition the task replaced.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, Field

from nightcap.core.config import NetworkConfig, NightcapConfig
from nightcap.core.exceptions import TaskParamError, UnknownTaskError
from nightcap.core.models import ParamType, ParamValue, TaskDefinition
from nightcap.tasks.registry import TaskRegistry

logger = logging.getLogger("nightcap.tasks.context")

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


class TaskContext(BaseModel):
    """Everything a task action receives.

    ``run_super`` is only set when the task overrides an earlier definition.
    It calls the replaced action with this same context and returns its
    result, so an async original must be awaited by the caller. The runner
    binds it per executed task through :meth:`for_task`.
    """

    config: NightcapConfig = Field(default_factory=NightcapConfig)
    network: NetworkConfig
    network_name: str
    params: dict[str, Any] = Field(default_factory=dict)
    verbose: bool = False
    run_super: Optional[Callable[[], Any]] = None

    def for_task(self, task_name: str, registry: TaskRegistry) -> TaskContext:
        """Return the context handed to ``task_name``'s action.

        ``run_super`` on the result calls the definition ``task_name``
        replaced, with the returned context. Tasks without a replaced
        definition get ``run_super=None``.
        """
        original = registry.get_original(task_name)
        if original is None:
            if self.run_super is None:
                return self
            return self.model_copy(update={"run_super": None})

        bound = self.model_copy()
        bound.run_super = lambda: original.action(bound)
        return bound


def _coerce(task_name: str, param: str, kind: ParamType, value: Any) -> ParamValue:
    if kind == ParamType.BOOLEAN:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise TaskParamError(task_name, param, f"expected a boolean, got {value!r}")

    if kind == ParamType.NUMBER:
        if isinstance(value, bool):
            raise TaskParamError(task_name, param, f"expected a number, got {value!r}")
        if isinstance(value, (int, float)):
            return value
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            raise TaskParamError(task_name, param, f"expected a number, got {value!r}") from None

    return value if isinstance(value, str) else str(value)


def resolve_params(task: TaskDefinition, raw: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
    """Validate and type raw parameter values against a task's declarations.

    ``None`` values count as absent. Declared defaults fill gaps; required
    parameters without a value and undeclared parameters are rejected.

    Raises:
        TaskParamError: On a missing, undeclared, or uncoercible parameter.
    """
    declared = task.params or {}
    supplied = {key: value for key, value in (raw or {}).items() if value is not None}

    for key in supplied:
        if key not in declared:
            raise TaskParamError(task.name, key, "not declared by this task")

    resolved: dict[str, Any] = {}
    for key, param_def in declared.items():
        if key in supplied:
            resolved[key] = _coerce(task.name, key, param_def.type, supplied[key])
        elif param_def.default is not None:
            resolved[key] = _coerce(task.name, key, param_def.type, param_def.default)
        elif param_def.required:
            raise TaskParamError(task.name, key, "is required")
    return resolved


def build_context(
    registry: TaskRegistry,
    task_name: str,
    config: NightcapConfig,
    network_name: Optional[str] = None,
    params: Optional[Mapping[str, Any]] = None,
    verbose: bool = False,
    max_suggestions: int = 5,
) -> TaskContext:
    """Assemble the TaskContext for running ``task_name``.

    Raises:
        UnknownTaskError: ``task_name`` is not registered.
        ConfigError: The selected network is not configured.
        TaskParamError: Parameter resolution failed.
    """
    task = registry.get(task_name)
    if task is None:
        raise UnknownTaskError(task_name, registry.get_suggestions(task_name)[:max_suggestions])

    selected = network_name or config.default_network
    context = TaskContext(
        config=config,
        network=config.get_network(selected),
        network_name=selected,
        params=resolve_params(task, params),
        verbose=verbose,
    )

    if registry.has_original(task_name):
        logger.debug("Binding run_super for '%s' to its replaced definition", task_name)
    return context.for_task(task_name, registry)
