"""Register configuration-supplied tasks.

Config files name task actions by import string (``"pkg.module:function"``).
This module resolves those strings and hands each entry to
``TaskRegistry.register_custom``, the only path by which configuration
changes the registry.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable

from nightcap.core.config import NightcapConfig, TaskConfig
from nightcap.core.exceptions import ConfigError
from nightcap.core.models import TaskOverride
from nightcap.tasks.registry import TaskRegistry

logger = logging.getLogger("nightcap.tasks.loader")


def import_object(path: str, kind: str = "object") -> Any:
    """Resolve ``"pkg.module:attr"`` (or ``"pkg.module.attr"``) to an object.

    Only absolute module paths are accepted. ``kind`` names the object in
    error messages.

    Raises:
        ConfigError: The path is malformed, the module cannot be imported,
            or an attribute along the path is missing.
    """
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path or module_name.startswith("."):
        raise ConfigError(f"Invalid {kind} path '{path}': expected 'package.module:name'")

    try:
        target: Any = importlib.import_module(module_name)
    except (ImportError, TypeError, ValueError) as exc:
        raise ConfigError(f"Cannot import module '{module_name}' for {kind} '{path}': {exc}") from exc

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError:
            raise ConfigError(f"{kind.capitalize()} '{path}' not found: no attribute '{attr}'") from None
    return target


def import_action(path: str) -> Callable[..., Any]:
    """Resolve an action import string to a callable."""
    target = import_object(path, "action")
    if not callable(target):
        raise ConfigError(f"Action '{path}' is not callable")
    return target


def _to_override(entry: TaskConfig) -> TaskOverride:
    fields = {name: getattr(entry, name) for name in entry.model_fields_set}
    if entry.action is not None:
        fields["action"] = import_action(entry.action)
    return TaskOverride(**fields)


def apply_config_tasks(registry: TaskRegistry, config: NightcapConfig) -> list[str]:
    """Register every task listed in ``config.tasks``, in file order.

    Returns:
        The names that were registered or extended.
    """
    applied: list[str] = []
    for name, entry in config.tasks.items():
        extending = registry.has(name)
        registry.register_custom(name, _to_override(entry))
        logger.debug("%s task '%s' from config", "Extended" if extending else "Registered", name)
        applied.append(name)
    return applied
