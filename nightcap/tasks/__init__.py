"""Task registry, runner and context assembly."""

from nightcap.tasks.context import TaskContext, build_context, resolve_params
from nightcap.tasks.registry import TaskRegistry
from nightcap.tasks.runner import TaskRunner

__all__ = [
    "TaskContext",
    "TaskRegistry",
    "TaskRunner",
    "build_context",
    "resolve_params",
]
