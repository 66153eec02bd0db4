"""Task runner for Nightcap.

Resolves the dependency closure of a task into a topological order, then
executes it one task at a time. Resolution problems (unknown names, cycles)
are raised before anything runs; a failing action stops the run and is
reported as a failed TaskResult.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any

from nightcap.core.exceptions import CircularDependencyError, TaskError, UnknownTaskError
from nightcap.core.models import TaskDefinition, TaskResult
from nightcap.tasks.context import TaskContext
from nightcap.tasks.graph import post_order
from nightcap.tasks.registry import TaskRegistry

logger = logging.getLogger("nightcap.tasks.runner")

DEFAULT_MAX_SUGGESTIONS = 5


class TaskRunner:
    """Sequential task execution with dependency resolution.

    The runner only reads from the registry. Per-run bookkeeping is reset
    at the start of every run, so a single runner must not serve
    concurrent runs.

    Each executed task receives its own copy of a TaskContext, with
    ``run_super`` bound to that task's replaced definition. Any other
    context object is handed to every action as is.

    Usage:
        runner = TaskRunner(registry)
        results = runner.run("deploy", context)          # from sync code
        results = await runner.run_async("deploy", context)  # inside a loop
    """

    def __init__(self, registry: TaskRegistry, max_suggestions: int = DEFAULT_MAX_SUGGESTIONS):
        self.registry = registry
        self.max_suggestions = max_suggestions
        self.completed_tasks: set[str] = set()

    def run(self, task_name: str, context: Any) -> list[TaskResult]:
        """Run a task and its dependencies on a fresh event loop.

        Args:
            task_name: Name of the requested task; it runs last.
            context: The per-run TaskContext handed to every action.

        Returns:
            One TaskResult per executed task, in execution order. Stops after
            the first failed task.

        Raises:
            TaskError: Called while an event loop is already running. Nothing
                is resolved or executed in that case.
            UnknownTaskError: The task or one of its dependencies is unknown.
            CircularDependencyError: The dependency graph has a cycle.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.run_async(task_name, context))
        raise TaskError(
            f"TaskRunner.run('{task_name}') cannot be called from a running event loop; "
            "await run_async() instead"
        )

    async def run_async(self, task_name: str, context: Any) -> list[TaskResult]:
        """Awaitable form of :meth:`run` for callers that own an event loop."""
        self.completed_tasks.clear()
        results: list[TaskResult] = []

        execution_order = self.resolve_execution_order(task_name)
        logger.debug("Execution order for '%s': %s", task_name, " -> ".join(execution_order))

        for name in execution_order:
            result = await self._execute_task(name, context)
            results.append(result)

            if not result.success:
                skipped = len(execution_order) - len(results)
                if skipped:
                    logger.warning("Stopping after '%s' failed; %d task(s) skipped", name, skipped)
                break

        return results

    def resolve_execution_order(self, task_name: str) -> list[str]:
        """Topologically order the dependency closure of ``task_name``.

        Dependencies are visited depth-first in declared order, and every
        task appears once, after all of its transitive dependencies.
        """

        def dependencies_of(name: str) -> list[str]:
            task = self.registry.get(name)
            if task is None:
                suggestions = self.registry.get_suggestions(name)[: self.max_suggestions]
                raise UnknownTaskError(name, suggestions)
            return task.dependencies or []

        return post_order(
            [task_name],
            dependencies_of,
            on_cycle=lambda cycle: CircularDependencyError(cycle[-1]),
        )

    async def _execute_task(self, task_name: str, context: Any) -> TaskResult:
        task: TaskDefinition = self.registry.get(task_name)
        if isinstance(context, TaskContext):
            context = context.for_task(task_name, self.registry)

        logger.info("Running task: %s", task_name)
        start = time.perf_counter()

        try:
            outcome = task.action(context)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error("Task %s failed: %s", task_name, exc)
            return TaskResult(name=task_name, success=False, duration_ms=duration_ms, error=exc)

        duration_ms = (time.perf_counter() - start) * 1000
        self.completed_tasks.add(task_name)
        logger.debug("Task %s completed in %.0fms", task_name, duration_ms)
        return TaskResult(name=task_name, success=True, duration_ms=duration_ms)
