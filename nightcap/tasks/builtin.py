"""Built-in Nightcap tasks.

``doctor`` checks the local environment and the task graph; ``networks``
lists configured networks. Both only log, so they are safe to run anywhere.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Optional

from nightcap.core.exceptions import TaskError
from nightcap.core.models import TaskDefinition
from nightcap.tasks.registry import TaskRegistry
from nightcap.tasks.runner import TaskRunner

logger = logging.getLogger("nightcap.tasks.builtin")

MIN_PYTHON_VERSION = (3, 10)


@dataclass
class CheckResult:
    """Outcome of a single doctor check."""
    name: str
    status: str  # "ok", "warn", "error"
    message: str
    details: Optional[str] = None


def check_python_version(version_info: Any = None) -> CheckResult:
    version = version_info or sys.version_info
    label = f"{version[0]}.{version[1]}.{version[2]}"
    if tuple(version[:2]) >= MIN_PYTHON_VERSION:
        return CheckResult("Python", "ok", f"Python {label} installed")
    return CheckResult(
        "Python",
        "error",
        f"Python {label} is below minimum required version",
        details=f"Please upgrade to Python {MIN_PYTHON_VERSION[0]}.{MIN_PYTHON_VERSION[1]} or higher",
    )


def check_network(context: Any) -> CheckResult:
    """Check that the network selected for this run is configured."""
    config = context.config
    selected = context.network_name
    if selected in config.networks:
        return CheckResult("Network", "ok", f"Network '{selected}' is configured")
    return CheckResult(
        "Network",
        "error",
        f"Network '{selected}' is not configured",
        details=f"Available networks: {', '.join(config.networks) or 'none'}",
    )


def check_task_graph(registry: TaskRegistry) -> CheckResult:
    runner = TaskRunner(registry, max_suggestions=3)
    problems = []
    for task in registry.get_all_tasks():
        try:
            runner.resolve_execution_order(task.name)
        except TaskError as exc:
            problems.append(f"{task.name}: {exc}")
    if not problems:
        count = len(registry.get_all_tasks())
        return CheckResult("Tasks", "ok", f"{count} task(s) resolve without errors")
    return CheckResult(
        "Tasks",
        "error",
        f"{len(problems)} task(s) have unresolvable dependencies",
        details="\n".join(problems),
    )


def _report(check: CheckResult) -> None:
    level = {"ok": logging.INFO, "warn": logging.WARNING}.get(check.status, logging.ERROR)
    logger.log(level, "[%s] %s: %s", check.status.upper(), check.name, check.message)
    if check.details:
        logger.log(level, "    %s", check.details)


def make_doctor_task(registry: TaskRegistry) -> TaskDefinition:
    def doctor(context: Any) -> None:
        checks = [
            check_python_version(),
            check_network(context),
            check_task_graph(registry),
        ]
        for check in checks:
            _report(check)

        failed = [check.name for check in checks if check.status == "error"]
        if failed:
            raise TaskError(f"Doctor found problems: {', '.join(failed)}")
        logger.info("All checks passed")

    return TaskDefinition(
        name="doctor",
        description="Check the environment and the task graph for problems",
        action=doctor,
    )


def _networks(context: Any) -> None:
    for name, network in context.config.networks.items():
        marker = "*" if name == context.network_name else " "
        kind = "local" if network.is_local else "remote"
        logger.info("%s %s (%s) node=%s", marker, name, kind, network.node_url or "-")


networks_task = TaskDefinition(
    name="networks",
    description="List configured networks",
    action=_networks,
)


def register_builtin_tasks(registry: TaskRegistry) -> None:
    """Register all built-in tasks with the registry."""
    registry.register(make_doctor_task(registry))
    registry.register(networks_task)
