"""Shared fixtures for Nightcap tests.

Registries and runners are built fresh per test; nothing is shared through
module-level state.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from nightcap.core.config import NightcapConfig
from nightcap.core.models import TaskDefinition
from nightcap.tasks.context import TaskContext
from nightcap.tasks.registry import TaskRegistry
from nightcap.tasks.runner import TaskRunner


def _noop(context: Any) -> None:
    return None


def make_task(
    name: str,
    deps: Optional[list[str]] = None,
    action: Optional[Callable[..., Any]] = None,
    description: Optional[str] = None,
) -> TaskDefinition:
    return TaskDefinition(
        name=name,
        description=description or f"Mock task {name}",
        dependencies=deps,
        action=action or _noop,
    )


def recording_action(executed: list[str], name: str) -> Callable[[Any], None]:
    def action(context: Any) -> None:
        executed.append(name)
    return action


# ---------------------------------------------------------------------------
# Task fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def registry() -> TaskRegistry:
    return TaskRegistry()


@pytest.fixture
def runner(registry: TaskRegistry) -> TaskRunner:
    return TaskRunner(registry)


@pytest.fixture
def config() -> NightcapConfig:
    return NightcapConfig()


@pytest.fixture
def context(config: NightcapConfig) -> TaskContext:
    return TaskContext(
        config=config,
        network=config.get_network("localnet"),
        network_name="localnet",
        params={},
        verbose=False,
    )
