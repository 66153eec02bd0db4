"""Pydantic data models for Nightcap tasks.

Defines the contracts shared by the registry, the runner and the calling
layer: task definitions, partial overrides, parameter declarations and
per-task results.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ParamValue = Union[bool, int, float, str]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ParamType(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


# ---------------------------------------------------------------------------
# Task definitions
# ---------------------------------------------------------------------------

class TaskParamDefinition(BaseModel):
    type: ParamType = ParamType.STRING
    description: str = ""
    required: bool = False
    default: Optional[ParamValue] = None


class TaskDefinition(BaseModel):
    """A named operation with optional ordered dependencies.

    ``action`` receives the run's TaskContext. It may be a plain function or
    a coroutine function; the runner awaits the result before moving on.
    """

    name: str
    description: str
    dependencies: Optional[list[str]] = None
    params: Optional[dict[str, TaskParamDefinition]] = None
    action: Callable[..., Any]


class TaskOverride(BaseModel):
    """Partial task definition used by override and config-driven registration.

    Only fields that were explicitly set are merged over the existing task.
    """

    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = None
    dependencies: Optional[list[str]] = None
    params: Optional[dict[str, TaskParamDefinition]] = None
    action: Optional[Callable[..., Any]] = None

    def set_fields(self) -> dict[str, Any]:
        """Explicitly-set, non-None fields, with model values kept as objects."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class TaskResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    success: bool
    duration_ms: float = Field(default=0.0, ge=0.0)
    error: Optional[BaseException] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__
