"""Nightcap: a task registry and dependency-ordered task runner."""

__version__ = "0.1.0"
