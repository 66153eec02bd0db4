"""CLI entrypoint for Nightcap."""

from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from typing import Optional

import click

from nightcap import __version__
from nightcap.core.config import LoggingConfig, NightcapConfig, load_config
from nightcap.core.exceptions import NightcapError, UnknownTaskError
from nightcap.core.models import TaskResult
from nightcap.plugins import apply_config_plugins
from nightcap.tasks.builtin import register_builtin_tasks
from nightcap.tasks.context import build_context
from nightcap.tasks.loader import apply_config_tasks
from nightcap.tasks.registry import TaskRegistry
from nightcap.tasks.runner import TaskRunner

logger = logging.getLogger("nightcap.cli")


def _setup_logging(config: LoggingConfig, verbose: bool = False, quiet: bool = False) -> None:
    """Apply logging configuration, letting --verbose/--quiet win."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.format, stream=sys.stderr, force=True)


def _load(ctx: click.Context) -> tuple[NightcapConfig, TaskRegistry]:
    """Load config and build the registry: built-ins, plugin tasks, config tasks."""
    opts = ctx.obj
    try:
        config = load_config(config_path=opts["config_path"], env=opts["env"])
    except NightcapError as exc:
        raise click.ClickException(f"Failed to load configuration: {exc}") from exc

    _setup_logging(config.logging, verbose=opts["verbose"], quiet=opts["quiet"])

    registry = TaskRegistry(max_distance=config.runner.suggestion_distance)
    register_builtin_tasks(registry)
    try:
        apply_config_plugins(registry, config)
        apply_config_tasks(registry, config)
    except NightcapError as exc:
        raise click.ClickException(str(exc)) from exc
    logger.debug("Registered %d task(s)", len(registry.get_all_tasks()))
    return config, registry


def _parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint="--param")
        params[key.strip()] = value
    return params


def _print_result(result: TaskResult, verbose: bool) -> None:
    if result.success:
        click.echo(click.style("✓", fg="green") + f" {result.name} ({result.duration_ms:.0f}ms)")
        return
    click.echo(click.style("✗", fg="red") + f" {result.name}: {result.error_message}")
    if verbose and result.error is not None:
        trace = "".join(traceback.format_exception(result.error))
        click.echo(trace.rstrip(), err=True)


@click.group()
@click.version_option(__version__, "-v", "--version")
@click.option("--network", default=None, help="Network to use (default: config default_network).")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to nightcap.yaml (default: search upwards from the working directory).",
)
@click.option("--env", default=None, help="Config overlay to merge (nightcap.<env>.yaml).")
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose (DEBUG) output.")
@click.option("--quiet", is_flag=True, default=False, help="Suppress non-essential output.")
@click.pass_context
def cli(
    ctx: click.Context,
    network: Optional[str],
    config_path: Optional[Path],
    env: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """Nightcap task runner."""
    ctx.ensure_object(dict)
    ctx.obj.update(
        network=network,
        config_path=config_path,
        env=env,
        verbose=verbose,
        quiet=quiet,
    )


@cli.command("tasks")
@click.pass_context
def list_tasks(ctx: click.Context) -> None:
    """List available tasks."""
    _, registry = _load(ctx)
    tasks = registry.get_all_tasks()
    if not tasks:
        click.echo("No tasks registered.")
        return

    width = max(len(task.name) for task in tasks)
    for task in tasks:
        line = f"{task.name.ljust(width)}  {task.description}"
        if task.dependencies:
            line += f" [depends on: {', '.join(task.dependencies)}]"
        if registry.has_original(task.name):
            line += " (overridden)"
        click.echo(line)


@cli.command("run")
@click.argument("task_name")
@click.option(
    "--param",
    "-p",
    "param_pairs",
    multiple=True,
    help="Task parameter as key=value. Repeatable.",
)
@click.pass_context
def run_task(ctx: click.Context, task_name: str, param_pairs: tuple[str, ...]) -> None:
    """Run TASK_NAME and its dependencies."""
    opts = ctx.obj
    config, registry = _load(ctx)
    runner = TaskRunner(registry, max_suggestions=config.runner.max_suggestions)

    try:
        context = build_context(
            registry,
            task_name,
            config,
            network_name=opts["network"],
            params=_parse_params(param_pairs),
            verbose=opts["verbose"],
            max_suggestions=config.runner.max_suggestions,
        )
        results = runner.run(task_name, context)
    except UnknownTaskError as exc:
        raise click.ClickException(f"{exc}\nRun \"nightcap tasks\" for available tasks") from exc
    except NightcapError as exc:
        raise click.ClickException(f"Task '{task_name}' failed: {exc}") from exc

    for result in results:
        _print_result(result, verbose=opts["verbose"])

    if any(not result.success for result in results):
        ctx.exit(1)


def main() -> None:
    """Entry point used by `nightcap` console script."""
    from dotenv import load_dotenv
    load_dotenv(Path.cwd() / ".env")
    cli()


if __name__ == "__main__":
    main()
