# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from dagmake.cache import DEFAULT_STATE_DIR, JsonStateStore, MemoryStateStore
from dagmake.dag import validate
from dagmake.dispatcher import (
    EXIT_CONFIG_ERROR,
    Dispatcher,
    RunOptions,
    exit_code_for,
)
from dagmake.errors import DagmakeError, TargetsFileError
from dagmake.loader import DEFAULT_TARGETS_FILE, discover_targets_file, load_targets
from dagmake.registry import TargetRegistry
from dagmake.ui.console import Console, get_console, set_console

EXIT_INTERRUPTED = 130

file_option = click.option(
    "--file",
    "-f",
    "targets_file",
    default=None,
    help=f"Targets file path (defaults to {DEFAULT_TARGETS_FILE} if present)",
)


def _fail(exc: DagmakeError) -> None:
    console = get_console()
    if isinstance(exc, TargetsFileError):
        console.print_error(
            "Could not load targets",
            str(exc),
            suggestion=f"Create {DEFAULT_TARGETS_FILE} or pass one explicitly:\n  dagmake run --file my_targets.py",
        )
    else:
        console.print_error(type(exc).__name__, str(exc))
    sys.exit(exit_code_for(exc))


def _load(targets_file: str | None) -> tuple[Path, TargetRegistry]:
    try:
        path = discover_targets_file(targets_file)
        return path, load_targets(path)
    except DagmakeError as e:
        _fail(e)
        raise


def _state_store(root: Path, state_dir: str, no_state: bool):
    if no_state:
        return MemoryStateStore()
    path = Path(state_dir)
    if not path.is_absolute():
        path = root / path
    return JsonStateStore(path)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only print errors and the summary")
@click.pass_context
def cli(ctx, debug, quiet):
    """dagmake: run named targets in dependency order, skipping up-to-date work."""
    set_console(Console(debug=debug, quiet=quiet))
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("targets", nargs=-1)
@file_option
@click.option("--jobs", "-j", default=1, show_default=True, type=click.IntRange(min=1), help="Number of parallel workers")
@click.option("--fail-fast/--no-fail-fast", default=True, show_default=True, help="Stop scheduling new targets after first failure")
@click.option("--dry-run", "-n", is_flag=True, default=False, help="Print the plan and staleness decisions without running anything")
@click.option("--timeout", default=None, type=click.FloatRange(min=0, min_open=True), help="Per-action timeout in seconds")
@click.option("--state-dir", default=DEFAULT_STATE_DIR, show_default=True, help="Where target state is recorded")
@click.option("--no-state", is_flag=True, default=False, help="Do not read or record target state")
@click.pass_context
def run(ctx, targets, targets_file, jobs, fail_fast, dry_run, timeout, state_dir, no_state):
    """Run TARGETS (or the default target) and their prerequisites."""
    console = get_console()
    path, registry = _load(targets_file)
    root = path.resolve().parent

    try:
        options = RunOptions(jobs=jobs, fail_fast=fail_fast, dry_run=dry_run, timeout=timeout)
        dispatcher = Dispatcher(registry, store=_state_store(root, state_dir, no_state), root=root, console=console)
        requested = list(targets) or None
        if not dry_run:
            # header only once the plan is known to resolve
            resolved = dispatcher.plan(requested)
            console.print_run_started(path.name, resolved.roots, len(resolved), jobs)
        result = dispatcher.run(requested, options)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(EXIT_INTERRUPTED)
    except DagmakeError as e:
        _fail(e)
    except Exception as e:
        console.print_exception(e)
        sys.exit(EXIT_CONFIG_ERROR)

    if result.report is not None:
        console.print_results(result.report)
    sys.exit(result.exit_code)


@cli.command()
@click.argument("targets", nargs=-1)
@file_option
def plan(targets, targets_file):
    """Print the execution order for TARGETS (or the default target)."""
    console = get_console()
    _path, registry = _load(targets_file)
    try:
        resolved = Dispatcher(registry, console=console).plan(list(targets) or None)
    except DagmakeError as e:
        _fail(e)
    console.print_plan((t.name, "phony" if t.phony else "") for t in resolved)


@cli.command(name="list")
@file_option
def list_targets(targets_file):
    """List declared targets; the default one is marked with '*'."""
    console = get_console()
    _path, registry = _load(targets_file)
    for t in registry:
        marker = "*" if t.name == registry.default else " "
        action = str(t.action) if t.action else "(no action)"
        needs = f" <- {', '.join(t.needs)}" if t.needs else ""
        desc = f"  # {t.description}" if t.description else ""
        console.print_info(f"{marker} {t.name}: {action}{needs}{desc}")


@cli.command()
@file_option
def check(targets_file):
    """Validate the whole target graph (unknown prerequisites, cycles)."""
    console = get_console()
    path, registry = _load(targets_file)
    try:
        validate(registry)
    except DagmakeError as e:
        _fail(e)
    console.print_info(f"{path.name}: {len(registry)} target(s), graph OK")


@cli.command()
@file_option
@click.option("--state-dir", default=DEFAULT_STATE_DIR, show_default=True, help="Recorded state to remove")
def forget(targets_file, state_dir):
    """Forget all recorded target state (next run re-checks outputs only)."""
    root = Path(".")
    if not Path(state_dir).is_absolute():
        # same base directory `run` records into
        try:
            root = discover_targets_file(targets_file).resolve().parent
        except DagmakeError as e:
            _fail(e)
    store = _state_store(root, state_dir, no_state=False)
    store.clear()
    get_console().print_info(f"Cleared {store.root}")


def main() -> None:
    cli(auto_envvar_prefix="DAGMAKE")


if __name__ == "__main__":
    main()
