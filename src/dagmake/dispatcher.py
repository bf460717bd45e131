# dispatcher.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .cache import MemoryStateStore
from .dag import ExecutionPlan, resolve
from .errors import ConfigurationError, CycleError, DagmakeError, UnknownTargetError
from .executor import ProcessExecutor
from .model import Executor, RunReport, StateStore
from .registry import TargetRegistry
from .runner import Engine
from .staleness import StalenessOracle
from .ui.console import Console, get_console

EXIT_OK = 0
EXIT_UNKNOWN_TARGET = 1
EXIT_CYCLE = 2
EXIT_ACTION_FAILED = 3
EXIT_CONFIG_ERROR = 4


@dataclass(frozen=True)
class RunOptions:
    jobs: int = 1
    fail_fast: bool = True
    dry_run: bool = False
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not isinstance(self.jobs, int) or self.jobs < 1:
            raise ConfigurationError(f"jobs must be an integer >= 1, got {self.jobs!r}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0 seconds, got {self.timeout!r}")


@dataclass
class DispatchResult:
    exit_code: int
    plan: Optional[ExecutionPlan] = None
    report: Optional[RunReport] = None
    error: Optional[DagmakeError] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_OK


def exit_code_for(exc: DagmakeError) -> int:
    if isinstance(exc, UnknownTargetError):
        return EXIT_UNKNOWN_TARGET
    if isinstance(exc, CycleError):
        return EXIT_CYCLE
    return EXIT_CONFIG_ERROR


class Dispatcher:
    """Resolves requested targets into a plan, runs it, and maps the outcome to an exit code."""

    def __init__(
        self,
        registry: TargetRegistry,
        *,
        executor: Optional[Executor] = None,
        store: Optional[StateStore] = None,
        root: Union[str, Path] = ".",
        console: Optional[Console] = None,
    ):
        self.registry = registry
        self.root = Path(root)
        self.executor = executor or ProcessExecutor(self.root)
        self.store = store if store is not None else MemoryStateStore()
        self.console = console or get_console()

    def _requested(self, targets: Union[str, Sequence[str], None]) -> List[str]:
        if isinstance(targets, str):
            return [targets]
        if targets:
            return list(targets)
        default = self.registry.default
        if default is None:
            raise ConfigurationError("no target requested and no default target declared")
        return [default]

    def plan(self, targets: Union[str, Sequence[str], None] = None) -> ExecutionPlan:
        self.registry.freeze()
        return resolve(self.registry, self._requested(targets))

    def run(
        self,
        targets: Union[str, Sequence[str], None] = None,
        options: Optional[RunOptions] = None,
    ) -> DispatchResult:
        options = options or RunOptions()
        try:
            plan = self.plan(targets)
        except DagmakeError as e:
            self.console.print_error(type(e).__name__, str(e))
            return DispatchResult(exit_code=exit_code_for(e), error=e)

        self.console.print_debug(f"plan: {' -> '.join(plan.names())}")

        engine = Engine(
            self.executor,
            StalenessOracle(self.store, root=self.root),
            max_workers=options.jobs,
            fail_fast=options.fail_fast,
            timeout=options.timeout,
            console=self.console,
        )

        if options.dry_run:
            rows = engine.preview(plan)
            self.console.print_plan(
                (t.name, f"{'would run' if stale else 'skip'}: {reason}") for t, stale, reason in rows
            )
            return DispatchResult(exit_code=EXIT_OK, plan=plan)

        report = engine.run(plan)
        code = EXIT_OK if report.success and not report.pending else EXIT_ACTION_FAILED
        return DispatchResult(exit_code=code, plan=plan, report=report)
