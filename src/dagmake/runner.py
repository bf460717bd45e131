# runner.py
from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .dag import ExecutionPlan, dependents
from .errors import (
    ActionFailure,
    ActionTimeoutError,
    ConfigurationError,
    InvalidTransitionError,
)
from .model import TRANSITIONS, ExecResult, Executor, RunReport, RunResult, Status, Target
from .staleness import StalenessOracle
from .ui.console import Console, get_console


class _RunState:
    """
    Mutable bookkeeping for one engine run.

    Workers only touch their own target's entry; the shared collections are
    guarded by a single lock.
    """

    def __init__(self, plan: ExecutionPlan):
        self.plan = plan
        self.states: Dict[str, Status] = {t.name: Status.PENDING for t in plan}
        self.results: Dict[str, RunResult] = {}
        self.halt = threading.Event()
        self._lock = threading.Lock()

    def transition(self, name: str, new: Status) -> None:
        with self._lock:
            current = self.states[name]
            if new not in TRANSITIONS[current]:
                raise InvalidTransitionError(f"{name}: {current.value} -> {new.value}")
            self.states[name] = new

    def executed(self) -> Set[str]:
        with self._lock:
            return {n for n, r in self.results.items() if r.executed}

    def ok(self, name: str) -> bool:
        with self._lock:
            r = self.results.get(name)
            return r is not None and r.ok

    def finish(self, result: RunResult, *, fail_fast: bool) -> None:
        with self._lock:
            if self.halt.is_set():
                result.discarded = True
            elif fail_fast and result.status is Status.FAILED:
                self.halt.set()
            self.results[result.target] = result

    @property
    def halted(self) -> bool:
        return self.halt.is_set()

    def report(self) -> RunReport:
        with self._lock:
            ordered = [self.results[n] for n in self.plan.names() if n in self.results]
            pending = [n for n, s in self.states.items() if s is Status.PENDING]
            return RunReport(
                results=ordered,
                pending=pending,
                states=dict(self.states),
                blocked_by=self._blocked_by(ordered, set(pending)),
            )

    def _blocked_by(self, ordered: List[RunResult], pending: Set[str]) -> Dict[str, str]:
        rev = dependents(self.plan)
        blocked: Dict[str, str] = {}
        for failed in (r.target for r in ordered if r.status is Status.FAILED):
            frontier = list(rev[failed])
            while frontier:
                name = frontier.pop()
                if name in blocked or name not in pending:
                    continue
                blocked[name] = failed
                frontier.extend(rev[name])
        return blocked


class Engine:
    """
    Walks an execution plan.

    - Dispatches targets strictly in plan order.
    - A target starts only after all its prerequisites reached a terminal state
      (their futures are done); unrelated neighbours may overlap up to
      `max_workers`.
    - On first failure with fail_fast, stops dispatching. Targets already
      running finish and are marked discarded.
    """

    def __init__(
        self,
        executor: Executor,
        oracle: Optional[StalenessOracle] = None,
        *,
        max_workers: int = 1,
        fail_fast: bool = True,
        timeout: Optional[float] = None,
        console: Optional[Console] = None,
    ):
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")
        self.executor = executor
        self.oracle = oracle or StalenessOracle()
        self.max_workers = max_workers
        self.fail_fast = fail_fast
        self.timeout = timeout
        self.console = console or get_console()

    # ------------------------------------------------------------------
    # Per-target work (runs on a pool thread)
    # ------------------------------------------------------------------

    def _invoke(self, target: Target) -> ExecResult:
        if target.action is None:
            return ExecResult(exit_code=0)
        self.console.print_target_start(target.name, str(target.action))
        try:
            return self.executor.execute(
                target.action.command,
                target.action.args,
                cwd=target.cwd,
                env=dict(target.env),
                timeout=self.timeout,
            )
        except OSError as e:
            return ExecResult(exit_code=-1, output=str(e))

    def _run_target(self, target: Target, plan: ExecutionPlan, run: _RunState) -> RunResult:
        name = target.name
        run.transition(name, Status.RESOLVING)
        stale, reason = self.oracle.explain(target, plan, run.executed())

        if not stale:
            run.transition(name, Status.SKIPPED)
            if not self.oracle.has_state(target):
                self.oracle.record(target)
            result = RunResult(target=name, status=Status.SKIPPED, reason=reason)
            self.console.print_target_skipped(name, reason)
            run.finish(result, fail_fast=self.fail_fast)
            return result

        run.transition(name, Status.RUNNING)
        started = time.monotonic()
        res = self._invoke(target)
        duration = time.monotonic() - started

        result = RunResult(
            target=name,
            status=Status.SUCCEEDED,
            reason=reason,
            exit_code=res.exit_code,
            output=res.output,
            duration=duration,
        )
        if res.timed_out:
            result.status = Status.FAILED
            result.error = ActionTimeoutError(name, res.exit_code, res.output, timeout=self.timeout or 0.0)
        elif res.exit_code != 0:
            result.status = Status.FAILED
            result.error = ActionFailure(name, res.exit_code, res.output)

        run.transition(name, result.status)
        if result.status is Status.SUCCEEDED:
            self.oracle.record(target)
            self.console.print_target_success(name, duration)
        else:
            self.console.print_target_failure(name, str(result.error), res.exit_code, res.output)

        run.finish(result, fail_fast=self.fail_fast)
        return result

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    @staticmethod
    def _collect(done: Iterable[Future], in_flight: Set[Future]) -> None:
        for fut in done:
            in_flight.discard(fut)
            # surfaces unexpected worker errors
            fut.result()

    def run(self, plan: ExecutionPlan) -> RunReport:
        run = _RunState(plan)
        futures: Dict[str, Future] = {}
        in_flight: Set[Future] = set()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for target in plan:
                if run.halted:
                    break

                # per-node completion signal: wait for prerequisites only
                deps = [futures[d] for d in target.needs if d in futures]
                if deps:
                    wait(deps)
                if run.halted:
                    break

                if not all(run.ok(d) for d in target.needs):
                    # a prerequisite failed or never ran: leave this one pending
                    self.console.print_debug(f"{target.name}: blocked by failed prerequisite")
                    continue

                while len(in_flight) >= self.max_workers:
                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                    self._collect(done, in_flight)
                if run.halted:
                    break

                fut = pool.submit(self._run_target, target, plan, run)
                futures[target.name] = fut
                in_flight.add(fut)

            done, _ = wait(in_flight)
            self._collect(done, in_flight)

        report = run.report()
        if run.halted:
            self.console.print_halted(report.pending)
        return report

    def preview(self, plan: ExecutionPlan) -> List[Tuple[Target, bool, str]]:
        """Dry run: staleness decisions as if every stale target executed."""
        executed: Set[str] = set()
        rows: List[Tuple[Target, bool, str]] = []
        for target in plan:
            stale, reason = self.oracle.explain(target, plan, executed)
            if stale:
                executed.add(target.name)
            rows.append((target, stale, reason))
        return rows
