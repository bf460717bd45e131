"""Console output formatting utilities for dagmake."""

from __future__ import annotations

import sys
import threading
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

if TYPE_CHECKING:
    from dagmake.model import RunReport


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, quiet: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            quiet: If True, only errors and the final summary are printed
        """
        self.debug = debug
        self.quiet = quiet
        # workers print concurrently
        self._lock = threading.Lock()

    def _out(self, *lines: str, err: bool = False) -> None:
        stream = sys.stderr if err else sys.stdout
        with self._lock:
            for line in lines:
                print(line, file=stream)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._out(f"\n{title}", "-" * len(title))

    def print_run_started(
        self,
        targets_file: str,
        requested: Sequence[str],
        plan_size: int,
        jobs: int,
    ) -> None:
        """Print run start information."""
        if self.quiet:
            return
        self._out(
            "\nRUN STARTED",
            f"Targets file: {targets_file}",
            f"Requested: {', '.join(requested)}",
            f"Plan: {plan_size} target(s), jobs={jobs}",
            "",
        )

    def print_target_start(self, name: str, command: str) -> None:
        if self.quiet:
            return
        self._out(f"▶ {name}: {command}")

    def print_target_skipped(self, name: str, reason: str) -> None:
        if self.quiet:
            return
        self._out(f"⏭ {name} ({reason})")

    def print_target_success(self, name: str, duration: float) -> None:
        if self.quiet:
            return
        self._out(f"✓ {name} ({duration:.1f}s)")

    def print_target_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        output: str = "",
    ) -> None:
        """
        Print failure message.

        Args:
            name: Target name
            reason: Failure reason/error message
            exit_code: Optional exit code
            output: Captured process output (tail shown unless debug)
        """
        lines = [f"✗ {name} FAILED"]
        if exit_code is not None:
            lines.append(f"Exit code: {exit_code}")
        lines.append(f"Error: {reason}")
        if output:
            shown = output if self.debug else "\n".join(output.splitlines()[-20:])
            lines.extend("  | " + line for line in shown.splitlines())
        self._out(*lines, err=True)

    def print_halted(self, remaining: Iterable[str]) -> None:
        names = list(remaining)
        if names:
            self._out(f"Fail-fast: not starting {', '.join(names)}", err=True)

    def print_plan(self, rows: Iterable[tuple[str, str]]) -> None:
        """Print (name, note) rows of a plan."""
        with self._lock:
            for idx, (name, note) in enumerate(rows, start=1):
                suffix = f" ({note})" if note else ""
                print(f"  {idx:>3}. {name}{suffix}")

    def print_results(self, report: "RunReport") -> None:
        """Print final results summary."""
        lines = ["\n" + "=" * 40, "RESULTS", "=" * 40]
        for r in report.results:
            status_display = r.status.value.upper()
            if r.discarded:
                status_display += " (discarded)"
            lines.append(f"  {r.target}: {status_display}")
        for name in report.pending:
            cause = report.blocked_by.get(name)
            lines.append(f"  {name}: NOT RUN (blocked by {cause})" if cause else f"  {name}: NOT RUN")
        self._out(*lines)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        lines = [f"\nERROR: {title}", message]
        if details:
            lines.extend(f"  {detail}" for detail in details)
        if suggestion:
            lines.append(f"\n{suggestion}")
        self._out(*lines, err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            with self._lock:
                traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            self._out(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._out(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
