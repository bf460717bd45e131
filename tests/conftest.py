"""Shared fixtures: a fake process executor and quiet consoles."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest

from dagmake.model import ExecResult
from dagmake.ui.console import Console, set_console

Behaviour = Union[int, ExecResult, Callable[[str, Tuple[str, ...]], ExecResult]]


class FakeExecutor:
    """
    Stands in for ProcessExecutor. Commands are keyed by their full command
    line ("cargo build"); unknown commands succeed with exit code 0.
    """

    def __init__(self, behaviours: Optional[Dict[str, Behaviour]] = None, delay: float = 0.0):
        self.behaviours = dict(behaviours or {})
        self.delay = delay
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def execute(self, command, args=(), *, cwd=None, env=None, timeout=None) -> ExecResult:
        line = " ".join([command, *args])
        with self._lock:
            self.calls.append(line)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            behaviour = self.behaviours.get(line, 0)
            if callable(behaviour):
                return behaviour(command, tuple(args))
            if isinstance(behaviour, ExecResult):
                return behaviour
            return ExecResult(exit_code=behaviour, output=f"ran {line}")
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def console():
    c = Console(quiet=True)
    set_console(c)
    return c


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def make_executor():
    return FakeExecutor
