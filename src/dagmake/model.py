# model.py
from __future__ import annotations

import shlex
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Protocol, Tuple


@dataclass(frozen=True)
class Action:
    """A single external command: program plus arguments."""
    command: str
    args: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, line: str) -> Action:
        parts = shlex.split(line)
        if not parts:
            raise ValueError("empty command line")
        return cls(command=parts[0], args=tuple(parts[1:]))

    @property
    def argv(self) -> List[str]:
        return [self.command, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv)


@dataclass
class Target:
    """
    A named unit of work: one action + prerequisites + metadata for staleness.

    `needs` lists targets that must reach a terminal state BEFORE this one.
    A target without an action is an aggregate (e.g. `all: build`).
    """
    name: str
    action: Optional[Action] = None
    needs: list[str] = field(default_factory=list)
    phony: bool = False

    outputs: list[str] = field(default_factory=list)
    inputs: list[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    cwd: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("target name must not be empty")
        # keep declaration order, drop repeats
        self.needs = list(dict.fromkeys(self.needs))


class Status(str, Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    RUNNING = "running"
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (Status.SKIPPED, Status.SUCCEEDED, Status.FAILED)


TRANSITIONS: Dict[Status, Tuple[Status, ...]] = {
    Status.PENDING: (Status.RESOLVING,),
    Status.RESOLVING: (Status.SKIPPED, Status.RUNNING),
    Status.RUNNING: (Status.SUCCEEDED, Status.FAILED),
    Status.SKIPPED: (),
    Status.SUCCEEDED: (),
    Status.FAILED: (),
}


@dataclass
class RunResult:
    """Outcome of one target within a single invocation."""
    target: str
    status: Status
    reason: str = ""
    exit_code: Optional[int] = None
    output: str = ""
    error: Optional[Exception] = None
    duration: float = 0.0
    # finished after a fail-fast halt; kept for the record only
    discarded: bool = False

    @property
    def executed(self) -> bool:
        return self.status in (Status.SUCCEEDED, Status.FAILED)

    @property
    def ok(self) -> bool:
        return self.status in (Status.SUCCEEDED, Status.SKIPPED)


@dataclass
class RunReport:
    """Aggregated result of one engine run."""
    results: List[RunResult] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)
    states: Dict[str, Status] = field(default_factory=dict)
    # pending target -> failed prerequisite it transitively depends on
    blocked_by: Dict[str, str] = field(default_factory=dict)

    def __iter__(self) -> Iterator[RunResult]:
        return iter(self.results)

    def get(self, name: str) -> Optional[RunResult]:
        for r in self.results:
            if r.target == name:
                return r
        return None

    @property
    def failed(self) -> List[RunResult]:
        return [r for r in self.results if r.status is Status.FAILED]

    @property
    def success(self) -> bool:
        return all(r.ok for r in self.results)


@dataclass(frozen=True)
class TargetState:
    """What the state store remembers about a non-phony target."""
    fingerprint: str
    outputs: Dict[str, str] = field(default_factory=dict)
    recorded_at: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict:
        return {
            "fingerprint": self.fingerprint,
            "outputs": dict(self.outputs),
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TargetState:
        return cls(
            fingerprint=data["fingerprint"],
            outputs=dict(data.get("outputs") or {}),
            recorded_at=int(data.get("recorded_at", 0)),
        )


@dataclass(frozen=True)
class ExecResult:
    """Raw outcome of an external process."""
    exit_code: int
    output: str = ""
    timed_out: bool = False


class Executor(Protocol):
    def execute(
        self,
        command: str,
        args: Tuple[str, ...] = (),
        *,
        cwd: str | None = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ExecResult:
        ...


class StateStore(Protocol):
    def get_last_known_state(self, name: str) -> Optional[TargetState]:
        ...

    def record_state(self, name: str, state: TargetState) -> None:
        ...
