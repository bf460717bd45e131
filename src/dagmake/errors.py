# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


class DagmakeError(Exception):
    """Base class for every error raised by dagmake."""


# ----------------------------------------------------------------------
# Structural errors (fatal to the invocation)
# ----------------------------------------------------------------------

@dataclass
class DuplicateTargetError(DagmakeError):
    name: str

    def __str__(self) -> str:
        return f"Target '{self.name}' is declared more than once"


@dataclass
class UnknownTargetError(DagmakeError):
    name: str
    referenced_by: Optional[str] = None
    known: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.referenced_by:
            msg = f"Target '{self.referenced_by}' needs unknown target '{self.name}'"
        else:
            msg = f"Unknown target '{self.name}'"
        if self.known:
            msg += f"\nknown={sorted(self.known)}"
        return msg


@dataclass
class CycleError(DagmakeError):
    path: List[str]

    def __str__(self) -> str:
        return f"Dependency cycle detected: {' -> '.join(self.path)}"


class RegistryFrozenError(DagmakeError):
    """Raised when the registry is mutated after resolution started."""


class InvalidTransitionError(DagmakeError):
    """A target tried to leave a terminal state or skip a lifecycle step."""


class ConfigurationError(DagmakeError):
    """Invalid run options or missing default target."""


class TargetsFileError(DagmakeError):
    """The targets file could not be found or did not define targets."""


# ----------------------------------------------------------------------
# Action errors (recorded in the report)
# ----------------------------------------------------------------------

@dataclass
class ActionFailure(DagmakeError):
    target: str
    exit_code: int
    output: str = ""

    def __str__(self) -> str:
        return f"[{self.target}] action failed (exit={self.exit_code})"


@dataclass
class ActionTimeoutError(ActionFailure):
    timeout: float = 0.0

    def __str__(self) -> str:
        return f"[{self.target}] action timed out after {self.timeout:g}s"
