# dag.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence, Set, Tuple, Union

from .errors import CycleError
from .model import Target
from .registry import TargetRegistry

_VISITING = 1
_DONE = 2


@dataclass(frozen=True)
class ExecutionPlan:
    """Targets in execution order: every prerequisite precedes its dependents."""
    targets: Tuple[Target, ...]
    roots: Tuple[str, ...] = ()

    def __iter__(self) -> Iterator[Target]:
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.targets)

    def __contains__(self, name: object) -> bool:
        return any(t.name == name for t in self.targets)

    def names(self) -> List[str]:
        return [t.name for t in self.targets]

    def index(self, name: str) -> int:
        return self.names().index(name)


def resolve(registry: TargetRegistry, roots: Union[str, Sequence[str]]) -> ExecutionPlan:
    """
    Expand root target(s) into an execution plan.

    Depth-first, post-order: prerequisites are emitted before the target.
    Each target appears once (first occurrence wins), so diamonds collapse.

    Raises:
      UnknownTargetError: a root or prerequisite is not registered
      CycleError: the graph reachable from the roots is not acyclic
    """
    if isinstance(roots, str):
        roots = [roots]

    marks: Dict[str, int] = {}
    path: List[str] = []
    order: List[Target] = []

    def enter(name: str, referenced_by: str | None, stack: list) -> None:
        mark = marks.get(name)
        if mark == _DONE:
            return
        if mark == _VISITING:
            start = path.index(name)
            raise CycleError(path[start:] + [name])

        target = registry.lookup(name, referenced_by=referenced_by)
        marks[name] = _VISITING
        path.append(name)
        stack.append((target, iter(target.needs)))

    for root in roots:
        # explicit stack of (target, remaining prerequisites): long chains stay flat
        stack: List[Tuple[Target, Iterator[str]]] = []
        enter(root, None, stack)
        while stack:
            target, pending = stack[-1]
            dep = next(pending, None)
            if dep is not None:
                enter(dep, target.name, stack)
                continue
            stack.pop()
            path.pop()
            marks[target.name] = _DONE
            order.append(target)

    return ExecutionPlan(targets=tuple(order), roots=tuple(roots))


def validate(registry: TargetRegistry) -> None:
    """Resolve every registered target; raise the first structural error."""
    for name in registry.names():
        resolve(registry, name)


def dependents(plan: ExecutionPlan) -> Dict[str, Set[str]]:
    """Reverse edges within the plan: name -> targets that need it."""
    rev: Dict[str, Set[str]] = {t.name: set() for t in plan}
    for t in plan:
        for dep in t.needs:
            rev[dep].add(t.name)
    return rev
