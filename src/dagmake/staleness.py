# staleness.py
from __future__ import annotations

from pathlib import Path
from typing import AbstractSet, Optional, Tuple

from .cache import snapshot
from .dag import ExecutionPlan
from .model import StateStore, Target


class StalenessOracle:
    """
    Decides whether a target's action must run.

    Staleness propagates forward through the plan: a target is never skipped
    when one of its prerequisites executed in the same invocation.
    """

    def __init__(self, store: Optional[StateStore] = None, *, root: str | Path = "."):
        self.store = store
        self.root = Path(root)

    def is_stale(self, target: Target, plan: ExecutionPlan, executed: AbstractSet[str]) -> bool:
        return self.explain(target, plan, executed)[0]

    def explain(
        self,
        target: Target,
        plan: ExecutionPlan,
        executed: AbstractSet[str],
    ) -> Tuple[bool, str]:
        """Returns (stale, human readable reason)."""
        if target.phony:
            return True, "phony"

        if not target.needs and not target.outputs:
            return True, "no prerequisites and no outputs"

        missing = [o for o in target.outputs if not (self.root / o).exists()]
        if missing:
            return True, f"missing output: {missing[0]}"

        rebuilt = [d for d in target.needs if d in executed and d in plan]
        if rebuilt:
            return True, f"prerequisite executed: {rebuilt[0]}"

        if self.store is not None:
            last = self.store.get_last_known_state(target.name)
            if last is not None and last.fingerprint != snapshot(target, self.root).fingerprint:
                return True, "inputs or outputs changed"

        return False, "up to date"

    def record(self, target: Target) -> None:
        """Remember the current state of a non-phony target."""
        if target.phony or self.store is None:
            return
        self.store.record_state(target.name, snapshot(target, self.root))

    def has_state(self, target: Target) -> bool:
        if self.store is None:
            return False
        return self.store.get_last_known_state(target.name) is not None
