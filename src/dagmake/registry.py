# registry.py
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .errors import DuplicateTargetError, RegistryFrozenError, UnknownTargetError
from .model import Target


class TargetRegistry:
    """
    Declared targets, keyed by name, in declaration order.

    The default target is the one set explicitly via `set_default` (or the
    `default=` argument); without it, the first declared target wins.
    """

    def __init__(self, targets: Iterable[Target] = (), *, default: str | None = None):
        self._targets: Dict[str, Target] = {}
        self._default: Optional[str] = None
        self._frozen = False
        for t in targets:
            self.register(t)
        if default is not None:
            self.set_default(default)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("registry is frozen once resolution has started")

    def register(self, target: Target) -> Target:
        self._check_mutable()
        if target.name in self._targets:
            raise DuplicateTargetError(target.name)
        self._targets[target.name] = target
        return target

    def lookup(self, name: str, *, referenced_by: str | None = None) -> Target:
        try:
            return self._targets[name]
        except KeyError:
            raise UnknownTargetError(name, referenced_by, self.names()) from None

    def set_default(self, name: str) -> None:
        self._check_mutable()
        self.lookup(name)
        self._default = name

    @property
    def default(self) -> Optional[str]:
        if self._default is not None:
            return self._default
        return next(iter(self._targets), None)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return list(self._targets)

    def targets(self) -> List[Target]:
        return list(self._targets.values())

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __iter__(self) -> Iterator[Target]:
        return iter(list(self._targets.values()))

    def __len__(self) -> int:
        return len(self._targets)
