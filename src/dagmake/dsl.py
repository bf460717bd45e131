# dsl.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

from .model import Action, Target

Command = Union[str, Sequence[str], Action, None]


# ---------------------------------------------------------------------
# Action helpers
# ---------------------------------------------------------------------

def sh(line: str) -> Action:
    """Parse a command line: sh("cargo test -- --nocapture")."""
    return Action.parse(line)


def cmd(program: str, *args: str) -> Action:
    """Build an action from already split arguments."""
    return Action(command=program, args=tuple(args))


def _to_action(command: Command) -> Optional[Action]:
    if command is None or isinstance(command, Action):
        return command
    if isinstance(command, str):
        return Action.parse(command)
    parts = list(command)
    if not parts:
        raise ValueError("empty command")
    return Action(command=parts[0], args=tuple(parts[1:]))


# ---------------------------------------------------------------------
# Functional helpers
# ---------------------------------------------------------------------

def target(
    name: str,
    command: Command = None,
    *,
    needs: Optional[List[str]] = None,
    phony: bool = False,
    outputs: Optional[List[str]] = None,
    inputs: Optional[List[str]] = None,
    env: Optional[Dict[str, str]] = None,
    cwd: str | None = None,
    description: str = "",
) -> Target:
    action = _to_action(command)
    if action is None and not needs:
        raise ValueError(f"target({name!r}) needs a command or at least one prerequisite")

    return Target(
        name=name,
        action=action,
        needs=list(needs or []),
        phony=phony,
        outputs=list(outputs or []),
        inputs=list(inputs or []),
        # force values to str for stable hashing + env compatibility
        env={k: str(v) for k, v in (env or {}).items()},
        cwd=cwd,
        description=description,
    )


def phony(name: str, command: Command = None, **kwargs) -> Target:
    """A target with no filesystem output; always runs."""
    return target(name, command, phony=True, **kwargs)


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class TargetBuilder:
    def __init__(self, name: str):
        self.name = name
        self._command: Command = None
        self._needs: list[str] = []
        self._phony = False
        self._outputs: list[str] = []
        self._inputs: list[str] = []
        self._env: dict[str, str] = {}
        self._cwd: str | None = None
        self._description = ""

    def run(self, command: Command):
        self._command = command
        return self

    def depends_on(self, *names: str):
        self._needs.extend(names)
        return self

    def produces(self, *paths: str):
        self._outputs.extend(paths)
        return self

    def with_inputs(self, *paths: str):
        self._inputs.extend(paths)
        return self

    def with_env(self, **env):
        self._env.update({k: str(v) for k, v in env.items()})
        return self

    def in_dir(self, cwd: str):
        self._cwd = cwd
        return self

    def as_phony(self, enabled: bool = True):
        self._phony = enabled
        return self

    def describe(self, text: str):
        self._description = text
        return self

    def build(self) -> Target:
        return target(
            self.name,
            self._command,
            needs=self._needs,
            phony=self._phony,
            outputs=self._outputs,
            inputs=self._inputs,
            env=self._env,
            cwd=self._cwd,
            description=self._description,
        )


def build(name: str) -> TargetBuilder:
    """Convenience: build('app').run('cc -o app main.c').produces('app').build()"""
    return TargetBuilder(name)


def declare(*targets: Target) -> List[Target]:
    """
    Targets file helper.

        from dagmake import declare, phony

        def targets():
            return declare(
                phony("build", "cargo build"),
                phony("test", "cargo test", needs=["build"]),
            )
    """
    return list(targets)
