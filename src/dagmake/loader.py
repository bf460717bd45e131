# loader.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import List

from .errors import TargetsFileError, UnknownTargetError
from .model import Target
from .registry import TargetRegistry

DEFAULT_TARGETS_FILE = "dagmake_targets.py"


def find_targets_files(directory: str | Path = ".") -> List[Path]:
    """Targets files in a directory: dagmake_targets.py first, then *_targets.py."""
    base = Path(directory)
    found: List[Path] = []

    default = base / DEFAULT_TARGETS_FILE
    if default.exists():
        found.append(default)

    for path in sorted(base.glob("*_targets.py")):
        if path != default:
            found.append(path)
    return found


def discover_targets_file(arg: str | None, directory: str | Path = ".") -> Path:
    """
    Resolve the targets file from an explicit argument or by discovery.

    Raises:
        TargetsFileError: no file, or several candidates and none chosen
    """
    if arg:
        path = Path(arg)
        if not path.exists() and path.suffix != ".py":
            path = Path(str(path) + ".py")
        if not path.exists():
            raise TargetsFileError(f"Targets file not found: {arg}")
        return path

    candidates = find_targets_files(directory)
    if not candidates:
        raise TargetsFileError(f"No targets file found (looked for {DEFAULT_TARGETS_FILE}, *_targets.py)")
    if len(candidates) > 1 and candidates[0].name != DEFAULT_TARGETS_FILE:
        names = ", ".join(str(c) for c in candidates)
        raise TargetsFileError(f"Multiple targets files found: {names}. Pass --file explicitly.")
    return candidates[0]


def load_targets(path: str | Path) -> TargetRegistry:
    """
    Load targets from a python file.

    The file must define either:
      - targets() -> List[Target]
      - TARGETS = [Target, ...]
    and may define DEFAULT = "<name>" (otherwise the first target is the default).
    """
    tf_path = Path(path).expanduser().resolve()
    if not tf_path.exists():
        raise TargetsFileError(f"Targets file not found: {tf_path}")
    if tf_path.suffix != ".py":
        raise TargetsFileError(f"Targets file must be a .py file, got: {tf_path.name}")

    try:
        globals_dict = runpy.run_path(str(tf_path), run_name=f"dagmake_targets_{tf_path.stem}")
        declared = None
        if callable(globals_dict.get("targets")):
            declared = globals_dict["targets"]()
        elif "TARGETS" in globals_dict:
            declared = globals_dict["TARGETS"]
    except Exception as e:
        raise TargetsFileError(f"{tf_path.name}: {e!r}") from e

    if not isinstance(declared, list) or not all(isinstance(t, Target) for t in declared):
        raise TargetsFileError(
            f"{tf_path.name} must return/define a List[Target]. "
            "Define targets() -> List[Target] or TARGETS = [Target, ...]."
        )

    registry = TargetRegistry(declared)
    default = globals_dict.get("DEFAULT")
    if default is not None:
        try:
            registry.set_default(default)
        except UnknownTargetError as e:
            raise TargetsFileError(f"{tf_path.name}: DEFAULT names unknown target '{default}'") from e
    return registry
