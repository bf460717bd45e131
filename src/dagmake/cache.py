# cache.py
from __future__ import annotations

import hashlib
import json
import shutil
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

from .model import Target, TargetState

# ---------------------------------------------------------------------
# Core idea
# ---------------------------------------------------------------------
# Target-level state:
#   fingerprint = hash(
#       target.name,
#       action argv + cwd,
#       target.env,
#       contents of declared input files/dirs (globs),
#       contents of declared outputs
#   )
#
# A state store keeps the last fingerprint recorded after a successful
# build. The staleness oracle compares it with the current one.
#
# Layout on disk (JsonStateStore):
#   root/
#     <quoted target name>.json
# ---------------------------------------------------------------------


DEFAULT_STATE_DIR = ".dagmake/state"
DEFAULT_EXCLUDES = [
    ".git/**",
    ".dagmake/**",
    "**/__pycache__/**",
    "**/*.pyc",
    "**/.DS_Store",
]


def _sha256_bytes(data: bytes) -> str:
    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()


def _sha256_str(s: str) -> str:
    return _sha256_bytes(s.encode("utf-8"))


def _json_dumps_stable(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _relpath(p: Path, root: Path) -> str:
    try:
        return str(p.resolve().relative_to(root.resolve())).replace("\\", "/")
    except ValueError:
        # outside the project root: keep it absolute
        return str(p.resolve()).replace("\\", "/")


def _iter_files_under(root: Path) -> Iterable[Path]:
    # deterministic traversal
    for p in sorted(root.rglob("*")):
        if p.is_file():
            yield p


def _matches_any_glob(rel: str, globs: List[str]) -> bool:
    rel_path = Path(rel)
    return any(rel_path.match(g) for g in globs)


def _hash_file_contents(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            chunk = f.read(1024 * 1024)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def _resolve_globs(root: Path, patterns: List[str]) -> List[Path]:
    """
    Expand target.inputs patterns into concrete paths.
    Supports:
      - file path: "Cargo.toml"
      - dir path:  "src/"
      - glob:      "src/**/*.rs"
    """
    out: List[Path] = []
    for pat in patterns:
        pat = pat.strip()
        if not pat:
            continue
        p = root / pat
        if p.exists():
            out.append(p)
            continue
        out.extend(m for m in sorted(root.glob(pat)) if m.exists())

    # de-dupe while preserving order
    seen = set()
    uniq: List[Path] = []
    for p in out:
        rp = str(p.resolve())
        if rp not in seen:
            seen.add(rp)
            uniq.append(p)
    return uniq


def _hash_paths(root: Path, patterns: List[str], *, excludes: List[str]) -> Tuple[str, Dict]:
    """Hash a declared path set deterministically (relpath + content + size)."""
    file_fps: List[Tuple[str, str, int]] = []

    for p in _resolve_globs(root, patterns):
        files = [p] if p.is_file() else list(_iter_files_under(p))
        for f in files:
            rel = _relpath(f, root)
            if _matches_any_glob(rel, excludes):
                continue
            file_fps.append((rel, _hash_file_contents(f), f.stat().st_size))

    file_fps.sort(key=lambda t: t[0])
    payload = {"files": file_fps}
    return _sha256_str(_json_dumps_stable(payload)), payload


def hash_outputs(target: Target, root: str | Path = ".") -> Dict[str, str]:
    """Digest per declared output; missing outputs map to ""."""
    base = Path(root).resolve()
    digests: Dict[str, str] = {}
    for out in target.outputs:
        p = base / out
        if p.is_file():
            digests[out] = _hash_file_contents(p)
        elif p.is_dir():
            digests[out], _ = _hash_paths(base, [out], excludes=DEFAULT_EXCLUDES)
        else:
            digests[out] = ""
    return digests


def compute_fingerprint(
    target: Target,
    *,
    root: str | Path = ".",
    excludes: Optional[List[str]] = None,
) -> Tuple[str, Dict[str, str]]:
    """Returns (fingerprint, output digests) for a target's current on-disk state."""
    base = Path(root).resolve()
    exclude_globs = list(DEFAULT_EXCLUDES)
    if excludes:
        exclude_globs.extend(excludes)

    inputs_hash, _ = _hash_paths(base, list(target.inputs), excludes=exclude_globs)
    outputs = hash_outputs(target, base)

    payload = {
        "v": 1,  # bump this if you change hashing format
        "target": target.name,
        "argv": target.action.argv if target.action else [],
        "cwd": target.cwd or ".",
        "env": dict(target.env),
        "inputs_hash": inputs_hash,
        "outputs": outputs,
    }
    return _sha256_str(_json_dumps_stable(payload)), outputs


def snapshot(target: Target, root: str | Path = ".") -> TargetState:
    fingerprint, outputs = compute_fingerprint(target, root=root)
    return TargetState(fingerprint=fingerprint, outputs=outputs)


class MemoryStateStore:
    """In-process store; nothing survives the invocation."""

    def __init__(self) -> None:
        self._states: Dict[str, TargetState] = {}
        self._lock = threading.Lock()

    def get_last_known_state(self, name: str) -> Optional[TargetState]:
        with self._lock:
            return self._states.get(name)

    def record_state(self, name: str, state: TargetState) -> None:
        with self._lock:
            self._states[name] = state

    def clear(self) -> None:
        with self._lock:
            self._states.clear()


class JsonStateStore:
    """
    File-based store, one JSON document per target:
      root/
        <quoted target name>.json
    """

    def __init__(self, root: str | Path = DEFAULT_STATE_DIR):
        self.root = Path(root).resolve()

    def state_path(self, name: str) -> Path:
        return self.root / f"{quote(name, safe='')}.json"

    def get_last_known_state(self, name: str) -> Optional[TargetState]:
        path = self.state_path(name)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return TargetState.from_dict(data)
        except (ValueError, KeyError, TypeError):
            # corrupt record: treat as never built
            return None

    def record_state(self, name: str, state: TargetState) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.state_path(name)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(
                json.dumps(state.to_dict(), sort_keys=True, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            tmp.replace(path)
        finally:
            if tmp.exists():
                tmp.unlink(missing_ok=True)

    def clear(self) -> None:
        if self.root.exists():
            shutil.rmtree(self.root)
