# executor.py
from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Dict, Optional, Tuple

from .model import ExecResult

# conventional shell exit code for "command not found"
EXIT_NOT_FOUND = 127

# keep captured output bounded
MAX_OUTPUT = 64_000

TOOL_HINTS = {
    "cargo": "Install Rust (https://rustup.rs) or fix PATH.",
    "make": "Install make or fix PATH.",
    "npm": "Install Node.js (includes npm) or fix PATH.",
    "node": "Install Node.js or fix PATH.",
    "pytest": "Install pytest (e.g., pip install pytest).",
    "ruff": "Install ruff (e.g., pip install ruff).",
    "docker": "Install Docker and ensure the daemon is running.",
    "python3": "Install Python 3 or fix PATH (python3).",
}


def _text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _tail(text: str) -> str:
    return text[-MAX_OUTPUT:]


class ProcessExecutor:
    """Runs actions as child processes; stdout and stderr are captured together."""

    def __init__(self, root: str | Path = "."):
        self.root = Path(root).resolve()

    def execute(
        self,
        command: str,
        args: Tuple[str, ...] = (),
        *,
        cwd: str | None = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ExecResult:
        workdir = (self.root / (cwd or ".")).resolve()
        if not workdir.is_dir():
            return ExecResult(exit_code=EXIT_NOT_FOUND, output=f"working directory not found: {workdir}")

        full_env = os.environ.copy()
        full_env.update(env or {})

        try:
            proc = subprocess.run(
                [command, *args],
                cwd=str(workdir),
                env=full_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            # subprocess.run kills the child before re-raising
            return ExecResult(exit_code=-1, output=_tail(_text(e.output)), timed_out=True)
        except FileNotFoundError:
            hint = TOOL_HINTS.get(command, f"Install {command} or fix PATH.")
            return ExecResult(exit_code=EXIT_NOT_FOUND, output=f"command not found: {command}\nHint: {hint}")
        except PermissionError as e:
            return ExecResult(exit_code=126, output=f"permission denied: {command} ({e})")

        return ExecResult(exit_code=proc.returncode, output=_tail(proc.stdout or ""))
