# dagmake_targets.py
# Targets for a cargo project: build, run, test, coverage, lint, clean.
from __future__ import annotations

from dagmake import declare, phony

DEFAULT = "all"


def targets():
    return declare(
        phony("all", needs=["build"], description="default: build the crate"),
        phony("build", "cargo build"),
        phony("run", "cargo run"),
        phony("test", "cargo test -- --nocapture"),
        phony("coverage", "cargo llvm-cov --open"),
        phony("lint", "cargo clippy -- -D warnings"),
        phony("clean", "cargo clean"),
    )
