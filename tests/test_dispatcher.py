import pytest

from dagmake.dispatcher import (
    EXIT_ACTION_FAILED,
    EXIT_CONFIG_ERROR,
    EXIT_CYCLE,
    EXIT_OK,
    EXIT_UNKNOWN_TARGET,
    Dispatcher,
    RunOptions,
)
from dagmake.dsl import phony, target
from dagmake.errors import ConfigurationError, CycleError, UnknownTargetError
from dagmake.model import Status
from dagmake.registry import TargetRegistry


def _cargo_registry():
    return TargetRegistry(
        [
            phony("build", "cargo build"),
            phony("run", "cargo run"),
            phony("test", "cargo test -- --nocapture"),
            phony("coverage", "cargo llvm-cov --open"),
            phony("lint", "cargo clippy -- -D warnings"),
            phony("clean", "cargo clean"),
        ]
    )


def test_default_target_runs_when_none_requested(console, fake_executor):
    result = Dispatcher(_cargo_registry(), executor=fake_executor, console=console).run()
    assert result.exit_code == EXIT_OK
    assert result.ok
    assert fake_executor.calls == ["cargo build"]


def test_unknown_target_exits_1_without_running(console, fake_executor):
    result = Dispatcher(_cargo_registry(), executor=fake_executor, console=console).run("deploy")
    assert result.exit_code == EXIT_UNKNOWN_TARGET
    assert isinstance(result.error, UnknownTargetError)
    assert result.report is None
    assert fake_executor.calls == []


def test_cycle_exits_2_without_running(console, fake_executor):
    reg = TargetRegistry(
        [
            phony("build", "cargo build", needs=["test"]),
            phony("test", "cargo test", needs=["build"]),
        ]
    )
    result = Dispatcher(reg, executor=fake_executor, console=console).run("test")
    assert result.exit_code == EXIT_CYCLE
    assert isinstance(result.error, CycleError)
    assert fake_executor.calls == []


def test_failed_lint_stops_build(console, make_executor):
    executor = make_executor({"cargo clippy -- -D warnings": 1})
    reg = TargetRegistry(
        [
            phony("lint", "cargo clippy -- -D warnings"),
            phony("build", "cargo build"),
        ]
    )
    result = Dispatcher(reg, executor=executor, console=console).run(["lint", "build"], RunOptions(fail_fast=True))

    assert result.exit_code == EXIT_ACTION_FAILED
    assert result.report.get("lint").status is Status.FAILED
    assert result.report.states["build"] is Status.PENDING
    assert executor.calls == ["cargo clippy -- -D warnings"]


def test_registry_is_frozen_once_dispatched(console, fake_executor):
    reg = _cargo_registry()
    Dispatcher(reg, executor=fake_executor, console=console).run("build")
    assert reg.frozen


def test_dry_run_executes_nothing(console, fake_executor, tmp_path):
    reg = TargetRegistry([phony("gen", "gen"), target("app", "cc", needs=["gen"], outputs=["app"])])
    result = Dispatcher(reg, executor=fake_executor, root=tmp_path, console=console).run(
        "app", RunOptions(dry_run=True)
    )
    assert result.exit_code == EXIT_OK
    assert result.plan.names() == ["gen", "app"]
    assert result.report is None
    assert fake_executor.calls == []


def test_no_default_target_is_a_configuration_error(console, fake_executor):
    result = Dispatcher(TargetRegistry(), executor=fake_executor, console=console).run()
    assert result.exit_code == EXIT_CONFIG_ERROR
    assert isinstance(result.error, ConfigurationError)


@pytest.mark.parametrize("kwargs", [{"jobs": 0}, {"jobs": -2}, {"timeout": 0}, {"timeout": -1.0}])
def test_invalid_options_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        RunOptions(**kwargs)


def test_parallel_jobs_option(console, make_executor):
    executor = make_executor(delay=0.1)
    reg = TargetRegistry([phony("a", "a"), phony("b", "b"), phony("all", needs=["a", "b"])])
    result = Dispatcher(reg, executor=executor, console=console).run("all", RunOptions(jobs=2))
    assert result.ok
    assert executor.max_active == 2
