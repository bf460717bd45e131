import pytest

from dagmake.dag import dependents, resolve, validate
from dagmake.dsl import phony
from dagmake.errors import CycleError, UnknownTargetError
from dagmake.registry import TargetRegistry


def _registry(*targets):
    return TargetRegistry(targets)


def _assert_topological(plan):
    seen = set()
    for t in plan:
        for dep in t.needs:
            assert dep in seen, f"{dep} must come before {t.name}"
        seen.add(t.name)


def test_prerequisites_come_first():
    reg = _registry(
        phony("app", "link", needs=["lib", "main"]),
        phony("lib", "cc lib"),
        phony("main", "cc main", needs=["gen"]),
        phony("gen", "gen"),
    )
    plan = resolve(reg, "app")
    assert plan.names() == ["lib", "gen", "main", "app"]
    _assert_topological(plan)


def test_diamond_collapses_to_single_occurrence():
    reg = _registry(
        phony("top", "t", needs=["left", "right"]),
        phony("left", "l", needs=["base"]),
        phony("right", "r", needs=["base"]),
        phony("base", "b"),
    )
    plan = resolve(reg, "top")
    assert plan.names() == ["base", "left", "right", "top"]
    assert plan.names().count("base") == 1


def test_multiple_roots_share_one_plan():
    reg = _registry(
        phony("lint", "cargo clippy"),
        phony("build", "cargo build"),
        phony("test", "cargo test", needs=["build"]),
    )
    plan = resolve(reg, ["lint", "test", "build"])
    assert plan.names() == ["lint", "build", "test"]
    assert plan.roots == ("lint", "test", "build")


def test_unrequested_targets_are_not_planned():
    reg = _registry(phony("build", "cargo build"), phony("clean", "cargo clean"))
    plan = resolve(reg, "build")
    assert "clean" not in plan
    assert len(plan) == 1


def test_self_reference_is_a_cycle():
    reg = _registry(phony("loop", "x", needs=["loop"]))
    with pytest.raises(CycleError) as exc:
        resolve(reg, "loop")
    assert exc.value.path == ["loop", "loop"]


def test_cycle_reports_full_path():
    reg = _registry(
        phony("a", "a", needs=["b"]),
        phony("b", "b", needs=["c"]),
        phony("c", "c", needs=["a"]),
    )
    with pytest.raises(CycleError) as exc:
        resolve(reg, "a")
    assert exc.value.path == ["a", "b", "c", "a"]
    assert "a -> b -> c -> a" in str(exc.value)


def test_cycle_below_root_excludes_entry_path():
    reg = _registry(
        phony("root", "r", needs=["x"]),
        phony("x", "x", needs=["y"]),
        phony("y", "y", needs=["x"]),
    )
    with pytest.raises(CycleError) as exc:
        resolve(reg, "root")
    assert exc.value.path == ["x", "y", "x"]


def test_missing_prerequisite_names_the_referencing_target():
    reg = _registry(phony("test", "cargo test", needs=["build"]))
    with pytest.raises(UnknownTargetError) as exc:
        resolve(reg, "test")
    assert exc.value.name == "build"
    assert exc.value.referenced_by == "test"


def test_unknown_root():
    reg = _registry(phony("build", "cargo build"))
    with pytest.raises(UnknownTargetError) as exc:
        resolve(reg, "deploy")
    assert exc.value.referenced_by is None


def test_long_chain_resolves_without_recursion_limit():
    chain = [phony("t0", "step")] + [phony(f"t{i}", "step", needs=[f"t{i - 1}"]) for i in range(1, 2000)]
    plan = resolve(_registry(*chain), "t1999")
    assert plan.names() == [f"t{i}" for i in range(2000)]


def test_long_chain_cycle_is_still_reported():
    chain = [phony("t0", "step", needs=["t1499"])] + [
        phony(f"t{i}", "step", needs=[f"t{i - 1}"]) for i in range(1, 1500)
    ]
    with pytest.raises(CycleError) as exc:
        resolve(_registry(*chain), "t1499")
    assert len(exc.value.path) == 1501
    assert exc.value.path[0] == exc.value.path[-1] == "t1499"


def test_validate_checks_unreferenced_targets():
    reg = _registry(
        phony("build", "cargo build"),
        phony("orphan", "x", needs=["orphan"]),
    )
    with pytest.raises(CycleError):
        validate(reg)


def test_dependents_reverses_edges():
    reg = _registry(
        phony("build", "cargo build"),
        phony("test", "cargo test", needs=["build"]),
        phony("run", "cargo run", needs=["build"]),
        phony("all", needs=["test", "run"]),
    )
    rev = dependents(resolve(reg, "all"))
    assert rev["build"] == {"test", "run"}
    assert rev["all"] == set()
