from dagmake.cache import MemoryStateStore
from dagmake.dag import resolve
from dagmake.dsl import phony, target
from dagmake.registry import TargetRegistry
from dagmake.staleness import StalenessOracle


def _plan(*targets, root=None):
    reg = TargetRegistry(targets)
    return resolve(reg, root or targets[-1].name)


def test_phony_is_always_stale(tmp_path):
    t = phony("build", "cargo build")
    stale, reason = StalenessOracle(root=tmp_path).explain(t, _plan(t), set())
    assert stale
    assert reason == "phony"


def test_no_prerequisites_and_no_outputs_is_stale(tmp_path):
    t = target("fmt", "cargo fmt")
    assert StalenessOracle(root=tmp_path).is_stale(t, _plan(t), set())


def test_missing_output_is_stale(tmp_path):
    t = target("app", "cc -o app main.c", outputs=["app"])
    stale, reason = StalenessOracle(root=tmp_path).explain(t, _plan(t), set())
    assert stale
    assert "app" in reason


def test_existing_output_is_up_to_date(tmp_path):
    (tmp_path / "app").write_text("bin")
    t = target("app", "cc -o app main.c", outputs=["app"])
    assert not StalenessOracle(root=tmp_path).is_stale(t, _plan(t), set())


def test_executed_prerequisite_makes_dependent_stale(tmp_path):
    (tmp_path / "app").write_text("bin")
    gen = phony("gen", "gen")
    app = target("app", "cc -o app main.c", needs=["gen"], outputs=["app"])
    plan = _plan(gen, app)
    oracle = StalenessOracle(root=tmp_path)

    assert not oracle.is_stale(app, plan, set())
    stale, reason = oracle.explain(app, plan, {"gen"})
    assert stale
    assert reason == "prerequisite executed: gen"


def test_non_phony_without_outputs_follows_prerequisites(tmp_path):
    build = target("build", "cargo build", outputs=["out"])
    everything = target("all", needs=["build"])
    plan = _plan(build, everything)
    oracle = StalenessOracle(root=tmp_path)
    assert not oracle.is_stale(everything, plan, set())
    assert oracle.is_stale(everything, plan, {"build"})


def test_changed_input_is_stale_when_state_recorded(tmp_path):
    (tmp_path / "main.c").write_text("int main(){}")
    (tmp_path / "app").write_text("bin")
    t = target("app", "cc -o app main.c", inputs=["main.c"], outputs=["app"])
    plan = _plan(t)
    oracle = StalenessOracle(MemoryStateStore(), root=tmp_path)

    oracle.record(t)
    assert not oracle.is_stale(t, plan, set())

    (tmp_path / "main.c").write_text("int main(){return 1;}")
    stale, reason = oracle.explain(t, plan, set())
    assert stale
    assert reason == "inputs or outputs changed"


def test_without_recorded_state_outputs_decide(tmp_path):
    (tmp_path / "app").write_text("bin")
    t = target("app", "cc -o app main.c", inputs=["main.c"], outputs=["app"])
    oracle = StalenessOracle(MemoryStateStore(), root=tmp_path)
    assert not oracle.has_state(t)
    assert not oracle.is_stale(t, _plan(t), set())


def test_phony_targets_are_never_recorded(tmp_path):
    store = MemoryStateStore()
    t = phony("build", "cargo build")
    StalenessOracle(store, root=tmp_path).record(t)
    assert store.get_last_known_state("build") is None
