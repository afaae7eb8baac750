import pytest

from jobchain.engine import Cascade, Flow, FlowDef, Step, merge_flows, sh
from jobchain.engine.dag import build_dag, topo_levels
from jobchain.errors import StepFailure, ValidationError
from jobchain.stats import CUSTOM_GROUP


def _noop(process):
    pass


def test_build_dag_rejects_duplicates_and_missing_needs():
    with pytest.raises(ValueError, match="Duplicate step names"):
        build_dag([Step("a", _noop), Step("a", _noop)])

    with pytest.raises(ValueError, match="needs missing step 'z'"):
        build_dag([Step("a", _noop, needs=("z",))])


def test_topo_levels_groups_independent_steps():
    steps = [
        Step("extract", _noop),
        Step("clean", _noop, needs=("extract",)),
        Step("count", _noop, needs=("extract",)),
        Step("report", _noop, needs=("clean", "count")),
    ]

    assert topo_levels(*build_dag(steps)) == [["extract"], ["clean", "count"], ["report"]]


def test_topo_levels_rejects_cycles():
    steps = [Step("a", _noop, needs=("b",)), Step("b", _noop, needs=("a",))]

    with pytest.raises(ValueError, match="cycle"):
        topo_levels(*build_dag(steps))


def test_flow_validate_wraps_graph_errors():
    flow = Flow("wc", [Step("a", _noop, needs=("missing",))])

    with pytest.raises(ValidationError, match=r"\[wc\] Step 'a' needs missing step"):
        flow.validate()

    with pytest.raises(ValidationError, match="no steps"):
        Flow("empty", []).validate()


def test_flow_complete_collects_counters_from_parallel_steps():
    def add(process):
        process.stat("rows", 1)

    flow_def = FlowDef("wc")
    flow_def.add_step("start", add)
    for i in range(8):
        flow_def.add_step(f"part-{i}", add, needs=["start"])
    flow = flow_def.build(max_workers=4)

    flow.complete()

    stats = flow.get_flow_stats()
    assert stats.is_successful
    assert stats.counters_for(CUSTOM_GROUP) == {"rows": 9}
    assert stats.counters_for("jobchain.engine") == {"steps_completed": 9}


def test_failing_step_fails_the_flow_without_raising():
    def boom(process):
        raise RuntimeError("boom")

    ran = []
    flow = (
        FlowDef("wc")
        .add_step("boom", boom)
        .add_step("after", lambda p: ran.append("after"), needs=["boom"])
        .build()
    )

    flow.complete()

    assert not flow.stats.is_successful
    assert str(flow.stats.failure) == "boom"
    assert ran == []


def test_shell_step_failure_is_reported(tmp_path):
    flow = FlowDef("wc").sh("ok", "echo hello").sh("bad", "echo oops >&2; exit 3", needs=["ok"]).build()

    flow.complete()

    failure = flow.stats.failure
    assert isinstance(failure, StepFailure)
    assert failure.exit_code == 3
    assert "oops" in failure.stderr
    assert str(failure) == "[wc] step 'bad' failed (exit=3): echo oops >&2; exit 3"


def test_shell_step_runs_in_cwd(tmp_path):
    flow = Flow("touch", [sh("touch", "touch marker", cwd=str(tmp_path))])

    flow.complete()

    assert flow.stats.is_successful
    assert (tmp_path / "marker").exists()


def test_write_dot_and_steps_dot(tmp_path):
    flow = (
        FlowDef("my.Job")
        .sh("extract", "true")
        .add_step("count", _noop, needs=["extract"])
        .build()
    )

    dot = flow.write_dot(tmp_path / "g.dot").read_text()
    steps = flow.write_steps_dot(tmp_path / "g_steps.dot").read_text()

    assert dot.startswith('digraph "my.Job" {')
    assert "head -> step_0;" in dot
    assert "step_0 -> step_1;" in dot
    assert "step_1 -> tail;" in dot
    assert "sh: true" in dot
    assert "subgraph cluster_stage_1" in steps
    assert "subgraph cluster_stage_2" in steps
    assert 'lhead="cluster_stage_2"' in steps


def test_cascade_stops_at_first_failed_flow():
    ran = []

    def mark(name):
        return lambda p: ran.append(name)

    def boom(process):
        raise RuntimeError("boom")

    flows = [
        Flow("a", [Step("a", mark("a"))]),
        Flow("b", [Step("b", boom)]),
        Flow("c", [Step("c", mark("c"))]),
    ]

    stats = Cascade("etl", flows).complete().get_cascade_stats()

    assert ran == ["a"]
    assert not stats.is_successful
    assert [s.name for s in stats.flow_stats] == ["a", "b"]


def test_merge_flows_chains_flow_graphs():
    a = FlowDef("a").add_step("x", _noop).add_step("y", _noop, needs=["x"]).build()
    b = FlowDef("b").add_step("z", _noop).build()

    merged = merge_flows("etl", [a, b])

    assert [s.name for s in merged.steps] == ["a/x", "a/y", "b/z"]
    assert merged.stages() == [["a/x"], ["a/y"], ["b/z"]]
