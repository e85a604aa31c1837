from datetime import timedelta

import pytest

from flowsim.errors import (
    FlowNotFoundError,
    NotFoundError,
    RunNotFoundError,
    StepNotFoundError,
    WorkspaceNotFoundError,
)
from flowsim.simulation import Simulator

from tests.helpers import FakeClock, make_flow, make_simulator, make_state


def test_list_flows_sorted_by_slug():
    state = make_state(
        make_flow("zeta", ["code"]), make_flow("alpha", ["http"]), make_flow("mid", [])
    )
    sim = make_simulator()

    assert [f.slug for f in sim.list_flows(state)] == ["alpha", "mid", "zeta"]
    assert sim.get_flow(state, "mid").steps == []


def test_get_flow_missing():
    sim = make_simulator()
    with pytest.raises(FlowNotFoundError) as exc_info:
        sim.get_flow(make_state(), "nope")
    assert isinstance(exc_info.value, NotFoundError)
    assert "nope" in str(exc_info.value)


def test_list_runs_most_recent_first_and_filtered():
    state = make_state(make_flow("a", ["code"]), make_flow("b", ["code"]))
    sim = make_simulator(clock=FakeClock(step=timedelta(minutes=1)))
    first = sim.start_run(state, "a")
    second = sim.start_run(state, "b")
    third = sim.start_run(state, "a")

    assert [r.workflow_id for r in sim.list_runs(state)] == [
        third.workflow_id,
        second.workflow_id,
        first.workflow_id,
    ]
    assert [r.workflow_id for r in sim.list_runs(state, "a")] == [
        third.workflow_id,
        first.workflow_id,
    ]
    assert sim.list_runs(state, "unknown") == []


def test_get_run_and_step():
    state = make_state(make_flow("a", ["http", "code"]))
    sim = make_simulator()
    run = sim.start_run(state, "a")

    assert sim.get_run(state, run.workflow_id) is run

    execution, definition = sim.get_step(state, run.workflow_id, "code-2")
    assert execution.status == "pending"
    assert definition.type == "code"

    with pytest.raises(RunNotFoundError):
        sim.get_run(state, "missing")
    with pytest.raises(StepNotFoundError):
        sim.get_step(state, run.workflow_id, "missing")


def test_get_step_when_flow_was_removed():
    state = make_state(make_flow("a", ["code"]))
    sim = make_simulator()
    run = sim.start_run(state, "a")
    del state.workspaces["ws-test"].flows["a"]

    execution, definition = sim.get_step(state, run.workflow_id, "code-1")
    assert execution.step_id == "code-1"
    assert definition is None


def test_unknown_workspace_is_an_error_for_every_operation():
    state = make_state(make_flow("a", ["code"]))
    sim = Simulator("ws-other")

    with pytest.raises(WorkspaceNotFoundError):
        sim.list_flows(state)
    with pytest.raises(WorkspaceNotFoundError):
        sim.list_runs(state)
    with pytest.raises(WorkspaceNotFoundError):
        sim.start_run(state, "a")
    with pytest.raises(WorkspaceNotFoundError):
        sim.advance(state)
    assert state.tick == 0
