"""Shared builders for simulator tests."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

from flowsim.persistence.models import Flow, FlowStep, State, Workspace
from flowsim.simulation import Simulator, no_faults

WORKSPACE_ID = "ws-test"
EPOCH = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that moves forward one second on every call."""

    def __init__(self, start: datetime = EPOCH, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


def sequential_ids(prefix: str = "wf-test-"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def make_flow(slug: str, step_types: list[str], active_version: int = 2) -> Flow:
    return Flow(
        slug=slug,
        name=slug.replace("-", " ").title(),
        active_version=active_version,
        steps=[
            FlowStep(id=f"{step_type}-{index}", type=step_type, title=f"Step {index}")
            for index, step_type in enumerate(step_types, start=1)
        ],
    )


def make_state(*flows: Flow, tick: int = 0) -> State:
    ws = Workspace(id=WORKSPACE_ID, name="Test", flows={f.slug: f for f in flows})
    return State(tick=tick, workspaces={WORKSPACE_ID: ws})


def make_simulator(fault_policy=None, **kwargs) -> Simulator:
    return Simulator(
        WORKSPACE_ID,
        fault_policy=fault_policy or no_faults,
        clock=kwargs.pop("clock", FakeClock()),
        id_factory=kwargs.pop("id_factory", sequential_ids()),
    )
