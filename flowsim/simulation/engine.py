"""Deterministic run simulator.

The simulator mutates an in-memory ``State`` and never touches disk; callers
persist the state after every mutating call (see ``flowsim.session``).
"""

from __future__ import annotations

import copy
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..constants import (
    RUN_ID_BYTES,
    RUN_ID_PREFIX,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_RETRYING,
    STATUS_CANCELLED,
    STATUS_RUNNING,
    STATUS_TERMINATED,
    TERMINAL_RUN_STATUSES,
    TRANSIENT_ERROR_MESSAGE,
)
from ..errors import (
    FlowNotFoundError,
    RunNotFoundError,
    StepNotFoundError,
    WorkspaceNotFoundError,
)
from ..persistence.models import Flow, FlowStep, Run, State, StepExecution, Workspace
from .events import RunEvent, derive_run_events
from .faults import DEFAULT_FAULT_POLICY, FaultPolicy
from .results import RUN_SUCCESS_PREVIEW, build_step_result

logger = logging.getLogger(__name__)

# Marks an omitted run input, so an explicit JSON null can still be stored.
DEFAULT_INPUT: Any = object()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_run_id(prefix: str = RUN_ID_PREFIX) -> str:
    """Random run identifier: ``prefix`` followed by 12 hex characters."""
    return prefix + secrets.token_hex(RUN_ID_BYTES)


class Simulator:
    """Advances simulated runs of one workspace.

    Args:
        workspace_id: Workspace every operation is scoped to.
        fault_policy: Decides when a running step fails transiently.
        clock: Source of "now"; defaults to the UTC wall clock.
        id_factory: Produces new run ids.
    """

    def __init__(
        self,
        workspace_id: str,
        fault_policy: FaultPolicy = DEFAULT_FAULT_POLICY,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_run_id,
    ) -> None:
        self.workspace_id = workspace_id
        self.fault_policy = fault_policy
        self._clock = clock
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Lookups
    def workspace(self, state: State) -> Workspace:
        ws = state.workspaces.get(self.workspace_id)
        if ws is None:
            raise WorkspaceNotFoundError(self.workspace_id)
        return ws

    def list_flows(self, state: State) -> list[Flow]:
        ws = self.workspace(state)
        return sorted(ws.flows.values(), key=lambda f: f.slug)

    def get_flow(self, state: State, slug: str) -> Flow:
        flow = self.workspace(state).flows.get(slug)
        if flow is None:
            raise FlowNotFoundError(slug)
        return flow

    def list_runs(self, state: State, flow_slug: Optional[str] = None) -> list[Run]:
        """Runs of the workspace, most recently started first."""
        ws = self.workspace(state)
        runs = [r for r in ws.runs.values() if not flow_slug or r.flow_slug == flow_slug]
        return sorted(runs, key=lambda r: r.started_at, reverse=True)

    def get_run(self, state: State, run_id: str) -> Run:
        run = self.workspace(state).runs.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def get_step(
        self, state: State, run_id: str, step_id: str
    ) -> tuple[StepExecution, Optional[FlowStep]]:
        """Return a step execution and, when the flow still has it, its definition."""
        run = self.get_run(state, run_id)
        execution = run.step(step_id)
        if execution is None:
            raise StepNotFoundError(run_id, step_id)
        flow = self.workspace(state).flows.get(run.flow_slug)
        definition = None
        if flow is not None:
            definition = next((s for s in flow.steps if s.id == step_id), None)
        return execution, definition

    def run_events(self, state: State, run_id: str) -> list[RunEvent]:
        """Timeline of a run, oldest event first."""
        return derive_run_events(self.get_run(state, run_id))

    # ------------------------------------------------------------------
    # Mutations
    def start_run(
        self,
        state: State,
        flow_slug: str,
        version: int = 0,
        input_preview: Any = DEFAULT_INPUT,
        triggered_by: str = "manual",
    ) -> Run:
        """Create a run of ``flow_slug`` with its first step already running.

        ``version`` 0 pins the flow's active version. Without ``input_preview``
        the run input is ``{"flowSlug": flow_slug}``.
        """
        ws = self.workspace(state)
        flow = ws.flows.get(flow_slug)
        if flow is None:
            raise FlowNotFoundError(flow_slug)
        if not version:
            version = flow.active_version
        run_id = self._id_factory()
        now = self._clock()

        run = Run(
            workflow_id=run_id,
            flow_slug=flow_slug,
            version=version,
            status=STATUS_RUNNING,
            triggered_by=triggered_by,
            started_at=now,
            updated_at=now,
            input_preview=(
                {"flowSlug": flow_slug}
                if input_preview is DEFAULT_INPUT
                else input_preview
            ),
            steps=[
                StepExecution(
                    step_id=step.id,
                    step_type=step.type,
                    title=step.title,
                    status=STATUS_PENDING,
                    attempt=0,
                )
                for step in flow.steps
            ],
        )
        if run.steps:
            first = run.steps[0]
            self._start_step(run, first, now)
            first.input_preview = run.input_preview

        ws.runs[run_id] = run
        logger.info(
            f"Started run {run_id} of {flow_slug} v{version} ({len(run.steps)} steps)"
        )
        return run

    def replay_run(self, state: State, run_id: str) -> Run:
        """Start a new run of the same flow and version with the original input."""
        return self._rerun(state, run_id, "replay")

    def retry_run(self, state: State, run_id: str) -> Run:
        """Run a flow again from its first step, marked as a retry."""
        return self._rerun(state, run_id, "retry")

    def _rerun(self, state: State, run_id: str, triggered_by: str) -> Run:
        original = self.get_run(state, run_id)
        return self.start_run(
            state,
            original.flow_slug,
            version=original.version,
            input_preview=copy.deepcopy(original.input_preview),
            triggered_by=triggered_by,
        )

    def cancel_run(
        self, state: State, run_id: str, reason: str = "", force: bool = False
    ) -> tuple[Run, bool]:
        """Stop a run so that ``advance`` no longer touches it.

        ``force`` marks the run ``terminated`` instead of ``cancelled``. A run
        that is already terminal is returned unchanged with ``False``.
        """
        run = self.get_run(state, run_id)
        if run.status in TERMINAL_RUN_STATUSES:
            return run, False
        now = self._clock()
        run.status = STATUS_TERMINATED if force else STATUS_CANCELLED
        run.error = reason or None
        run.current_step = ""
        run.completed_at = now
        run.updated_at = now
        logger.info(f"Run {run_id} {run.status}")
        return run, True

    def advance(self, state: State, ticks: int = 1) -> int:
        """Advance every running run by ``ticks`` ticks and return the final tick."""
        ws = self.workspace(state)
        if ticks <= 0:
            ticks = 1
        for _ in range(ticks):
            state.tick += 1
            now = self._clock()
            for run in ws.runs.values():
                if run.status != STATUS_RUNNING:
                    continue
                self.advance_run(run, state.tick, now)
        return state.tick

    def advance_run(self, run: Run, tick: int, now: datetime) -> None:
        """Apply one tick to a running run."""
        current = run.active_step()
        if current is None:
            current = run.next_pending_step()
            if current is None:
                self._complete_run(run, now)
                return
            self._start_step(run, current, now)
            if current.input_preview is None:
                current.input_preview = self._latest_output(run)

        if current.status == STATUS_RUNNING and self.fault_policy(
            current.step_type, current.attempt, tick
        ):
            current.status = STATUS_RETRYING
            current.error = TRANSIENT_ERROR_MESSAGE
            current.duration_ms = 0
            run.updated_at = now
            logger.warning(
                f"Injected fault on step {current.step_id} of run {run.workflow_id} at tick {tick}"
            )
            return

        if current.status == STATUS_RETRYING:
            current.status = STATUS_RUNNING
            current.attempt += 1
            current.error = None
            run.updated_at = now
            logger.debug(
                f"Retrying step {current.step_id} of run {run.workflow_id} (attempt {current.attempt})"
            )
            return

        self._complete_step(run, current, tick, now)
        successor = run.next_pending_step()
        if successor is None:
            self._complete_run(run, now)
            return
        self._start_step(run, successor, now)
        # Output of the step just completed becomes the input of the next one.
        successor.input_preview = current.result_preview
        run.updated_at = now

    # ------------------------------------------------------------------
    # Helpers
    @staticmethod
    def _start_step(run: Run, step: StepExecution, now: datetime) -> None:
        step.status = STATUS_RUNNING
        step.attempt = 1
        step.started_at = now
        run.current_step = step.step_id
        logger.debug(f"Step {step.step_id} of run {run.workflow_id} running")

    @staticmethod
    def _complete_step(
        run: Run, step: StepExecution, tick: int, now: datetime
    ) -> None:
        step.status = STATUS_COMPLETED
        step.completed_at = now
        if step.started_at is not None:
            step.duration_ms = int((now - step.started_at).total_seconds() * 1000)
        if step.input_preview is None:
            step.input_preview = run.input_preview
        step.result_preview = build_step_result(
            step.step_type, step.step_id, step.input_preview, tick, now
        ).to_preview()
        step.error = None
        logger.debug(f"Step {step.step_id} of run {run.workflow_id} completed")

    @staticmethod
    def _complete_run(run: Run, now: datetime) -> None:
        run.status = STATUS_COMPLETED
        run.current_step = ""
        run.updated_at = now
        run.completed_at = now
        run.result_preview = dict(RUN_SUCCESS_PREVIEW)
        logger.info(f"Run {run.workflow_id} completed")

    @staticmethod
    def _latest_output(run: Run) -> Any:
        for step in reversed(run.steps):
            if step.status == STATUS_COMPLETED and step.result_preview is not None:
                return step.result_preview
        return run.input_preview
