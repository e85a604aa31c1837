"""Run event timeline derived from a run's step history."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..persistence.models import Run

RUN_STARTED = "run_started"
STEP_STARTED = "step_started"
STEP_COMPLETED = "step_completed"
RUN_COMPLETED = "run_completed"


class RunEvent(BaseModel):
    """One timeline entry. Event-specific keys are kept as extra fields."""

    model_config = ConfigDict(extra="allow")

    at: datetime
    type: str

    def to_preview(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def derive_run_events(run: Run) -> list[RunEvent]:
    """Rebuild the timeline of ``run`` ordered by time.

    Steps that never started contribute nothing; events sharing a timestamp
    keep their history order.
    """
    events = [
        RunEvent(
            at=run.started_at,
            type=RUN_STARTED,
            runId=run.workflow_id,
            flowSlug=run.flow_slug,
            version=run.version,
            triggeredBy=run.triggered_by,
        )
    ]
    for step in run.steps:
        if step.started_at is not None:
            events.append(
                RunEvent(
                    at=step.started_at,
                    type=STEP_STARTED,
                    stepId=step.step_id,
                    stepType=step.step_type,
                    title=step.title,
                    input=step.input_preview,
                )
            )
        if step.completed_at is not None:
            fields: dict[str, Any] = {
                "stepId": step.step_id,
                "status": step.status,
                "output": step.result_preview,
            }
            if step.error:
                fields["error"] = step.error
            events.append(RunEvent(at=step.completed_at, type=STEP_COMPLETED, **fields))
    if run.completed_at is not None:
        events.append(
            RunEvent(
                at=run.completed_at,
                type=RUN_COMPLETED,
                status=run.status,
                error=run.error,
                result=run.result_preview,
            )
        )
    return sorted(events, key=lambda event: event.at)
