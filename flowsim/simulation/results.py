"""Typed step results produced by the simulator.

Each known step type has its own result model. ``GenericResult`` accepts
arbitrary extra keys for step types the simulator does not know about.
Every result embeds the input the step received so propagation chains can be
audited from the snapshot alone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..constants import (
    STEP_TYPE_CODE,
    STEP_TYPE_HTTP,
    STEP_TYPE_LLM,
    STEP_TYPE_NOTIFY,
    STEP_TYPE_WAIT,
)


def format_timestamp(moment: datetime) -> str:
    """RFC 3339 timestamp in UTC with second precision."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class StepResultBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    step_type: ClassVar[str] = ""

    def to_preview(self) -> dict[str, Any]:
        """Return the JSON-compatible payload stored on the step execution."""
        return self.model_dump(by_alias=True, mode="json")


class HttpBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    step: str
    received: Any = None
    tick: int
    server_now: str


class HttpResult(StepResultBase):
    step_type: ClassVar[str] = STEP_TYPE_HTTP

    status: int = 200
    body: HttpBody


class CodeComputation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    computed_from: Any = None


class CodeResult(StepResultBase):
    step_type: ClassVar[str] = STEP_TYPE_CODE

    ok: bool = True
    step: str
    result: CodeComputation


class WaitResult(StepResultBase):
    step_type: ClassVar[str] = STEP_TYPE_WAIT

    status: str = "succeeded"
    signal_key: Any = None
    at: str


class NotifyResult(StepResultBase):
    step_type: ClassVar[str] = STEP_TYPE_NOTIFY

    success: bool = True
    sent_at: str
    input: Any = None


class LlmResult(StepResultBase):
    step_type: ClassVar[str] = STEP_TYPE_LLM

    model: str = "mock-llm"
    text: str
    input: Any = None


class GenericResult(StepResultBase):
    """Fallback result for unrecognised step types."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    ok: bool = True
    step: str
    input: Any = None


StepResult = Union[
    HttpResult, CodeResult, WaitResult, NotifyResult, LlmResult, GenericResult
]


def build_step_result(
    step_type: str, step_id: str, received: Any, tick: int, now: datetime
) -> StepResult:
    """Build the simulated output of a completed step."""
    stamp = format_timestamp(now)
    if step_type == STEP_TYPE_HTTP:
        return HttpResult(
            body=HttpBody(step=step_id, received=received, tick=tick, server_now=stamp)
        )
    if step_type == STEP_TYPE_CODE:
        return CodeResult(step=step_id, result=CodeComputation(computed_from=received))
    if step_type == STEP_TYPE_WAIT:
        return WaitResult(signal_key=received, at=stamp)
    if step_type == STEP_TYPE_NOTIFY:
        return NotifyResult(sent_at=stamp, input=received)
    if step_type == STEP_TYPE_LLM:
        return LlmResult(text=f"summary({step_id}): ok", input=received)
    return GenericResult(step=step_id, input=received)


# Marker stored on a run once every step has completed.
RUN_SUCCESS_PREVIEW: dict[str, Any] = {"status": "completed"}
