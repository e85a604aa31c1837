"""Offline run simulation."""

from __future__ import annotations

from .engine import DEFAULT_INPUT, Simulator, new_run_id
from .events import RunEvent, derive_run_events
from .faults import (
    DEFAULT_FAULT_POLICY,
    FaultPolicy,
    fault_every,
    no_faults,
    tick_multiple_http_fault,
)
from .results import (
    RUN_SUCCESS_PREVIEW,
    CodeResult,
    GenericResult,
    HttpResult,
    LlmResult,
    NotifyResult,
    StepResult,
    WaitResult,
    build_step_result,
)

__all__ = [
    "CodeResult",
    "DEFAULT_INPUT",
    "DEFAULT_FAULT_POLICY",
    "FaultPolicy",
    "GenericResult",
    "HttpResult",
    "LlmResult",
    "NotifyResult",
    "RUN_SUCCESS_PREVIEW",
    "RunEvent",
    "Simulator",
    "StepResult",
    "WaitResult",
    "build_step_result",
    "derive_run_events",
    "fault_every",
    "new_run_id",
    "no_faults",
    "tick_multiple_http_fault",
]
