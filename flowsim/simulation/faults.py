"""Fault injection policies for the simulator.

A policy decides, for the active step of a run, whether the current tick
should fail it transiently. The engine moves a failed step to ``retrying``
and resumes it on the next tick.
"""

from __future__ import annotations

from typing import Callable, Iterable

from ..constants import FAULT_TICK_INTERVAL, STEP_TYPE_HTTP

FaultPolicy = Callable[[str, int, int], bool]


def tick_multiple_http_fault(step_type: str, attempt: int, tick: int) -> bool:
    """Fail the first attempt of an HTTP step on every seventh tick."""
    return (
        step_type == STEP_TYPE_HTTP
        and attempt == 1
        and tick % FAULT_TICK_INTERVAL == 0
    )


def no_faults(step_type: str, attempt: int, tick: int) -> bool:
    return False


def fault_every(
    interval: int, step_types: Iterable[str] = (STEP_TYPE_HTTP,)
) -> FaultPolicy:
    """Build a policy failing first attempts of ``step_types`` every ``interval`` ticks."""
    if interval <= 0:
        raise ValueError("interval must be positive")
    types = frozenset(step_types)

    def policy(step_type: str, attempt: int, tick: int) -> bool:
        return step_type in types and attempt == 1 and tick % interval == 0

    return policy


DEFAULT_FAULT_POLICY: FaultPolicy = tick_multiple_http_fault
