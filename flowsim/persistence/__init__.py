"""Persistence layer for simulator snapshots."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import FlowSimConfig, load_config, resolve_state_path
from .inmemory import InMemoryStateStore
from .jsonfile import JsonFileStateStore, load_state, save_atomic
from .models import Flow, FlowStep, Run, State, StepExecution, Workspace
from .repository import StateStore
from .seed import seed_default


def get_store(
    state_path: Optional[str | Path] = None, config: Optional[FlowSimConfig] = None
) -> StateStore:
    """Factory function to obtain a snapshot store.

    The snapshot location is ``state_path`` when given, otherwise the
    ``state_path`` from configuration (``FLOWSIM_STATE`` or the config file),
    otherwise the per-user default under the platform config directory.
    """

    if state_path is not None:
        return JsonFileStateStore(Path(state_path).expanduser())
    config = config or load_config()
    return JsonFileStateStore(resolve_state_path(config))


__all__ = [
    "Flow",
    "FlowStep",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "Run",
    "State",
    "StateStore",
    "StepExecution",
    "Workspace",
    "get_store",
    "load_state",
    "save_atomic",
    "seed_default",
]
