"""Load-or-seed, mutate, persist: the composition used by the CLI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .config import FlowSimConfig, load_config
from .errors import StateNotFoundError
from .persistence import State, StateStore, get_store, seed_default
from .simulation import Simulator

logger = logging.getLogger(__name__)


class SimulationSession:
    """Bind a snapshot store to a simulator for one workspace."""

    def __init__(self, store: StateStore, simulator: Simulator) -> None:
        self.store = store
        self.simulator = simulator

    @classmethod
    def from_config(
        cls,
        config: Optional[FlowSimConfig] = None,
        state_path: Optional[str | Path] = None,
        workspace_id: Optional[str] = None,
    ) -> "SimulationSession":
        config = config or load_config()
        store = get_store(state_path=state_path, config=config)
        return cls(store, Simulator(workspace_id or config.workspace_id))

    @property
    def workspace_id(self) -> str:
        return self.simulator.workspace_id

    def ensure(self) -> State:
        """Load the snapshot, seeding and saving a fresh one if none exists."""
        try:
            return self.store.load()
        except StateNotFoundError:
            logger.info(f"No state found; seeding workspace {self.workspace_id}")
            return self.reseed()

    def reseed(self) -> State:
        """Replace whatever is stored with the seeded demo universe."""
        state = seed_default(self.workspace_id)
        self.store.save(state)
        return state

    @contextmanager
    def transaction(self) -> Iterator[State]:
        """Yield the current state and save it if the block succeeds.

        An exception inside the block leaves the stored snapshot untouched.
        """
        state = self.ensure()
        yield state
        self.store.save(state)
