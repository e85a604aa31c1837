"""Polling watcher that reloads the snapshot when another process saves it."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Iterator, Optional

from .constants import DEFAULT_WATCH_INTERVAL
from .persistence import State, StateStore

logger = logging.getLogger(__name__)


class StateWatcher:
    """Detect external changes by comparing modification times.

    Delivery is best-effort: several saves between two polls are seen as one
    change.
    """

    def __init__(
        self,
        store: StateStore,
        interval: float = DEFAULT_WATCH_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self.interval = interval
        self._sleep = sleep
        self.last_modified: Optional[datetime] = store.modified_at()

    def poll(self) -> Optional[State]:
        """Return the reloaded state if the snapshot changed since the last poll."""
        modified = self._store.modified_at()
        if modified is None:
            return None
        if self.last_modified is not None and modified <= self.last_modified:
            return None
        state = self._store.load()
        self.last_modified = modified
        logger.debug(f"Reloaded state at tick {state.tick}")
        return state

    def watch(self, lifespan: Optional[float] = None) -> Iterator[State]:
        """Yield each reloaded state until ``lifespan`` seconds have elapsed.

        Args:
            lifespan: Maximum time in seconds to keep polling. If None, runs indefinitely.
        """
        start_time = time.monotonic() if lifespan else None

        while True:
            if lifespan and start_time is not None:
                if time.monotonic() - start_time >= lifespan:
                    break

            state = self.poll()
            if state is not None:
                yield state
                continue

            self._sleep(self.interval)
