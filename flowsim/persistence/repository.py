"""Store abstraction for simulator snapshots."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .models import State


class StateStore(Protocol):
    """Protocol for snapshot persistence backends."""

    def load(self) -> State:
        """Return the stored snapshot.

        Raises ``StateNotFoundError`` when nothing has been saved yet and
        ``MalformedStateError`` when the stored document cannot be parsed.
        """

    def save(self, state: State) -> None:
        """Replace the stored snapshot with ``state`` in a single commit."""

    def exists(self) -> bool:
        """Return ``True`` when a snapshot has been saved."""

    def modified_at(self) -> Optional[datetime]:
        """Timestamp of the last commit, or ``None`` when nothing is stored."""
