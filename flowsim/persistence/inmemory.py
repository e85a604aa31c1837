"""In-memory implementation of the snapshot store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import ValidationError

from ..errors import MalformedStateError, StateNotFoundError
from .models import State
from .repository import StateStore


class InMemoryStateStore(StateStore):
    """Keep the serialized snapshot in local memory.

    Useful for tests. The document is stored as JSON text, so every ``load``
    returns a fresh copy and mutations are only visible after ``save``.
    """

    def __init__(self, document: Optional[str] = None) -> None:
        self._document = document
        self._modified_at: Optional[datetime] = (
            datetime.now(timezone.utc) if document is not None else None
        )

    def load(self) -> State:
        if self._document is None:
            raise StateNotFoundError("<memory>")
        try:
            return State.from_json(self._document)
        except ValidationError as exc:
            raise MalformedStateError("<memory>", str(exc)) from exc

    def save(self, state: State) -> None:
        self._document = state.to_json()
        now = datetime.now(timezone.utc)
        # Strictly increasing so watchers never miss two quick saves.
        if self._modified_at is not None and now <= self._modified_at:
            now = self._modified_at + timedelta(microseconds=1)
        self._modified_at = now

    def exists(self) -> bool:
        return self._document is not None

    def modified_at(self) -> Optional[datetime]:
        return self._modified_at

    @property
    def document(self) -> Optional[str]:
        return self._document
