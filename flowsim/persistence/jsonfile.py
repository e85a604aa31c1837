"""Single-file JSON snapshot store with atomic replace."""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..errors import MalformedStateError, StateNotFoundError
from .models import State
from .repository import StateStore

logger = logging.getLogger(__name__)


def load_state(path: str | Path) -> State:
    """Read and parse the snapshot at ``path``."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        raise StateNotFoundError(str(path)) from None
    try:
        return State.from_json(data)
    except ValidationError as exc:
        raise MalformedStateError(str(path), str(exc)) from exc


def save_atomic(path: str | Path, state: State) -> None:
    """Write ``state`` to ``path`` via a sibling temp file and rename.

    The rename is the commit point: readers of ``path`` see either the old
    document or the new one, never a partial write.
    """
    path = Path(path)
    path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    payload = state.to_json().encode("utf-8")

    temp_fd, temp_path = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(temp_fd, "wb") as file:
            file.write(payload)
            file.flush()
            os.fsync(file.fileno())
        os.chmod(temp_path, 0o644)
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
    logger.debug(f"Saved state tick={state.tick} to {path}")


class JsonFileStateStore(StateStore):
    """Persist the simulator snapshot as one JSON document on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> State:
        return load_state(self.path)

    def save(self, state: State) -> None:
        save_atomic(self.path, state)

    def exists(self) -> bool:
        return self.path.exists()

    def modified_at(self) -> Optional[datetime]:
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)
