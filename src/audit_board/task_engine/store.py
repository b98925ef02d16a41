"""File-based snapshot store for the board state.

The whole :class:`AppState` lives in one JSON document (``state.json``)
inside the project's ``.audit_board/`` directory.  Reads and writes go
through a :class:`FileLock`; writes are atomic (write-tmp-then-rename).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from loguru import logger

from ..constants import LOCK_FILE, STATE_FILE
from ..io_utils import FileLock, atomic_write_json
from .model import AppState
from .validation import BoardValidationError, validate_state


class StateStore:
    """Load/save the persisted snapshot.

    Parameters
    ----------
    state_dir:
        Path to the ``.audit_board/`` directory for the project.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir
        self._store_path = state_dir / STATE_FILE
        self._lock = FileLock(state_dir / LOCK_FILE)

    @property
    def path(self) -> Path:
        return self._store_path

    def load(self) -> Optional[AppState]:
        """Return the stored state, or None if it is missing or unusable."""
        try:
            with self._lock:
                if not self._store_path.exists():
                    return None
                text = self._store_path.read_text(encoding="utf-8")
            return validate_state(json.loads(text))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable snapshot {}: {}", self._store_path, exc)
        except BoardValidationError as exc:
            logger.warning("Ignoring invalid snapshot {}: {}", self._store_path, exc)
        return None

    def save(self, state: AppState) -> None:
        with self._lock:
            atomic_write_json(self._store_path, state.to_dict())
        logger.debug("Saved snapshot: {} tasks, {} audit events", len(state.tasks), len(state.audit))

    def clear(self) -> None:
        with self._lock:
            self._store_path.unlink(missing_ok=True)
