"""TaskBoard: the single owner of the current :class:`AppState`.

The reducer in :mod:`.engine` is pure; this class is the stateful seam
around it.  It validates raw payloads, builds commands, applies them one at a
time, swaps the held reference and persists the result.  Persistence is
fire-and-forget: a failed save is logged and the new state is kept.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from loguru import logger

from ..config import get_seed_on_empty
from ..utils import now_iso, parse_timestamp
from .audit import AuditSummary, query_events, summarize_audit
from .engine import (
    Command,
    CreateTask,
    DeleteTask,
    ImportState,
    MoveTask,
    ToggleAuditMode,
    UpdateTask,
    apply_command,
)
from .exchange import ImportResult, dump_export, load_import
from .model import AppState, AuditEvent, Task, TaskStatus
from .query import filter_tasks, parse_query
from .seed import seed_state
from .store import StateStore
from .validation import validate_task_changes, validate_task_input


# ---------------------------------------------------------------------------
# Read-side helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReviewSummary:
    scored: int = 0
    unscored: int = 0
    average: float = 0

    def to_dict(self) -> dict[str, Any]:
        return {"scored": self.scored, "unscored": self.unscored, "average": self.average}


def review_summary(tasks: Iterable[Task]) -> ReviewSummary:
    """Rubric coverage across *tasks*; the average is rounded to one decimal."""
    scores = []
    unscored = 0
    for task in tasks:
        if task.rubric_score is None:
            unscored += 1
        else:
            scores.append(task.rubric_score)
    average = round(sum(scores) / len(scores), 1) if scores else 0
    return ReviewSummary(scored=len(scores), unscored=unscored, average=average)


def progress_percent(task: Task, now: Optional[datetime] = None) -> int:
    """Elapsed time since ``started_at`` as a share of the estimate (0..100)."""
    if task.status == TaskStatus.DONE or task.estimate_minutes <= 0:
        return 0
    started = parse_timestamp(task.started_at)
    if started is None:
        return 0
    current = now or datetime.now(timezone.utc)
    elapsed_minutes = max(0.0, (current - started).total_seconds() / 60)
    return min(100, round(elapsed_minutes / task.estimate_minutes * 100))


OVERSIGHT_FIELDS = ("reviewer_notes", "rubric_score", "rubric_comment")


def task_view(task: Task, *, audit_mode: bool, now: Optional[datetime] = None) -> dict[str, Any]:
    """JSON view of a task for display.

    Adds ``progress``; the oversight fields are only included in audit mode.
    """
    data = task.to_dict()
    if not audit_mode:
        for name in OVERSIGHT_FIELDS:
            data.pop(name, None)
    data["progress"] = progress_percent(task, now)
    return data


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

class TaskBoard:
    """Hold the board state, apply commands and persist snapshots.

    Parameters
    ----------
    state_dir:
        Path to the ``.audit_board/`` directory for the project.
    config:
        Parsed ``config.yaml`` contents (optional).
    id_factory:
        Identifier generator for new tasks and regenerated import ids.
    """

    def __init__(
        self,
        state_dir: Path,
        config: Optional[dict[str, Any]] = None,
        *,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.store = StateStore(state_dir)
        self._config = config or {}
        self._id_factory = id_factory
        self._lock = threading.RLock()
        loaded = self.store.load()
        if loaded is None:
            loaded = self._initial_state()
            logger.info("No usable snapshot in {}; starting with {} tasks", state_dir, len(loaded.tasks))
        self._state = loaded

    def _initial_state(self) -> AppState:
        return seed_state() if get_seed_on_empty(self._config) else AppState()

    @property
    def state(self) -> AppState:
        return self._state

    # ------------------------------------------------------------------
    # Command dispatch
    # ------------------------------------------------------------------

    def dispatch(self, command: Command) -> AppState:
        """Apply *command* and persist the resulting state if it changed."""
        with self._lock:
            before = self._state
            after = apply_command(before, command, id_factory=self._id_factory)
            self._state = after
        if after is not before:
            self._persist(after)
        return after

    def _persist(self, state: AppState) -> None:
        try:
            self.store.save(state)
        except Exception:
            logger.exception("Failed to persist board state to {}", self.store.path)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_task(self, raw: Any) -> Task:
        """Validate *raw* and create a task; raises BoardValidationError."""
        data = validate_task_input(raw)
        state = self.dispatch(CreateTask(data))
        task = state.tasks[0]
        logger.info("Created task {} ({})", task.id, task.title)
        return task

    def update_task(self, task_id: str, raw: Any) -> Optional[Task]:
        changes = validate_task_changes(raw)
        with self._lock:
            if self._state.get_task(task_id) is None:
                return None
            return self.dispatch(UpdateTask(task_id, changes)).get_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            if self._state.get_task(task_id) is None:
                return False
            self.dispatch(DeleteTask(task_id))
        logger.info("Deleted task {}", task_id)
        return True

    def move_task(self, task_id: str, status: str) -> Optional[Task]:
        """Move a task to another column; ValueError for an unknown status."""
        target = TaskStatus(status)
        with self._lock:
            if self._state.get_task(task_id) is None:
                return None
            return self.dispatch(MoveTask(task_id, target)).get_task(task_id)

    def toggle_start(self, task_id: str) -> Optional[Task]:
        """Start a stopped task or stop a started one; done tasks are left alone."""
        with self._lock:
            task = self._state.get_task(task_id)
            if task is None:
                return None
            if task.status == TaskStatus.DONE:
                return task
            if task.started_at:
                changes = {"status": TaskStatus.TODO.value, "started_at": None}
            else:
                changes = {"status": TaskStatus.DOING.value, "started_at": now_iso()}
            return self.dispatch(UpdateTask(task_id, changes)).get_task(task_id)

    def set_audit_mode(self, enabled: bool) -> bool:
        return self.dispatch(ToggleAuditMode(bool(enabled))).audit_mode_enabled

    def import_text(self, text: Union[str, bytes]) -> ImportResult:
        """Replace the board with an export document.

        Raises PayloadParseError or BoardValidationError before any change.
        """
        result = load_import(text, id_factory=self._id_factory)
        self.dispatch(ImportState(result.state, result.events))
        return result

    def export_text(self) -> str:
        text = dump_export(self._state)
        logger.info("Exported {} tasks, {} audit events", len(self._state.tasks), len(self._state.audit))
        return text

    def reset(self) -> AppState:
        """Drop the current state, audit log included, and start over."""
        with self._lock:
            self._state = self._initial_state()
            state = self._state
        logger.warning("Board reset; audit log discarded")
        self._persist(state)
        return state

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._state.get_task(task_id)

    def search(self, raw: str = "", *, now: Optional[datetime] = None) -> list[Task]:
        return filter_tasks(self._state.tasks, parse_query(raw), now=now)

    def columns(self, raw: str = "", *, now: Optional[datetime] = None) -> dict[str, list[Task]]:
        """Group the visible tasks by status, keeping collection order."""
        grouped: dict[str, list[Task]] = {status.value: [] for status in TaskStatus}
        for task in self.search(raw, now=now):
            grouped[task.status.value].append(task)
        return grouped

    def audit_events(self, action: Optional[str] = None, task_id: Optional[str] = None) -> list[AuditEvent]:
        return query_events(self._state.audit, action=action, task_id=task_id)

    def audit_summary(self) -> AuditSummary:
        return summarize_audit(self._state.audit)

    def review_summary(self) -> ReviewSummary:
        return review_summary(self._state.tasks)
