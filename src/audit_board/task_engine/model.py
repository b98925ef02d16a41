"""Value types for the audited task board.

Every type here is a frozen dataclass: a state transition builds new values
instead of mutating old ones, so any reference to an earlier :class:`AppState`
keeps seeing exactly what it saw when it was taken.  ``to_dict`` /
``from_dict`` convert to and from the JSON shape used by the persisted
snapshot and the export file.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping, Optional, Union

from ..constants import ACTOR_LABEL, STATE_VERSION
from ..utils import now_iso


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """Board column a task sits in."""

    TODO = "todo"
    DOING = "doing"
    DONE = "done"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MOVE = "MOVE"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _generate_id() -> str:
    return str(uuid.uuid4())


def _coerce_enum(enum_cls: type[Enum], raw: Any, default: Enum) -> Any:
    if raw is None:
        return default
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw))
    except ValueError:
        return default


def _number(raw: Any, default: Union[int, float] = 0) -> Union[int, float]:
    if isinstance(raw, bool) or raw is None:
        return default
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else raw
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return int(value) if value.is_integer() else value


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Task:
    """A unit of work on the board.

    ``reviewer_notes``, ``rubric_score`` and ``rubric_comment`` are the
    oversight fields; they are only surfaced while audit mode is on but are
    always carried (and diffed) so toggling the mode never loses data.
    """

    id: str = field(default_factory=_generate_id)
    title: str = ""
    description: str = ""
    priority: Priority = Priority.MEDIUM
    tags: tuple[str, ...] = ()
    estimate_minutes: Union[int, float] = 0
    created_at: str = field(default_factory=now_iso)
    started_at: Optional[str] = None
    due_at: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO

    # Oversight (audit mode)
    reviewer_notes: str = ""
    rubric_score: Optional[Union[int, float]] = None
    rubric_comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict (enums as values, tags as a list)."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        """Deserialize from a plain dict, coercing enums gracefully."""
        rubric = data.get("rubric_score")
        return cls(
            id=str(data.get("id") or _generate_id()),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            priority=_coerce_enum(Priority, data.get("priority"), Priority.MEDIUM),
            tags=tuple(str(t) for t in (data.get("tags") or [])),
            estimate_minutes=_number(data.get("estimate_minutes")),
            created_at=str(data.get("created_at") or now_iso()),
            started_at=data.get("started_at") or None,
            due_at=data.get("due_at") or None,
            status=_coerce_enum(TaskStatus, data.get("status"), TaskStatus.TODO),
            reviewer_notes=str(data.get("reviewer_notes") or ""),
            rubric_score=None if rubric is None else _number(rubric),
            rubric_comment=str(data.get("rubric_comment") or ""),
        )

    def with_changes(self, changes: Mapping[str, Any]) -> "Task":
        """Return a copy with *changes* shallow-merged in.

        ``id`` and ``created_at`` are immutable and unknown keys are ignored.
        """
        return replace(self, **coerce_task_changes(changes))


TASK_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(Task))
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})
UPDATABLE_FIELDS = frozenset(TASK_FIELDS) - IMMUTABLE_FIELDS


def coerce_task_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Filter a partial update down to updatable fields with domain types."""
    out: dict[str, Any] = {}
    for key, value in changes.items():
        if key not in UPDATABLE_FIELDS:
            continue
        if key == "priority":
            value = Priority(value)
        elif key == "status":
            value = TaskStatus(value)
        elif key == "tags":
            value = tuple(value or ())
        elif key == "estimate_minutes":
            value = _number(value)
        elif key == "rubric_score":
            value = None if value is None else _number(value)
        out[key] = value
    return out


@dataclass(frozen=True)
class TaskInput:
    """Everything a caller supplies to create a task (id and created_at are assigned)."""

    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    tags: tuple[str, ...] = ()
    estimate_minutes: Union[int, float] = 0
    started_at: Optional[str] = None
    due_at: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    reviewer_notes: str = ""
    rubric_score: Optional[Union[int, float]] = None
    rubric_comment: str = ""

    def build(self, task_id: str, created_at: str) -> Task:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return Task(id=task_id, created_at=created_at, **values)


# ---------------------------------------------------------------------------
# Audit records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldChange:
    before: Any = None
    after: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"before": self.before, "after": self.after}


Diff = dict[str, FieldChange]


@dataclass(frozen=True)
class AuditEvent:
    """Immutable record of one state-changing command's effect."""

    timestamp: str
    action: AuditAction
    task_id: str
    diff: Diff = field(default_factory=dict)
    actor_label: str = ACTOR_LABEL
    meta: Optional[dict[str, Any]] = None

    @property
    def id_regenerated(self) -> bool:
        return bool(self.meta and self.meta.get("id_regenerated"))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "action": self.action.value,
            "task_id": self.task_id,
            "actor_label": self.actor_label,
            "diff": {name: change.to_dict() for name, change in self.diff.items()},
        }
        if self.meta:
            data["meta"] = dict(self.meta)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuditEvent":
        raw_diff = data.get("diff") or {}
        diff = {
            str(name): FieldChange(
                before=(entry or {}).get("before"),
                after=(entry or {}).get("after"),
            )
            for name, entry in raw_diff.items()
        }
        raw_meta = data.get("meta") or {}
        meta = {k: v for k, v in raw_meta.items() if v is not None} or None
        return cls(
            timestamp=str(data.get("timestamp") or now_iso()),
            action=AuditAction(str(data.get("action"))),
            task_id=str(data.get("task_id") or ""),
            diff=diff,
            actor_label=str(data.get("actor_label") or ACTOR_LABEL),
            meta=meta,
        )


# ---------------------------------------------------------------------------
# Root aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AppState:
    """The whole board: tasks (newest first), audit log (newest first), mode flag."""

    version: int = STATE_VERSION
    tasks: tuple[Task, ...] = ()
    audit: tuple[AuditEvent, ...] = ()
    audit_mode_enabled: bool = False

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "tasks": [t.to_dict() for t in self.tasks],
            "audit": [e.to_dict() for e in self.audit],
            "audit_mode_enabled": self.audit_mode_enabled,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppState":
        return cls(
            version=int(data.get("version", STATE_VERSION)),
            tasks=tuple(Task.from_dict(t) for t in (data.get("tasks") or [])),
            audit=tuple(AuditEvent.from_dict(e) for e in (data.get("audit") or [])),
            audit_mode_enabled=bool(data.get("audit_mode_enabled", False)),
        )
