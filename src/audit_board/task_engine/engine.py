"""State transition engine: the command reducer for the task board.

:func:`apply_command` takes the current :class:`AppState` and one command and
returns the next state.  The input state is never mutated; commands that
change nothing (unknown id, move to the current column, update with equal
values) return the very same state object and write no audit event.
Validation happens before a command is built, so the engine trusts what it
receives.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Union

from loguru import logger

from ..constants import AUDIT_MODE_MARKER
from ..logging_utils import summarize_event
from ..utils import now_iso
from .audit import append_event, create_audit_event, prepend_events
from .diff import diff_task
from .model import (
    AppState,
    AuditAction,
    AuditEvent,
    FieldChange,
    Task,
    TaskInput,
    TaskStatus,
    _generate_id,
)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreateTask:
    data: TaskInput


@dataclass(frozen=True)
class UpdateTask:
    task_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class DeleteTask:
    task_id: str


@dataclass(frozen=True)
class MoveTask:
    task_id: str
    to_status: TaskStatus


@dataclass(frozen=True)
class ToggleAuditMode:
    enabled: bool


@dataclass(frozen=True)
class ImportState:
    """Replace the state wholesale; *events* go ahead of the imported log."""

    state: AppState
    events: tuple[AuditEvent, ...] = ()


Command = Union[CreateTask, UpdateTask, DeleteTask, MoveTask, ToggleAuditMode, ImportState]


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def normalize_status(task: Task) -> Task:
    """Derive todo/doing from ``started_at`` unless the task is done."""
    if task.status == TaskStatus.DONE:
        return task
    status = TaskStatus.DOING if task.started_at else TaskStatus.TODO
    return task if task.status == status else replace(task, status=status)


def _with_event(state: AppState, tasks: tuple[Task, ...], event: AuditEvent) -> AppState:
    logger.debug("audit {}", summarize_event(event))
    return replace(state, tasks=tasks, audit=append_event(state.audit, event))


def _create(state: AppState, cmd: CreateTask, now: str, id_factory: Callable[[], str]) -> AppState:
    task = cmd.data.build(id_factory(), now)
    event = create_audit_event(AuditAction.CREATE, task.id, diff_task(None, task), now=now)
    return _with_event(state, (task, *state.tasks), event)


def _update(state: AppState, cmd: UpdateTask, now: str) -> AppState:
    before = state.get_task(cmd.task_id)
    if before is None:
        logger.debug("update ignored, no task {}", cmd.task_id)
        return state
    after = normalize_status(before.with_changes(cmd.changes))
    diff = diff_task(before, after)
    if not diff:
        return state
    tasks = tuple(after if t.id == before.id else t for t in state.tasks)
    event = create_audit_event(AuditAction.UPDATE, before.id, diff, now=now)
    return _with_event(state, tasks, event)


def _delete(state: AppState, cmd: DeleteTask, now: str) -> AppState:
    task = state.get_task(cmd.task_id)
    if task is None:
        logger.debug("delete ignored, no task {}", cmd.task_id)
        return state
    tasks = tuple(t for t in state.tasks if t.id != task.id)
    event = create_audit_event(AuditAction.DELETE, task.id, diff_task(task, None), now=now)
    return _with_event(state, tasks, event)


def _move(state: AppState, cmd: MoveTask, now: str) -> AppState:
    target = TaskStatus(cmd.to_status)
    task = state.get_task(cmd.task_id)
    if task is None or task.status == target:
        return state
    started_at = task.started_at
    if target == TaskStatus.TODO:
        started_at = None
    elif target == TaskStatus.DOING and not started_at:
        started_at = now
    moved = replace(task, status=target, started_at=started_at)
    tasks = tuple(moved if t.id == task.id else t for t in state.tasks)
    event = create_audit_event(AuditAction.MOVE, task.id, diff_task(task, moved), now=now)
    return _with_event(state, tasks, event)


def _toggle_audit_mode(state: AppState, cmd: ToggleAuditMode, now: str) -> AppState:
    enabled = bool(cmd.enabled)
    diff = {"audit_mode_enabled": FieldChange(state.audit_mode_enabled, enabled)}
    event = create_audit_event(AuditAction.UPDATE, AUDIT_MODE_MARKER, diff, now=now)
    logger.debug("audit {}", summarize_event(event))
    return replace(state, audit_mode_enabled=enabled, audit=append_event(state.audit, event))


def _import(cmd: ImportState) -> AppState:
    incoming = cmd.state
    logger.info(
        "Importing state: {} tasks, {} audit events (+{} new)",
        len(incoming.tasks),
        len(incoming.audit),
        len(cmd.events),
    )
    return replace(incoming, audit=prepend_events(incoming.audit, cmd.events))


def apply_command(
    state: AppState,
    command: Command,
    *,
    now: Optional[str] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> AppState:
    """Apply *command* to *state* and return the resulting state.

    Args:
        state: Current board state (left untouched).
        command: One of the command dataclasses in this module.
        now: ISO timestamp to use for ``created_at``/``started_at`` and audit
            events; defaults to the current UTC time.
        id_factory: Identifier generator for new tasks.

    Raises:
        TypeError: if *command* is not a known command type.
    """
    ts = now or now_iso()
    if isinstance(command, CreateTask):
        return _create(state, command, ts, id_factory or _generate_id)
    if isinstance(command, UpdateTask):
        return _update(state, command, ts)
    if isinstance(command, DeleteTask):
        return _delete(state, command, ts)
    if isinstance(command, MoveTask):
        return _move(state, command, ts)
    if isinstance(command, ToggleAuditMode):
        return _toggle_audit_mode(state, command, ts)
    if isinstance(command, ImportState):
        return _import(command)
    raise TypeError(f"Unknown command: {type(command).__name__}")
