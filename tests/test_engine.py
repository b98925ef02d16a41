"""Tests for the command reducer (task_engine/engine.py)."""

from __future__ import annotations

import pytest

from audit_board.task_engine.engine import (
    CreateTask,
    DeleteTask,
    ImportState,
    MoveTask,
    ToggleAuditMode,
    UpdateTask,
    apply_command,
)
from audit_board.task_engine.audit import create_audit_event
from audit_board.task_engine.model import (
    TASK_FIELDS,
    AppState,
    AuditAction,
    FieldChange,
    Priority,
    Task,
    TaskInput,
    TaskStatus,
)

NOW = "2024-05-01T10:00:00+00:00"
LATER = "2024-05-01T11:00:00+00:00"


@pytest.fixture
def state(id_factory) -> AppState:
    """A board holding one todo task with id ``t1``."""
    return apply_command(AppState(), CreateTask(TaskInput(title="Alpha", estimate_minutes=30)), now=NOW, id_factory=id_factory)


class TestCreate:
    def test_creates_task_and_event(self, state: AppState) -> None:
        assert len(state.tasks) == 1
        task = state.tasks[0]
        assert task.id == "t1"
        assert task.created_at == NOW
        assert task.status == TaskStatus.TODO

        assert len(state.audit) == 1
        event = state.audit[0]
        assert event.action == AuditAction.CREATE
        assert event.task_id == "t1"
        assert event.timestamp == NOW
        assert len(event.diff) == len(TASK_FIELDS)
        assert all(change.before is None for change in event.diff.values())

    def test_inserts_at_head(self, state: AppState, id_factory) -> None:
        nxt = apply_command(state, CreateTask(TaskInput(title="Beta")), now=LATER, id_factory=id_factory)
        assert [t.title for t in nxt.tasks] == ["Beta", "Alpha"]

    def test_previous_state_untouched(self, id_factory) -> None:
        empty = AppState()
        apply_command(empty, CreateTask(TaskInput(title="Alpha")), id_factory=id_factory)
        assert empty.tasks == ()
        assert empty.audit == ()

    def test_default_id_is_uuid(self) -> None:
        s = apply_command(AppState(), CreateTask(TaskInput(title="Alpha")))
        assert len(s.tasks[0].id) == 36


class TestUpdate:
    def test_records_changed_fields_only(self, state: AppState) -> None:
        nxt = apply_command(state, UpdateTask("t1", {"title": "Alpha 2", "priority": "high"}), now=LATER)
        task = nxt.get_task("t1")
        assert task.title == "Alpha 2"
        assert task.priority == Priority.HIGH
        event = nxt.audit[0]
        assert event.action == AuditAction.UPDATE
        assert set(event.diff) == {"title", "priority"}
        assert event.diff["title"] == FieldChange("Alpha", "Alpha 2")

    def test_noop_update_returns_same_state(self, state: AppState) -> None:
        nxt = apply_command(state, UpdateTask("t1", {"title": "Alpha", "estimate_minutes": 30}), now=LATER)
        assert nxt is state

    def test_missing_task_is_noop(self, state: AppState) -> None:
        assert apply_command(state, UpdateTask("nope", {"title": "X"})) is state

    def test_status_follows_started_at(self, state: AppState) -> None:
        started = apply_command(state, MoveTask("t1", TaskStatus.DOING), now=LATER)
        assert started.get_task("t1").started_at == LATER

        nxt = apply_command(started, UpdateTask("t1", {"status": "todo"}), now=LATER)
        assert nxt.get_task("t1").status == TaskStatus.DOING
        assert nxt is started

    def test_clearing_started_at_moves_back_to_todo(self, state: AppState) -> None:
        started = apply_command(state, MoveTask("t1", TaskStatus.DOING), now=LATER)
        nxt = apply_command(started, UpdateTask("t1", {"started_at": None}), now=LATER)
        task = nxt.get_task("t1")
        assert task.status == TaskStatus.TODO
        assert set(nxt.audit[0].diff) == {"started_at", "status"}

    def test_setting_started_at_moves_to_doing(self, state: AppState) -> None:
        nxt = apply_command(state, UpdateTask("t1", {"started_at": LATER}), now=LATER)
        assert nxt.get_task("t1").status == TaskStatus.DOING

    def test_done_is_sticky(self, state: AppState) -> None:
        done = apply_command(state, UpdateTask("t1", {"status": "done"}), now=LATER)
        assert done.get_task("t1").status == TaskStatus.DONE
        edited = apply_command(done, UpdateTask("t1", {"title": "Renamed", "started_at": LATER}), now=LATER)
        assert edited.get_task("t1").status == TaskStatus.DONE

    def test_immutable_fields_are_ignored(self, state: AppState) -> None:
        nxt = apply_command(state, UpdateTask("t1", {"id": "other", "created_at": LATER}), now=LATER)
        assert nxt is state


class TestDelete:
    def test_removes_task(self, state: AppState) -> None:
        nxt = apply_command(state, DeleteTask("t1"), now=LATER)
        assert nxt.tasks == ()
        event = nxt.audit[0]
        assert event.action == AuditAction.DELETE
        assert len(event.diff) == len(TASK_FIELDS)
        assert all(change.after is None for change in event.diff.values())
        assert event.diff["title"].before == "Alpha"

    def test_missing_task_is_noop(self, state: AppState) -> None:
        assert apply_command(state, DeleteTask("nope")) is state


class TestMove:
    def test_to_doing_sets_started_at(self, state: AppState) -> None:
        nxt = apply_command(state, MoveTask("t1", TaskStatus.DOING), now=LATER)
        task = nxt.get_task("t1")
        assert task.status == TaskStatus.DOING
        assert task.started_at == LATER
        event = nxt.audit[0]
        assert event.action == AuditAction.MOVE
        assert set(event.diff) == {"status", "started_at"}

    def test_to_doing_keeps_existing_started_at(self, state: AppState) -> None:
        started = apply_command(state, MoveTask("t1", TaskStatus.DOING), now=NOW)
        done = apply_command(started, MoveTask("t1", TaskStatus.DONE), now=LATER)
        back = apply_command(done, MoveTask("t1", TaskStatus.DOING), now="2024-05-02T00:00:00+00:00")
        assert back.get_task("t1").started_at == NOW

    def test_to_todo_clears_started_at(self, state: AppState) -> None:
        started = apply_command(state, MoveTask("t1", TaskStatus.DOING), now=LATER)
        nxt = apply_command(started, MoveTask("t1", TaskStatus.TODO), now=LATER)
        assert nxt.get_task("t1").started_at is None
        assert nxt.get_task("t1").status == TaskStatus.TODO

    def test_same_status_is_noop(self, state: AppState) -> None:
        assert apply_command(state, MoveTask("t1", TaskStatus.TODO), now=LATER) is state

    def test_missing_task_is_noop(self, state: AppState) -> None:
        assert apply_command(state, MoveTask("nope", TaskStatus.DONE)) is state

    def test_accepts_status_string(self, state: AppState) -> None:
        nxt = apply_command(state, MoveTask("t1", "done"), now=LATER)  # type: ignore[arg-type]
        assert nxt.get_task("t1").status == TaskStatus.DONE


class TestToggleAuditMode:
    def test_records_marker_event(self, state: AppState) -> None:
        nxt = apply_command(state, ToggleAuditMode(True), now=LATER)
        assert nxt.audit_mode_enabled is True
        event = nxt.audit[0]
        assert event.action == AuditAction.UPDATE
        assert event.task_id == "AUDIT_MODE"
        assert event.diff == {"audit_mode_enabled": FieldChange(False, True)}
        assert nxt.tasks == state.tasks

    def test_unchanged_flag_still_records_event(self, state: AppState) -> None:
        nxt = apply_command(state, ToggleAuditMode(False), now=LATER)
        assert nxt is not state
        assert nxt.audit_mode_enabled is False
        assert len(nxt.audit) == len(state.audit) + 1
        assert nxt.audit[0].task_id == "AUDIT_MODE"
        assert nxt.audit[0].diff == {"audit_mode_enabled": FieldChange(False, False)}


class TestImport:
    def test_replaces_state_and_prepends_events(self, state: AppState) -> None:
        incoming = AppState(
            tasks=(Task(id="x", title="Imported", created_at=NOW),),
            audit=(create_audit_event(AuditAction.CREATE, "x", {}, now=NOW),),
            audit_mode_enabled=True,
        )
        summary = create_audit_event(AuditAction.UPDATE, "IMPORT", {}, now=LATER)
        nxt = apply_command(state, ImportState(incoming, (summary,)), now=LATER)
        assert nxt.tasks == incoming.tasks
        assert nxt.audit_mode_enabled is True
        assert nxt.audit == (summary, *incoming.audit)
        assert state.get_task("t1") is not None


class TestReducer:
    def test_unknown_command(self, state: AppState) -> None:
        with pytest.raises(TypeError):
            apply_command(state, object())  # type: ignore[arg-type]

    def test_audit_log_is_reverse_chronological(self, id_factory) -> None:
        s = AppState()
        commands = [
            CreateTask(TaskInput(title="Alpha")),
            CreateTask(TaskInput(title="Beta")),
            MoveTask("t1", TaskStatus.DOING),
            UpdateTask("t2", {"title": "Beta 2"}),
            ToggleAuditMode(True),
            DeleteTask("t2"),
        ]
        for i, cmd in enumerate(commands):
            s = apply_command(s, cmd, now=f"2024-05-01T10:00:0{i}+00:00", id_factory=id_factory)

        stamps = [e.timestamp for e in s.audit]
        assert len(stamps) == len(commands)
        assert stamps == sorted(stamps, reverse=True)
        assert len(set(stamps)) == len(stamps)
        assert [e.action for e in s.audit] == [
            AuditAction.DELETE,
            AuditAction.UPDATE,
            AuditAction.UPDATE,
            AuditAction.MOVE,
            AuditAction.CREATE,
            AuditAction.CREATE,
        ]
