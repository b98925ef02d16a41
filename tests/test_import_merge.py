"""Tests for duplicate-id reconciliation on import (task_engine/merge.py)."""

from __future__ import annotations

from audit_board.task_engine.merge import merge_import
from audit_board.task_engine.model import AppState, AuditAction, FieldChange, Task

NOW = "2024-05-01T10:00:00+00:00"


def _state(*ids: str, audit_mode: bool = False) -> AppState:
    tasks = tuple(Task(id=task_id, title=f"Task {n}", created_at=NOW) for n, task_id in enumerate(ids))
    return AppState(tasks=tasks, audit_mode_enabled=audit_mode)


class TestMergeImport:
    def test_duplicate_ids(self, id_factory) -> None:
        merged, events = merge_import(_state("X", "X"), now=NOW, id_factory=id_factory)

        ids = [t.id for t in merged.tasks]
        assert ids == ["X", "t1"]
        assert [t.title for t in merged.tasks] == ["Task 0", "Task 1"]

        assert len(events) == 2
        assert [e.id_regenerated for e in events] == [False, True]
        corrective = events[1]
        assert corrective.action == AuditAction.UPDATE
        assert corrective.task_id == "t1"
        assert corrective.diff == {"id": FieldChange("X", "t1")}
        assert corrective.meta == {"id_regenerated": True}

    def test_summary_event(self) -> None:
        merged, events = merge_import(_state("a", "b", audit_mode=True), now=NOW)
        assert merged.tasks == _state("a", "b").tasks
        assert len(events) == 1
        summary = events[0]
        assert summary.task_id == "IMPORT"
        assert summary.action == AuditAction.UPDATE
        assert summary.timestamp == NOW
        assert summary.diff["import"].after == {"tasks": 2, "audit": 0, "audit_mode_enabled": True}

    def test_regenerated_id_avoids_seen_ids(self) -> None:
        draws = iter(["a", "b", "fresh"])
        merged, events = merge_import(_state("a", "b", "a"), now=NOW, id_factory=lambda: next(draws))
        assert [t.id for t in merged.tasks] == ["a", "b", "fresh"]
        assert sum(e.id_regenerated for e in events) == 1

    def test_many_duplicates(self) -> None:
        merged, events = merge_import(_state("X", "X", "X", "Y", "Y"), now=NOW)
        ids = [t.id for t in merged.tasks]
        assert len(set(ids)) == 5
        assert ids[0] == "X"
        assert ids[3] == "Y"
        assert sum(e.id_regenerated for e in events) == 3

    def test_input_untouched(self) -> None:
        incoming = _state("X", "X")
        merge_import(incoming, now=NOW)
        assert [t.id for t in incoming.tasks] == ["X", "X"]
