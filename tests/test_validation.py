"""Tests for payload validation (task_engine/validation.py)."""

from __future__ import annotations

import pytest

from audit_board.task_engine.model import AppState, Priority, TaskStatus
from audit_board.task_engine.validation import (
    BoardValidationError,
    ValidationIssue,
    validate_export,
    validate_state,
    validate_task_changes,
    validate_task_input,
)

NOW = "2024-05-01T10:00:00+00:00"


def _task_payload(**kwargs):
    payload = {
        "id": "a",
        "title": "Rebalance FX",
        "description": "",
        "priority": "high",
        "tags": ["fx"],
        "estimate_minutes": 90,
        "created_at": NOW,
        "started_at": None,
        "due_at": None,
        "status": "todo",
        "reviewer_notes": "",
        "rubric_score": None,
        "rubric_comment": "",
    }
    payload.update(kwargs)
    return payload


def _paths(exc: pytest.ExceptionInfo) -> set[str]:
    return {issue.path for issue in exc.value.issues}


class TestValidationIssue:
    def test_str(self) -> None:
        assert str(ValidationIssue("data.tasks.0.title", "too short")) == "data.tasks.0.title: too short"
        assert str(ValidationIssue("", "bad")) == "bad"


class TestTaskInput:
    def test_valid(self) -> None:
        data = validate_task_input({
            "title": "Rebalance FX",
            "priority": "high",
            "tags": ["fx", "risk"],
            "estimate_minutes": 90,
            "due_at": "2024-05-03T10:00:00Z",
        })
        assert data.title == "Rebalance FX"
        assert data.priority == Priority.HIGH
        assert data.status == TaskStatus.TODO
        assert data.tags == ("fx", "risk")
        assert data.estimate_minutes == 90
        assert data.due_at == "2024-05-03T10:00:00Z"

    def test_fractional_estimate_kept(self) -> None:
        data = validate_task_input({"title": "Abc", "priority": "low", "estimate_minutes": 12.5})
        assert data.estimate_minutes == 12.5

    def test_collects_every_issue(self) -> None:
        with pytest.raises(BoardValidationError) as exc:
            validate_task_input({
                "title": "ab",
                "priority": "urgent",
                "estimate_minutes": -5,
                "rubric_score": 11,
                "due_at": "next week",
                "tags": ["ok", ""],
            })
        assert _paths(exc) == {"title", "priority", "estimate_minutes", "rubric_score", "due_at", "tags"}
        messages = exc.value.messages()
        assert any("must be greater than or equal to 0" in m for m in messages)
        assert any("must be between 0 and 10" in m for m in messages)

    def test_missing_required(self) -> None:
        with pytest.raises(BoardValidationError) as exc:
            validate_task_input({})
        assert _paths(exc) == {"title", "priority", "estimate_minutes"}

    def test_not_an_object(self) -> None:
        with pytest.raises(BoardValidationError):
            validate_task_input(["title"])

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_task_input({"title": "x"})


class TestTaskChanges:
    def test_only_supplied_keys(self) -> None:
        assert validate_task_changes({"title": "New title"}) == {"title": "New title"}
        assert validate_task_changes({}) == {}

    def test_nullable_fields(self) -> None:
        changes = validate_task_changes({"due_at": None, "started_at": None, "rubric_score": None})
        assert changes == {"due_at": None, "started_at": None, "rubric_score": None}

    def test_null_rejected_elsewhere(self) -> None:
        with pytest.raises(BoardValidationError) as exc:
            validate_task_changes({"title": None, "priority": None})
        assert _paths(exc) == {"title", "priority"}
        assert all(i.message == "may not be null" for i in exc.value.issues)

    def test_same_rules_as_create(self) -> None:
        with pytest.raises(BoardValidationError) as exc:
            validate_task_changes({"title": "x", "status": "blocked", "rubric_score": -1})
        assert _paths(exc) == {"title", "status", "rubric_score"}


class TestState:
    def test_valid(self) -> None:
        state = validate_state({
            "version": 1,
            "tasks": [_task_payload()],
            "audit": [{
                "timestamp": NOW,
                "action": "CREATE",
                "task_id": "a",
                "actor_label": "local-user",
                "diff": {"title": {"before": None, "after": "Rebalance FX"}},
            }],
            "audit_mode_enabled": False,
        })
        assert isinstance(state, AppState)
        assert state.tasks[0].id == "a"
        assert state.tasks[0].tags == ("fx",)
        assert state.audit[0].diff["title"].after == "Rebalance FX"

    def test_strict_flag(self) -> None:
        with pytest.raises(BoardValidationError) as exc:
            validate_state({"version": 1, "tasks": [], "audit": [], "audit_mode_enabled": "yes"})
        assert _paths(exc) == {"audit_mode_enabled"}


class TestExport:
    def test_nested_paths(self) -> None:
        raw = {
            "version": 1,
            "data": {
                "version": 1,
                "tasks": [_task_payload(), _task_payload(id="b", title="x")],
                "audit": [{
                    "timestamp": NOW,
                    "action": "RENAME",
                    "task_id": "a",
                    "actor_label": "local-user",
                    "diff": {},
                }],
                "audit_mode_enabled": False,
            },
        }
        with pytest.raises(BoardValidationError) as exc:
            validate_export(raw)
        assert _paths(exc) == {"data.tasks.1.title", "data.audit.0.action"}

    def test_missing_data(self) -> None:
        with pytest.raises(BoardValidationError) as exc:
            validate_export({"version": 1})
        assert _paths(exc) == {"data"}

    def test_meta_flag(self) -> None:
        state = validate_export({
            "version": 1,
            "data": {
                "version": 1,
                "tasks": [],
                "audit": [{
                    "timestamp": NOW,
                    "action": "UPDATE",
                    "task_id": "b",
                    "actor_label": "local-user",
                    "diff": {"id": {"before": "a", "after": "b"}},
                    "meta": {"id_regenerated": True},
                }],
                "audit_mode_enabled": True,
            },
        })
        assert state.audit[0].id_regenerated is True
        assert state.audit_mode_enabled is True
