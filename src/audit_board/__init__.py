"""Provide the public `audit_board` package exports."""

from __future__ import annotations

__version__ = "0.1.0"

from .task_engine import AppState, Task, TaskBoard, apply_command, filter_tasks, parse_query

__all__ = ["AppState", "Task", "TaskBoard", "__version__", "apply_command", "filter_tasks", "parse_query"]
