"""Audited task engine.

Pure pieces (model, diff, audit log, query language, reducer, import merger)
plus the file-backed :class:`TaskBoard` that holds the current state.
"""

from .audit import AuditSummary, format_summary, query_events, summarize_audit
from .board import ReviewSummary, TaskBoard, progress_percent, review_summary, task_view
from .diff import diff_task
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
from .exchange import ImportResult, build_export, dump_export, export_filename, load_import
from .merge import merge_import
from .model import (
    AppState,
    AuditAction,
    AuditEvent,
    FieldChange,
    Priority,
    Task,
    TaskInput,
    TaskStatus,
)
from .query import DueBucket, EstFilter, Query, filter_tasks, parse_query
from .seed import seed_state
from .store import StateStore
from .validation import (
    BoardValidationError,
    PayloadParseError,
    ValidationIssue,
    validate_export,
    validate_state,
    validate_task_changes,
    validate_task_input,
)

__all__ = [
    "AppState",
    "AuditAction",
    "AuditEvent",
    "AuditSummary",
    "BoardValidationError",
    "Command",
    "CreateTask",
    "DeleteTask",
    "DueBucket",
    "EstFilter",
    "FieldChange",
    "ImportResult",
    "ImportState",
    "MoveTask",
    "PayloadParseError",
    "Priority",
    "Query",
    "ReviewSummary",
    "StateStore",
    "Task",
    "TaskBoard",
    "TaskInput",
    "TaskStatus",
    "ToggleAuditMode",
    "UpdateTask",
    "ValidationIssue",
    "apply_command",
    "build_export",
    "diff_task",
    "dump_export",
    "export_filename",
    "filter_tasks",
    "format_summary",
    "load_import",
    "merge_import",
    "parse_query",
    "progress_percent",
    "query_events",
    "review_summary",
    "seed_state",
    "summarize_audit",
    "task_view",
    "validate_export",
    "validate_state",
    "validate_task_changes",
    "validate_task_input",
]
