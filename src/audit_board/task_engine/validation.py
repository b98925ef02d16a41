"""Shape validation for task input, persisted state and export files.

Validation runs before anything reaches the engine.  Failures are reported as
a flat list of :class:`ValidationIssue` (dot-joined path + message) wrapped in
:class:`BoardValidationError`, so callers can show every problem at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, StrictBool, ValidationError, field_validator

from ..utils import is_timestamp
from .model import AppState, TaskInput, coerce_task_changes

PriorityName = Literal["low", "medium", "high"]
StatusName = Literal["todo", "doing", "done"]
ActionName = Literal["CREATE", "UPDATE", "DELETE", "MOVE"]

TITLE_MIN_LENGTH = 3
NULLABLE_FIELDS = frozenset({"started_at", "due_at", "rubric_score"})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class BoardValidationError(ValueError):
    """Raised when a payload does not match the expected shape."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(str(i) for i in issues) or "invalid payload")

    def messages(self) -> list[str]:
        return [str(i) for i in self.issues]


class PayloadParseError(ValueError):
    """Raised when import text is not valid JSON."""


def _issues(exc: ValidationError) -> list[ValidationIssue]:
    return [
        ValidationIssue(".".join(str(p) for p in err.get("loc", ())), str(err.get("msg", "invalid")))
        for err in exc.errors()
    ]


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

def _check_timestamp(value: Optional[str]) -> Optional[str]:
    if value is not None and not is_timestamp(value):
        raise ValueError("must be an ISO-8601 datetime")
    return value


def _check_estimate(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if value < 0:
        raise ValueError("must be greater than or equal to 0")
    return value


def _check_rubric(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if not 0 <= value <= 10:
        raise ValueError("must be between 0 and 10")
    return value


def _check_tags(value: Optional[list[str]]) -> Optional[list[str]]:
    if value is not None and any(not tag for tag in value):
        raise ValueError("tags must be non-empty strings")
    return value


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class TaskInputSchema(BaseModel):
    title: str = Field(min_length=TITLE_MIN_LENGTH)
    description: str = ""
    priority: PriorityName
    tags: list[str] = Field(default_factory=list)
    estimate_minutes: float
    started_at: Optional[str] = None
    due_at: Optional[str] = None
    status: StatusName = "todo"
    reviewer_notes: str = ""
    rubric_score: Optional[float] = None
    rubric_comment: str = ""

    @field_validator("started_at", "due_at")
    @classmethod
    def check_timestamps(cls, value: Optional[str]) -> Optional[str]:
        return _check_timestamp(value)

    @field_validator("estimate_minutes")
    @classmethod
    def check_estimate(cls, value: float) -> float:
        return _check_estimate(value)

    @field_validator("rubric_score")
    @classmethod
    def check_rubric(cls, value: Optional[float]) -> Optional[float]:
        return _check_rubric(value)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: list[str]) -> list[str]:
        return _check_tags(value)


class TaskSchema(TaskInputSchema):
    id: str = Field(min_length=1)
    created_at: str

    @field_validator("created_at")
    @classmethod
    def check_created(cls, value: str) -> str:
        return _check_timestamp(value)


class TaskChangesSchema(BaseModel):
    """Partial update: every field optional, same rules when present."""

    title: Optional[str] = Field(default=None, min_length=TITLE_MIN_LENGTH)
    description: Optional[str] = None
    priority: Optional[PriorityName] = None
    tags: Optional[list[str]] = None
    estimate_minutes: Optional[float] = None
    started_at: Optional[str] = None
    due_at: Optional[str] = None
    status: Optional[StatusName] = None
    reviewer_notes: Optional[str] = None
    rubric_score: Optional[float] = None
    rubric_comment: Optional[str] = None

    @field_validator("started_at", "due_at")
    @classmethod
    def check_timestamps(cls, value: Optional[str]) -> Optional[str]:
        return _check_timestamp(value)

    @field_validator("estimate_minutes")
    @classmethod
    def check_estimate(cls, value: Optional[float]) -> Optional[float]:
        return _check_estimate(value)

    @field_validator("rubric_score")
    @classmethod
    def check_rubric(cls, value: Optional[float]) -> Optional[float]:
        return _check_rubric(value)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _check_tags(value)


class FieldChangeSchema(BaseModel):
    before: Any = None
    after: Any = None


class AuditMetaSchema(BaseModel):
    id_regenerated: Optional[bool] = None


class AuditEventSchema(BaseModel):
    timestamp: str
    action: ActionName
    task_id: str
    actor_label: str
    diff: dict[str, FieldChangeSchema]
    meta: Optional[AuditMetaSchema] = None

    @field_validator("timestamp")
    @classmethod
    def check_timestamp(cls, value: str) -> str:
        return _check_timestamp(value)


class AppStateSchema(BaseModel):
    version: int
    tasks: list[TaskSchema]
    audit: list[AuditEventSchema]
    audit_mode_enabled: StrictBool


class ExportSchema(BaseModel):
    version: int
    data: AppStateSchema


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def validate_task_input(raw: Any) -> TaskInput:
    """Validate a create payload and return the domain :class:`TaskInput`."""
    try:
        parsed = TaskInputSchema.model_validate(raw)
    except ValidationError as exc:
        raise BoardValidationError(_issues(exc)) from exc
    data = parsed.model_dump()
    data.update(coerce_task_changes(data))
    return TaskInput(**data)


def validate_task_changes(raw: Any) -> dict[str, Any]:
    """Validate a partial update; only keys present in *raw* are returned.

    ``started_at``, ``due_at`` and ``rubric_score`` may be set to null to
    clear them; every other field rejects null.
    """
    try:
        parsed = TaskChangesSchema.model_validate(raw)
    except ValidationError as exc:
        raise BoardValidationError(_issues(exc)) from exc
    changes = parsed.model_dump(exclude_unset=True)
    issues = [
        ValidationIssue(name, "may not be null")
        for name, value in changes.items()
        if value is None and name not in NULLABLE_FIELDS
    ]
    if issues:
        raise BoardValidationError(issues)
    return changes


def validate_state(raw: Any) -> AppState:
    """Validate a persisted snapshot (the bare AppState document)."""
    try:
        parsed = AppStateSchema.model_validate(raw)
    except ValidationError as exc:
        raise BoardValidationError(_issues(exc)) from exc
    return AppState.from_dict(parsed.model_dump())


def validate_export(raw: Any) -> AppState:
    """Validate an export file (``{version, data}``) and return its state."""
    try:
        parsed = ExportSchema.model_validate(raw)
    except ValidationError as exc:
        raise BoardValidationError(_issues(exc)) from exc
    return AppState.from_dict(parsed.data.model_dump())
