"""Append-only audit log helpers.

The log is a plain tuple ordered newest first.  Appending returns a new
tuple; nothing here ever removes or reorders an existing event.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence, Union

from ..constants import ACTOR_LABEL, SUMMARY_RECENT_EVENTS
from ..utils import now_iso
from .model import AuditAction, AuditEvent, Diff


def create_audit_event(
    action: AuditAction,
    task_id: str,
    diff: Diff,
    meta: Optional[dict[str, Any]] = None,
    *,
    now: Optional[str] = None,
) -> AuditEvent:
    return AuditEvent(
        timestamp=now or now_iso(),
        action=action,
        task_id=task_id,
        diff=dict(diff),
        actor_label=ACTOR_LABEL,
        meta=dict(meta) if meta else None,
    )


def append_event(log: Sequence[AuditEvent], event: AuditEvent) -> tuple[AuditEvent, ...]:
    """Return a new log with *event* at the head."""
    return (event, *log)


def prepend_events(log: Sequence[AuditEvent], events: Iterable[AuditEvent]) -> tuple[AuditEvent, ...]:
    """Concatenate *events* (already newest first) ahead of *log*."""
    return (*events, *log)


def query_events(
    log: Sequence[AuditEvent],
    action: Optional[Union[AuditAction, str]] = None,
    task_id: Optional[str] = None,
) -> list[AuditEvent]:
    """Filter the log by exact action and case-insensitive task-id substring.

    Either filter may be omitted; ``"all"`` is accepted as "no action filter".
    """
    wanted: Optional[AuditAction] = None
    if action is not None and action != "all":
        wanted = action if isinstance(action, AuditAction) else AuditAction(str(action).upper())
    needle = (task_id or "").lower()

    out: list[AuditEvent] = []
    for event in log:
        if wanted is not None and event.action != wanted:
            continue
        if needle and needle not in event.task_id.lower():
            continue
        out.append(event)
    return out


@dataclass(frozen=True)
class AuditSummary:
    total: int = 0
    by_action: dict[str, int] = field(default_factory=dict)
    id_regenerated: bool = False
    recent: tuple[AuditEvent, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_action": dict(self.by_action),
            "id_regenerated": self.id_regenerated,
            "recent": [e.to_dict() for e in self.recent],
        }


def summarize_audit(log: Sequence[AuditEvent]) -> AuditSummary:
    counts = Counter(event.action.value for event in log)
    return AuditSummary(
        total=len(log),
        by_action=dict(counts),
        id_regenerated=any(event.id_regenerated for event in log),
        recent=tuple(log[:SUMMARY_RECENT_EVENTS]),
    )


def format_summary(summary: AuditSummary) -> str:
    """Render the summary as plain text suitable for pasting into a report."""
    by_action = " | ".join(f"{action}:{count}" for action, count in summary.by_action.items())
    lines = [
        "Audit summary",
        f"Total events: {summary.total}",
        f"By action: {by_action or 'no events'}",
        f"ID regeneration on import: {'yes' if summary.id_regenerated else 'no'}",
        f"Last {SUMMARY_RECENT_EVENTS} events:",
    ]
    for event in summary.recent:
        changed = ", ".join(event.diff) or "-"
        lines.append(f"- {event.timestamp} | {event.action.value} | {event.task_id} | changes: {changed}")
    return "\n".join(lines)
