"""Search mini-language for the board.

A search string is split on whitespace and each token is classified by
prefix, first match wins:

``tag:<value>``
    require a tag (repeatable, values are lowercased).
``p:<low|medium|high>``
    require an exact priority.
``due:<overdue|week>``
    require a due date before today, or within the next seven days.
``est:<op><minutes>``
    compare the estimate; ``op`` is one of ``< <= > >= =`` (default ``=``).

Anything else is a lowercase free-text term matched against title and
description.  A token with a recognized prefix but an unusable value is
dropped rather than treated as text, so a typo never hides every task.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Optional, Union

from ..constants import DUE_WEEK_DAYS
from ..utils import parse_timestamp, start_of_local_day
from .model import Priority, Task


class DueBucket(str, Enum):
    OVERDUE = "overdue"
    WEEK = "week"


_EST_RE = re.compile(r"^(<=|>=|<|>|=)?(\d+)$")


@dataclass(frozen=True)
class EstFilter:
    op: str
    value: int

    def matches(self, minutes: Union[int, float]) -> bool:
        if self.op == "<":
            return minutes < self.value
        if self.op == "<=":
            return minutes <= self.value
        if self.op == ">":
            return minutes > self.value
        if self.op == ">=":
            return minutes >= self.value
        if self.op == "=":
            return minutes == self.value
        raise ValueError(f"Unknown estimate operator: {self.op!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op, "value": self.value}


@dataclass(frozen=True)
class Query:
    text: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    priority: Optional[Priority] = None
    due: Optional[DueBucket] = None
    est: Optional[EstFilter] = None

    @property
    def is_empty(self) -> bool:
        return not (self.text or self.tags or self.priority or self.due or self.est)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": list(self.text),
            "tags": list(self.tags),
            "priority": self.priority.value if self.priority else None,
            "due": self.due.value if self.due else None,
            "est": self.est.to_dict() if self.est else None,
        }


def parse_query(raw: str) -> Query:
    """Parse a free-form search string into a :class:`Query`."""
    text: list[str] = []
    tags: list[str] = []
    priority: Optional[Priority] = None
    due: Optional[DueBucket] = None
    est: Optional[EstFilter] = None

    for token in (raw or "").split():
        if token.startswith("tag:"):
            tag = token[len("tag:"):].lower()
            if tag:
                tags.append(tag)
        elif token.startswith("p:"):
            value = token[len("p:"):]
            if value in {p.value for p in Priority}:
                priority = Priority(value)
        elif token.startswith("due:"):
            value = token[len("due:"):]
            if value in {d.value for d in DueBucket}:
                due = DueBucket(value)
        elif token.startswith("est:"):
            match = _EST_RE.match(token[len("est:"):])
            if match:
                est = EstFilter(op=match.group(1) or "=", value=int(match.group(2)))
        else:
            text.append(token.lower())

    return Query(text=tuple(text), tags=tuple(tags), priority=priority, due=due, est=est)


def _matches_due(task: Task, due: Optional[DueBucket], today: datetime) -> bool:
    if due is None:
        return True
    limit = parse_timestamp(task.due_at)
    if limit is None:
        return False
    if due == DueBucket.OVERDUE:
        return limit < today
    if due == DueBucket.WEEK:
        return today <= limit <= today + timedelta(days=DUE_WEEK_DAYS)
    raise ValueError(f"Unknown due bucket: {due!r}")


def task_matches(task: Task, query: Query, *, today: datetime) -> bool:
    """True if *task* satisfies every category of *query*.

    *today* is the start of the current local day (tz-aware).
    """
    haystack = f"{task.title} {task.description}".lower()
    if not all(term in haystack for term in query.text):
        return False
    task_tags = {t.lower() for t in task.tags}
    if not all(tag in task_tags for tag in query.tags):
        return False
    if query.priority is not None and task.priority != query.priority:
        return False
    if not _matches_due(task, query.due, today):
        return False
    if query.est is not None and not query.est.matches(task.estimate_minutes):
        return False
    return True


def filter_tasks(
    tasks: Iterable[Task],
    query: Query,
    *,
    now: Optional[datetime] = None,
) -> list[Task]:
    """Return the tasks matching *query*, preserving their relative order."""
    today = start_of_local_day(now)
    return [task for task in tasks if task_matches(task, query, today=today)]
