"""Initial board content used when no persisted snapshot is available."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..constants import STATE_VERSION
from .model import AppState, Priority, Task, TaskStatus


def seed_state(now: Optional[datetime] = None) -> AppState:
    current = now or datetime.now(timezone.utc)
    stamp = current.isoformat()

    def in_days(days: int) -> str:
        return (current + timedelta(days=days)).isoformat()

    tasks = (
        Task(
            title="Rebalance FX book",
            description="Align USD/EUR exposure after the London close.",
            priority=Priority.HIGH,
            tags=("fx", "rebalance", "risk"),
            estimate_minutes=90,
            created_at=stamp,
            due_at=in_days(2),
            status=TaskStatus.TODO,
        ),
        Task(
            title="Validate credit limits",
            description="Check rating changes for 3 counterparties.",
            priority=Priority.MEDIUM,
            tags=("risk", "compliance"),
            estimate_minutes=60,
            created_at=stamp,
            started_at=stamp,
            due_at=in_days(5),
            status=TaskStatus.DOING,
        ),
        Task(
            title="Execute energy ETF order",
            description="Ticket #E-2231, liquidity window 14:00-15:00.",
            priority=Priority.HIGH,
            tags=("trading", "execution"),
            estimate_minutes=30,
            created_at=stamp,
            started_at=stamp,
            due_at=in_days(1),
            status=TaskStatus.DOING,
        ),
        Task(
            title="Review OTC confirmations",
            description="Match 5 confirmations with the back office.",
            priority=Priority.LOW,
            tags=("ops", "otc"),
            estimate_minutes=45,
            created_at=stamp,
            status=TaskStatus.DONE,
        ),
    )
    return AppState(version=STATE_VERSION, tasks=tasks, audit=(), audit_mode_enabled=False)
