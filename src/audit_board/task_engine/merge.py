"""Reconcile an imported state whose task ids may collide."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from loguru import logger

from ..constants import IMPORT_MARKER
from ..utils import now_iso
from .audit import create_audit_event
from .model import AppState, AuditAction, AuditEvent, FieldChange, Task, _generate_id


def merge_import(
    incoming: AppState,
    *,
    now: Optional[str] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> tuple[AppState, list[AuditEvent]]:
    """Give every duplicate task id in *incoming* a fresh identifier.

    Only ids within the payload itself are considered; the state being
    replaced is irrelevant.  The first task carrying an id keeps it, every
    later one is renamed and gets a corrective UPDATE event flagged
    ``id_regenerated``.  A summary UPDATE event keyed ``IMPORT`` heads the
    returned list, which is ordered newest first like the audit log.
    """
    ts = now or now_iso()
    make_id = id_factory or _generate_id
    seen: set[str] = set()
    tasks: list[Task] = []
    corrective: list[AuditEvent] = []

    for task in incoming.tasks:
        if task.id not in seen:
            seen.add(task.id)
            tasks.append(task)
            continue
        new_id = make_id()
        while new_id in seen:
            new_id = make_id()
        seen.add(new_id)
        logger.warning("Duplicate task id {} in import; regenerated as {}", task.id, new_id)
        tasks.append(replace(task, id=new_id))
        corrective.append(
            create_audit_event(
                AuditAction.UPDATE,
                new_id,
                {"id": FieldChange(task.id, new_id)},
                {"id_regenerated": True},
                now=ts,
            )
        )

    summary = create_audit_event(
        AuditAction.UPDATE,
        IMPORT_MARKER,
        {
            "import": FieldChange(
                None,
                {
                    "tasks": len(tasks),
                    "audit": len(incoming.audit),
                    "audit_mode_enabled": incoming.audit_mode_enabled,
                },
            )
        },
        now=ts,
    )
    return replace(incoming, tasks=tuple(tasks)), [summary, *corrective]
