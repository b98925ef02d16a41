"""Configure loguru and summarize audit events for log lines."""

from __future__ import annotations

import json
import sys
from typing import Any

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan>\n"
            "{message}"
        ),
    )


def summarize_event(event: Any) -> dict[str, Any]:
    """Render a compact, JSON-friendly summary of an audit event.

    Args:
        event: AuditEvent instance (or None).

    Returns:
        A dictionary suitable for logging: action, task id, changed fields
        and any meta flags.
    """
    if event is None:
        return {"event": None}

    action = getattr(event, "action", None)
    d: dict[str, Any] = {
        "action": getattr(action, "value", action),
        "task_id": getattr(event, "task_id", None),
    }
    diff = getattr(event, "diff", None) or {}
    fields = sorted(diff)
    d["changed_n"] = len(fields)
    d["fields"] = fields[:6] + (["…"] if len(fields) > 6 else [])
    meta = getattr(event, "meta", None)
    if meta:
        d["meta"] = dict(meta)
    return d


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Serialize an object as JSON for readable logs.

    Args:
        obj: Object to serialize.
        indent: Indentation level for JSON output.

    Returns:
        A JSON string when possible; otherwise `str(obj)`.
    """
    try:
        return json.dumps(obj, indent=indent, default=str)
    except (TypeError, ValueError):
        return str(obj)
