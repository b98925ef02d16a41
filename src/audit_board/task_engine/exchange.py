"""Export/import file format: ``{"version": n, "data": <AppState>}``."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from loguru import logger

from ..constants import EXPORT_VERSION
from ..logging_utils import pretty
from .merge import merge_import
from .model import AppState, AuditEvent
from .validation import PayloadParseError, validate_export

INVALID_JSON_MESSAGE = "The file does not contain valid JSON."


@dataclass(frozen=True)
class ImportResult:
    """A validated, collision-free state plus the events to put ahead of its log."""

    state: AppState
    events: tuple[AuditEvent, ...]


def build_export(state: AppState) -> dict[str, Any]:
    return {"version": EXPORT_VERSION, "data": state.to_dict()}


def dump_export(state: AppState) -> str:
    """Serialize *state* verbatim as a pretty-printed export document."""
    return json.dumps(build_export(state), indent=2, ensure_ascii=False)


def export_filename(now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
    return f"audit-board-{stamp}.json"


def load_import(
    text: Union[str, bytes],
    *,
    now: Optional[str] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> ImportResult:
    """Parse, validate and de-duplicate an export document.

    Raises:
        PayloadParseError: *text* is not UTF-8 encoded JSON.
        BoardValidationError: the document does not match the export shape.
    """
    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        raw = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise PayloadParseError(INVALID_JSON_MESSAGE) from exc
    incoming = validate_export(raw)
    merged, events = merge_import(incoming, now=now, id_factory=id_factory)
    regenerated = sum(1 for e in events if e.id_regenerated)
    logger.info(
        "Import validated: {} tasks, {} audit events, {} ids regenerated",
        len(merged.tasks),
        len(merged.audit),
        regenerated,
    )
    logger.debug("Import events:\n{}", pretty([e.to_dict() for e in events]))
    return ImportResult(state=merged, events=tuple(events))
