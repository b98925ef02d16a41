"""REST endpoints for the audited task board.

This module provides a FastAPI router over :class:`TaskBoard`: task CRUD,
column view, the search language, the audit log and import/export.  It is
mounted under ``/api`` by the main ``create_app`` factory.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Request
from fastapi.responses import Response
from loguru import logger
from pydantic import BaseModel, StrictBool

from ..task_engine.audit import format_summary
from ..task_engine.board import TaskBoard, task_view
from ..task_engine.exchange import export_filename
from ..task_engine.model import Task
from ..task_engine.query import parse_query
from ..task_engine.validation import BoardValidationError, PayloadParseError


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------

class MoveRequest(BaseModel):
    status: str


class AuditModeRequest(BaseModel):
    enabled: StrictBool


class TaskResponse(BaseModel):
    """Standard wrapper for task responses."""
    task: dict[str, Any]


class TaskListResponse(BaseModel):
    tasks: list[dict[str, Any]]
    total: int


class BoardResponse(BaseModel):
    columns: dict[str, list[dict[str, Any]]]
    audit_mode_enabled: bool


class QueryResponse(BaseModel):
    query: dict[str, Any]


class AuditListResponse(BaseModel):
    events: list[dict[str, Any]]
    total: int


class AuditSummaryResponse(BaseModel):
    summary: dict[str, Any]
    text: str


class AuditModeResponse(BaseModel):
    enabled: bool


class ReviewSummaryResponse(BaseModel):
    scored: int
    unscored: int
    average: float


class ImportResponse(BaseModel):
    tasks: int
    audit: int
    regenerated_ids: int


def _validation_error(exc: BoardValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"errors": exc.messages()})


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------

def create_board_router(get_board: Any) -> APIRouter:
    """Create the board API router.

    Parameters
    ----------
    get_board:
        A callable ``(project_dir_param: str | None) -> TaskBoard`` that
        resolves the board for the current request's project directory.
    """
    router = APIRouter(prefix="/api", tags=["board"])

    def _view(board: TaskBoard, task: Task) -> dict[str, Any]:
        return task_view(task, audit_mode=board.state.audit_mode_enabled)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @router.get("/tasks", response_model=TaskListResponse)
    async def list_tasks(
        q: str = Query(""),
        project_dir: Optional[str] = Query(None),
    ) -> TaskListResponse:
        board = get_board(project_dir)
        data = [_view(board, t) for t in board.search(q)]
        return TaskListResponse(tasks=data, total=len(data))

    @router.post("/tasks", response_model=TaskResponse, status_code=201)
    async def create_task(
        body: dict[str, Any] = Body(...),
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        board = get_board(project_dir)
        try:
            task = board.create_task(body)
        except BoardValidationError as exc:
            raise _validation_error(exc)
        return TaskResponse(task=_view(board, task))

    @router.get("/tasks/{task_id}", response_model=TaskResponse)
    async def get_task(
        task_id: str,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        board = get_board(project_dir)
        task = board.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        return TaskResponse(task=_view(board, task))

    @router.patch("/tasks/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: str,
        body: dict[str, Any] = Body(...),
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        board = get_board(project_dir)
        try:
            task = board.update_task(task_id, body)
        except BoardValidationError as exc:
            raise _validation_error(exc)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        return TaskResponse(task=_view(board, task))

    @router.delete("/tasks/{task_id}")
    async def delete_task(
        task_id: str,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, str]:
        board = get_board(project_dir)
        if not board.delete_task(task_id):
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        return {"status": "deleted"}

    @router.post("/tasks/{task_id}/move", response_model=TaskResponse)
    async def move_task(
        task_id: str,
        body: MoveRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        board = get_board(project_dir)
        try:
            task = board.move_task(task_id, body.status)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown status: {body.status}")
        if task is None:
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        return TaskResponse(task=_view(board, task))

    @router.post("/tasks/{task_id}/start", response_model=TaskResponse)
    async def toggle_start(
        task_id: str,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        board = get_board(project_dir)
        task = board.toggle_start(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        return TaskResponse(task=_view(board, task))

    # ------------------------------------------------------------------
    # Board + search
    # ------------------------------------------------------------------

    @router.get("/board", response_model=BoardResponse)
    async def get_columns(
        q: str = Query(""),
        project_dir: Optional[str] = Query(None),
    ) -> BoardResponse:
        board = get_board(project_dir)
        columns = {
            status: [_view(board, t) for t in tasks]
            for status, tasks in board.columns(q).items()
        }
        return BoardResponse(columns=columns, audit_mode_enabled=board.state.audit_mode_enabled)

    @router.get("/query", response_model=QueryResponse)
    async def explain_query(q: str = Query("")) -> QueryResponse:
        return QueryResponse(query=parse_query(q).to_dict())

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    @router.get("/audit", response_model=AuditListResponse)
    async def list_audit(
        action: Optional[str] = Query(None),
        task_id: Optional[str] = Query(None),
        project_dir: Optional[str] = Query(None),
    ) -> AuditListResponse:
        board = get_board(project_dir)
        try:
            events = board.audit_events(action=action, task_id=task_id)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown action: {action}")
        return AuditListResponse(events=[e.to_dict() for e in events], total=len(events))

    @router.get("/audit/summary", response_model=AuditSummaryResponse)
    async def audit_summary(
        project_dir: Optional[str] = Query(None),
    ) -> AuditSummaryResponse:
        summary = get_board(project_dir).audit_summary()
        return AuditSummaryResponse(summary=summary.to_dict(), text=format_summary(summary))

    @router.get("/audit-mode", response_model=AuditModeResponse)
    async def get_audit_mode(
        project_dir: Optional[str] = Query(None),
    ) -> AuditModeResponse:
        return AuditModeResponse(enabled=get_board(project_dir).state.audit_mode_enabled)

    @router.put("/audit-mode", response_model=AuditModeResponse)
    async def set_audit_mode(
        body: AuditModeRequest,
        project_dir: Optional[str] = Query(None),
    ) -> AuditModeResponse:
        return AuditModeResponse(enabled=get_board(project_dir).set_audit_mode(body.enabled))

    @router.get("/review/summary", response_model=ReviewSummaryResponse)
    async def get_review_summary(
        project_dir: Optional[str] = Query(None),
    ) -> ReviewSummaryResponse:
        return ReviewSummaryResponse(**get_board(project_dir).review_summary().to_dict())

    # ------------------------------------------------------------------
    # Import / export / reset
    # ------------------------------------------------------------------

    @router.get("/export")
    async def export_state(
        project_dir: Optional[str] = Query(None),
    ) -> Response:
        text = get_board(project_dir).export_text()
        return Response(
            content=text,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
        )

    @router.post("/import", response_model=ImportResponse)
    async def import_state(
        request: Request,
        project_dir: Optional[str] = Query(None),
    ) -> ImportResponse:
        board = get_board(project_dir)
        raw = await request.body()
        try:
            result = board.import_text(raw)
        except PayloadParseError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except BoardValidationError as exc:
            logger.warning("Rejected import: {}", exc)
            raise _validation_error(exc)
        return ImportResponse(
            tasks=len(result.state.tasks),
            audit=len(board.state.audit),
            regenerated_ids=sum(1 for e in result.events if e.id_regenerated),
        )

    @router.post("/reset")
    async def reset_board(
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        state = get_board(project_dir).reset()
        return {"status": "reset", "tasks": len(state.tasks)}

    return router
