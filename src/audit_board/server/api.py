"""FastAPI application for the audited task board."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .. import __version__
from ..config import load_board_config
from ..constants import STATE_DIR_NAME
from ..task_engine.board import TaskBoard
from .board_api import create_board_router


def create_app(
    project_dir: Optional[Path] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        project_dir: Default project directory.
        enable_cors: Whether to enable CORS.

    Returns:
        Configured FastAPI app.
    """
    app = FastAPI(
        title="Audit Board",
        description="Task board with an audit trail and a search mini-language",
        version=__version__,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.default_project_dir = project_dir
    app.state.boards = {}

    def _get_project_dir(project_dir_param: Optional[str] = None) -> Path:
        """Get project directory from parameter or default."""
        if project_dir_param:
            return Path(project_dir_param)
        if app.state.default_project_dir:
            return app.state.default_project_dir
        return Path.cwd()

    def _get_board(project_dir_param: Optional[str] = None) -> TaskBoard:
        """Resolve (and cache) the board for a project directory."""
        project = _get_project_dir(project_dir_param).resolve()
        board = app.state.boards.get(project)
        if board is None:
            config, err = load_board_config(project)
            if err:
                logger.warning("Ignoring board config: {}", err)
            board = TaskBoard(project / STATE_DIR_NAME, config)
            app.state.boards[project] = board
        return board

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Audit Board",
            "version": __version__,
            "status": "running",
        }

    app.include_router(create_board_router(_get_board))

    return app
