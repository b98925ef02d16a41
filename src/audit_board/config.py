"""Load optional board configuration from `.audit_board/config.yaml`."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .constants import (
    CONFIG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    LOG_LEVEL_ENV_VAR,
    STATE_DIR_NAME,
)
from .io_utils import load_data_with_error

VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def load_board_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional board config file.

    Args:
        project_dir: Directory holding the ``.audit_board/`` state directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = project_dir.resolve() / STATE_DIR_NAME / CONFIG_FILE
    data, err = load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def get_log_level(config: dict[str, Any]) -> str:
    """Resolve the log level: environment variable, then config file, then default."""
    for raw in (os.environ.get(LOG_LEVEL_ENV_VAR), config.get("log_level")):
        if isinstance(raw, str) and raw.strip().upper() in VALID_LOG_LEVELS:
            return raw.strip().upper()
    return DEFAULT_LOG_LEVEL


def get_seed_on_empty(config: dict[str, Any]) -> bool:
    raw = config.get("seed_on_empty")
    return raw if isinstance(raw, bool) else True


def get_server_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the server block, filling in host/port defaults."""
    host = _get_nested(config, "server", "host")
    port = _get_nested(config, "server", "port")
    return {
        "host": host if isinstance(host, str) and host else DEFAULT_SERVER_HOST,
        "port": port if isinstance(port, int) and not isinstance(port, bool) and port > 0 else DEFAULT_SERVER_PORT,
    }
