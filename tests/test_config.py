"""Tests for board configuration loading (config.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from audit_board.config import (
    get_log_level,
    get_seed_on_empty,
    get_server_config,
    load_board_config,
)


def _write_config(project: Path, text: str) -> None:
    state_dir = project / ".audit_board"
    state_dir.mkdir(parents=True, exist_ok=True)
    (state_dir / "config.yaml").write_text(text, encoding="utf-8")


class TestLoadBoardConfig:
    def test_missing(self, tmp_path: Path) -> None:
        assert load_board_config(tmp_path) == ({}, None)

    def test_valid(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "log_level: debug\nseed_on_empty: false\nserver:\n  port: 9000\n")
        config, err = load_board_config(tmp_path)
        assert err is None
        assert config == {"log_level": "debug", "seed_on_empty": False, "server": {"port": 9000}}

    def test_empty_file(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "")
        assert load_board_config(tmp_path) == ({}, None)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "server: [unclosed\n")
        config, err = load_board_config(tmp_path)
        assert config == {}
        assert err.startswith("config.yaml: YAMLError")

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "- a\n- b\n")
        config, err = load_board_config(tmp_path)
        assert config == {}
        assert "expected object" in err


class TestAccessors:
    def test_log_level_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("AUDIT_BOARD_LOG_LEVEL", raising=False)
        assert get_log_level({}) == "INFO"
        assert get_log_level({"log_level": "loud"}) == "INFO"
        assert get_log_level({"log_level": "debug"}) == "DEBUG"

    def test_log_level_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUDIT_BOARD_LOG_LEVEL", "warning")
        assert get_log_level({"log_level": "debug"}) == "WARNING"
        monkeypatch.setenv("AUDIT_BOARD_LOG_LEVEL", "bogus")
        assert get_log_level({"log_level": "debug"}) == "DEBUG"

    def test_seed_on_empty(self) -> None:
        assert get_seed_on_empty({}) is True
        assert get_seed_on_empty({"seed_on_empty": False}) is False
        assert get_seed_on_empty({"seed_on_empty": "no"}) is True

    def test_server_config(self) -> None:
        assert get_server_config({}) == {"host": "127.0.0.1", "port": 8000}
        assert get_server_config({"server": {"host": "0.0.0.0", "port": 9000}}) == {"host": "0.0.0.0", "port": 9000}
        assert get_server_config({"server": {"port": "nine"}}) == {"host": "127.0.0.1", "port": 8000}
        assert get_server_config({"server": "oops"}) == {"host": "127.0.0.1", "port": 8000}
