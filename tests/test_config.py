# tests/test_config.py

from __future__ import annotations

import os
from pathlib import Path

import pytest

from task_ledger.config import Settings


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in list(os.environ):
        if name.startswith("TASK_LEDGER_") or name.startswith("MATRIX_"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    s = Settings.from_env()
    assert s.app_name == "task-ledger"
    assert s.console_enabled is True
    assert s.matrix_enabled is False
    assert s.matrix_password is None
    assert s.snapshot_enabled is True
    assert s.snapshot_path == Path(".local/task-ledger") / "tasks.json"


def test_env_overrides(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("TASK_LEDGER_DATA_DIR", str(tmp_path))
    clean_env.setenv("TASK_LEDGER_MATRIX_ENABLED", "yes")
    clean_env.setenv("TASK_LEDGER_MATRIX_ROOMS", "!a:hs, !b:hs")
    clean_env.setenv("MATRIX_HOMESERVER", " https://hs.example ")
    clean_env.setenv("TASK_LEDGER_SNAPSHOT_ENABLED", "off")

    s = Settings.from_env()
    assert s.matrix_enabled is True
    assert s.matrix_rooms == ["!a:hs", "!b:hs"]
    assert s.matrix_homeserver == "https://hs.example"
    assert s.snapshot_enabled is False
    assert s.snapshot_path == tmp_path / "tasks.json"
    assert s.matrix_store_path == tmp_path / "matrix_store"
