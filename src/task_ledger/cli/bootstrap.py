# src/task_ledger/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- builds the TaskStore and wires it into AppState,
- restores / saves the task snapshot around the app's lifetime.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..tasks.task_snapshot import load_snapshot, save_snapshot
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    return AppState(settings=settings, task_store=TaskStore())


def restore_tasks(state: AppState) -> bool:
    """Load the snapshot into the (empty) store if snapshots are enabled."""
    if not getattr(state.settings, "snapshot_enabled", False):
        return False
    return load_snapshot(state.task_store, state.settings.snapshot_path)  # type: ignore[attr-defined]


def persist_tasks(state: AppState) -> None:
    if not getattr(state.settings, "snapshot_enabled", False):
        return
    try:
        save_snapshot(state.task_store, state.settings.snapshot_path)  # type: ignore[attr-defined]
    except Exception:
        logger.exception("Failed to save task snapshot.")
