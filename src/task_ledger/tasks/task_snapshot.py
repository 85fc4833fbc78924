# src/task_ledger/tasks/task_snapshot.py

"""
Whole-store persistence across restarts.

The store has no file format of its own: on shutdown the full state
(counter + tasks) is dumped as one JSON document, and on startup it is
loaded back wholesale. There is no versioning or migration.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from .task_store import TaskStore

logger = logging.getLogger(__name__)


def save_snapshot(store: TaskStore, path: str | Path) -> None:
    path = Path(path)
    data = store.snapshot()

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    try:
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    with contextlib.suppress(Exception):
        os.chmod(path, 0o600)

    logger.info("Saved task snapshot: %d tasks to %s", len(data["tasks"]), path)


def load_snapshot(store: TaskStore, path: str | Path) -> bool:
    """
    Restore the store from `path` if it exists.

    Returns True if a snapshot was applied. A missing file is normal (first run);
    an unreadable or malformed one is logged and leaves the store untouched.
    """
    path = Path(path)
    if not path.exists():
        logger.info("No task snapshot at %s, starting empty.", path)
        return False

    try:
        data = json.loads(path.read_text("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("snapshot root must be a JSON object")
        store.restore(data)
    except Exception:
        logger.exception("Failed to load task snapshot from %s", path)
        return False

    return True
