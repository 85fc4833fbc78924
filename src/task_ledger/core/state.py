# src/task_ledger/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings live on the state so connectors/commands don't re-read env.
    settings: object

    # Constructed once in bootstrap and passed explicitly to every connector.
    task_store: TaskStore
