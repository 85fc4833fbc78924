# src/task_ledger/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the operation layer.

The operation registry depends on a Protocol instead of the concrete TaskStore,
so tests (or another backend) can pass anything with the same methods.
"""

from typing import Any, Awaitable, Protocol

from ..tasks.task_models import Task


class TaskRepo(Protocol):
    # Core CRUD
    def create_task(self, title: str, description: str, is_important: bool | None = None) -> int: ...
    def get_task(self, task_id: int) -> Task | None: ...
    def get_all_tasks(self) -> list[Task]: ...
    def update_task_status(self, task_id: int, title: str, description: str, done: bool) -> bool: ...
    def update_task(
            self,
            task_id: int,
            *,
            title: str | None = None,
            description: str | None = None,
            is_important: bool | None = None,
    ) -> bool: ...
    def delete_task(self, task_id: int) -> bool: ...
    def search_task_by_status(self, done: bool) -> list[Task]: ...

    # Flag shortcuts
    def mark_task_as_done(self, task_id: int) -> bool: ...
    def reset_task_status(self, task_id: int) -> bool: ...
    def mark_task_as_important(self, task_id: int) -> bool: ...
    def toggle_task_importance(self, task_id: int) -> bool: ...

    # Queries
    def get_completed_tasks(self) -> list[Task]: ...
    def get_incomplete_tasks(self) -> list[Task]: ...
    def get_important_tasks(self) -> list[Task]: ...
    def get_tasks_by_importance_status(self, is_important: bool) -> list[Task]: ...
    def get_tasks_by_title(self, title: str) -> list[Task]: ...
    def get_tasks_by_description(self, description: str) -> list[Task]: ...
    def get_tasks_created_after(self, timestamp: int) -> list[Task]: ...
    def get_tasks_updated_after(self, timestamp: int) -> list[Task]: ...
    def get_total_number_of_tasks(self) -> int: ...
    def clear_completed_tasks(self) -> int: ...

    # Whole-state capture
    def snapshot(self) -> dict[str, Any]: ...
    def restore(self, data: dict[str, Any]) -> None: ...


class OutboundMessenger(Protocol):
    """
    Connector-side port: how a reply is delivered back to the caller's room.
    """

    def send_text(self, *, room_id: str, text: str) -> Awaitable[None]: ...
