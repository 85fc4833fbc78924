# src/task_ledger/tasks/task_store.py

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from .task_models import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    In-memory task store: a dict keyed by task id plus a monotonic id counter.

    Ids start at 0 and are never reused, even after delete/clear.
    Every public method returns copies; callers never hold references into the store.

    Thread-safety:
    - one RLock guards both the counter and the dict, held for the whole method body,
      so each operation is atomic relative to the others (console and Matrix run on
      different threads).
    """

    def __init__(self, *, clock: Callable[[], int] = time.time_ns) -> None:
        self._lock = threading.RLock()
        self._tasks: dict[int, Task] = {}
        self._next_id = 0
        self._clock = clock
        logger.info("TaskStore ready (in-memory)")

    # ---- low-level helpers ----

    def _filter(self, pred: Callable[[Task], bool]) -> list[Task]:
        with self._lock:
            return [replace(t) for t in self._tasks.values() if pred(t)]

    def _mutate(self, task_id: int, apply: Callable[[Task], None]) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return False
            apply(task)
            task.updated_at = self._clock()
            return True

    # ---- core CRUD ----

    def create_task(
        self,
        title: str,
        description: str,
        is_important: bool | None = None,
    ) -> int:
        with self._lock:
            task_id = self._next_id
            self._next_id += 1

            now = self._clock()
            self._tasks[task_id] = Task(
                id=task_id,
                title=title,
                description=description,
                done=False,
                is_important=bool(is_important),
                created_at=now,
                updated_at=now,
            )

        logger.debug("Task created id=%s important=%s", task_id, bool(is_important))
        return task_id

    def get_task(self, task_id: int) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return replace(task) if task is not None else None

    def get_all_tasks(self) -> list[Task]:
        return self._filter(lambda t: True)

    def update_task_status(self, task_id: int, title: str, description: str, done: bool) -> bool:
        """Overwrite title, description and done unconditionally."""

        def apply(task: Task) -> None:
            task.title = title
            task.description = description
            task.done = done

        ok = self._mutate(task_id, apply)
        logger.debug("Task full update id=%s ok=%s done=%s", task_id, ok, done)
        return ok

    def update_task(
        self,
        task_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        is_important: bool | None = None,
    ) -> bool:
        """
        Partial update: only fields that are not None are written; `done` is never touched.

        Returns True whenever the task exists, even if nothing was supplied.
        """

        def apply(task: Task) -> None:
            if title is not None:
                task.title = title
            if description is not None:
                task.description = description
            if is_important is not None:
                task.is_important = is_important

        ok = self._mutate(task_id, apply)
        logger.debug("Task partial update id=%s ok=%s", task_id, ok)
        return ok

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            removed = self._tasks.pop(task_id, None) is not None
        logger.debug("Task delete id=%s removed=%s", task_id, removed)
        return removed

    def search_task_by_status(self, done: bool) -> list[Task]:
        return self._filter(lambda t: t.done == done)

    # ---- flag shortcuts ----

    def mark_task_as_done(self, task_id: int) -> bool:
        return self._mutate(task_id, lambda t: setattr(t, "done", True))

    def reset_task_status(self, task_id: int) -> bool:
        return self._mutate(task_id, lambda t: setattr(t, "done", False))

    def mark_task_as_important(self, task_id: int) -> bool:
        return self._mutate(task_id, lambda t: setattr(t, "is_important", True))

    def toggle_task_importance(self, task_id: int) -> bool:
        return self._mutate(task_id, lambda t: setattr(t, "is_important", not t.is_important))

    # ---- queries ----

    def get_completed_tasks(self) -> list[Task]:
        return self.search_task_by_status(True)

    def get_incomplete_tasks(self) -> list[Task]:
        return self.search_task_by_status(False)

    def get_important_tasks(self) -> list[Task]:
        return self.get_tasks_by_importance_status(True)

    def get_tasks_by_importance_status(self, is_important: bool) -> list[Task]:
        return self._filter(lambda t: t.is_important == is_important)

    def get_tasks_by_title(self, title: str) -> list[Task]:
        return self._filter(lambda t: t.title == title)

    def get_tasks_by_description(self, description: str) -> list[Task]:
        return self._filter(lambda t: t.description == description)

    def get_tasks_created_after(self, timestamp: int) -> list[Task]:
        return self._filter(lambda t: t.created_at > timestamp)

    def get_tasks_updated_after(self, timestamp: int) -> list[Task]:
        return self._filter(lambda t: t.updated_at > timestamp)

    def get_total_number_of_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)

    def clear_completed_tasks(self) -> int:
        with self._lock:
            done_ids = [tid for tid, t in self._tasks.items() if t.done]
            for tid in done_ids:
                del self._tasks[tid]
        if done_ids:
            logger.info("Cleared %d completed task(s)", len(done_ids))
        return len(done_ids)

    # ---- whole-state capture ----

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "next_id": self._next_id,
                "tasks": [t.to_dict() for t in self._tasks.values()],
            }

    def restore(self, data: dict[str, Any]) -> None:
        """
        Replace the whole state with a snapshot() payload.

        Raises ValueError on a malformed payload; the current state is kept in that case.
        The counter is lifted past the highest restored id so ids are never reassigned.
        """
        raw_tasks = data.get("tasks")
        if not isinstance(raw_tasks, list):
            raise ValueError("snapshot 'tasks' must be a list")

        tasks: dict[int, Task] = {}
        for raw in raw_tasks:
            if not isinstance(raw, dict):
                raise ValueError(f"snapshot task entry must be an object, got {raw!r}")
            task = Task.from_dict(raw)
            if task.id in tasks:
                raise ValueError(f"duplicate task id in snapshot: {task.id}")
            tasks[task.id] = task

        next_id = data.get("next_id", 0)
        if isinstance(next_id, bool) or not isinstance(next_id, int) or next_id < 0:
            raise ValueError(f"snapshot 'next_id' must be a non-negative integer, got {next_id!r}")
        if tasks:
            next_id = max(next_id, max(tasks) + 1)

        with self._lock:
            self._tasks = tasks
            self._next_id = next_id

        logger.info("TaskStore restored total=%d next_id=%d", len(tasks), next_id)
