# tests/test_operations.py

from __future__ import annotations

import json

import pytest

from task_ledger.rpc.operations import (
    InvalidArguments,
    OperationRegistry,
    Param,
    UnknownOperation,
    registry,
)
from task_ledger.tasks.task_store import TaskStore


def _call(store: TaskStore, line: str) -> dict:
    return json.loads(registry.call_line(store, line))


def test_core_operations_are_registered() -> None:
    for name in (
        "create_task",
        "get_task",
        "get_all_tasks",
        "update_task_status",
        "update_task",
        "delete_task",
        "search_task_by_status",
    ):
        assert registry.get(name) is not None, name


def test_dispatch_by_name_and_by_position(store: TaskStore) -> None:
    assert registry.dispatch(store, "create_task", {"title": "a", "description": "b"}) == 0
    assert registry.dispatch(store, "create_task", ["c", "d", True]) == 1

    task = registry.dispatch(store, "get_task", {"id": 1})
    assert task["title"] == "c"
    assert task["is_important"] is True
    assert set(task) >= {"id", "title", "description", "done"}


def test_missing_task_is_null_not_error(store: TaskStore) -> None:
    assert _call(store, "get_task [5]") == {"ok": True, "result": None}
    assert _call(store, 'update_task_status {"id": 5, "title": "", "description": "", "done": true}') == {
        "ok": True,
        "result": False,
    }
    assert _call(store, "delete_task [5]") == {"ok": True, "result": False}


def test_walkthrough_over_the_wire(store: TaskStore) -> None:
    assert _call(store, 'create_task {"title": "Buy milk", "description": "2% milk"}')["result"] == 0
    assert _call(store, 'create_task ["Walk dog", "evening"]')["result"] == 1
    assert _call(store, 'update_task_status [0, "Buy milk", "2% milk", true]')["result"] is True

    found = _call(store, "search_task_by_status [true]")["result"]
    assert [(t["id"], t["done"]) for t in found] == [(0, True)]

    assert _call(store, 'delete_task {"id": 1}')["result"] is True
    assert [t["id"] for t in _call(store, "get_all_tasks")["result"]] == [0]


def test_partial_update_accepts_null_and_omitted(store: TaskStore) -> None:
    store.create_task("a", "b")
    assert _call(store, 'update_task {"id": 0, "title": null}')["result"] is True
    assert _call(store, 'update_task {"id": 0, "description": "  spaced  "}')["result"] is True
    task = store.get_task(0)
    assert task is not None
    assert (task.title, task.description, task.done) == ("a", "  spaced  ", False)


@pytest.mark.parametrize(
    "line",
    [
        "get_task",  # missing id
        'get_task ["0"]',
        "get_task [true]",
        "get_task [-1]",
        f"get_task [{2**64}]",
        'create_task {"title": "a"}',
        'create_task {"title": 1, "description": "b"}',
        'create_task {"title": "a", "description": "b", "owner": "x"}',
        'search_task_by_status ["yes"]',
        "get_all_tasks [1]",
        'get_task "0"',
        "get_task {not json",
        "get_task " + "[" * 100_000 + "]" * 100_000,
    ],
    ids=lambda line: line if len(line) < 40 else "deeply-nested",
)
def test_malformed_calls_are_rejected(store: TaskStore, line: str) -> None:
    reply = _call(store, line)
    assert reply["ok"] is False
    assert reply["error"]
    assert store.get_total_number_of_tasks() == 0


def test_u64_bounds_accepted(store: TaskStore) -> None:
    assert _call(store, f"get_task [{2**64 - 1}]") == {"ok": True, "result": None}
    assert _call(store, "get_tasks_created_after [0]") == {"ok": True, "result": []}


def test_unknown_operation(store: TaskStore) -> None:
    with pytest.raises(UnknownOperation):
        registry.dispatch(store, "drop_everything")
    reply = _call(store, "drop_everything")
    assert reply["ok"] is False
    assert "Unknown operation" in reply["error"]


def test_empty_call_line(store: TaskStore) -> None:
    assert _call(store, "   ")["ok"] is False


def test_supplemental_operations_roundtrip(store: TaskStore) -> None:
    _call(store, 'create_task ["a", "x"]')
    _call(store, 'create_task ["b", "x"]')
    assert _call(store, "mark_task_as_done [0]")["result"] is True
    assert _call(store, "toggle_task_importance [1]")["result"] is True
    assert [t["id"] for t in _call(store, "get_important_tasks")["result"]] == [1]
    assert [t["id"] for t in _call(store, 'get_tasks_by_description ["x"]')["result"]] == [0, 1]
    assert _call(store, "get_total_number_of_tasks")["result"] == 2
    assert _call(store, "clear_completed_tasks")["result"] == 1
    assert [t["id"] for t in _call(store, "get_incomplete_tasks")["result"]] == [1]


def test_custom_registry_binding_rules(store: TaskStore) -> None:
    reg = OperationRegistry()
    reg.register(
        "echo",
        [Param("n", "u64"), Param("label", "text", optional=True)],
        lambda repo, a: a,
        "echo args",
    )
    assert reg.dispatch(store, "echo", [3]) == {"n": 3, "label": None}
    assert reg.dispatch(store, "echo", {"n": 3, "label": "x"}) == {"n": 3, "label": "x"}
    with pytest.raises(InvalidArguments):
        reg.dispatch(store, "echo", [1, "a", "extra"])
    with pytest.raises(InvalidArguments):
        reg.dispatch(store, "echo", 5)
    assert "echo(n: u64, label: text?)" in reg.build_help()
