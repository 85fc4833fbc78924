# src/task_ledger/rpc/operations.py

"""
Remote-callable operation surface.

Each operation has a name, a list of typed parameters and a handler that calls
into a TaskRepo. Connectors hand us "<operation> [json-args]" lines and send
back the JSON envelope produced by call_line():

    {"ok": true,  "result": ...}
    {"ok": false, "error": "..."}

Only malformed calls are errors. Store-level misses are ordinary results:
a missing task is `null`, a failed update/delete is `false`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from ..core.ports import TaskRepo
from ..tasks.task_models import U64_MAX, Task

logger = logging.getLogger(__name__)

ParamKind = Literal["u64", "text", "bool"]
Handler = Callable[[TaskRepo, dict[str, Any]], Any]


class OperationError(Exception):
    """A call that could not be dispatched (never raised for store misses)."""


class UnknownOperation(OperationError):
    pass


class InvalidArguments(OperationError):
    pass


@dataclass(frozen=True, slots=True)
class Param:
    name: str
    kind: ParamKind
    optional: bool = False

    def coerce(self, op_name: str, value: Any) -> Any:
        if value is None:
            if self.optional:
                return None
            raise InvalidArguments(f"{op_name}: '{self.name}' is required")

        if self.kind == "u64":
            # bool is an int subclass; reject it explicitly.
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidArguments(f"{op_name}: '{self.name}' must be an unsigned integer")
            if not 0 <= value <= U64_MAX:
                raise InvalidArguments(f"{op_name}: '{self.name}' is out of u64 range")
            return value

        if self.kind == "text":
            if not isinstance(value, str):
                raise InvalidArguments(f"{op_name}: '{self.name}' must be a string")
            return value

        if not isinstance(value, bool):
            raise InvalidArguments(f"{op_name}: '{self.name}' must be a boolean")
        return value

    def describe(self) -> str:
        return f"{self.name}: {self.kind}{'?' if self.optional else ''}"


@dataclass(frozen=True, slots=True)
class Operation:
    name: str
    params: tuple[Param, ...]
    handler: Handler
    help_text: str

    def bind(self, args: Any) -> dict[str, Any]:
        """Map a JSON object (by name), array (positional) or null onto validated kwargs."""
        if args is None:
            raw: dict[str, Any] = {}
        elif isinstance(args, list):
            if len(args) > len(self.params):
                raise InvalidArguments(
                    f"{self.name}: expected at most {len(self.params)} argument(s), got {len(args)}"
                )
            raw = {p.name: v for p, v in zip(self.params, args)}
        elif isinstance(args, Mapping):
            known = {p.name for p in self.params}
            unknown = sorted(set(args) - known)
            if unknown:
                raise InvalidArguments(f"{self.name}: unknown argument(s): {', '.join(unknown)}")
            raw = dict(args)
        else:
            raise InvalidArguments(f"{self.name}: arguments must be a JSON object or array")

        return {p.name: p.coerce(self.name, raw.get(p.name)) for p in self.params}

    def signature(self) -> str:
        return f"{self.name}({', '.join(p.describe() for p in self.params)})"


def to_wire(value: Any) -> Any:
    """Convert handler results (Task, list[Task], scalars) into JSON-ready values."""
    if isinstance(value, Task):
        return value.to_dict()
    if isinstance(value, list):
        return [to_wire(v) for v in value]
    return value


class OperationRegistry:
    def __init__(self) -> None:
        self._ops: dict[str, Operation] = {}

    def register(
        self,
        name: str,
        params: list[Param],
        handler: Handler,
        help_text: str,
    ) -> None:
        self._ops[name] = Operation(name=name, params=tuple(params), handler=handler, help_text=help_text)

    def get(self, name: str) -> Operation | None:
        return self._ops.get(name)

    def names(self) -> list[str]:
        return list(self._ops)

    def dispatch(self, repo: TaskRepo, name: str, args: Any = None) -> Any:
        op = self._ops.get(name)
        if op is None:
            raise UnknownOperation(f"Unknown operation: {name}")
        kwargs = op.bind(args)
        return to_wire(op.handler(repo, kwargs))

    def call_line(self, repo: TaskRepo, line: str) -> str:
        """
        Handle "<operation> [json-args]" and return the JSON reply envelope.

        Never raises for malformed input; OperationError becomes {"ok": false}.
        """
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return _envelope_error("Empty call. Expected: <operation> [json-args]")

        name = parts[0]
        raw_args = parts[1] if len(parts) > 1 else ""

        try:
            args = json.loads(raw_args) if raw_args.strip() else None
        except json.JSONDecodeError as e:
            logger.info("Rejected call %s: bad JSON args (%s)", name, e)
            return _envelope_error(f"{name}: arguments are not valid JSON ({e.msg})")
        except (ValueError, RecursionError) as e:
            # Nesting deep enough to exhaust the decoder's recursion limit.
            logger.info("Rejected call %s: undecodable JSON args (%s)", name, type(e).__name__)
            return _envelope_error(f"{name}: arguments could not be decoded")

        try:
            result = self.dispatch(repo, name, args)
        except OperationError as e:
            logger.info("Rejected call %s: %s", name, e)
            return _envelope_error(str(e))

        logger.debug("Call %s ok", name)
        return json.dumps({"ok": True, "result": result}, ensure_ascii=False)

    def build_help(self) -> str:
        lines = ["Available operations:"]
        for op in self._ops.values():
            lines.append(f"  {op.signature()} - {op.help_text}")
        return "\n".join(lines)


def _envelope_error(message: str) -> str:
    return json.dumps({"ok": False, "error": message}, ensure_ascii=False)


registry = OperationRegistry()

_ID = Param("id", "u64")


# ---- core CRUD ----

registry.register(
    "create_task",
    [Param("title", "text"), Param("description", "text"), Param("is_important", "bool", optional=True)],
    lambda repo, a: repo.create_task(a["title"], a["description"], a["is_important"]),
    "Create a task; returns its id.",
)
registry.register(
    "get_task",
    [_ID],
    lambda repo, a: repo.get_task(a["id"]),
    "Get one task, or null if it does not exist.",
)
registry.register(
    "get_all_tasks",
    [],
    lambda repo, a: repo.get_all_tasks(),
    "List every task (order unspecified).",
)
registry.register(
    "update_task_status",
    [_ID, Param("title", "text"), Param("description", "text"), Param("done", "bool")],
    lambda repo, a: repo.update_task_status(a["id"], a["title"], a["description"], a["done"]),
    "Overwrite title, description and done; false if the task does not exist.",
)
registry.register(
    "update_task",
    [
        _ID,
        Param("title", "text", optional=True),
        Param("description", "text", optional=True),
        Param("is_important", "bool", optional=True),
    ],
    lambda repo, a: repo.update_task(
        a["id"], title=a["title"], description=a["description"], is_important=a["is_important"]
    ),
    "Update only the supplied fields (done is untouched); false if the task does not exist.",
)
registry.register(
    "delete_task",
    [_ID],
    lambda repo, a: repo.delete_task(a["id"]),
    "Delete a task; false if it does not exist.",
)
registry.register(
    "search_task_by_status",
    [Param("done", "bool")],
    lambda repo, a: repo.search_task_by_status(a["done"]),
    "List tasks whose done flag matches.",
)

# ---- flag shortcuts ----

registry.register(
    "mark_task_as_done",
    [_ID],
    lambda repo, a: repo.mark_task_as_done(a["id"]),
    "Set done=true.",
)
registry.register(
    "reset_task_status",
    [_ID],
    lambda repo, a: repo.reset_task_status(a["id"]),
    "Set done=false.",
)
registry.register(
    "mark_task_as_important",
    [_ID],
    lambda repo, a: repo.mark_task_as_important(a["id"]),
    "Set is_important=true.",
)
registry.register(
    "toggle_task_importance",
    [_ID],
    lambda repo, a: repo.toggle_task_importance(a["id"]),
    "Flip is_important.",
)

# ---- queries ----

registry.register(
    "get_completed_tasks",
    [],
    lambda repo, a: repo.get_completed_tasks(),
    "List done tasks.",
)
registry.register(
    "get_incomplete_tasks",
    [],
    lambda repo, a: repo.get_incomplete_tasks(),
    "List tasks that are not done.",
)
registry.register(
    "get_important_tasks",
    [],
    lambda repo, a: repo.get_important_tasks(),
    "List important tasks.",
)
registry.register(
    "get_tasks_by_importance_status",
    [Param("is_important", "bool")],
    lambda repo, a: repo.get_tasks_by_importance_status(a["is_important"]),
    "List tasks whose is_important flag matches.",
)
registry.register(
    "get_tasks_by_title",
    [Param("title", "text")],
    lambda repo, a: repo.get_tasks_by_title(a["title"]),
    "List tasks with exactly this title.",
)
registry.register(
    "get_tasks_by_description",
    [Param("description", "text")],
    lambda repo, a: repo.get_tasks_by_description(a["description"]),
    "List tasks with exactly this description.",
)
registry.register(
    "get_tasks_created_after",
    [Param("timestamp", "u64")],
    lambda repo, a: repo.get_tasks_created_after(a["timestamp"]),
    "List tasks created strictly after a ns timestamp.",
)
registry.register(
    "get_tasks_updated_after",
    [Param("timestamp", "u64")],
    lambda repo, a: repo.get_tasks_updated_after(a["timestamp"]),
    "List tasks updated strictly after a ns timestamp.",
)
registry.register(
    "get_total_number_of_tasks",
    [],
    lambda repo, a: repo.get_total_number_of_tasks(),
    "Count stored tasks.",
)
registry.register(
    "clear_completed_tasks",
    [],
    lambda repo, a: repo.clear_completed_tasks(),
    "Delete every done task; returns how many were removed.",
)
