# src/task_ledger/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.state import AppState
from ..rpc.operations import registry as operation_registry
from ..tasks.task_snapshot import save_snapshot

# (state, raw argument text after the command name, user_id, room_id) -> reply
CommandHandler = Callable[[AppState, str, str | None, str | None], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry shared by the console and Matrix connectors (/help, /call, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        room_id: str | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        The argument text is passed through untouched (not re-split), so JSON
        payloads keep their whitespace.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split(maxsplit=1)
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        raw_args = parts[1] if len(parts) > 1 else ""

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, raw_args, user_id, room_id)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def cmd_help(state: AppState, raw_args: str, user_id: str | None, room_id: str | None) -> str:
    return registry.build_help()


def cmd_ops(state: AppState, raw_args: str, user_id: str | None, room_id: str | None) -> str:
    return operation_registry.build_help()


def cmd_status(state: AppState, raw_args: str, user_id: str | None, room_id: str | None) -> str:
    settings = state.settings
    total = state.task_store.get_total_number_of_tasks()
    done = len(state.task_store.get_completed_tasks())
    snap = "ON" if getattr(settings, "snapshot_enabled", False) else "OFF"
    return (
        "Status:\n"
        f"  Tasks: {total} ({done} done)\n"
        f"  Snapshot on shutdown: {snap} ({getattr(settings, 'snapshot_path', '-')})"
    )


def cmd_call(state: AppState, raw_args: str, user_id: str | None, room_id: str | None) -> str:
    """
    /call <operation> [json-args]

    /call create_task {"title": "Buy milk", "description": "2% milk"}
    /call get_task [0]
    """
    if not raw_args.strip():
        return "Usage: /call <operation> [json-args]. Use /ops to list operations."

    logger.debug("Call from user_id=%s room_id=%s: %s", user_id, room_id, raw_args)
    return operation_registry.call_line(state.task_store, raw_args)


def cmd_snapshot(state: AppState, raw_args: str, user_id: str | None, room_id: str | None) -> str:
    path = getattr(state.settings, "snapshot_path", None)
    if not path:
        return "Snapshot path is not configured."
    try:
        save_snapshot(state.task_store, path)
    except Exception:
        logger.exception("Manual snapshot failed.")
        return "Snapshot failed (see log)."
    return f"Snapshot saved to {path}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("ops", cmd_ops, help_text="List remote-callable operations and their arguments.")
registry.register("status", cmd_status, help_text="Show task counts and snapshot settings.")
registry.register(
    "call", cmd_call, help_text="Invoke an operation: /call <operation> [json-args]."
)
registry.register("snapshot", cmd_snapshot, help_text="Write the task snapshot now.")
