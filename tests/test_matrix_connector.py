# tests/test_matrix_connector.py

from __future__ import annotations

import asyncio
import json

import pytest

from task_ledger.connectors.matrix_connector import (
    _room_allowlist,
    handle_room_message,
    sync_until_stopped,
)

from .fakes import FakeMessenger


@pytest.mark.asyncio
async def test_command_reply_is_posted_to_room(state) -> None:
    messenger = FakeMessenger()

    sent = await handle_room_message(
        state,
        messenger,
        room_id="!r:hs",
        sender="@u:hs",
        body='/call create_task {"title": "Buy milk", "description": "2% milk"}',
    )

    assert sent is True
    assert messenger.sent[0].room_id == "!r:hs"
    assert json.loads(messenger.sent[0].text) == {"ok": True, "result": 0}
    assert state.task_store.get_task(0).description == "2% milk"


@pytest.mark.asyncio
async def test_plain_chat_is_ignored(state) -> None:
    messenger = FakeMessenger()
    assert await handle_room_message(state, messenger, room_id="!r:hs", sender="@u:hs", body="hi") is False
    assert messenger.sent == []


@pytest.mark.asyncio
async def test_send_failure_is_reported_not_raised(state) -> None:
    messenger = FakeMessenger(fail=True)
    sent = await handle_room_message(state, messenger, room_id="!r:hs", sender="@u:hs", body="/help")
    assert sent is False


def test_room_allowlist() -> None:
    assert _room_allowlist([]) is None
    assert _room_allowlist([" !a:hs ", "", "!b:hs"]) == {"!a:hs", "!b:hs"}


class HangingSyncClient:
    """Stands in for nio's AsyncClient: every sync long-polls until cancelled."""

    def __init__(self) -> None:
        self.started = 0
        self.cancelled = 0

    async def sync(self, *, timeout: int, full_state: bool) -> None:
        self.started += 1
        try:
            await asyncio.sleep(timeout / 1000)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise


class FailingSyncClient:
    async def sync(self, *, timeout: int, full_state: bool) -> None:
        raise ConnectionError("homeserver unreachable")


@pytest.mark.asyncio
async def test_stop_interrupts_inflight_sync() -> None:
    client = HangingSyncClient()
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    loop.call_later(0.01, stop_event.set)

    await asyncio.wait_for(sync_until_stopped(client, stop_event), timeout=2.0)

    assert client.started == 1
    assert client.cancelled == 1


@pytest.mark.asyncio
async def test_no_sync_once_stopped() -> None:
    client = HangingSyncClient()
    stop_event = asyncio.Event()
    stop_event.set()

    await sync_until_stopped(client, stop_event)
    assert client.started == 0


@pytest.mark.asyncio
async def test_sync_errors_propagate() -> None:
    with pytest.raises(ConnectionError):
        await sync_until_stopped(FailingSyncClient(), asyncio.Event())


@pytest.mark.asyncio
async def test_commands_refused_after_stop(state) -> None:
    messenger = FakeMessenger()
    stop_event = asyncio.Event()
    stop_event.set()

    sent = await handle_room_message(
        state,
        messenger,
        room_id="!r:hs",
        sender="@u:hs",
        body='/call create_task ["late", "write"]',
        stop_event=stop_event,
    )

    assert sent is False
    assert messenger.sent == []
    assert state.task_store.get_total_number_of_tasks() == 0
