# src/task_ledger/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from dataclasses import dataclass

from nio import AsyncClient, MatrixRoom, RoomMessageText

from ..cli.commands import registry as command_registry
from ..core.ports import OutboundMessenger
from ..core.state import AppState
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)

SYNC_TIMEOUT_MS = 30000


def _ms_now() -> int:
    return int(time.time() * 1000)


def _room_allowlist(settings_rooms: list[str]) -> set[str] | None:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


class MatrixMessenger:
    """OutboundMessenger backed by a nio AsyncClient."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def send_text(self, *, room_id: str, text: str) -> None:
        await self._client.room_send(
            room_id=room_id,
            message_type="m.room.message",
            content={"msgtype": "m.notice", "body": text},
        )


async def handle_room_message(
    state: AppState,
    messenger: OutboundMessenger,
    *,
    room_id: str,
    sender: str,
    body: str,
    stop_event: asyncio.Event | None = None,
) -> bool:
    """
    Route one room message through the command registry and post the reply.

    Returns True if a reply was sent. Plain chat (not starting with "/") is ignored,
    so the bot can sit in a normal room.

    Once stop_event is set nothing is dispatched: the shutdown snapshot may already
    be written, and a change acknowledged after it would be lost.
    """
    body = (body or "").strip()
    if not body.startswith("/"):
        return False

    if stop_event is not None and stop_event.is_set():
        logger.info("Shutting down, dropped command from %s in %s.", sender, room_id)
        return False

    try:
        resp = command_registry.handle(state, body, user_id=sender, room_id=room_id)
    except Exception:
        logger.exception("Command handler crashed.")
        resp = "Internal error while handling a command."

    if not resp:
        return False

    try:
        await messenger.send_text(room_id=room_id, text=resp)
    except Exception:
        logger.exception("Failed to send command reply to room %s.", room_id)
        return False
    return True


async def _sync_or_stop(client: AsyncClient, stop_event: asyncio.Event, *, full_state: bool) -> bool:
    """
    Run one long-poll sync, racing it against stop_event.

    Returns False if stop_event fired first; the in-flight sync is then cancelled
    so its callbacks never run. Sync errors propagate.
    """
    if stop_event.is_set():
        return False

    sync = asyncio.ensure_future(client.sync(timeout=SYNC_TIMEOUT_MS, full_state=full_state))
    stop = asyncio.ensure_future(stop_event.wait())
    try:
        await asyncio.wait({sync, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for fut in (sync, stop):
            if not fut.done():
                fut.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await stop
        with contextlib.suppress(asyncio.CancelledError):
            await sync

    if not sync.cancelled():
        sync.result()
    return not stop_event.is_set()


async def sync_until_stopped(client: AsyncClient, stop_event: asyncio.Event) -> None:
    while await _sync_or_stop(client, stop_event, full_state=False):
        pass


async def _run_matrix_bot(state: AppState, stop_event: asyncio.Event) -> None:
    """
    Matrix connector (async): init -> callbacks -> sync loop.

    Shutdown model:
    - main thread sets stop_event via loop.call_soon_threadsafe(stop_event.set)
    - the long-poll sync is raced against stop_event and cancelled when it fires,
      so the thread exits before main writes the shutdown snapshot.
    """
    settings = state.settings

    startup_ts = _ms_now()
    allowed_rooms = _room_allowlist(getattr(settings, "matrix_rooms", []) or [])
    logger.info("Matrix allowed_rooms=%s", allowed_rooms if allowed_rooms is not None else "ALL")

    client = await create_matrix_client(settings)
    if client is None:
        logger.error("Matrix client creation failed; connector will stop.")
        return

    messenger = MatrixMessenger(client)

    async def message_callback(room: MatrixRoom, event: RoomMessageText) -> None:
        # Ignore history replayed by the first sync.
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= startup_ts:
            return

        if event.sender == client.user_id:
            return

        if allowed_rooms is not None and room.room_id not in allowed_rooms:
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, event.body)
        await handle_room_message(
            state,
            messenger,
            room_id=room.room_id,
            sender=event.sender,
            body=event.body,
            stop_event=stop_event,
        )

    client.add_event_callback(message_callback, RoomMessageText)

    try:
        logger.info("Matrix initial sync...")
        if not await _sync_or_stop(client, stop_event, full_state=True):
            return
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))

        await sync_until_stopped(client, stop_event)

    except asyncio.CancelledError:
        logger.info("Matrix connector cancelled.")
    except Exception:
        logger.exception("Matrix connector crashed.")
    finally:
        with contextlib.suppress(Exception):
            await client.close()
        logger.info("Matrix connector stopped.")


@dataclass
class MatrixBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            # Loop already closed: the connector has stopped on its own.
            logger.debug("Failed to signal Matrix stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_matrix_in_background(state: AppState) -> MatrixBackgroundRunner | None:
    """
    Start the Matrix connector in a background thread with its own event loop,
    so the blocking console REPL can run in the main thread.
    """
    settings = state.settings
    if not getattr(settings, "matrix_homeserver", "") or not getattr(settings, "matrix_user_id", ""):
        logger.error("Matrix is enabled but not configured (homeserver/user_id).")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_matrix_bot(state, stop_event))
        finally:
            loop.close()

    t = threading.Thread(target=runner, name="matrix-connector", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Matrix thread did not initialize properly.")
        return None

    logger.info("Matrix background thread started.")
    return MatrixBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
