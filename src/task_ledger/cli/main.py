# src/task_ledger/cli/main.py

"""
`task-ledger` entrypoint.

Lifetime of the ledger process:
    restore snapshot -> serve (console and/or Matrix) -> stop Matrix -> save snapshot

The snapshot is only written after the Matrix thread has exited, so no remote
call can be acknowledged after the state on disk was captured.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import TYPE_CHECKING

from ..cli.bootstrap import create_initial_state, persist_tasks, restore_tasks
from ..config import Settings, get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

if TYPE_CHECKING:
    from ..connectors.matrix_connector import MatrixBackgroundRunner

logger = logging.getLogger(__name__)

MATRIX_JOIN_TIMEOUT = 10.0


def _wait_for_stop_signal() -> None:
    """Headless mode: block until SIGINT/SIGTERM."""
    stop = threading.Event()

    def _on_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _on_signal)
        except (ValueError, OSError):
            logger.debug("Cannot install handler for %s.", sig, exc_info=True)

    logger.info("Console disabled; serving Matrix only. Press Ctrl+C to stop.")
    stop.wait()


def _start_matrix(state: AppState, settings: Settings) -> MatrixBackgroundRunner | None:
    if not settings.matrix_enabled:
        return None
    from ..connectors.matrix_connector import start_matrix_in_background

    return start_matrix_in_background(state)


def _stop_matrix(runner: MatrixBackgroundRunner | None) -> None:
    if runner is None:
        return
    runner.stop()
    runner.join(timeout=MATRIX_JOIN_TIMEOUT)
    if runner.thread.is_alive():
        logger.warning("Matrix thread still running after %.0fs; snapshot may miss its last calls.", MATRIX_JOIN_TIMEOUT)


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    logger.info("Starting %s (data_dir=%s)", settings.app_name, settings.data_dir)

    state = create_initial_state(settings=settings)
    restore_tasks(state)

    matrix_runner = _start_matrix(state, settings)
    try:
        if settings.console_enabled:
            # The REPL handles Ctrl+C / EOF itself.
            run_console_loop(state)
        else:
            _wait_for_stop_signal()
    finally:
        _stop_matrix(matrix_runner)
        persist_tasks(state)
        logger.info("Stopped with %d task(s).", state.task_store.get_total_number_of_tasks())


if __name__ == "__main__":
    main()
