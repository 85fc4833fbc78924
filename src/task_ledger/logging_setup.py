# src/task_ledger/logging_setup.py

"""
Logging layout for the ledger process (all files under settings.data_dir):

- stderr:          our INFO+ (or TASK_LEDGER_LOG_LEVEL); Matrix and libraries only when they go wrong
- task-ledger.log: everything at DEBUG
- ledger.log:      only operation calls (accepted/rejected) and store mutations, at DEBUG;
                   a readable trail of what callers did to the tasks
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any

# Loggers whose records also go to ledger.log.
LEDGER_LOGGERS = ("task_ledger.rpc", "task_ledger.tasks")


def _as_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


class PrefixThresholdFilter(logging.Filter):
    """
    Per-logger-prefix minimum level for a single handler.

    The longest matching prefix wins; names matching no prefix need `default`.
    """

    def __init__(self, thresholds: dict[str, int | str], default: int | str = logging.ERROR) -> None:
        super().__init__()
        self._thresholds = sorted(
            ((prefix, _as_level(level)) for prefix, level in thresholds.items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )
        self._default = _as_level(default)

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, level in self._thresholds:
            if record.name == prefix or record.name.startswith(prefix + "."):
                return record.levelno >= level
        return record.levelno >= self._default


def build_logging_config(*, log_dir: Path, console_level: str = "INFO") -> dict[str, Any]:
    return {
        "version": 1,
        # Module-level loggers already exist by the time main() runs.
        "disable_existing_loggers": False,
        "formatters": {
            "full": {
                "format": "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "ledger": {
                "format": "%(asctime)s.%(msecs)03d %(threadName)s %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "filters": {
            "console_noise": {
                "()": PrefixThresholdFilter,
                "thresholds": {
                    "task_ledger": logging.DEBUG,
                    # Background thread; its INFO chatter would interleave with the REPL prompt.
                    "task_ledger.connectors.matrix_connector": logging.WARNING,
                    "task_ledger.connectors.matrix_client": logging.WARNING,
                },
                "default": logging.ERROR,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": console_level,
                "formatter": "full",
                "filters": ["console_noise"],
            },
            "file": {
                "class": "logging.FileHandler",
                "filename": str(log_dir / "task-ledger.log"),
                "encoding": "utf-8",
                "level": "DEBUG",
                "formatter": "full",
            },
            "ledger": {
                "class": "logging.FileHandler",
                "filename": str(log_dir / "ledger.log"),
                "encoding": "utf-8",
                "level": "DEBUG",
                "formatter": "ledger",
            },
        },
        "loggers": {
            **{name: {"level": "DEBUG", "handlers": ["ledger"]} for name in LEDGER_LOGGERS},
            "nio": {"level": "INFO"},
            "aiohttp": {"level": "WARNING"},
        },
        "root": {"level": "DEBUG", "handlers": ["console", "file"]},
    }


def setup_logging(settings) -> None:
    """Install the layout above. Call once from main(), before the first log line."""
    log_dir = Path(getattr(settings, "data_dir", ".local/task-ledger"))
    log_dir.mkdir(parents=True, exist_ok=True)

    level = str(getattr(settings, "log_level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    logging.config.dictConfig(build_logging_config(log_dir=log_dir, console_level=level))
    logging.captureWarnings(True)
