# src/pluto_todo/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "pluto.log"

_APP_PREFIX = "pluto_todo."
_STORAGE_PREFIX = "pluto_todo.storage."


def level_from_name(name: str | int | None, default: int = logging.INFO) -> int:
    """Map PLUTO_LOG_LEVEL ("debug", "WARNING", "10", ...) to a logging level."""
    if isinstance(name, int):
        return name
    raw = str(name or "").strip().upper()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console rules:
    - pluto_todo logs pass, except storage, which logs every mutation at
      DEBUG and only shows from ``storage_level`` up
    - captured warnings and third-party loggers only at ERROR+
    """

    def __init__(self, storage_level: int = logging.INFO) -> None:
        super().__init__()
        self.storage_level = storage_level

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(_STORAGE_PREFIX):
            return record.levelno >= self.storage_level
        if name.startswith(_APP_PREFIX):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/pluto",
    console_level: str | int = logging.INFO,
    storage_console_level: int = logging.INFO,
) -> Path:
    """
    Route everything to <log_dir>/pluto.log at DEBUG and a filtered view to
    stderr at ``console_level``. Replaces any handlers already on the root
    logger, so call it once at startup. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level_from_name(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter(storage_console_level))
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
