# src/standup_tracker/logging_setup.py

"""
Logging for the stand-up console.

The console only shows what is worth reading next to the prompt. The file in
the data dir keeps everything, including the per-gesture sync phases.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "standup_tracker"
_FILE_HANDLER_NAME = "standup-file"

# Chatty package loggers and the lowest level they may print on the console.
CONSOLE_FLOORS: dict[str, int] = {
    "standup_tracker.tasks.sync_engine": logging.WARNING,
    "standup_tracker.tasks.coordinator": logging.WARNING,
    "standup_tracker.tasks.day_resolver": logging.WARNING,
}


def _under(name: str, prefix: str) -> bool:
    return name == prefix or name.startswith(prefix + ".")


class ConsoleFilter(logging.Filter):
    """
    Package records pass unless a floor raises the bar for their logger.
    Everything else (third-party libraries, py.warnings) needs ERROR.
    """

    def __init__(self, floors: dict[str, int] | None = None) -> None:
        super().__init__()
        self.floors = dict(CONSOLE_FLOORS if floors is None else floors)

    def filter(self, record: logging.LogRecord) -> bool:
        if not _under(record.name, PACKAGE_LOGGER):
            return record.levelno >= logging.ERROR
        for prefix, floor in self.floors.items():
            if _under(record.name, prefix):
                return record.levelno >= floor
        return True


def level_from_name(name: Any, default: int = logging.INFO) -> int:
    """'debug' -> DEBUG; unknown names fall back to default."""
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else default


def log_file_for(settings: Any) -> Path:
    data_dir = Path(getattr(settings, "data_dir", ".local/standup"))
    app_name = str(getattr(settings, "app_name", "") or "standup")
    return data_dir / f"{app_name}.log"


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(ConsoleFilter())
    return handler


def _file_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(str(path), encoding="utf-8")
    handler.set_name(_FILE_HANDLER_NAME)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging(settings: Any) -> Path:
    """
    Install the console and file handlers on the root logger.

    The console level comes from settings.log_level. Handlers from an earlier
    call are replaced, and our old log file is closed. Returns the log file path.
    """
    log_file = log_file_for(settings)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for old in list(root.handlers):
        root.removeHandler(old)
        if old.get_name() == _FILE_HANDLER_NAME:
            old.close()

    root.addHandler(_console_handler(level_from_name(getattr(settings, "log_level", "INFO")), formatter))
    root.addHandler(_file_handler(log_file, formatter))

    # warnings.warn(...) arrives as 'py.warnings'
    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return log_file
