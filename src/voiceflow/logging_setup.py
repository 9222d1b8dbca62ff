# src/voiceflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

APP_LOGGER = "voiceflow"

# Chatty below ERROR; they still reach the log file at WARNING.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable while a task list is printed between prompts.

    App records pass at the handler level; everything else (third-party
    libraries, captured `warnings.warn` as 'py.warnings') only from ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == APP_LOGGER or record.name.startswith(APP_LOGGER + "."):
            return True
        return record.levelno >= logging.ERROR


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """Map "debug" / "INFO" / "15" to a logging level; unknown names give `default`."""
    s = (name or "").strip().upper()
    if s.isdigit():
        return int(s)
    level = logging.getLevelName(s)
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/voiceflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 2_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Console handler (stderr, filtered) + rotating file handler with full
    detail at `<log_dir>/voiceflow.log`.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "voiceflow.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        str(log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
