"""Logging setup shared by the CLI, the API server and the dashboard."""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

FILE_HANDLER_NAME = "ladderdesk-file"
CONSOLE_HANDLER_NAME = "ladderdesk-console"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

# Chatty client libraries stay at WARNING unless the desk runs at DEBUG.
QUIET_LOGGERS = ("urllib3", "werkzeug", "watchdog")


def _install(root: logging.Logger, handler: logging.Handler, name: str) -> logging.Handler:
    """Attach ``handler`` under ``name``, replacing a handler of the same name."""
    for existing in list(root.handlers):
        if existing.get_name() == name:
            root.removeHandler(existing)
            existing.close()
    handler.set_name(name)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    return handler


def setup_logging(log_path: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """Send desk logs to a rotating file and the console.

    ``log_path`` and ``level`` fall back to ``LADDERDESK_LOG_FILE`` and
    ``LADDERDESK_LOG_LEVEL``. Calling this again (Streamlit reruns, a second
    ``create_app``) swaps the desk's handlers instead of stacking new ones.
    The file always records INFO and above; the console follows ``level``.
    """
    log_file = Path(log_path or os.getenv("LADDERDESK_LOG_FILE", "ladderdesk.log"))
    log_file.parent.mkdir(parents=True, exist_ok=True)
    console_level = logging.getLevelName((level or os.getenv("LADDERDESK_LOG_LEVEL", "INFO")).upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(min(console_level, logging.INFO))

    file_handler = _install(
        root,
        RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"),
        FILE_HANDLER_NAME,
    )
    file_handler.setLevel(min(console_level, logging.INFO))
    console_handler = _install(root, logging.StreamHandler(), CONSOLE_HANDLER_NAME)
    console_handler.setLevel(console_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if console_level <= logging.DEBUG else logging.WARNING)
    return root
