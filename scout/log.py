"""Logging for the scout: console output plus an optional daily file.

``LOG_LEVEL`` sets the level (default INFO). ``SCOUT_LOG_FILE=0`` turns off
the ``logs/scout_YYYY-MM-DD.log`` file, which always records DEBUG.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
# HTTP client libraries log every request at INFO
_CLIENT_LOGGERS = ("httpx", "httpcore", "openai")
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Named logger; the first call installs the scout's root handlers."""
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def _file_logging_enabled() -> bool:
    return os.environ.get("SCOUT_LOG_FILE", "1").strip().lower() not in ("0", "false", "no")


def _daily_file_handler() -> logging.Handler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    path = LOG_DIR / f"scout_{datetime.now().strftime('%Y-%m-%d')}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    return handler


def _configure() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # Host app (Streamlit, pytest) already owns the root handlers
    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if level > logging.DEBUG:
        for name in _CLIENT_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    if not _file_logging_enabled():
        return
    try:
        handler = _daily_file_handler()
    except OSError as exc:
        root.warning("File logging disabled: %s", exc)
        return
    handler.setFormatter(formatter)
    root.addHandler(handler)
