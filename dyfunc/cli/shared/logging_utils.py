"""Loguru setup for CLI commands: console level plus an optional rotating file."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from dyfunc.config.loader import get_data_dir

_SINK_IDS: dict[str, int] = {}
_CONSOLE_FORMAT = "<dim>{time:HH:mm:ss.SSS}</dim> | <level>{level: <8}</level> | <level>{message}</level>"


def log_dir() -> Path:
    return get_data_dir() / "logs"


def configure_console_logging(level: str = "INFO") -> None:
    """Replace loguru's default stderr sink with one at ``level``."""
    logger.remove()
    _SINK_IDS.clear()
    logger.add(sys.stderr, level=level.upper(), format=_CONSOLE_FORMAT)


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Add (once per name) a rotating file sink under ``~/.dyfunc/logs``."""
    log_path = log_dir() / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _SINK_IDS[name] = logger.add(
        str(log_path),
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    return log_path
