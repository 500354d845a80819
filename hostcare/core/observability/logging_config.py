"""
Logging configuration — one call at CLI start, nowhere else.

Core modules only ever do ``logging.getLogger(__name__)`` (or accept a
logger); handlers and formats are decided here. The console gets a
terse format at WARNING and progressively more context as the level
drops. A file handler, when requested, always gets the full format and
may run at a lower level than the console.
"""

from __future__ import annotations

import logging
import sys
from datetime import date
from pathlib import Path

# (highest level the format applies to, format, datefmt); first match wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(levelname)-7s %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(levelname)s: %(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


def daily_log_file(log_dir: str | Path, today: date | None = None) -> Path:
    """``<log_dir>/hostcare-YYYY-MM-DD.log`` for ``today``."""
    return Path(log_dir) / f"hostcare-{(today or date.today()).isoformat()}.log"


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next((f, d) for limit, f, d in _CONSOLE_FORMATS if level <= limit)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str | Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    log_dir: str | None = None,
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Replaces any handlers already on the root logger, so calling it
    twice does not duplicate output.

    Args:
        level: Console level name.
        log_file: Explicit log file path.
        log_file_level: File level name; defaults to ``level``.
        log_dir: Directory for a dated log file, used only when
            ``log_file`` is not given.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]

    target: str | Path | None = log_file or None
    dir_error: OSError | None = None
    if target is None and log_dir:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            target = daily_log_file(log_dir)
        except OSError as e:
            dir_error = e

    if target is not None:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(target, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if dir_error is not None:
        root.warning("Cannot create log directory %s: %s", log_dir, dir_error)

    # Handler errors are never raised into callers
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean WARNING."""
    name = (level or "WARNING").strip().upper()
    numeric = logging.getLevelName(_LEVEL_ALIASES.get(name, name))
    return numeric if isinstance(numeric, int) else logging.WARNING
