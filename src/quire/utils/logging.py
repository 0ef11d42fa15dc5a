"""Log setup for Quire: a rotating log file, an optional console, and gate tracing.

Every coordination decision that skips an action logs the reason as a
``gate=<name>`` token (``gate=classifier``, ``gate=config:linter``,
``gate=suppressed``, ``gate=no-loop`` ...). :class:`GateFilter` lifts that
token into a ``gate`` record attribute, so the log line carries it as its own
column and ``grep '| config:linter |'`` finds every lint the configuration
turned off.

Skip decisions are logged at DEBUG. ``trace_gates=True`` opens the
``quire.coordination`` loggers at DEBUG without making the rest of the
process verbose.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
from pathlib import Path

__all__ = ["GateFilter", "setup_logging", "reset_logging", "get_log_path"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(gate)-16s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
COORDINATION_LOGGER = "quire.coordination"
NO_GATE = "-"

_DEFAULT_LOG_DIR = Path.home() / ".quire" / "logs"
_LOG_FILE_NAME = "quire.log"
_GATE_TOKEN = re.compile(r"\bgate=([\w:.-]+)")
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "PySide6")

_installed: list[logging.Handler] = []
_log_path: Path | None = None


class GateFilter(logging.Filter):
    """Tags each record with the gate named in its message, or ``-`` when none is."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "gate"):
            match = _GATE_TOKEN.search(record.getMessage())
            record.gate = match.group(1) if match else NO_GATE
        return True


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    trace_gates: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install Quire's handlers on the root logger and return the log file path.

    Repeated calls are no-ops unless ``force`` is given, in which case the
    handlers installed by the previous call are replaced. Handlers installed
    by anyone else are left alone.
    """

    global _log_path
    if _installed and not force and _log_path is not None:
        return _log_path
    reset_logging()

    target_dir = Path(log_dir or os.environ.get("QUIRE_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILE_NAME

    handler_level = min(level, logging.DEBUG) if trace_gates else level
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    root = logging.getLogger()
    for handler in handlers:
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        handler.addFilter(GateFilter())
        root.addHandler(handler)
        _installed.append(handler)
    root.setLevel(level)

    logging.getLogger(COORDINATION_LOGGER).setLevel(logging.DEBUG if trace_gates else logging.NOTSET)
    quiet_level = max(level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
    logging.captureWarnings(True)

    _log_path = log_path
    return log_path


def reset_logging() -> None:
    """Remove and close the handlers installed by :func:`setup_logging`."""

    global _log_path
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()
    logging.getLogger(COORDINATION_LOGGER).setLevel(logging.NOTSET)
    _log_path = None


def get_log_path() -> Path | None:
    """Return the active log file, if :func:`setup_logging` has run."""

    return _log_path
