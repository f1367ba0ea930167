"""Logging for catalog sync runs.

Humans get a short console line per message. Every message also lands in a
daily JSON-lines file under ``logs/`` so a run can be replayed afterwards;
milestones logged with ``log_sync_event`` carry an ``event_type`` and their
data as top-level keys of the JSON object.
"""

import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "setup_logging",
    "get_logger",
    "log_sync_event",
    "LOG_DIR",
    "ROOT_LOGGER",
]

ROOT_LOGGER = "catalog_sync"

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"

# LogRecord attributes used to carry structured events
_EVENT_ATTR = "event_type"
_DATA_ATTR = "event_data"


class JSONLineFormatter(logging.Formatter):
    """Renders a record as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event_type = getattr(record, _EVENT_ATTR, None)
        if event_type:
            entry["event_type"] = event_type
            entry.update(getattr(record, _DATA_ATTR, None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class DailyJSONLHandler(logging.FileHandler):
    """Appends to ``<prefix>_<YYYYMMDD>.jsonl``, switching files at midnight."""

    def __init__(self, log_dir: Path, prefix: str = "sync"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        self._day = date.today()
        super().__init__(self._path_for(self._day), mode="a", encoding="utf-8", delay=True)
        self.setFormatter(JSONLineFormatter())

    def _path_for(self, day: date) -> str:
        return str(self.log_dir / f"{self.prefix}_{day:%Y%m%d}.jsonl")

    def emit(self, record: logging.LogRecord) -> None:
        today = date.today()
        if today != self._day:
            self.acquire()
            try:
                self.close()
                self._day = today
                self.baseFilename = self._path_for(today)
            finally:
                self.release()
        super().emit(record)


class LevelColorFormatter(logging.Formatter):
    """Console format with the level name colored."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool):
        super().__init__("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
        self.use_color = use_color

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = self.COLORS.get(record.levelname) if self.use_color else None
        if color:
            line = line.replace(f"[{record.levelname}]", f"[{color}{record.levelname}{self.RESET}]", 1)
        return line


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Configure the ``catalog_sync`` logger.

    Args:
        level: Console level (default: INFO). The JSONL file always gets DEBUG.
        log_to_file: Write the daily JSONL file
        log_to_console: Write to stdout
        log_dir: Directory for the JSONL files (default: ``logs/`` next to the package)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if log_to_file else level)

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(LevelColorFormatter(use_color=sys.stdout.isatty()))
        logger.addHandler(console)

    if log_to_file:
        logfile = DailyJSONLHandler(log_dir or LOG_DIR)
        logfile.setLevel(logging.DEBUG)
        logger.addHandler(logfile)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger under the package hierarchy (``crawler`` -> ``catalog_sync.crawler``)."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_sync_event(
    event_type: str,
    data: Dict[str, Any],
    level: int = logging.INFO,
    logger_name: str = ROOT_LOGGER,
) -> None:
    """Log a milestone such as ``cache_merged`` with its data.

    A ``message`` key in ``data`` becomes the log text; otherwise the event
    type is used.
    """
    fields = dict(data)
    message = fields.pop("message", event_type)
    get_logger(logger_name).log(
        level, message, extra={_EVENT_ATTR: event_type, _DATA_ATTR: fields}
    )
