"""
Log capture for the composite backend.

Records go to a rotating file and to an in-memory ring the /api/logs
endpoints read from, so a client can see why an engine refused a
document without shell access to the server.
"""
import logging
import os
from collections import deque
from logging.handlers import RotatingFileHandler
from typing import Any, Deque, Dict, List, Optional

from config.settings import LOG_DIR, LOG_LEVEL, LOG_RING_MIN_LEVEL, LOG_RING_SIZE

LOG_FILE_NAME = "composite.log"
RECORD_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Builder and positioning log every parameter edit at DEBUG
ENGINE_LOGGERS = (
    "pipelines.composite.builder",
    "pipelines.composite.positioning",
    "pipelines.composite.projections.projection",
)


def _level_number(name: Optional[str]) -> Optional[int]:
    if not name:
        return None
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else None


class RingBufferHandler(logging.Handler):
    """Holds the newest log entries as plain dicts."""

    def __init__(self, maxlen: int = 2000):
        super().__init__()
        self.buffer: Deque[Dict[str, Any]] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "ts": record.created,
                "level": record.levelname,
                "name": record.name,
                "message": record.getMessage(),
                "pathname": record.pathname,
                "lineno": record.lineno,
            }
        except (TypeError, ValueError):
            self.handleError(record)
            return
        self.buffer.append(entry)

    def get_recent(self, limit: int = 500, level: Optional[str] = None) -> List[Dict[str, Any]]:
        """Newest ``limit`` entries (all when limit <= 0), optionally at or above ``level``.

        Unknown level names are ignored.
        """
        entries = list(self.buffer)
        threshold = _level_number(level)
        if threshold is not None:
            entries = [e for e in entries if logging.getLevelName(e["level"]) >= threshold]
        return entries if limit <= 0 else entries[-limit:]

    def clear(self) -> None:
        self.buffer.clear()


_ring_handler: Optional[RingBufferHandler] = None
_file_handler: Optional[RotatingFileHandler] = None


def get_ring_handler() -> RingBufferHandler:
    global _ring_handler
    if _ring_handler is None:
        _ring_handler = RingBufferHandler(maxlen=LOG_RING_SIZE)
    return _ring_handler


def init_logging(log_dir: Optional[str] = None) -> None:
    """Attach file and ring handlers to the root logger (idempotent)."""
    global _file_handler
    root = logging.getLogger()
    if root.level == logging.NOTSET:
        root.setLevel(_level_number(LOG_LEVEL) or logging.INFO)
    formatter = logging.Formatter(RECORD_FORMAT)

    if _file_handler is None:
        directory = log_dir or LOG_DIR
        os.makedirs(directory, exist_ok=True)
        _file_handler = RotatingFileHandler(
            os.path.join(directory, LOG_FILE_NAME), maxBytes=5_000_000, backupCount=5, encoding="utf-8"
        )
        _file_handler.setFormatter(formatter)
        root.addHandler(_file_handler)

    ring = get_ring_handler()
    if ring not in root.handlers:
        ring.setFormatter(formatter)
        ring.setLevel(_level_number(LOG_RING_MIN_LEVEL) or logging.INFO)
        root.addHandler(ring)

    if LOG_LEVEL != "DEBUG":
        for name in ENGINE_LOGGERS:
            logging.getLogger(name).setLevel(logging.INFO)


def get_log_file() -> str:
    if _file_handler is not None:
        return _file_handler.baseFilename
    return os.path.join(LOG_DIR, LOG_FILE_NAME)
