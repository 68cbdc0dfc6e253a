"""
Logging Service
Explorer log file plus an in-memory record buffer served by /api/logs
"""
import glob
import logging
import os
from collections import Counter, deque
from logging.handlers import RotatingFileHandler
from typing import Any, Deque, Dict, List, Optional

from config import settings

LOG_FILE = os.path.join(settings.LOG_DIR, "explorer.log")

# Loggers that drown out the block-fill messages
_NOISY_LOGGERS = ("uvicorn.access", "urllib3")


def _level_number(name: Optional[str]) -> int:
    if not name:
        return logging.NOTSET
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.NOTSET


class RecentRecordsHandler(logging.Handler):
    """
    Bounded buffer of recent records

    Records are stored as plain dicts so the API can filter by level and by
    source (logger name prefix, e.g. "pipelines.exploration") without
    touching the log file.
    """

    def __init__(self, capacity: int = 2000):
        super().__init__()
        self.records: Deque[Dict[str, Any]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        self.records.append({
            "ts": record.created,
            "level": record.levelname,
            "levelno": record.levelno,
            "name": record.name,
            "message": message,
            "lineno": record.lineno,
        })

    def select(
        self,
        limit: int = 500,
        min_level: Optional[str] = None,
        source: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Most recent records, oldest first, filtered by level and logger prefix"""
        threshold = _level_number(min_level)
        selected = [
            r for r in self.records
            if r["levelno"] >= threshold and (not source or r["name"].startswith(source))
        ]
        return selected[-limit:] if limit > 0 else selected

    def summary(self) -> Dict[str, Any]:
        """Record counts per level and per top-level package"""
        return {
            "buffered": len(self.records),
            "capacity": self.records.maxlen,
            "by_level": dict(Counter(r["level"] for r in self.records)),
            "by_source": dict(Counter(r["name"].split(".")[0] for r in self.records)),
        }


_recent_handler: Optional[RecentRecordsHandler] = None
_initialized = False


def get_recent_handler() -> RecentRecordsHandler:
    global _recent_handler
    if _recent_handler is None:
        _recent_handler = RecentRecordsHandler(capacity=settings.LOG_BUFFER_SIZE)
    return _recent_handler


def log_files() -> List[str]:
    """explorer.log and its rotated backups, newest first"""
    return sorted(glob.glob(f"{LOG_FILE}*"))


def init_logging(file_logging: bool = True) -> None:
    """
    Attach the record buffer (and explorer.log) to the root logger

    Safe to call again: handlers are only added by the first successful call.
    Raises OSError when the log directory cannot be created.
    """
    global _initialized
    if _initialized:
        return

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = logging.getLogger()
    if root.level in (logging.NOTSET, logging.WARNING):
        root.setLevel(_level_number(settings.LOG_LEVEL) or logging.INFO)

    if file_logging:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=settings.LOG_FILE_MAX_BYTES,
            backupCount=settings.LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    recent = get_recent_handler()
    recent.setFormatter(formatter)
    recent.setLevel(_level_number(settings.LOG_BUFFER_MIN_LEVEL) or logging.INFO)
    root.addHandler(recent)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _initialized = True
    logging.getLogger(__name__).info(
        f"📝 Logging ready (file={'on' if file_logging else 'off'}, buffer={recent.records.maxlen})"
    )
