"""Logging setup shared by the origin service and the automation worker."""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes that callers may attach through ``extra=``
_EXTRA_FIELDS = ("component", "application_id", "queue_job_id")


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text", stream: Optional[object] = None) -> None:
    """Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        fmt: ``text`` or ``json``
        stream: Output stream, stdout by default
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers
    for noisy in ("httpx", "httpcore", "motor", "pymongo", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
