"""Logging configuration with trace_id support and daily file rotation.

- ``app-info.log`` receives INFO and above, ``app-error.log`` ERROR and above
- rotated files are renamed ``app-info-YYYY-MM-DD.log``
- every record carries the request trace id (``N/A`` outside a request)
"""
from __future__ import annotations

import logging
import logging.handlers
import re
from pathlib import Path

from app.core.config import get_settings
from app.core.trace_context import get_trace_id

LOG_FORMAT = (
    "%(asctime)s %(levelname)s [trace_id=%(trace_id)s] "
    "%(name)s:%(lineno)d - %(message)s"
)

_ROTATED_NAME = re.compile(r"(.+)\.log\.(\d{4}-\d{2}-\d{2})$")


class TraceIdFilter(logging.Filter):
    """Inject the current trace id into each LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id() or "N/A"
        return True


class ErrorOnlyFilter(logging.Filter):
    """Only let ERROR and above through."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def dated_log_namer(name: str) -> str:
    """Turn ``app-info.log.2026-10-19`` into ``app-info-2026-10-19.log``."""
    match = _ROTATED_NAME.match(name)
    if match:
        base, date = match.groups()
        return f"{base}-{date}.log"
    return name


def _file_handler(path: Path, level: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        interval=1,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.namer = dated_log_namer
    return handler


def init_logging() -> None:
    """
    Initialise the root logger.

    Console output always; rotating info/error files unless ``LOG_TO_FILE=false``.
    Safe to call more than once, existing handlers are replaced.
    """
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    trace_filter = TraceIdFilter()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    log_dir = Path(settings.log_dir)
    if settings.log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_file_handler(log_dir / "app-info.log", level, settings.log_backup_count))
        error_handler = _file_handler(
            log_dir / "app-error.log", logging.ERROR, settings.log_backup_count
        )
        error_handler.addFilter(ErrorOnlyFilter())
        handlers.append(error_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(trace_filter)
        root_logger.addHandler(handler)

    # httpx logs every request line at INFO, including the key-bearing URL
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging initialized: level=%s, log_dir=%s, to_file=%s, backup_count=%s",
        settings.log_level,
        log_dir,
        settings.log_to_file,
        settings.log_backup_count,
    )
