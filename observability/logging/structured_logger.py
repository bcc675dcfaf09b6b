"""
Structured Logger
=================

Logging setup for the table sync engine.

Features:
- Plain or JSON-formatted console logs
- Optional log file
- Context enrichment (run_id, table, cycle) through thread-local storage
"""

import json
import logging
import os
import sys
import threading
import traceback
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Thread-local storage for context
_context = threading.local()

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName'
}


def current_context() -> dict:
    """Return a copy of the context fields active on this thread."""
    return dict(getattr(_context, 'data', {}))


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info)
            }

        context = current_context()
        if context:
            log_entry["context"] = context

        if self.include_extra:
            for key in set(record.__dict__.keys()) - _RESERVED_ATTRS:
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


@contextmanager
def sync_context(**kwargs):
    """
    Context manager for adding context to all logs within scope.

    Usage:
        with sync_context(run_id="123", table="users"):
            logger.info("Fetching")  # JSON output includes run_id and table
    """
    if not hasattr(_context, 'data'):
        _context.data = {}

    old_data = _context.data.copy()
    _context.data.update(kwargs)

    try:
        yield
    finally:
        _context.data = old_data


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_to_file: bool = False,
    log_path: Optional[str] = None
):
    """
    Configure the root logger.

    Args:
        level: Log level name
        json_format: Use JSON formatting for console output
        log_to_file: Also write logs to `log_path`
        log_path: Log file path (default logs/table_sync.log)
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = []  # Clear existing handlers

    formatter = JsonFormatter() if json_format else logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_to_file:
        log_path = log_path or "logs/table_sync.log"
        log_dir = os.path.dirname(log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def new_trace_id() -> str:
    """Generate a new trace ID."""
    return str(uuid.uuid4())[:8]
