"""
Table Sync Observability
========================

Logging helpers shared by the sync engine and its runner.

Usage:
    from observability import setup_logging, sync_context

    setup_logging(level="INFO", json_format=True)

    with sync_context(run_id="abc123"):
        logger.info("Cycle started")
"""

from .logging.structured_logger import (
    JsonFormatter,
    current_context,
    new_trace_id,
    setup_logging,
    sync_context,
)

__version__ = "1.0.0"
__all__ = ["JsonFormatter", "current_context", "new_trace_id", "setup_logging", "sync_context"]
