"""
Table Sync Exceptions
=====================

Error hierarchy for the sync engine.

- PoolCreationError is fatal: the run aborts before any table is touched.
- QueryError is recoverable: it is reported through the event consumer
  and the engine moves on.
"""


class TableSyncError(Exception):
    """Base class for all table sync errors."""


class ConfigError(TableSyncError):
    """Raised when a sync configuration is malformed."""


class PoolCreationError(TableSyncError, ConnectionError):
    """Raised when the MySQL connection pool cannot be built."""


class QueryError(TableSyncError):
    """Raised when a count or fetch query fails to execute."""

    def __init__(self, query: str, message: str):
        super().__init__(message)
        self.query = query
        self.message = message
