"""
Table Sync Engine
=================

Keeps a downstream system (e.g. a cache loader) in step with MySQL tables:
- Count rows beyond each table's watermark
- Fetch them in bounded, offset-paginated batches
- Render every column value as canonical text
- Hand batches to a caller-supplied SyncEvents implementation

The engine owns connections and pagination only. SQL text and storage of
the fetched rows belong to the caller.
"""

from .codec import to_sql_string
from .config import DbConfig, KeyValConfig, SyncConfig, TableConfig, WhereClauseType
from .engine import EngineState, SyncEngine, fetch_iterations
from .events import SyncEvents, TemplateQueryEvents
from .exceptions import ConfigError, PoolCreationError, QueryError, TableSyncError

__version__ = "1.0.0"

__all__ = [
    "to_sql_string",
    "DbConfig",
    "KeyValConfig",
    "SyncConfig",
    "TableConfig",
    "WhereClauseType",
    "EngineState",
    "SyncEngine",
    "fetch_iterations",
    "SyncEvents",
    "TemplateQueryEvents",
    "ConfigError",
    "PoolCreationError",
    "QueryError",
    "TableSyncError",
]
