"""
Shared test fixtures and configuration for pytest.
"""

import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from table_sync.config import DbConfig, SyncConfig, TableConfig
from table_sync.events import SyncEvents


# ============================================================================
# Fakes
# ============================================================================

class FakeConnector:
    """
    Scripted stand-in for MySQLConnector.

    `counts` and `fetches` map a table name to a list of outcomes. Each call
    consumes the next outcome; the last one repeats. An outcome is either a
    value or an exception instance to raise.
    """

    def __init__(self, db_config: DbConfig, counts: Dict = None, fetches: Dict = None,
                 connect_error: Optional[Exception] = None):
        self.db_config = db_config
        self.counts = counts or {}
        self.fetches = fetches or {}
        self.connect_error = connect_error
        self.connected = False
        self.disconnected = False
        self.count_queries: List[str] = []
        self.fetch_queries: List[str] = []

    @staticmethod
    def _next(outcomes: List):
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def connect(self):
        if self.connect_error:
            raise self.connect_error
        self.connected = True

    def disconnect(self):
        self.disconnected = True

    def get_table_count(self, query: str) -> int:
        self.count_queries.append(query)
        table = query.split(":")[1]
        return self._next(self.counts[table])

    def fetch_rows(self, query: str, limit: int):
        self.fetch_queries.append(query)
        table = query.split(":")[1]
        return self._next(self.fetches[table])


class RecordingEvents(SyncEvents):
    """SyncEvents that builds trivial queries and records every callback."""

    def __init__(self):
        self.calls = []
        self.totals = []
        self.batches = []
        self.errors = []

    def count_query(self, db_name, table_name):
        self.calls.append(("count_query", table_name))
        return f"count:{table_name}"

    def fetch_query(self, db_name, table_name, offset, limit):
        self.calls.append(("fetch_query", table_name, offset, limit))
        return f"fetch:{table_name}:{offset}:{limit}"

    def on_total_rows(self, db_name, table_name, row_count):
        self.calls.append(("on_total_rows", table_name, row_count))
        self.totals.append((db_name, table_name, row_count))

    def on_rows_fetched(self, db_name, table_name, offset, rows):
        self.calls.append(("on_rows_fetched", table_name, offset))
        self.batches.append((db_name, table_name, offset, rows))

    def on_query_error(self, query, error):
        self.calls.append(("on_query_error", query))
        self.errors.append((query, error))


class CycleLimitedShutdown(threading.Event):
    """Shutdown event that sets itself after the engine sleeps `cycles` times."""

    def __init__(self, cycles: int = 1):
        super().__init__()
        self.cycles = cycles
        self.waits = 0

    def wait(self, timeout=None):
        self.waits += 1
        if self.waits >= self.cycles:
            self.set()
        return self.is_set()


def make_rows(count: int, start: int = 0) -> List[List[str]]:
    return [[str(i), f"name-{i}"] for i in range(start, start + count)]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def db_config():
    return DbConfig(host="db.local", user="sync", password="secret", db_name="vault_db")


@pytest.fixture
def make_table():
    def _make(name: str, **kwargs) -> TableConfig:
        return TableConfig(
            table_name=name,
            select_query=f"SELECT id, name FROM {name} WHERE id > {{id}}",
            count_query=f"SELECT COUNT(*) FROM {name} WHERE id > {{id}}",
            **kwargs
        )
    return _make


@pytest.fixture
def make_config(db_config, make_table):
    def _make(tables=("users",), fetch_limit: int = 5, **kwargs) -> SyncConfig:
        return SyncConfig(
            db_config=db_config,
            tables={name: make_table(name) for name in tables},
            periodic_fetch_duration=0,
            fetch_limit=fetch_limit,
            **kwargs
        )
    return _make


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def connector_factory():
    """Returns (factory, holder); holder["connector"] is the built connector."""
    holder = {}

    def _factory(counts=None, fetches=None, connect_error=None):
        def build(db_config):
            connector = FakeConnector(db_config, counts, fetches, connect_error)
            holder["connector"] = connector
            return connector
        return build

    return _factory, holder
