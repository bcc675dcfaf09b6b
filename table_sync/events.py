"""
Sync Events
===========

The callback boundary between the sync engine and its caller. The engine
never builds SQL and never stores rows itself: it asks a SyncEvents
implementation for query text and hands every result back to it.

Implementations are called from the engine's thread and must not block
indefinitely; the engine has no timeout around these calls.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from .config import TableConfig, WhereClauseType

logger = logging.getLogger(__name__)

Rows = List[List[str]]


class SyncEvents(ABC):
    """Capabilities the sync engine requires from its caller."""

    @abstractmethod
    def count_query(self, db_name: str, table_name: str) -> str:
        """Build the query counting rows beyond the table's watermark."""
        pass

    @abstractmethod
    def fetch_query(self, db_name: str, table_name: str, offset: int, limit: int) -> str:
        """Build the query fetching at most `limit` rows starting at `offset`."""
        pass

    @abstractmethod
    def on_total_rows(self, db_name: str, table_name: str, row_count: int):
        """Called once per table per cycle right after a successful count."""
        pass

    @abstractmethod
    def on_rows_fetched(self, db_name: str, table_name: str, offset: int, rows: Rows):
        """Called with each decoded batch; `offset` already includes the batch."""
        pass

    @abstractmethod
    def on_query_error(self, query: str, error: str):
        """Called for every count or fetch query that fails."""
        pass


class TemplateQueryEvents(SyncEvents):
    """
    SyncEvents built on the query templates of each TableConfig.

    Templates may reference the table's watermark as `{id}` or
    `{last_updated}`. Fetch queries get `LIMIT ... OFFSET ...` appended.

    The watermark is read from column `id_index` of the last row of each
    batch but only takes effect at the start of the table's next scan, so
    offsets within a scan always refer to the same result set.

    Subclasses receive batches through `handle_rows`.
    """

    DEFAULT_WATERMARK = "0"

    def __init__(self, tables: Dict[str, TableConfig]):
        self.tables = tables
        self.watermarks: Dict[str, str] = {
            key: table.last_updated for key, table in tables.items()
        }
        self.pending_watermarks: Dict[str, str] = {}
        self.total_rows: Dict[str, int] = {}

    def watermark(self, table_name: str) -> str:
        value = self.watermarks.get(table_name) or ""
        return value if value else self.DEFAULT_WATERMARK

    def watermark_literal(self, table_name: str) -> str:
        """
        Watermark as it should appear in SQL.

        ID watermarks are pasted as-is. Time watermarks that are not plain
        epoch numbers are quoted, unless the codec already quoted them.
        """
        value = self.watermark(table_name)
        if self.tables[table_name].where_clause_type != WhereClauseType.UNIX_TIME:
            return value
        if value.lstrip("-").isdigit() or value.startswith("'"):
            return value
        return "'" + value.replace("'", "''") + "'"

    def _render(self, template: str, table_name: str) -> str:
        value = self.watermark_literal(table_name)
        return template.replace("{id}", value).replace("{last_updated}", value)

    def commit_watermark(self, table_name: str):
        """Promote the watermark seen during the last scan."""
        pending = self.pending_watermarks.pop(table_name, None)
        if pending is not None:
            self.watermarks[table_name] = pending

    def count_query(self, db_name: str, table_name: str) -> str:
        # A count starts a new scan
        self.commit_watermark(table_name)
        return self._render(self.tables[table_name].count_query, table_name)

    def fetch_query(self, db_name: str, table_name: str, offset: int, limit: int) -> str:
        query = self._render(self.tables[table_name].select_query, table_name).rstrip()
        return f"{query} LIMIT {limit} OFFSET {offset}"

    def on_total_rows(self, db_name: str, table_name: str, row_count: int):
        logger.debug(f"{db_name}.{table_name}: {row_count} rows to fetch")
        self.total_rows[table_name] = row_count

    def key_values(self, table_name: str, rows: Rows) -> List[Tuple[str, str]]:
        """Extract the configured key/value pairs from every row."""
        pairs = []
        for row in rows:
            for kv in self.tables[table_name].key_val_pairs:
                if kv.key_index < len(row) and kv.val_index < len(row):
                    pairs.append((row[kv.key_index], row[kv.val_index]))
        return pairs

    def on_rows_fetched(self, db_name: str, table_name: str, offset: int, rows: Rows):
        if rows:
            id_index = self.tables[table_name].id_index
            last_row = rows[-1]
            if id_index < len(last_row):
                self.pending_watermarks[table_name] = last_row[id_index]
        self.handle_rows(table_name, offset, rows, self.key_values(table_name, rows))

    def handle_rows(self, table_name: str, offset: int, rows: Rows,
                    pairs: List[Tuple[str, str]]):
        """Deliver a batch downstream. Override in subclasses."""
        logger.info(f"{table_name}: fetched {len(rows)} rows (offset {offset})")

    def on_query_error(self, query: str, error: str):
        logger.error(f"Query failed: {error} | query: {query}")
