"""
Sync Engine Core
================

Periodic, offset-paginated polling of MySQL tables.

Each cycle walks every configured table in order: count the rows beyond
the watermark, fetch them in batches of `fetch_limit`, decode them to
text and hand them to the caller's SyncEvents. Between cycles the engine
sleeps on the shutdown event so a shutdown request wakes it immediately.

Failure policy:
- Pool creation failure is fatal; the run ends with status "failed".
- Count failure skips the table for this cycle.
- Fetch failure is reported and the iteration is retried at the same
  offset on the next loop step.
- Shutdown seen in the middle of a scan ends the run with status
  "shutdown"; seen at a cycle boundary it ends with status "success".
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict

from observability import new_trace_id, sync_context

from .config import DbConfig, SyncConfig
from .connectors.mysql_connector import MySQLConnector
from .events import SyncEvents
from .exceptions import PoolCreationError, QueryError

logger = logging.getLogger(__name__)


class EngineState(Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    FAULTED = "faulted"
    STOPPED = "stopped"


@dataclass
class TableScan:
    """Working state of one table's pass within a cycle."""
    table_name: str
    offset: int = 0
    total_rows: int = 0


def fetch_iterations(total_rows: int, limit: int) -> int:
    """
    Number of fetch queries issued for a scan of `total_rows`.

    Floor division: when `total_rows` is not a multiple of `limit` the
    trailing partial batch is left for a later cycle.
    """
    return max(1, total_rows // limit)


class SyncEngine:
    """
    Polls the configured tables until the shutdown event is set.

    Usage:
        shutdown = threading.Event()
        engine = SyncEngine(config, shutdown)
        result = engine.run(events)
    """

    SHUTDOWN_MESSAGE = "Shutdown received. exiting.."

    def __init__(
        self,
        config: SyncConfig,
        shutdown: threading.Event,
        connector_factory: Callable[[DbConfig], Any] = MySQLConnector
    ):
        """
        Initialize the sync engine.

        Args:
            config: Engine configuration, read-only to the engine
            shutdown: Event set by an external controller to stop the run
            connector_factory: Builds the connection pool from a DbConfig
        """
        self.config = config
        self.shutdown = shutdown
        self.connector_factory = connector_factory
        self.connector = None
        self.state = EngineState.INITIALIZING
        self.scans: Dict[str, TableScan] = {}
        self.run_id = new_trace_id()

    @property
    def db_name(self) -> str:
        return self.config.db_config.db_name

    def fetch_limit(self, table_name: str) -> int:
        """Batch size for a table: its own override or the global default."""
        return self.config.tables[table_name].fetch_limit or self.config.fetch_limit

    def run(self, events: SyncEvents) -> Dict:
        """
        Run sync cycles until shutdown or a fatal error.

        Blocks the calling thread.

        Args:
            events: Caller's query builder and result sink

        Returns:
            Result dictionary with status and metrics
        """
        result = {
            "run_id": self.run_id,
            "status": "pending",
            "error": None,
            "cycles": 0,
            "rows_fetched": 0,
            "query_errors": 0,
            "start_time": datetime.now().isoformat(),
            "end_time": None
        }

        if not self.config.enabled:
            logger.info("Table sync is disabled in configuration, not starting")
            result["status"] = "disabled"
            return self._finish(result)

        with sync_context(run_id=self.run_id):
            self.state = EngineState.INITIALIZING
            try:
                self.connector = self.connector_factory(self.config.db_config)
                self.connector.connect()
            except PoolCreationError as e:
                logger.error(f"Shutting Down. Failed to create mysql connection pool. Error: {e}")
                self.state = EngineState.FAULTED
                result["status"] = "failed"
                result["error"] = str(e)
                return self._finish(result)

            self.state = EngineState.RUNNING
            logger.info(f"Syncing tables: {list(self.config.tables.keys())}")

            try:
                while not self.shutdown.is_set():
                    result["cycles"] += 1
                    with sync_context(cycle=result["cycles"]):
                        completed = self._run_cycle(events, result)

                    if not completed:
                        self.state = EngineState.SHUTTING_DOWN
                        result["status"] = "shutdown"
                        result["error"] = self.SHUTDOWN_MESSAGE
                        return self._finish(result)

                    if not self.shutdown.is_set():
                        self.shutdown.wait(self.config.periodic_fetch_duration / 1000)

                self.state = EngineState.SHUTTING_DOWN
                result["status"] = "success"
            finally:
                self.connector.disconnect()

        return self._finish(result)

    def _run_cycle(self, events: SyncEvents, result: Dict) -> bool:
        """Sync every table once. Returns False if shutdown interrupted a scan."""
        logger.debug(f"Starting cycle {result['cycles']}")
        for table_name in self.config.tables:
            with sync_context(table=table_name):
                if not self._sync_table(events, table_name, result):
                    return False
        return True

    def _sync_table(self, events: SyncEvents, table_name: str, result: Dict) -> bool:
        """
        Count then page through one table.

        Returns:
            False if the shutdown event was seen before a fetch, else True
        """
        scan = TableScan(table_name=table_name)
        self.scans[table_name] = scan

        logger.debug(f"get_count_query: db_name:{self.db_name}, table_name:{table_name}")
        count_query = events.count_query(self.db_name, table_name)
        logger.debug(f"sql_count_query:{count_query}")

        try:
            scan.total_rows = self.connector.get_table_count(count_query)
        except QueryError as e:
            result["query_errors"] += 1
            events.on_query_error(count_query, e.message)
            return True

        events.on_total_rows(self.db_name, table_name, scan.total_rows)
        logger.debug(f"Number of records to fetch: {scan.total_rows}")
        if scan.total_rows == 0:
            return True

        limit = self.fetch_limit(table_name)
        for _ in range(fetch_iterations(scan.total_rows, limit)):
            if self.shutdown.is_set():
                logger.info("Shutdown received. exiting sync loop")
                return False

            fetch_query = events.fetch_query(self.db_name, table_name, scan.offset, limit)
            try:
                rows = self.connector.fetch_rows(fetch_query, limit)
            except QueryError as e:
                result["query_errors"] += 1
                events.on_query_error(fetch_query, e.message)
                continue

            scan.offset += len(rows)
            result["rows_fetched"] += len(rows)
            events.on_rows_fetched(self.db_name, table_name, scan.offset, rows)

        return True

    def _finish(self, result: Dict) -> Dict:
        result["end_time"] = datetime.now().isoformat()
        self.state = EngineState.STOPPED

        logger.info("=" * 60)
        logger.info(f"TABLE SYNC STOPPED ({result['status']})")
        logger.info(f"  Cycles: {result['cycles']}")
        logger.info(f"  Rows fetched: {result['rows_fetched']}")
        logger.info(f"  Query errors: {result['query_errors']}")
        if result["error"]:
            logger.info(f"  Reason: {result['error']}")
        logger.info("=" * 60)

        return result
