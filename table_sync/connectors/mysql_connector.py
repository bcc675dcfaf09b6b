"""
MySQL Source Connector
======================

Connection pool for the sync engine. Executes the two query shapes the
engine needs: a scalar row count and a bounded row fetch.
"""

import logging
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, URL
from sqlalchemy.exc import SQLAlchemyError

from ..codec import row_to_strings
from ..config import DbConfig
from ..exceptions import PoolCreationError, QueryError

logger = logging.getLogger(__name__)

# The engine issues one query at a time
POOL_SIZE = 1
MAX_OVERFLOW = 1


def _ms_to_seconds(value: int) -> int:
    # pymysql timeouts are whole seconds and 0 means "no timeout"
    return max(1, int(value) // 1000)


class MySQLConnector:
    """
    MySQL connection pool used by the sync engine.
    """

    def __init__(self, config: DbConfig):
        """
        Initialize MySQL connector.

        Args:
            config: DbConfig with host, port, credentials, db name, timeouts
        """
        self.config = config
        self.engine: Optional[Engine] = None

    def connection_url(self) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.config.user,
            password=self.config.password,
            host=self.config.host,
            port=self.config.port,
            database=self.config.db_name,
        )

    def connect(self):
        """
        Build the connection pool and verify it with a test query.

        Raises:
            PoolCreationError: if the pool cannot be created or the server
                rejects the connection
        """
        logger.info("Creating a MySQL connection pool")
        try:
            self.engine = create_engine(
                self.connection_url(),
                pool_size=POOL_SIZE,
                max_overflow=MAX_OVERFLOW,
                pool_pre_ping=True,
                pool_recycle=_ms_to_seconds(self.config.tcp_keepalive_time),
                connect_args={
                    "read_timeout": _ms_to_seconds(self.config.read_timeout),
                    "write_timeout": _ms_to_seconds(self.config.write_timeout),
                    "connect_timeout": _ms_to_seconds(self.config.tcp_connect_timeout),
                },
            )

            logger.info("Connecting to MySQL Server")
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Failed to create mysql connection pool. Error: {e}")
            self.disconnect()
            raise PoolCreationError(str(e)) from e

        logger.info(
            f"Connected to MySQL: {self.config.host}:{self.config.port}/{self.config.db_name}"
        )

    def disconnect(self):
        """Dispose of the connection pool."""
        if self.engine:
            self.engine.dispose()
            self.engine = None
            logger.info("MySQL connection closed")

    def _execute(self, conn, query: str):
        # Opaque query text: no parameter substitution, so a literal % reaches
        # the server unchanged
        return conn.execution_options(no_parameters=True).exec_driver_sql(query)

    def get_table_count(self, query: str) -> int:
        """
        Run a count query and return its single scalar.

        Args:
            query: Count query text

        Returns:
            Row count (0 when the query yields NULL or no row)
        """
        logger.debug(f"sql_table_count_query:{query}")
        try:
            with self.engine.connect() as conn:
                value = self._execute(conn, query).scalar()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch row count. Error: {e}")
            raise QueryError(query, str(e)) from e

        logger.debug(f"sql_count_query result:{value}")
        return int(value) if value is not None else 0

    def fetch_rows(self, query: str, limit: int) -> List[List[str]]:
        """
        Run a fetch query and decode every column to text.

        Args:
            query: Fetch query text
            limit: Batch size the query was built for

        Returns:
            Rows in database order, each a list of canonical strings
        """
        logger.debug(f"sql_fetch_rows_query:{query}")
        try:
            with self.engine.connect() as conn:
                result = self._execute(conn, query)
                rows = [row_to_strings(row) for row in result]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch rows. Error: {e}")
            raise QueryError(query, str(e)) from e

        if len(rows) > limit:
            logger.debug(f"Fetch returned {len(rows)} rows, more than limit {limit}")
        return rows
