"""
Sync Configuration
==================

Dataclasses describing the source database, the tables to poll and the
engine cadence. Loaded from a single JSON file.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Any

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

_DB_INT_FIELDS = (
    "port", "read_timeout", "write_timeout", "tcp_connect_timeout", "tcp_keepalive_time"
)


class WhereClauseType(Enum):
    """How a table's incremental boundary is expressed."""
    UNIX_TIME = "UnixTime"
    ID = "ID"


@dataclass(frozen=True)
class KeyValConfig:
    """Column indexes forming a key/value pair in a fetched row."""
    key_index: int = 1
    val_index: int = 2


@dataclass(frozen=True)
class DbConfig:
    """MySQL connection parameters. Timeouts are in milliseconds."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    db_name: str = ""
    read_timeout: int = 60000
    write_timeout: int = 60000
    tcp_connect_timeout: int = 60000
    tcp_keepalive_time: int = 60000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DbConfig":
        try:
            values = dict(data)
            for key in _DB_INT_FIELDS:
                if key in values:
                    values[key] = int(values[key])
            return cls(**values)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid db_config: {e}")


@dataclass
class TableConfig:
    """Per-table query templates and query-builder settings."""
    table_name: str
    select_query: str
    count_query: str
    where_clause_type: WhereClauseType = WhereClauseType.ID
    id_index: int = 0
    key_val_pairs: List[KeyValConfig] = field(default_factory=list)
    last_updated: str = ""
    fetch_limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableConfig":
        try:
            clause = WhereClauseType(data.get("where_clause_type", WhereClauseType.ID.value))
        except ValueError:
            raise ConfigError(
                f"Unknown where_clause_type '{data.get('where_clause_type')}' "
                f"for table {data.get('table_name')}"
            )

        try:
            fetch_limit = data.get("fetch_limit")
            if fetch_limit is not None:
                fetch_limit = int(fetch_limit)
                if fetch_limit <= 0:
                    raise ConfigError(f"fetch_limit must be positive, got {fetch_limit}")

            return cls(
                table_name=data["table_name"],
                select_query=data["select_query"],
                count_query=data["count_query"],
                where_clause_type=clause,
                id_index=int(data.get("id_index", 0)),
                key_val_pairs=[
                    KeyValConfig(**{key: int(index) for key, index in kv.items()})
                    for kv in data.get("key_val_pairs", [])
                ],
                last_updated=str(data.get("last_updated", "")),
                fetch_limit=fetch_limit,
            )
        except KeyError as e:
            raise ConfigError(f"Table config missing required key: {e}")
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid config for table {data.get('table_name')}: {e}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["where_clause_type"] = self.where_clause_type.value
        return data


@dataclass
class SyncConfig:
    """Top-level engine configuration."""
    enabled: bool = True
    db_config: DbConfig = field(default_factory=DbConfig)
    tables: Dict[str, TableConfig] = field(default_factory=dict)
    periodic_fetch_duration: int = 10000
    fetch_limit: int = 5000
    log_settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncConfig":
        """
        Build a config from a parsed JSON document.

        Args:
            data: Dict with enabled, db_config, tables, periodic_fetch_duration,
                fetch_limit and an optional logging block

        Returns:
            SyncConfig instance
        """
        try:
            fetch_limit = int(data.get("fetch_limit", 5000))
            periodic_fetch_duration = int(data.get("periodic_fetch_duration", 10000))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid engine setting: {e}")
        if fetch_limit <= 0:
            raise ConfigError(f"fetch_limit must be positive, got {fetch_limit}")

        db_config = DbConfig.from_dict(data.get("db_config", {}))

        tables = {
            key: TableConfig.from_dict(table)
            for key, table in data.get("tables", {}).items()
        }

        return cls(
            enabled=bool(data.get("enabled", True)),
            db_config=db_config,
            tables=tables,
            periodic_fetch_duration=periodic_fetch_duration,
            fetch_limit=fetch_limit,
            log_settings=data.get("logging", {}),
        )

    @classmethod
    def from_file(cls, path: str) -> "SyncConfig":
        """Load configuration from a JSON file."""
        logger.debug(f"Config file: {path}")
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "db_config": asdict(self.db_config),
            "tables": {key: table.to_dict() for key, table in self.tables.items()},
            "periodic_fetch_duration": self.periodic_fetch_duration,
            "fetch_limit": self.fetch_limit,
            "logging": dict(self.log_settings),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
