#!/usr/bin/env python3
"""
Table Sync Runner
=================

CLI entry point for the sync engine. Writes every fetched batch as one
JSON line and keeps a watermark checkpoint so a restart resumes where the
last scan ended.

Usage:
    python -m table_sync.run_sync --config configs/sync_settings.json
    python -m table_sync.run_sync --config sync.json --output rows.jsonl --checkpoint checkpoints/sync.json
"""

import argparse
import json
import logging
import os
import signal
import sys
import threading
from datetime import datetime
from typing import Dict, IO, List, Tuple

from observability import setup_logging

from .config import SyncConfig, TableConfig
from .engine import SyncEngine
from .events import Rows, TemplateQueryEvents
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

# Statuses that are a normal end of a run
CLEAN_STATUSES = {"success", "shutdown", "disabled"}


def load_checkpoint(path: str) -> Dict[str, str]:
    """Load table -> watermark from a checkpoint file."""
    if path and os.path.exists(path):
        with open(path, 'r') as f:
            return json.load(f).get("watermarks", {})
    return {}


def save_checkpoint(path: str, watermarks: Dict[str, str]):
    """Save table -> watermark to a checkpoint file."""
    checkpoint_dir = os.path.dirname(path)
    if checkpoint_dir:
        os.makedirs(checkpoint_dir, exist_ok=True)
    checkpoint = {
        "watermarks": watermarks,
        "last_timestamp": datetime.now().isoformat()
    }
    with open(path, 'w') as f:
        json.dump(checkpoint, f, indent=2)


def apply_checkpoint(tables: Dict[str, TableConfig], watermarks: Dict[str, str]):
    """Seed each table's last_updated from a loaded checkpoint."""
    for key, value in watermarks.items():
        if key in tables:
            tables[key].last_updated = value
            logger.info(f"Resuming {key} from watermark {value}")


class JsonLinesEvents(TemplateQueryEvents):
    """Writes each fetched batch as a JSON line and checkpoints watermarks."""

    def __init__(self, tables: Dict[str, TableConfig], output: IO,
                 checkpoint_path: str = None):
        super().__init__(tables)
        self.output = output
        self.checkpoint_path = checkpoint_path

    def current_watermarks(self) -> Dict[str, str]:
        watermarks = {key: value for key, value in self.watermarks.items() if value}
        watermarks.update(self.pending_watermarks)
        return watermarks

    def handle_rows(self, table_name: str, offset: int, rows: Rows,
                    pairs: List[Tuple[str, str]]):
        record = {
            "table": table_name,
            "offset": offset,
            "rows": rows,
            "fetched_at": datetime.now().isoformat()
        }
        if pairs:
            record["key_values"] = [[key, value] for key, value in pairs]
        self.output.write(json.dumps(record) + "\n")
        self.output.flush()

        logger.info(f"  Wrote {len(rows)} rows for {table_name} (offset {offset})")

        if self.checkpoint_path:
            save_checkpoint(self.checkpoint_path, self.current_watermarks())


def install_signal_handlers(shutdown: threading.Event):
    """Set the shutdown event on SIGINT/SIGTERM."""
    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        shutdown.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)


def run(config: SyncConfig, output: IO, checkpoint_path: str = None,
        shutdown: threading.Event = None) -> Dict:
    """Run the engine with a JSON-lines sink."""
    shutdown = shutdown or threading.Event()

    if checkpoint_path:
        apply_checkpoint(config.tables, load_checkpoint(checkpoint_path))

    events = JsonLinesEvents(config.tables, output, checkpoint_path)
    engine = SyncEngine(config, shutdown)
    return engine.run(events)


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Periodic MySQL table sync")
    parser.add_argument("--config", required=True, help="Path to sync config JSON")
    parser.add_argument("--output", help="JSON-lines output file (default: stdout)")
    parser.add_argument("--checkpoint", help="Watermark checkpoint file")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    args = parser.parse_args(argv)

    try:
        config = SyncConfig.from_file(args.config)
    except (OSError, ValueError, ConfigError) as e:
        print(f"✗ Failed to load config {args.config}: {e}", file=sys.stderr)
        return 1

    log_settings = config.log_settings
    setup_logging(
        level=args.log_level or log_settings.get("level", "INFO"),
        json_format=args.json_logs or log_settings.get("json", False),
        log_to_file=log_settings.get("log_to_file", False),
        log_path=log_settings.get("log_path")
    )

    shutdown = threading.Event()
    install_signal_handlers(shutdown)

    if args.output:
        with open(args.output, "a") as output:
            result = run(config, output, args.checkpoint, shutdown)
    else:
        result = run(config, sys.stdout, args.checkpoint, shutdown)

    return 0 if result["status"] in CLEAN_STATUSES else 1


if __name__ == "__main__":
    sys.exit(main())
