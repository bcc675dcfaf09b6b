"""
Unit tests for the logging helpers.
"""

import json
import logging

from observability import JsonFormatter, current_context, setup_logging, sync_context


def _record(message="Cycle started", **extra):
    record = logging.LogRecord("table_sync.engine", logging.INFO, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    entry = json.loads(JsonFormatter().format(_record(rows=5)))

    assert entry["level"] == "INFO"
    assert entry["logger"] == "table_sync.engine"
    assert entry["message"] == "Cycle started"
    assert entry["rows"] == 5


def test_sync_context_is_scoped():
    with sync_context(run_id="abc123"):
        with sync_context(table="users"):
            entry = json.loads(JsonFormatter().format(_record()))
            assert entry["context"] == {"run_id": "abc123", "table": "users"}
        assert current_context() == {"run_id": "abc123"}

    assert current_context() == {}


def test_setup_logging_writes_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_path = tmp_path / "logs" / "sync.log"
    try:
        setup_logging(level="DEBUG", json_format=True, log_to_file=True, log_path=str(log_path))
        logging.getLogger("table_sync.test").debug("hello")
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)

    entry = json.loads(log_path.read_text().strip().splitlines()[-1])
    assert entry["message"] == "hello"
