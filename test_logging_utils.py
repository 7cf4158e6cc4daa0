"""
Tests for logging setup.
"""

import json
import logging

from src.core.logging_utils import JsonFormatter, setup_logging


def test_json_formatter_fields():
    record = logging.LogRecord("coresched", logging.ERROR, __file__, 1, "Failed to get cookie from PID %d", (5,), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "ERROR"
    assert payload["name"] == "coresched"
    assert payload["msg"] == "Failed to get cookie from PID 5"
    assert "ts" in payload and "pid" in payload


def test_setup_logging_with_file(tmp_path):
    root = logging.getLogger()
    saved = root.handlers[:]
    saved_level = root.level
    log_file = tmp_path / "logs" / "coresched.log"
    try:
        setup_logging("ERROR", json_logs=True, log_file=str(log_file))
        logging.getLogger("coresched").debug("spawned %s", "true")
        for handler in root.handlers:
            handler.flush()
        line = log_file.read_text(encoding="utf-8").strip()
        assert json.loads(line)["msg"] == "spawned true"
        assert root.handlers[0].level == logging.ERROR
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved
        root.setLevel(saved_level)


def test_unopenable_log_file_keeps_console(tmp_path, capsys):
    root = logging.getLogger()
    saved = root.handlers[:]
    saved_level = root.level
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    try:
        setup_logging("WARNING", log_file=str(blocker / "coresched.log"))
        assert len(root.handlers) == 1
        assert "failed to open log file" in capsys.readouterr().err
    finally:
        root.handlers[:] = saved
        root.setLevel(saved_level)
