"""Logging for coresched.

Diagnostics go to stderr (stdout carries the Get result) and, when
``CORESCHED_LOG_FILE`` is set, to a small rotating file that keeps DEBUG
lines such as the individual prctl calls.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FILE_MAX_BYTES = 256 * 1024
LOG_FILE_BACKUPS = 2
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s[%(process)d]: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``pid`` tells the wrapper from its child."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "pid": record.process,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _file_handler(path: str) -> Optional[logging.Handler]:
    p = Path(path).expanduser()
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(p, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8")
    except OSError as e:
        # The command still runs without its log file.
        sys.stderr.write(f"coresched: WARNING: failed to open log file {path!r}: {e}\n")
        return None
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging(level: str = "WARNING", json_logs: bool = False, *, log_file: Optional[str] = None) -> None:
    root = logging.getLogger()
    # Handlers filter; the root passes everything so the file can keep DEBUG.
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, level.upper(), logging.WARNING))
    fmt = JsonFormatter() if json_logs else logging.Formatter(CONSOLE_FORMAT)

    handlers = [console]
    if log_file:
        fh = _file_handler(log_file)
        if fh is not None:
            handlers.append(fh)
    for handler in handlers:
        handler.setFormatter(fmt)
    root.handlers[:] = handlers


log = logging.getLogger("coresched")
