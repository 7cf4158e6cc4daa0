"""Runtime configuration.

Settings come from ``CORESCHED_*`` environment variables so that wrappers
and service units can tune logging without touching the command line, which
belongs to the program being launched as much as to coresched.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

VERSION = "0.3.0"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class CoreschedConfig:
    """Configuration for a single coresched invocation."""

    log_level: str = "WARNING"
    json_logs: bool = False
    log_file: Optional[str] = None
    libc_path: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CoreschedConfig":
        env = os.environ if environ is None else environ
        return cls(
            log_level=(env.get("CORESCHED_LOG_LEVEL") or "WARNING").upper(),
            json_logs=(env.get("CORESCHED_JSON_LOGS", "").strip().lower() in _TRUTHY),
            log_file=env.get("CORESCHED_LOG_FILE") or None,
            libc_path=env.get("CORESCHED_LIBC") or None,
        )
