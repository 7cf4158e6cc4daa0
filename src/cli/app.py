"""coresched command line entrypoint.

This is the one place that turns outcomes into process exit codes: command
results, ``CoreschedError`` subclasses, and a launched program's status,
which is reproduced as closely as possible (including death by signal).
"""

from __future__ import annotations

import os
import signal
import sys
from typing import Optional, Sequence

from src.core.config import CoreschedConfig
from src.core.cookie_manager import CookieManager
from src.core.errors import EXIT_FAILURE, EXIT_SUCCESS, PROG_NAME, CoreschedError
from src.core.executor import Executor
from src.core.logging_utils import log, setup_logging
from src.core.primitives import ICookieBackend, PrctlCookieBackend
from src.core.resolver import build_parser, resolve


def run(
    argv: Optional[Sequence[str]] = None,
    *,
    backend: Optional[ICookieBackend] = None,
    executor: Optional[Executor] = None,
) -> int:
    """Resolve and execute one invocation; return a subprocess-style code."""
    try:
        command = resolve(argv)
        if command is None:
            build_parser().print_help(sys.stdout)
            return EXIT_SUCCESS
        log.debug("resolved %r", command)
        if executor is None:
            if backend is None:
                backend = PrctlCookieBackend(CoreschedConfig.from_env().libc_path)
            executor = Executor(CookieManager(backend))
        return executor.run(command)
    except CoreschedError as exc:
        log.debug("%s: %s", type(exc).__name__, exc)
        sys.stderr.write(f"{PROG_NAME}: {exc}\n")
        return exc.exit_code


def _flush_stdout() -> int:
    try:
        sys.stdout.flush()
    except OSError as exc:
        sys.stderr.write(f"{PROG_NAME}: write error: {exc}\n")
        return EXIT_FAILURE
    return EXIT_SUCCESS


def _die_like_child(signum: int) -> int:
    """Terminate with the same signal that killed the child."""
    _flush_stdout()
    # SIGKILL and SIGSTOP cannot be handled, so their disposition is already
    # the default and signal.signal() refuses them.
    if signum not in (signal.SIGKILL, signal.SIGSTOP):
        try:
            signal.signal(signum, signal.SIG_DFL)
        except (OSError, ValueError) as exc:
            log.debug("could not reset handler for signal %d: %s", signum, exc)
    try:
        os.kill(os.getpid(), signum)
    except OSError as exc:
        log.debug("could not re-raise signal %d: %s", signum, exc)
    # Signals that do not terminate by default end up here.
    return 128 + signum


def main(argv: Optional[Sequence[str]] = None) -> int:
    cfg = CoreschedConfig.from_env()
    setup_logging(cfg.log_level, cfg.json_logs, log_file=cfg.log_file)

    code = run(argv, backend=PrctlCookieBackend(cfg.libc_path))
    if code < 0:
        return _die_like_child(-code)
    flushed = _flush_stdout()
    return code if code != EXIT_SUCCESS else flushed


def main_cli() -> None:
    raise SystemExit(main())
