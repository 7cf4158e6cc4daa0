"""Child process spawning with a pre-exec setup hook.

``ChildSpawner`` forks a child, runs a setup callable inside that child
before its image is replaced with the requested program, and waits for the
child to terminate. The setup runs in the child only; the parent never
performs it.

If the setup raises a ``CoreschedError`` the child writes the message to
stderr and exits right away with the error's exit code, so it can never fall
through into the program (or back into wrapper code).
"""

from __future__ import annotations

import errno
import os
import signal
from typing import Callable, Optional, Sequence

import psutil

from .errors import PROG_NAME, CoreschedError, ExecError, ForkError
from .logging_utils import log
from .types import ChildExit

SetupFn = Callable[[], None]

# Signals the terminal delivers to the whole foreground group. The child
# handles them; the waiting parent must not die first.
_WAIT_IGNORED = (signal.SIGINT, signal.SIGQUIT)


class ChildSpawner:
    """Spawn ``argv`` in a child after ``setup`` has run in that child."""

    def __init__(self, setup: Optional[SetupFn] = None):
        self.setup = setup

    def run(self, argv: Sequence[str]) -> ChildExit:
        """Spawn, wait, and return the child's termination status."""
        if not argv:
            raise ValueError("argv must not be empty")
        program = argv[0]
        try:
            proc = psutil.Popen(list(argv), preexec_fn=self._child_setup, close_fds=True)
        except OSError as exc:
            raise self._classify(program, exc) from exc
        log.debug("spawned %s as pid %d", program, proc.pid)

        previous = {sig: signal.signal(sig, signal.SIG_IGN) for sig in _WAIT_IGNORED}
        try:
            returncode = int(proc.wait())
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
        log.debug("child %d (%s) exited with %d", proc.pid, program, returncode)
        return ChildExit(pid=proc.pid, returncode=returncode)

    def _child_setup(self) -> None:
        # Runs in the forked child, between fork and exec.
        if self.setup is None:
            return
        try:
            self.setup()
        except CoreschedError as exc:
            os.write(2, f"{PROG_NAME}: {exc}\n".encode("utf-8", "replace"))
            os._exit(exc.exit_code)

    @staticmethod
    def _classify(program: str, exc: OSError) -> CoreschedError:
        # Exec failures come back from the child tagged with the program
        # path; fork failures are raised in the parent without one.
        if exc.filename is None and exc.errno in (errno.EAGAIN, errno.ENOMEM):
            return ForkError(program, exc.errno)
        return ExecError(program, exc.errno)
