"""Application errors and exit codes."""

from __future__ import annotations

import errno
import os
from typing import Optional

EXIT_SUCCESS = 0
EXIT_NO_COOKIE = 1
EXIT_FAILURE = 1
EXIT_USAGE = errno.EINVAL
EXIT_CANNOT_INVOKE = 126
EXIT_ENOENT = 127

PROG_NAME = "coresched"


def _strerror(err: Optional[int], detail: Optional[str] = None) -> str:
    if err:
        return os.strerror(err)
    return detail or "unknown error"


class CoreschedError(Exception):
    """Base application error. ``exit_code`` is what the process exits with."""

    exit_code = EXIT_FAILURE


class UsageError(CoreschedError):
    """Malformed or contradictory command line. No kernel call was made."""

    exit_code = EXIT_USAGE

    def __init__(self, message: str, *, hint: bool = False):
        if hint:
            message = f"{message}. See {PROG_NAME} --help"
        super().__init__(message)


class KernelOperationError(CoreschedError):
    """A prctl(PR_SCHED_CORE) call failed."""

    def __init__(self, operation: str, pid: int, err: Optional[int], detail: Optional[str] = None):
        self.operation = operation
        self.pid = pid
        self.errno = err
        super().__init__(f"Failed to {operation} PID {pid}: {_strerror(err, detail)}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.errno or EXIT_FAILURE


class ForkError(CoreschedError):
    """The child process for the program could not be created."""

    def __init__(self, program: str, err: Optional[int]):
        self.program = program
        self.errno = err
        super().__init__(f"failed to fork for {program}: {_strerror(err)}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.errno or EXIT_FAILURE


class ExecError(CoreschedError):
    """The child could not replace its image with the program."""

    def __init__(self, program: str, err: Optional[int]):
        self.program = program
        self.errno = err
        super().__init__(f"failed to execute {program}: {_strerror(err)}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return EXIT_ENOENT if self.errno == errno.ENOENT else EXIT_CANNOT_INVOKE
