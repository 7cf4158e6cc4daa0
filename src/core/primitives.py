"""Core scheduling cookie primitives.

This module defines the minimal interface the cookie manager talks to, so
the kernel binding can be swapped out:

* prctl(PR_SCHED_CORE) through libc (the real thing)
* an in-memory double (tests)

Every primitive is a single blocking call. Failures are reported as
``OSError`` carrying the kernel errno; callers decide how to surface them.
"""

from __future__ import annotations

import ctypes
import os
from abc import ABC, abstractmethod
from typing import Optional

from .logging_utils import log
from .types import Scope, ShareDirection

# <linux/prctl.h>
PR_SCHED_CORE = 62
PR_SCHED_CORE_GET = 0
PR_SCHED_CORE_CREATE = 1
PR_SCHED_CORE_SHARE_TO = 2
PR_SCHED_CORE_SHARE_FROM = 3

_SHARE_CMDS = {
    ShareDirection.FROM: PR_SCHED_CORE_SHARE_FROM,
    ShareDirection.TO: PR_SCHED_CORE_SHARE_TO,
}


class ICookieBackend(ABC):
    """Abstract interface every kernel binding must implement."""

    @abstractmethod
    def read_cookie(self, pid: int, scope: Scope) -> int:
        """Return the cookie of ``pid`` (0 when it has none)."""

    @abstractmethod
    def assign_cookie(self, pid: int, scope: Scope) -> None:
        """Give the task(s) identified by ``(pid, scope)`` a new cookie."""

    @abstractmethod
    def share_cookie(self, direction: ShareDirection, pid: int, scope: Scope) -> None:
        """Share a cookie between the calling task and ``pid``.

        ``FROM`` makes the caller adopt ``pid``'s cookie; ``TO`` propagates
        the caller's cookie onto ``(pid, scope)``.
        """


class PrctlCookieBackend(ICookieBackend):
    """libc ``prctl`` based implementation.

    The library is loaded lazily so that constructing the backend on a
    non-Linux host (or in tests) never touches libc.
    """

    def __init__(self, libc_path: Optional[str] = None):
        self.libc_path = libc_path or None
        self._prctl = None

    # ---------------- ICookieBackend API ---------------- #
    def read_cookie(self, pid: int, scope: Scope) -> int:  # type: ignore[override]
        cookie = ctypes.c_ulong(0)
        self._call(PR_SCHED_CORE_GET, pid, scope, ctypes.addressof(cookie))
        return int(cookie.value)

    def assign_cookie(self, pid: int, scope: Scope) -> None:  # type: ignore[override]
        self._call(PR_SCHED_CORE_CREATE, pid, scope, 0)

    def share_cookie(self, direction: ShareDirection, pid: int, scope: Scope) -> None:  # type: ignore[override]
        self._call(_SHARE_CMDS[direction], pid, scope, 0)

    # ---------------- Internal helpers ---------------- #
    def _load(self):
        if self._prctl is not None:
            return self._prctl
        try:
            libc = ctypes.CDLL(self.libc_path, use_errno=True)
        except OSError as exc:
            raise OSError(exc.errno, f"failed to load libc ({self.libc_path or 'default'}): {exc}") from exc
        fn = libc.prctl
        fn.argtypes = [ctypes.c_int, ctypes.c_ulong, ctypes.c_ulong, ctypes.c_ulong, ctypes.c_ulong]
        fn.restype = ctypes.c_int
        self._prctl = fn
        return fn

    def _call(self, cmd: int, pid: int, scope: Scope, uaddr: int) -> None:
        prctl = self._load()
        log.debug("prctl(PR_SCHED_CORE, %d, pid=%d, scope=%s)", cmd, pid, scope.label)
        rc = prctl(PR_SCHED_CORE, cmd, pid, int(scope), uaddr)
        if rc != 0:
            err = ctypes.get_errno()
            raise OSError(err, os.strerror(err))
