"""coresched - cookie management module

Composes the three kernel primitives from ``src.core.primitives`` into the
domain operations the executor needs. The manager holds no cookie state of
its own: every call is a round-trip to whatever ``ICookieBackend`` it was
given, and a failing call is turned into a ``KernelOperationError`` that
names the operation and PID.
"""

import os
from typing import Optional

import psutil

from .errors import KernelOperationError
from .logging_utils import log
from .primitives import ICookieBackend, PrctlCookieBackend
from .types import Scope, ShareDirection


class CookieManager:
    """Domain operations on core scheduling cookies.

    The pull side of every share (reading a cookie, adopting one) runs at
    ``Scope.THREAD``; that is what the kernel accepts. The user's scope only
    reaches ``create`` and the push side of ``copy``.
    """

    def __init__(self, backend: Optional[ICookieBackend] = None):
        self.backend = backend if backend is not None else PrctlCookieBackend()

    def get(self, pid: int) -> int:
        """Return the cookie of ``pid``; 0 means the task has none."""
        try:
            cookie = self.backend.read_cookie(pid, Scope.THREAD)
        except OSError as exc:
            raise KernelOperationError("get cookie from", pid, exc.errno, exc.strerror) from exc
        log.debug("cookie of %s is %#x", self.describe(pid), cookie)
        return cookie

    def create(self, pid: int, scope: Scope) -> None:
        """Give ``(pid, scope)`` a brand-new cookie, replacing any previous one."""
        try:
            self.backend.assign_cookie(pid, scope)
        except OSError as exc:
            raise KernelOperationError("create cookie for", pid, exc.errno, exc.strerror) from exc
        log.debug("created cookie for %s (scope=%s)", self.describe(pid), scope.label)

    def pull_into(self, from_pid: int) -> None:
        """Make the calling task adopt the cookie of ``from_pid``."""
        try:
            self.backend.share_cookie(ShareDirection.FROM, from_pid, Scope.THREAD)
        except OSError as exc:
            raise KernelOperationError("pull cookie from", from_pid, exc.errno, exc.strerror) from exc
        log.debug("pulled cookie from %s", self.describe(from_pid))

    def push_from(self, to_pid: int, scope: Scope) -> None:
        """Propagate the calling task's cookie onto ``(to_pid, scope)``."""
        try:
            self.backend.share_cookie(ShareDirection.TO, to_pid, scope)
        except OSError as exc:
            raise KernelOperationError("push cookie to", to_pid, exc.errno, exc.strerror) from exc
        log.debug("pushed cookie to %s (scope=%s)", self.describe(to_pid), scope.label)

    def copy(self, from_pid: int, to_pid: int, scope: Scope) -> None:
        """Copy ``from_pid``'s cookie onto ``(to_pid, scope)``.

        Two kernel round-trips through the calling task. When the push fails
        the caller keeps the pulled cookie; it is not rolled back.
        """
        self.pull_into(from_pid)
        self.push_from(to_pid, scope)

    def assign_to_self(self, scope: Scope, source: Optional[int] = None) -> None:
        """Give the calling task ``source``'s cookie, or a fresh one at ``scope``."""
        if source:
            self.pull_into(source)
        else:
            self.create(os.getpid(), scope)

    @staticmethod
    def describe(pid: int) -> str:
        """Human readable task label for log lines; never raises."""
        try:
            name = psutil.Process(pid).name()
        except (psutil.Error, ValueError):
            return f"pid {pid}"
        return f"pid {pid} ({name})"
