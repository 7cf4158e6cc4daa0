"""Shared pytest fixtures.

``FakeCookieBackend`` stands in for the kernel's per-task cookie table so the
resolver/manager/executor stack can be exercised without CONFIG_SCHED_CORE or
privileges. It follows the prctl rules the tool relies on: unknown PIDs fail
with ESRCH, PID 0 means the calling task, and scope widens a create/push to
the thread group or process group.
"""

import errno
import os
from typing import Dict, List, Optional, Tuple

import pytest

from src.core.primitives import ICookieBackend
from src.core.types import ChildExit, Scope, ShareDirection


class FakeCookieBackend(ICookieBackend):
    def __init__(self):
        self.cookies: Dict[int, int] = {}
        self.tasks: Dict[int, Tuple[int, int]] = {}  # pid -> (tgid, pgid)
        self.denied = set()
        self.calls: List[tuple] = []
        self._next_cookie = 0xabc123

    def add_task(self, pid: int, tgid: Optional[int] = None, pgid: Optional[int] = None, cookie: int = 0) -> int:
        self.tasks[pid] = (tgid or pid, pgid or pid)
        if cookie:
            self.cookies[pid] = cookie
        return pid

    # ---------------- ICookieBackend API ---------------- #
    def read_cookie(self, pid, scope):
        self.calls.append(("read", pid, scope))
        pid = self._check(pid)
        return self.cookies.get(pid, 0)

    def assign_cookie(self, pid, scope):
        self.calls.append(("assign", pid, scope))
        pid = self._check(pid)
        cookie = self._next_cookie
        self._next_cookie += 0x100
        for target in self._targets(pid, scope):
            self.cookies[target] = cookie

    def share_cookie(self, direction, pid, scope):
        self.calls.append(("share", direction, pid, scope))
        pid = self._check(pid)
        me = self._self()
        if direction is ShareDirection.FROM:
            self.cookies[me] = self.cookies.get(pid, 0)
            return
        cookie = self.cookies.get(me, 0)
        for target in self._targets(pid, scope):
            self.cookies[target] = cookie

    # ---------------- helpers ---------------- #
    def cookie_of(self, pid: int) -> int:
        return self.cookies.get(pid, 0)

    def _self(self) -> int:
        me = os.getpid()
        if me not in self.tasks:
            self.tasks[me] = (me, os.getpgrp())
        return me

    def _check(self, pid: int) -> int:
        me = self._self()
        if pid == 0:
            pid = me
        if pid in self.denied:
            raise OSError(errno.EPERM, os.strerror(errno.EPERM))
        if pid not in self.tasks:
            raise OSError(errno.ESRCH, os.strerror(errno.ESRCH))
        return pid

    def _targets(self, pid: int, scope: Scope) -> List[int]:
        if scope is Scope.THREAD:
            return [pid]
        index = 0 if scope is Scope.THREAD_GROUP else 1
        key = self.tasks[pid][index]
        return [p for p, ids in self.tasks.items() if ids[index] == key]


class RecordingSpawner:
    """In-process stand-in for ``ChildSpawner``.

    Runs the setup hook in the current process, then records the cookie the
    "program" would start with instead of executing anything.
    """

    def __init__(self, backend: FakeCookieBackend, returncode: int = 0):
        self.backend = backend
        self.returncode = returncode
        self.launches: List[dict] = []

    def __call__(self, setup):
        self._setup = setup
        return self

    def run(self, argv):
        self._setup()
        self.launches.append({
            "argv": list(argv),
            "cookie": self.backend.cookie_of(os.getpid()),
        })
        return ChildExit(pid=os.getpid(), returncode=self.returncode)


@pytest.fixture
def fake_backend():
    return FakeCookieBackend()


@pytest.fixture
def recording_spawner(fake_backend):
    return RecordingSpawner(fake_backend)
