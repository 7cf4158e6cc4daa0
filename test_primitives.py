"""
Tests for the prctl backend's argument encoding.
"""

import ctypes
import errno
import os
import sys

import pytest

from src.core.primitives import (
    PR_SCHED_CORE,
    PR_SCHED_CORE_CREATE,
    PR_SCHED_CORE_GET,
    PR_SCHED_CORE_SHARE_FROM,
    PR_SCHED_CORE_SHARE_TO,
    PrctlCookieBackend,
)
from src.core.types import Scope, ShareDirection


class StubPrctl:
    """Records prctl calls; fills the GET out-parameter like the kernel."""

    def __init__(self, cookie=0, fail_errno=0):
        self.cookie = cookie
        self.fail_errno = fail_errno
        self.calls = []

    def __call__(self, option, cmd, pid, scope, uaddr):
        self.calls.append((option, cmd, pid, scope))
        if self.fail_errno:
            ctypes.set_errno(self.fail_errno)
            return -1
        if cmd == PR_SCHED_CORE_GET:
            ctypes.c_ulong.from_address(uaddr).value = self.cookie
        return 0


def _backend(stub):
    backend = PrctlCookieBackend()
    backend._prctl = stub
    return backend


def test_kernel_constants():
    assert PR_SCHED_CORE == 62
    assert (PR_SCHED_CORE_GET, PR_SCHED_CORE_CREATE, PR_SCHED_CORE_SHARE_TO, PR_SCHED_CORE_SHARE_FROM) == (0, 1, 2, 3)
    assert [int(s) for s in Scope] == [0, 1, 2]


def test_read_cookie():
    stub = StubPrctl(cookie=0xabc123)
    assert _backend(stub).read_cookie(321, Scope.THREAD) == 0xabc123
    assert stub.calls == [(PR_SCHED_CORE, PR_SCHED_CORE_GET, 321, 0)]


def test_assign_cookie_passes_scope():
    stub = StubPrctl()
    _backend(stub).assign_cookie(321, Scope.PROCESS_GROUP)
    assert stub.calls == [(PR_SCHED_CORE, PR_SCHED_CORE_CREATE, 321, 2)]


def test_share_directions():
    stub = StubPrctl()
    backend = _backend(stub)
    backend.share_cookie(ShareDirection.FROM, 11, Scope.THREAD)
    backend.share_cookie(ShareDirection.TO, 12, Scope.THREAD_GROUP)
    assert stub.calls == [
        (PR_SCHED_CORE, PR_SCHED_CORE_SHARE_FROM, 11, 0),
        (PR_SCHED_CORE, PR_SCHED_CORE_SHARE_TO, 12, 1),
    ]


def test_failure_raises_oserror_with_errno():
    backend = _backend(StubPrctl(fail_errno=errno.ESRCH))
    with pytest.raises(OSError) as excinfo:
        backend.read_cookie(999, Scope.THREAD)
    assert excinfo.value.errno == errno.ESRCH


def test_libc_is_loaded_lazily():
    backend = PrctlCookieBackend("/nonexistent/libc.so.6")
    assert backend._prctl is None
    with pytest.raises(OSError):
        backend.read_cookie(os.getpid(), Scope.THREAD)


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="prctl is Linux only")
def test_real_prctl_get_on_self():
    # Kernels without CONFIG_SCHED_CORE (or SMT) reject the call; either way
    # the answer must come back as a value or a clean OSError.
    try:
        cookie = PrctlCookieBackend().read_cookie(os.getpid(), Scope.THREAD)
    except OSError as exc:
        assert exc.errno in (errno.EINVAL, errno.ENODEV, errno.EPERM, errno.ENOSYS)
    else:
        assert cookie >= 0
