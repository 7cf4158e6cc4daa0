"""Core shared data types for coresched.

This module centralizes the lightweight value types that flow between the
resolver, the executor and the cookie manager. Keeping them separate from the
modules that act on them lets the backend (prctl, or an in-memory double in
tests) and the CLI layer depend on the same vocabulary without circular
imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Tuple, Union


class Scope(IntEnum):
    """Granularity of a cookie operation.

    Values match ``PR_SCHED_CORE_SCOPE_*`` so they can be handed to the
    kernel unchanged.
    """

    THREAD = 0
    THREAD_GROUP = 1
    PROCESS_GROUP = 2

    @classmethod
    def from_name(cls, name: str) -> "Scope":
        """Map the command line spelling (pid/tgid/pgid) to a scope."""
        try:
            return _SCOPE_NAMES[name]
        except KeyError:
            raise ValueError(name) from None

    @property
    def label(self) -> str:
        return _SCOPE_LABELS[self]


_SCOPE_NAMES = {
    "pid": Scope.THREAD,
    "tgid": Scope.THREAD_GROUP,
    "pgid": Scope.PROCESS_GROUP,
}
_SCOPE_LABELS = {scope: name for name, scope in _SCOPE_NAMES.items()}

DEFAULT_SCOPE = Scope.THREAD_GROUP


class ShareDirection(Enum):
    """Direction of a share request, relative to the calling task."""

    FROM = "from"  # pull: caller adopts the target's cookie
    TO = "to"  # push: target adopts the caller's cookie


@dataclass(frozen=True)
class GetCookie:
    """Print the cookie held by ``pid``."""

    pid: int


@dataclass(frozen=True)
class CreateCookie:
    """Assign a brand-new cookie to ``pid`` at ``scope``."""

    pid: int
    scope: Scope = DEFAULT_SCOPE


@dataclass(frozen=True)
class CopyCookie:
    """Copy the cookie of ``source`` onto ``dest`` at ``scope``."""

    source: int
    dest: int
    scope: Scope = DEFAULT_SCOPE


@dataclass(frozen=True)
class ExecWithCookie:
    """Run ``program`` in a child that first pulls ``source``'s cookie, or
    creates a fresh one at ``scope`` when no source is given.
    """

    program: Tuple[str, ...]
    scope: Scope = DEFAULT_SCOPE
    source: Optional[int] = None

    @property
    def program_name(self) -> str:
        return self.program[0] if self.program else ""


Command = Union[GetCookie, CreateCookie, CopyCookie, ExecWithCookie]


@dataclass
class ChildExit:
    """Termination status of a spawned child.

    ``returncode`` follows the subprocess convention: a negative value -N
    means the child was killed by signal N.
    """

    pid: int
    returncode: int

    @property
    def signal(self) -> Optional[int]:
        return -self.returncode if self.returncode < 0 else None
