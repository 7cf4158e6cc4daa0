"""Command execution.

``Executor.run`` takes one resolved command and carries it out. It returns a
process return code in the subprocess convention (negative N: the launched
program was killed by signal N) and lets ``CoreschedError`` propagate; mapping
those to messages is the caller's job.
"""

from __future__ import annotations

import sys
from functools import partial
from typing import Callable, Optional, TextIO

from .cookie_manager import CookieManager
from .errors import EXIT_NO_COOKIE, EXIT_SUCCESS, UsageError
from .logging_utils import log
from .spawner import ChildSpawner, SetupFn
from .types import Command, CopyCookie, CreateCookie, ExecWithCookie, GetCookie

SpawnerFactory = Callable[[SetupFn], ChildSpawner]


class Executor:
    """Interprets a command against a ``CookieManager``."""

    def __init__(
        self,
        manager: CookieManager,
        spawner_factory: Optional[SpawnerFactory] = None,
        out: Optional[TextIO] = None,
    ):
        self.manager = manager
        self.spawner_factory = spawner_factory or ChildSpawner
        self.out = out

    def run(self, command: Command) -> int:
        if isinstance(command, GetCookie):
            return self.get(command)
        if isinstance(command, CreateCookie):
            self.manager.create(command.pid, command.scope)
            return EXIT_SUCCESS
        if isinstance(command, CopyCookie):
            self.manager.copy(command.source, command.dest, command.scope)
            return EXIT_SUCCESS
        if isinstance(command, ExecWithCookie):
            return self.exec(command)
        raise TypeError(f"unknown command: {command!r}")

    def get(self, command: GetCookie) -> int:
        cookie = self.manager.get(command.pid)
        if cookie:
            self._print(f"core scheduling cookie of pid {command.pid} is {cookie:#x}")
            return EXIT_SUCCESS
        self._print(f"pid {command.pid} doesn't have a core scheduling cookie")
        return EXIT_NO_COOKIE

    def exec(self, command: ExecWithCookie) -> int:
        if not command.program:
            raise UsageError("No program to execute", hint=True)
        # Bound now, executed in the child before its image is replaced.
        setup = partial(self.manager.assign_to_self, command.scope, command.source)
        spawner = self.spawner_factory(setup)
        log.debug(
            "launching %s with %s",
            command.program_name,
            f"cookie of pid {command.source}" if command.source else f"new cookie (scope={command.scope.label})",
        )
        return spawner.run(command.program).returncode

    def _print(self, line: str) -> None:
        print(line, file=self.out or sys.stdout)
