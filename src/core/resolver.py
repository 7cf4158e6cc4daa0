"""Command line resolution.

The parser records options in the order they appear through custom argparse
actions that feed a ``CommandBuilder``. The builder refuses a second,
different function as soon as it shows up and refuses to overwrite a PID
slot that is already set. ``CommandBuilder.build`` then applies the remaining
checks in a fixed order and returns exactly one command variant, or ``None``
when nothing was requested (the help path).

PID slots follow the command line: ``--get`` and ``--source`` fill the
source slot, ``--new`` and ``--dest`` fill the destination slot. Zero means
unset.
"""

from __future__ import annotations

import argparse
from typing import List, Optional, Sequence

from .config import VERSION
from .errors import PROG_NAME, UsageError
from .types import (
    DEFAULT_SCOPE,
    Command,
    CopyCookie,
    CreateCookie,
    ExecWithCookie,
    GetCookie,
    Scope,
)

FN_GET = "get"
FN_NEW = "new"
FN_COPY = "copy"
FN_EXEC = "exec"

ERR_MULTIPLE_SOURCE_PIDS = "Multiple source PIDs defined"
ERR_MULTIPLE_DEST_PIDS = "Multiple destination PIDs defined"

USAGE = (
    f"\n {PROG_NAME} --get <PID>\n"
    f" {PROG_NAME} --new <PID> [-t <TYPE>]\n"
    f" {PROG_NAME} --copy -s <PID> -d <PID> [-t <TYPE>]\n"
    f" {PROG_NAME} [-e] [-s <PID>] [-t <TYPE>] -- PROGRAM ARGS..."
)


class CommandBuilder:
    """Accumulates one invocation's request while the command line is scanned."""

    def __init__(self) -> None:
        self.function: Optional[str] = None
        self.source_pid = 0
        self.dest_pid = 0
        self.scope: Scope = DEFAULT_SCOPE
        self.program: List[str] = []

    # ---------------- scanning ---------------- #
    def select(self, function: str) -> None:
        if self.function is not None and self.function != function:
            raise UsageError("Cannot do more than one function at a time", hint=True)
        self.function = function

    def set_source(self, pid: int) -> None:
        if self.source_pid:
            raise UsageError(f"Ambiguous usage: {ERR_MULTIPLE_SOURCE_PIDS}")
        self.source_pid = pid

    def set_dest(self, pid: int) -> None:
        if self.dest_pid:
            raise UsageError(f"Ambiguous usage: {ERR_MULTIPLE_DEST_PIDS}")
        self.dest_pid = pid

    def set_program(self, tokens: Sequence[str]) -> None:
        tokens = list(tokens)
        if tokens and tokens[0] == "--":
            tokens = tokens[1:]
        self.program = tokens

    # ---------------- validation ---------------- #
    def build(self) -> Optional[Command]:
        function = self.function
        if function is None:
            if self.program:
                function = FN_EXEC
            elif self.source_pid:
                function = FN_GET
            else:
                return None

        if self.source_pid < 0 or self.dest_pid < 0:
            raise UsageError("PID cannot be negative")
        if function == FN_COPY:
            if not self.source_pid:
                raise UsageError("-s/--source PID is required when copying")
            if not self.dest_pid:
                raise UsageError("-d/--dest PID is required when copying")
        if function == FN_GET and not self.source_pid:
            raise UsageError("PID cannot be zero")
        if function == FN_NEW and not self.dest_pid:
            raise UsageError("PID cannot be zero")

        if function == FN_GET and self.dest_pid:
            raise UsageError("Cannot use -d/--dest with -g/--get", hint=True)
        if function == FN_NEW and self.source_pid:
            raise UsageError("Cannot use -s/--source with -n/--new", hint=True)
        if function == FN_EXEC and self.dest_pid:
            raise UsageError("Cannot use -d/--dest when spawning a program", hint=True)
        if function != FN_EXEC and self.program:
            raise UsageError("bad usage", hint=True)

        if function == FN_GET:
            return GetCookie(pid=self.source_pid)
        if function == FN_NEW:
            return CreateCookie(pid=self.dest_pid, scope=self.scope)
        if function == FN_COPY:
            return CopyCookie(source=self.source_pid, dest=self.dest_pid, scope=self.scope)
        if not self.program:
            raise UsageError("No program to execute", hint=True)
        return ExecWithCookie(
            program=tuple(self.program),
            scope=self.scope,
            source=self.source_pid or None,
        )


# pid_t is a signed 32-bit integer; prctl takes it through an unsigned long.
PID_MIN = -(2 ** 31)
PID_MAX = 2 ** 31 - 1


def parse_pid(text: str, option: str) -> int:
    stripped = text.strip()
    digits = stripped[1:] if stripped[:1] in ("+", "-") else stripped
    if not (digits.isascii() and digits.isdigit()):
        raise UsageError(f"Failed to parse PID for {option}: '{text}'")
    value = int(stripped, 10)
    if not PID_MIN <= value <= PID_MAX:
        raise UsageError(f"Failed to parse PID for {option}: '{text}'")
    return value


def parse_scope(text: str) -> Scope:
    try:
        return Scope.from_name(text)
    except ValueError:
        raise UsageError(f"'{text}' is an invalid option. Must be one of pid/tgid/pgid") from None


# ---------------- argparse glue ---------------- #
def _builder(namespace: argparse.Namespace) -> CommandBuilder:
    return namespace.builder


class _FunctionAction(argparse.Action):
    """Select a function; with a value, also record its PID."""

    def __init__(self, option_strings, dest, function: str, slot: Optional[str] = None, **kwargs):
        self.function = function
        self.slot = slot
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        builder = _builder(namespace)
        builder.select(self.function)
        if self.slot is not None:
            pid = parse_pid(values, "/".join(self.option_strings))
            getattr(builder, f"set_{self.slot}")(pid)


class _PidAction(argparse.Action):
    def __init__(self, option_strings, dest, slot: str, **kwargs):
        self.slot = slot
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        pid = parse_pid(values, "/".join(self.option_strings[:2]))
        getattr(_builder(namespace), f"set_{self.slot}")(pid)


class _ScopeAction(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        _builder(namespace).scope = parse_scope(values)


class _ProgramAction(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        _builder(namespace).set_program(values)


class CoreschedArgumentParser(argparse.ArgumentParser):
    """argparse reports problems as ``UsageError`` instead of exiting."""

    def error(self, message):  # type: ignore[override]
        raise UsageError(message, hint=True)


def build_parser() -> CoreschedArgumentParser:
    parser = CoreschedArgumentParser(
        prog=PROG_NAME,
        usage=USAGE,
        description="Manage core scheduling cookies for tasks.",
        epilog=f"For more details see {PROG_NAME}(1).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    functions = parser.add_argument_group("Functions")
    functions.add_argument("-g", "--get", metavar="<PID>", action=_FunctionAction, function=FN_GET, slot="source",
                           help="get the core scheduling cookie of a PID")
    functions.add_argument("-n", "--new", metavar="<PID>", action=_FunctionAction, function=FN_NEW, slot="dest",
                           help="assign a new core scheduling cookie to PID")
    functions.add_argument("-c", "--copy", nargs=0, action=_FunctionAction, function=FN_COPY,
                           help="copy the core scheduling cookie from PID to another PID, "
                                "requires the --source and --dest option")
    functions.add_argument("-e", "--exec", nargs=0, action=_FunctionAction, function=FN_EXEC,
                           help="execute PROGRAM with a new core scheduling cookie, "
                                "or the cookie of --source")

    options = parser.add_argument_group("Options")
    options.add_argument("-s", "--source", metavar="<PID>", action=_PidAction, slot="source",
                         help="where to copy the core scheduling cookie from")
    options.add_argument("-d", "--dest", "--destination", metavar="<PID>", action=_PidAction, slot="dest",
                         help="where to copy the core scheduling cookie to")
    options.add_argument("-t", "--type", metavar="<TYPE>", action=_ScopeAction,
                         help="type of the destination PID, or the type of the PID when a new core "
                              "scheduling cookie is created. Can be one of the following: "
                              "pid, tgid or pgid. Defaults to tgid.")
    options.add_argument("-V", "--version", action="version", version=f"{PROG_NAME} {VERSION}")

    parser.add_argument("program", nargs=argparse.REMAINDER, action=_ProgramAction,
                        help=argparse.SUPPRESS)
    return parser


def resolve(argv: Optional[Sequence[str]] = None) -> Optional[Command]:
    """Turn ``argv`` into a command, or ``None`` when only help is wanted."""
    builder = CommandBuilder()
    parser = build_parser()
    parser.parse_args(argv, namespace=argparse.Namespace(builder=builder))
    return builder.build()
