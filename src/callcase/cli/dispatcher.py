"""Command line dispatch onto wrappers.

``StringArgsDispatcher`` maps command names to wrappers and calls them with
the remaining command line arguments as positional text tokens.
``SuperStringArgsDispatcher`` adds one level of grouping (``app db migrate``).
Both complete command names for shells that run the program to ask for
completions (bash: ``complete -C calc calc``).

Example:
    >>> dispatcher = StringArgsDispatcher()
    >>> dispatcher.add_command("add", "Adds two numbers", reflect_wrapper(add), PrintResults())
    >>> raise SystemExit(dispatcher.main(sys.argv[1:], app_name="calc"))
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol, TextIO, runtime_checkable

from rich.console import Console
from rich.text import Text

from callcase.foundation.config import get_settings
from callcase.foundation.core import CallResult, ResultsHandler, Wrapper, text_args_func
from callcase.foundation.errors import (
    CommandNotFound,
    DuplicateRegistration,
    Err,
    ErrorReport,
    InvalidCommandName,
    NamespaceNotFound,
)
from callcase.foundation.types import Context
from callcase.runtime.observability import get_logger

DEFAULT_COMMAND = ""

_FORBIDDEN = frozenset("|&;()<>")

log = get_logger("callcase.cli")


def check_command_name(command: str) -> None:
    """Validate a command name.

    Raises:
        InvalidCommandName: If it contains whitespace, one of ``| & ; ( ) < >``
            or no printable character at all
    """
    if any(ch.isspace() for ch in command):
        raise InvalidCommandName(command, "contains space characters")
    if not any(ch.isprintable() for ch in command):
        raise InvalidCommandName(command, "contains no printable characters")
    if any(ch in _FORBIDDEN for ch in command):
        raise InvalidCommandName(command, "contains one of the characters | & ; ( ) < >")


@runtime_checkable
class CommandLogger(Protocol):
    """Called with every dispatched command before it runs."""

    def __call__(self, command: str, args: Sequence[str]) -> None: ...


@dataclass(frozen=True, slots=True)
class _Command:
    command: str
    description: str
    wrapper: Wrapper
    run: Callable[..., CallResult]


# ─────────────────────────────────────────────────────────────────────────────
# Single Level
# ─────────────────────────────────────────────────────────────────────────────


class StringArgsDispatcher:
    """Command name to wrapper table. Register everything before dispatching concurrently."""

    __slots__ = ("_commands", "_loggers")

    def __init__(self, *loggers: CommandLogger) -> None:
        self._commands: dict[str, _Command] = {}
        self._loggers = loggers

    def add_command(self, command: str, description: str, wrapper: Wrapper, *handlers: ResultsHandler) -> None:
        """Register ``wrapper`` under ``command``; handlers run on successful results.

        Raises:
            DuplicateRegistration: If ``command`` is already registered
            InvalidCommandName: If ``command`` fails ``check_command_name``
        """
        if command in self._commands:
            raise DuplicateRegistration("command", command)
        check_command_name(command)
        self._commands[command] = _Command(command, description, wrapper, text_args_func(wrapper, *handlers))

    def add_default_command(self, description: str, wrapper: Wrapper, *handlers: ResultsHandler) -> None:
        """Register the command run when no command name is given; replaces a previous default."""
        self._commands[DEFAULT_COMMAND] = _Command(DEFAULT_COMMAND, description, wrapper,
                                                   text_args_func(wrapper, *handlers))

    def has_command(self, command: str) -> bool:
        return command in self._commands

    def has_default_command(self) -> bool:
        return DEFAULT_COMMAND in self._commands

    def commands(self) -> list[str]:
        """Registered command names, sorted."""
        return sorted(self._commands)

    def complete(self, *words: str) -> list[str]:
        """Candidates for the last of ``words``, the word being typed.

        The first word completes to command names; the arguments of a command
        have no candidates.

        Example:
            >>> dispatcher.complete("a")
            ['add']
        """
        if len(words) != 1:
            return []
        return [c for c in self.commands() if c and c.startswith(words[0])]

    def wrapper(self, command: str) -> Wrapper | None:
        cmd = self._commands.get(command)
        return cmd.wrapper if cmd else None

    def dispatch(self, ctx: Context | None, command: str, *args: str) -> CallResult:
        """Call ``command`` with text arguments; ``Err(CommandNotFound)`` for unknown names."""
        cmd = self._commands.get(command)
        if cmd is None:
            return Err(CommandNotFound(command))
        for logger in self._loggers:
            logger(command, args)
        log.debug("dispatching command", command=command, args=list(args))
        return cmd.run(ctx, *args)

    def dispatch_default(self, ctx: Context | None = None) -> CallResult:
        return self.dispatch(ctx, DEFAULT_COMMAND)

    def dispatch_combined(self, argv: Sequence[str], ctx: Context | None = None) -> tuple[str, CallResult]:
        """Dispatch ``argv[0]`` with ``argv[1:]``; empty ``argv`` runs the default command."""
        if not argv:
            return DEFAULT_COMMAND, self.dispatch_default(ctx)
        return argv[0], self.dispatch(ctx, argv[0], *argv[1:])

    def print_commands(self, app_name: str, output: TextIO | None = None) -> None:
        """Usage line per command, with its description and argument descriptions."""
        console = _console(output)
        for name in self.commands():
            _print_command(console, f"{app_name} {name}".rstrip(), self._commands[name])

    def main(self, argv: Sequence[str] | None = None, *, app_name: str | None = None) -> int:
        """Run the command line ``argv`` and return a process exit status."""
        if (words := completion_words()) is not None:
            return _print_candidates(self.complete(*words))
        argv = sys.argv[1:] if argv is None else argv
        command, result = self.dispatch_combined(argv, Context.background())
        return _exit_status(result, lambda out: self.print_commands(app_name or _app_name(), out), command)


# ─────────────────────────────────────────────────────────────────────────────
# Two Levels
# ─────────────────────────────────────────────────────────────────────────────


class SuperStringArgsDispatcher:
    """Super command name to ``StringArgsDispatcher`` table."""

    __slots__ = ("_subs", "_loggers")

    def __init__(self, *loggers: CommandLogger) -> None:
        self._subs: dict[str, StringArgsDispatcher] = {}
        self._loggers = loggers

    def add_super_command(self, super_command: str) -> StringArgsDispatcher:
        """Create and return the dispatcher for ``super_command``.

        Raises:
            InvalidCommandName: If the name is not empty and fails ``check_command_name``
            DuplicateRegistration: If the super command already exists
        """
        if super_command != DEFAULT_COMMAND:
            check_command_name(super_command)
        if super_command in self._subs:
            raise DuplicateRegistration("super command", super_command)
        sub = self._subs[super_command] = StringArgsDispatcher(*self._loggers)
        return sub

    def add_default_command(self, description: str, wrapper: Wrapper, *handlers: ResultsHandler) -> None:
        self.add_super_command(DEFAULT_COMMAND).add_default_command(description, wrapper, *handlers)

    def has_command(self, super_command: str) -> bool:
        """Whether ``super_command`` exists and runs on its own (has a default sub command)."""
        sub = self._subs.get(super_command)
        return sub is not None and sub.has_default_command()

    def has_sub_command(self, super_command: str, command: str) -> bool:
        sub = self._subs.get(super_command)
        return sub is not None and sub.has_command(command)

    def commands(self) -> list[str]:
        return sorted(self._subs)

    def sub_commands(self, super_command: str) -> list[str]:
        sub = self._subs.get(super_command)
        return sub.commands() if sub else []

    def complete(self, *words: str) -> list[str]:
        """Candidates for the last of ``words``, the word being typed.

        The first word completes to super commands, the second to the sub
        commands of the first. A super command with a default sub command
        takes arguments instead, which have no candidates.
        """
        match words:
            case (prefix,):
                return [c for c in self.commands() if c and c.startswith(prefix)]
            case (super_command, prefix):
                sub = self._subs.get(super_command)
                if sub is None or sub.has_default_command():
                    return []
                return sub.complete(prefix)
        return []

    def dispatch(self, ctx: Context | None, super_command: str, command: str, *args: str) -> CallResult:
        sub = self._subs.get(super_command)
        if sub is None:
            return Err(NamespaceNotFound(super_command))
        return sub.dispatch(ctx, command, *args)

    def dispatch_default(self, ctx: Context | None = None) -> CallResult:
        return self.dispatch(ctx, DEFAULT_COMMAND, DEFAULT_COMMAND)

    def dispatch_combined(self, argv: Sequence[str],
                          ctx: Context | None = None) -> tuple[str, str, CallResult]:
        """Split ``argv`` into super command, command and arguments, then dispatch.

        A super command with a default sub command takes all remaining
        arguments; otherwise ``argv[1]`` names the sub command.
        """
        match len(argv):
            case 0:
                super_command, command, args = DEFAULT_COMMAND, DEFAULT_COMMAND, ()
            case 1:
                super_command, command, args = argv[0], DEFAULT_COMMAND, ()
            case _:
                super_command = argv[0]
                sub = self._subs.get(super_command)
                if sub is not None and sub.has_default_command():
                    command, args = DEFAULT_COMMAND, tuple(argv[1:])
                else:
                    command, args = argv[1], tuple(argv[2:])
        return super_command, command, self.dispatch(ctx, super_command, command, *args)

    def print_commands(self, app_name: str, output: TextIO | None = None) -> None:
        console = _console(output)
        for super_command in self.commands():
            sub = self._subs[super_command]
            for name in sub.commands():
                usage = " ".join(part for part in (app_name, super_command, name) if part)
                _print_command(console, usage, sub._commands[name])

    def main(self, argv: Sequence[str] | None = None, *, app_name: str | None = None) -> int:
        if (words := completion_words()) is not None:
            return _print_candidates(self.complete(*words))
        argv = sys.argv[1:] if argv is None else argv
        super_command, command, result = self.dispatch_combined(argv, Context.background())
        name = " ".join(part for part in (super_command, command) if part)
        return _exit_status(result, lambda out: self.print_commands(app_name or _app_name(), out), name)


# ─────────────────────────────────────────────────────────────────────────────
# Shell Completion
# ─────────────────────────────────────────────────────────────────────────────


def completion_words(environ: Mapping[str, str] | None = None) -> list[str] | None:
    """Words after the program name when a shell asks for completions, else None.

    Bash's ``complete -C`` runs the program with ``COMP_LINE`` (the command
    line) and ``COMP_POINT`` (the cursor offset). The last word returned is
    the one being completed; it is empty when the cursor follows a space.
    """
    environ = os.environ if environ is None else environ
    line = environ.get("COMP_LINE")
    if line is None:
        return None
    point = environ.get("COMP_POINT", "")
    if point.isdigit():
        line = line[:int(point)]
    words = line.split()[1:]
    if line and line[-1].isspace():
        words.append("")
    return words


def _print_candidates(candidates: list[str]) -> int:
    for candidate in candidates:
        print(candidate)
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Output
# ─────────────────────────────────────────────────────────────────────────────


def _console(output: TextIO | None) -> Console:
    return Console(file=output or sys.stdout, highlight=False, emoji=False, soft_wrap=True)


def _print_command(console: Console, usage: str, cmd: _Command) -> None:
    wrapper = cmd.wrapper
    args = list(wrapper.description.bindable_args())
    console.print(Text(" ".join([f"  {usage}", *(f"<{name}:{t}>" for _, name, t in args)]), style="bright_cyan"))
    if cmd.description:
        console.print(Text(f"      {cmd.description}", style="cyan"))
    if any(wrapper.arg_descriptions[i] for i, _, _ in args):
        for i, name, t in args:
            console.print(Text(f"          <{name}:{t}> {wrapper.arg_descriptions[i]}", style="cyan"))
    console.print()


def _exit_status(result: CallResult, print_usage: Callable[[TextIO], Any], command: str) -> int:
    if result.is_ok():
        return 0
    error = result.unwrap_err()
    if isinstance(error, CommandNotFound | NamespaceNotFound):
        print(f"{error}\n\nCommands:", file=sys.stderr)
        print_usage(sys.stderr)
        return 2
    report = ErrorReport.from_error(error, command, include_trace=get_settings().debug)
    log.error("command failed", command=command, code=str(report.code))
    print(report.render(), file=sys.stderr)
    return 1


def _app_name() -> str:
    return Path(sys.argv[0]).name if sys.argv and sys.argv[0] else "app"
