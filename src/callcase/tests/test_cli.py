"""Tests for command line dispatch and result printing.

Validates:
- Command name validation and duplicate registration
- Single and two level dispatch, default commands
- Exit status and error output of main()
- Usage listing
- Shell completion of command names
- Human-readable result formatting
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any

import pytest

from callcase.cli import (
    PrintResults,
    StringArgsDispatcher,
    SuperStringArgsDispatcher,
    check_command_name,
    completion_words,
    printable,
    write_text_table,
)
from callcase.foundation.core import reflect_wrapper
from callcase.foundation.errors import (
    CommandNotFound,
    DuplicateRegistration,
    InvalidCommandName,
    NamespaceNotFound,
    Ok,
)
from callcase.runtime.observability import MemoryRenderer, NoOpRenderer, configure_logging


def add(a: int, b: int) -> int:
    """Adds two numbers.

    Args:
        a: First summand
        b: Second summand
    """
    return a + b


def hello() -> str:
    return "hello"


def serve(port: int) -> str:
    return f"serving on {port}"


class Mode(Enum):
    FAST = "fast"


@dataclass
class Point:
    x: int
    y: int


@pytest.fixture(autouse=True)
def log_entries() -> Any:
    """Capture dispatcher logs in memory."""
    renderer = MemoryRenderer()
    configure_logging(renderer=renderer, level="DEBUG")
    yield renderer
    configure_logging(renderer=NoOpRenderer())


@pytest.fixture
def calc() -> tuple[StringArgsDispatcher, io.StringIO]:
    """Dispatcher with add and a default command, printing into a buffer."""
    out = io.StringIO()
    dispatcher = StringArgsDispatcher()
    dispatcher.add_command("add", "Adds two numbers", reflect_wrapper(add), PrintResults(out))
    dispatcher.add_default_command("Says hello", reflect_wrapper(hello), PrintResults(out))
    return dispatcher, out


# ═════════════════════════════════════════════════════════════════════════════
# Registration
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("name", ["add", "db-migrate", "user.get", "ü"])
def test_valid_command_names(name: str) -> None:
    """Printable names without spaces or shell operators pass."""
    check_command_name(name)


@pytest.mark.parametrize("name", ["a b", "tab\t", "", "\x00", "a|b", "x;y", "run&", "(x)", "<in"])
def test_invalid_command_names(name: str) -> None:
    """Whitespace, shell operators and unprintable names are rejected."""
    with pytest.raises(InvalidCommandName):
        check_command_name(name)


def test_add_command_rejects_duplicates_and_bad_names() -> None:
    """Names are unique and validated."""
    dispatcher = StringArgsDispatcher()
    dispatcher.add_command("add", "", reflect_wrapper(add))
    with pytest.raises(DuplicateRegistration):
        dispatcher.add_command("add", "", reflect_wrapper(add))
    with pytest.raises(InvalidCommandName):
        dispatcher.add_command("two words", "", reflect_wrapper(add))
    assert dispatcher.commands() == ["add"]
    assert dispatcher.has_command("add") and not dispatcher.has_default_command()
    assert dispatcher.wrapper("add").name == "add"
    assert dispatcher.wrapper("missing") is None


# ═════════════════════════════════════════════════════════════════════════════
# Single Level Dispatch
# ═════════════════════════════════════════════════════════════════════════════


def test_dispatch_runs_handlers(calc: tuple[StringArgsDispatcher, io.StringIO]) -> None:
    """Results are returned and printed."""
    dispatcher, out = calc
    assert dispatcher.dispatch(None, "add", "2", "3") == Ok([5])
    assert out.getvalue() == "5\n"


def test_dispatch_unknown_command(calc: tuple[StringArgsDispatcher, io.StringIO]) -> None:
    """Unknown names return CommandNotFound."""
    dispatcher, _ = calc
    error = dispatcher.dispatch(None, "sub", "1").unwrap_err()
    assert isinstance(error, CommandNotFound)
    assert error.command == "sub"


def test_dispatch_calls_loggers() -> None:
    """Command loggers see every dispatched command first."""
    seen: list[tuple[str, tuple[str, ...]]] = []
    dispatcher = StringArgsDispatcher(lambda command, args: seen.append((command, tuple(args))))
    dispatcher.add_command("add", "", reflect_wrapper(add))
    dispatcher.dispatch(None, "add", "1", "2")
    assert seen == [("add", ("1", "2"))]


def test_dispatch_combined(calc: tuple[StringArgsDispatcher, io.StringIO]) -> None:
    """First token names the command; no tokens run the default command."""
    dispatcher, out = calc
    assert dispatcher.dispatch_combined(["add", "1", "2"]) == ("add", Ok([3]))
    assert dispatcher.dispatch_combined([]) == ("", Ok(["hello"]))
    assert out.getvalue() == "3\nhello\n"


def test_main_exit_status(calc: tuple[StringArgsDispatcher, io.StringIO], capsys: pytest.CaptureFixture[str],
                          log_entries: MemoryRenderer) -> None:
    """0 on success, 2 for unknown commands with usage, 1 for failed calls."""
    dispatcher, out = calc
    assert dispatcher.main(["add", "4", "5"], app_name="calc") == 0
    assert out.getvalue() == "9\n"

    assert dispatcher.main(["mul", "2"], app_name="calc") == 2
    err = capsys.readouterr().err
    assert "command 'mul' not found" in err
    assert "calc add <a:int> <b:int>" in err

    assert dispatcher.main(["add", "x"], app_name="calc") == 1
    assert capsys.readouterr().err == "error (add): argument a = 'x': invalid syntax for int: 'x'\n"
    assert "command failed" in log_entries.events()


def test_print_commands(calc: tuple[StringArgsDispatcher, io.StringIO]) -> None:
    """Usage, description and argument descriptions per command."""
    dispatcher, _ = calc
    usage = io.StringIO()
    dispatcher.print_commands("calc", usage)
    assert usage.getvalue() == (
        "  calc\n"
        "      Says hello\n"
        "\n"
        "  calc add <a:int> <b:int>\n"
        "      Adds two numbers\n"
        "          <a:int> First summand\n"
        "          <b:int> Second summand\n"
        "\n"
    )


# ═════════════════════════════════════════════════════════════════════════════
# Two Level Dispatch
# ═════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def app() -> SuperStringArgsDispatcher:
    """math add, serve <port> (default sub command) and a top-level default."""
    dispatcher = SuperStringArgsDispatcher()
    dispatcher.add_super_command("math").add_command("add", "Adds two numbers", reflect_wrapper(add))
    dispatcher.add_super_command("serve").add_default_command("Serves", reflect_wrapper(serve))
    dispatcher.add_default_command("Says hello", reflect_wrapper(hello))
    return dispatcher


def test_super_registration(app: SuperStringArgsDispatcher) -> None:
    """Super commands are unique and validated unless empty."""
    assert app.commands() == ["", "math", "serve"]
    assert app.sub_commands("math") == ["add"]
    assert app.has_sub_command("math", "add")
    assert app.has_command("serve") and not app.has_command("math")
    with pytest.raises(DuplicateRegistration):
        app.add_super_command("math")
    with pytest.raises(InvalidCommandName):
        app.add_super_command("a b")


def test_super_dispatch_combined(app: SuperStringArgsDispatcher) -> None:
    """Default sub commands take every remaining token."""
    assert app.dispatch_combined(["math", "add", "1", "2"]) == ("math", "add", Ok([3]))
    assert app.dispatch_combined(["serve", "8080"]) == ("serve", "", Ok(["serving on 8080"]))
    assert app.dispatch_combined(["serve"]) == ("serve", "", Ok(["serving on 0"]))
    assert app.dispatch_combined([]) == ("", "", Ok(["hello"]))

    super_command, command, result = app.dispatch_combined(["math"])
    assert (super_command, command) == ("math", "")
    assert isinstance(result.unwrap_err(), CommandNotFound)


def test_super_dispatch_unknown_namespace(app: SuperStringArgsDispatcher) -> None:
    """Unknown super commands return NamespaceNotFound."""
    error = app.dispatch(None, "db", "migrate").unwrap_err()
    assert isinstance(error, NamespaceNotFound)
    assert error.namespace == "db"


def test_super_main(app: SuperStringArgsDispatcher, capsys: pytest.CaptureFixture[str]) -> None:
    """Usage lists every level; errors name super command and command."""
    assert app.main(["db", "migrate"], app_name="tool") == 2
    err = capsys.readouterr().err
    assert "super command 'db' not found" in err
    assert "  tool math add <a:int> <b:int>" in err
    assert "  tool serve <port:int>" in err

    assert app.main(["math", "add", "1", "y"], app_name="tool") == 1
    assert capsys.readouterr().err.startswith("error (add): argument b = 'y'")


# ═════════════════════════════════════════════════════════════════════════════
# Shell Completion
# ═════════════════════════════════════════════════════════════════════════════


def test_complete_commands(calc: tuple[StringArgsDispatcher, io.StringIO]) -> None:
    """Command names by prefix; the default command and arguments have no candidates."""
    dispatcher, _ = calc
    dispatcher.add_command("addall", "Adds all", reflect_wrapper(add))
    assert dispatcher.complete("") == ["add", "addall"]
    assert dispatcher.complete("add") == ["add", "addall"]
    assert dispatcher.complete("x") == []
    assert dispatcher.complete("add", "") == []
    assert dispatcher.complete() == []


def test_complete_super_commands(app: SuperStringArgsDispatcher) -> None:
    """Super commands first, then the sub commands of the chosen one."""
    assert app.complete("") == ["math", "serve"]
    assert app.complete("m") == ["math"]
    assert app.complete("math", "") == ["add"]
    assert app.complete("math", "x") == []
    assert app.complete("serve", "") == []
    assert app.complete("db", "") == []
    assert app.complete("math", "add", "") == []


@pytest.mark.parametrize(("environ", "words"), [
    ({"COMP_LINE": "calc"}, []),
    ({"COMP_LINE": "calc "}, [""]),
    ({"COMP_LINE": "calc ad"}, ["ad"]),
    ({"COMP_LINE": "calc math "}, ["math", ""]),
    ({"COMP_LINE": "calc math add", "COMP_POINT": "8"}, ["mat"]),
    ({}, None),
])
def test_completion_words(environ: dict[str, str], words: list[str] | None) -> None:
    """The word under the cursor comes last, empty after a space."""
    assert completion_words(environ) == words


def test_main_prints_completions(app: SuperStringArgsDispatcher, calc: tuple[StringArgsDispatcher, io.StringIO],
                                 monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """A completion request prints candidates instead of dispatching."""
    monkeypatch.delenv("COMP_POINT", raising=False)
    monkeypatch.setenv("COMP_LINE", "tool math ")
    assert app.main([]) == 0
    assert capsys.readouterr().out == "add\n"

    dispatcher, out = calc
    monkeypatch.setenv("COMP_LINE", "calc a")
    assert dispatcher.main([]) == 0
    assert capsys.readouterr().out == "add\n"
    assert out.getvalue() == ""


# ═════════════════════════════════════════════════════════════════════════════
# Result Printing
# ═════════════════════════════════════════════════════════════════════════════


def test_printable_scalars() -> None:
    """Scalars print compactly."""
    assert printable("text") == "text"
    assert printable(True) == "True"
    assert printable(2.50) == "2.5"
    assert printable(3.0) == "3"
    assert printable(timedelta(minutes=1, seconds=30)) == "1m30s"
    assert printable(Mode.FAST) == "fast"
    assert printable(None) == "None"


def test_printable_bytes() -> None:
    """Printable UTF-8 as text, anything else as hex."""
    assert printable(b"hi") == "hi"
    assert printable(b"\xff\x00") == "0xff00"
    assert printable(b"a\x00") == "0x6100"


def test_printable_collections() -> None:
    """String lists one per line, string tables padded, the rest as JSON."""
    assert printable(["a", "b"]) == "a\nb"
    assert printable([["a", "bb"], ["ccc", "d"]]) == "a  |bb\nccc|d\n"
    assert printable({"a": 1}) == '{\n  "a": 1\n}'
    assert printable(Point(1, 2)) == '{\n  "x": 1,\n  "y": 2\n}'
    assert printable([]) == "[]"
    assert printable({3, 1}) == "[\n  1,\n  3\n]"


def test_write_text_table() -> None:
    """Short rows are padded, the last column is not."""
    assert write_text_table([["a"], ["bb", "c"]]) == "a |\nbb|c\n"
    assert write_text_table([["k", "v"], ["key", "value"]], delimiter=" ") == "k   v\nkey value\n"


def test_print_results_prefix() -> None:
    """Every result on its own line, after the prefix."""
    out = io.StringIO()
    PrintResults(out, prefix=">")(None, [1, "two"])
    assert out.getvalue() == "> 1\n> two\n"
