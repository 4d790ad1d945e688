"""Results handlers that print call results for humans.

Example:
    >>> dispatcher.add_command("add", "Adds two numbers", reflect_wrapper(add), PrintResults())
    >>> dispatcher.dispatch(None, "add", "2", "3")
    5
"""

from __future__ import annotations

import dataclasses
import sys
from collections.abc import Sequence
from datetime import timedelta
from enum import Enum
from typing import Any, TextIO

import orjson
from pydantic import BaseModel
from rich.console import Console

from callcase.coercion import format_duration
from callcase.foundation.types import Context


def write_text_table(rows: Sequence[Sequence[str]], delimiter: str = "|") -> str:
    """Rows as text with every column padded to its widest cell.

    >>> print(write_text_table([["a", "bb"], ["ccc", "d"]]))
    a  |bb
    ccc|d
    """
    widths: list[int] = []
    for row in rows:
        for col, cell in enumerate(row):
            if col == len(widths):
                widths.append(len(cell))
            else:
                widths[col] = max(widths[col], len(cell))
    lines = []
    for row in rows:
        cells = [*row, *("" for _ in range(len(row), len(widths)))]
        padded = [cell.ljust(widths[col]) if col < len(widths) - 1 else cell for col, cell in enumerate(cells)]
        lines.append(delimiter.join(padded).rstrip())
    return "\n".join(lines) + "\n"


def printable(result: Any) -> str:
    """Human-readable text for one result value.

    Strings print as-is, lists of strings one per line, lists of string lists
    as a padded table, bytes as text when printable and hex otherwise, floats
    without trailing zeros and records or containers as indented JSON.
    """
    match result:
        case str():
            return result
        case bool() | int():
            return str(result)
        case float():
            return f"{result:.12f}".rstrip("0").rstrip(".")
        case bytes() | bytearray():
            try:
                text = bytes(result).decode("utf-8")
            except UnicodeDecodeError:
                return "0x" + bytes(result).hex()
            return text if text.isprintable() else "0x" + bytes(result).hex()
        case timedelta():
            return format_duration(result)
        case Enum():
            return str(result.value)
        case list() | tuple() if result and all(isinstance(r, str) for r in result):
            return "\n".join(result)
        case list() | tuple() if result and all(isinstance(r, list | tuple) and all(isinstance(c, str) for c in r)
                                                for r in result):
            return write_text_table(result)
        case BaseModel() | dict() | list() | tuple() | set() | frozenset():
            return _json(result)
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        return _json(result)
    return str(result)


def _json(value: Any) -> str:
    return orjson.dumps(value, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS, default=_json_default).decode()


def _json_default(value: Any) -> Any:
    match value:
        case BaseModel():
            return value.model_dump(mode="json")
        case set() | frozenset():
            return sorted(value, key=repr)
        case timedelta():
            return format_duration(value)
        case bytes() | bytearray():
            return bytes(value).decode("utf-8", "replace")
    raise TypeError(f"type {type(value).__name__} is not JSON serializable")


class PrintResults:
    """Prints every result on its own line, optionally prefixed.

    Args:
        output: Stream to print to, defaults to stdout at call time
        prefix: Text put in front of every result
    """

    __slots__ = ("_output", "_prefix")

    def __init__(self, output: TextIO | None = None, prefix: str = "") -> None:
        self._output = output
        self._prefix = prefix

    def __call__(self, ctx: Context | None, results: list[Any]) -> None:
        console = Console(file=self._output or sys.stdout, markup=False, highlight=False, emoji=False,
                          soft_wrap=True)
        for result in results:
            text = printable(result)
            console.print(f"{self._prefix} {text}" if self._prefix else text)
