"""Command line front end.

- StringArgsDispatcher: ``app command args...``
- SuperStringArgsDispatcher: ``app group command args...``
- PrintResults: results handler printing human-readable values
- completion_words: words a shell asks to complete (``complete -C``)
"""

from .dispatcher import (
    DEFAULT_COMMAND,
    CommandLogger,
    StringArgsDispatcher,
    SuperStringArgsDispatcher,
    check_command_name,
    completion_words,
)
from .results import PrintResults, printable, write_text_table

__all__ = [
    "DEFAULT_COMMAND", "CommandLogger", "StringArgsDispatcher", "SuperStringArgsDispatcher", "check_command_name",
    "completion_words", "PrintResults", "printable", "write_text_table",
]
