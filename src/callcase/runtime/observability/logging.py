"""Structured logging for dispatch, HTTP handling and code generation.

Key-value structured logs with bound context, scoped context propagated via
contextvars, a human-readable console renderer and a JSON Lines renderer.

Quick Start:
    >>> from callcase.runtime.observability import configure_logging, get_logger
    >>> configure_logging(format="console", level="DEBUG")
    >>> log = get_logger("callcase.cli")
    >>> log.info("dispatching command", command="add", args=["2", "3"])

    >>> with log_context(request_id="abc123"):
    ...     log.debug("calling wrapper")  # includes request_id
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, TextIO, TypeAlias, runtime_checkable

import orjson

if TYPE_CHECKING:
    from types import TracebackType

JsonDict: TypeAlias = dict[str, Any]

# Scoped context added by log_context, visible to every logger in this task/thread
_log_context: ContextVar[JsonDict] = ContextVar("log_context", default={})


# ─────────────────────────────────────────────────────────────────────────────
# Logger
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class BoundLogger:
    """Structured logger with bound context. bind() returns a new logger with merged context.

    Example:
        >>> log = BoundLogger(context={"command": "add"})
        >>> log.info("dispatched", args=2)
        # => 10:30:45.123 [info] dispatched args=2 command="add"
    """

    context: JsonDict = field(default_factory=dict)
    _renderer: LogRenderer | None = None
    _level: int | None = None

    def bind(self, **kw: Any) -> BoundLogger:
        """Create new logger with additional bound context."""
        return BoundLogger(context={**self.context, **kw}, _renderer=self._renderer, _level=self._level)

    def bind_function(self, name: str, **kw: Any) -> BoundLogger:
        """Bind the wrapped function being invoked."""
        return self.bind(function=name, **kw)

    def unbind(self, *keys: str) -> BoundLogger:
        return BoundLogger(context={k: v for k, v in self.context.items() if k not in keys},
                           _renderer=self._renderer, _level=self._level)

    def is_enabled_for(self, level: int) -> bool:
        return level >= (self._level if self._level is not None else _default_level.get())

    def _log(self, level: int, event: str, **kw: Any) -> None:
        if not self.is_enabled_for(level):
            return
        merged = {**_log_context.get(), **self.context, **kw}
        (self._renderer or _get_renderer()).render(LogEntry(time.time(), _level_name(level), event, merged))

    def debug(self, event: str, **kw: Any) -> None: self._log(logging.DEBUG, event, **kw)
    def info(self, event: str, **kw: Any) -> None: self._log(logging.INFO, event, **kw)
    def warning(self, event: str, **kw: Any) -> None: self._log(logging.WARNING, event, **kw)
    def error(self, event: str, **kw: Any) -> None: self._log(logging.ERROR, event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log error with the active exception's traceback."""
        self._log(logging.ERROR, event, exc_info=traceback.format_exc(), **kw)


@dataclass(slots=True)
class LogEntry:
    """One rendered log record."""

    timestamp: float
    level: str
    event: str
    context: JsonDict

    @property
    def ts_iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def ts_human(self) -> str:
        """HH:MM:SS.mmm"""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """Human-readable output. Format: timestamp [level] event key=value ..."""

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None  # None = auto-detect
    show_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.colors is None:
            self.colors = getattr(self.output, "isatty", lambda: False)()

    def render(self, entry: LogEntry) -> None:
        c = _COLORS if self.colors else _NO_COLORS
        parts = [f"{c['dim']}{entry.ts_human}{c['reset']}"] if self.show_timestamp else []
        parts += [f"{_LEVEL_COLORS.get(entry.level, c['dim']) if self.colors else ''}[{entry.level}]{c['reset']}",
                  f"{c['bold']}{entry.event}{c['reset']}"]
        parts += [f"{c['cyan']}{k}{c['reset']}={_format_value(v, c)}"
                  for k, v in sorted(entry.context.items()) if k != "exc_info"]
        print(" ".join(parts), file=self.output)
        if "exc_info" in entry.context:
            print(f"{c['red']}{entry.context['exc_info']}{c['reset']}", file=self.output)


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines output for log aggregation."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        line = orjson.dumps({"timestamp": entry.ts_iso, "level": entry.level, "event": entry.event, **entry.context},
                            option=orjson.OPT_NON_STR_KEYS, default=str)
        print(line.decode(), file=self.output)


@dataclass(slots=True)
class NoOpRenderer:
    """Silent renderer for testing."""

    def render(self, entry: LogEntry) -> None:
        pass


@dataclass(slots=True)
class MemoryRenderer:
    """Keeps entries in a list; used by tests to assert on log output."""

    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self) -> list[str]:
        return [e.event for e in self.entries]


# ─────────────────────────────────────────────────────────────────────────────
# Global Configuration
# ─────────────────────────────────────────────────────────────────────────────

_renderer: ContextVar[LogRenderer | None] = ContextVar("log_renderer", default=None)
_default_level: ContextVar[int] = ContextVar("log_level", default=logging.INFO)


def configure_logging(
    format: str | None = None,  # noqa: A002 - shadows builtin but matches stdlib
    level: str | None = None,
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
    renderer: LogRenderer | None = None,
) -> LogRenderer:
    """Configure structured logging. Unset options come from ``CallcaseSettings.logging``.

    Format: "console" (human), "json" (machine), "none".
    """
    from callcase.foundation.config import get_settings
    settings = get_settings().logging
    format, level = format or settings.format, level or settings.level
    colors = settings.colors if colors is None else colors
    _default_level.set(getattr(logging, level.upper(), logging.INFO))
    if renderer is None:
        match format:
            case "console": renderer = ConsoleRenderer(output=output or sys.stderr, colors=colors)
            case "json": renderer = JsonRenderer(output=output or sys.stdout)
            case "none": renderer = NoOpRenderer()
            case _: raise ValueError(f"Unknown format: {format}. Use 'console', 'json', or 'none'")
    _renderer.set(renderer)
    return renderer


def get_logger(name: str | None = None, **initial_context: Any) -> BoundLogger:
    """Structured logger; ``name`` is added to the context as 'logger'."""
    ctx = {**initial_context, **({"logger": name} if name else {})}
    return BoundLogger(context=ctx)


def _get_renderer() -> LogRenderer:
    if (renderer := _renderer.get()) is None:
        _renderer.set(renderer := ConsoleRenderer())
    return renderer


class log_context:  # noqa: N801
    """Context manager adding key-value pairs to every log entry within the scope."""

    __slots__ = ("_ctx", "_token")

    def __init__(self, **kw: Any) -> None:
        self._ctx: JsonDict = dict(kw)
        self._token: Token[JsonDict] | None = None

    def __enter__(self) -> log_context:
        self._token = _log_context.set({**_log_context.get(), **self._ctx})
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None,
                 exc_tb: TracebackType | None) -> None:
        if self._token is not None:
            _log_context.reset(self._token)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

_COLORS = {"reset": "\033[0m", "bold": "\033[1m", "dim": "\033[2m", "red": "\033[31m",
           "green": "\033[32m", "yellow": "\033[33m", "blue": "\033[34m", "cyan": "\033[36m", "white": "\033[37m"}
_NO_COLORS = {k: "" for k in _COLORS}
_LEVEL_COLORS = {"debug": _COLORS["dim"], "info": _COLORS["green"], "warning": _COLORS["yellow"], "error": _COLORS["red"]}


def _level_name(level: int) -> str:
    return logging.getLevelName(level).lower()


def _format_value(v: object, c: dict[str, str]) -> str:
    match v:
        case str(): return f'{c["yellow"]}"{v}"{c["reset"]}'
        case bool(): return f'{c["blue"]}{str(v).lower()}{c["reset"]}'
        case int() | float(): return f'{c["blue"]}{v}{c["reset"]}'
        case dict(): return f'{c["dim"]}{{{len(v)} items}}{c["reset"]}'
        case list() | tuple(): return f'{c["dim"]}[{len(v)} items]{c["reset"]}'
        case _: return f'{c["white"]}{v!r}{c["reset"]}'
