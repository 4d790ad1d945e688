"""Results handlers and handler-running call helpers.

A results handler consumes the results of a successful call, e.g. printing
them. ``text_args_func`` and friends bind a wrapper to a list of handlers and
return a plain callable for one calling convention.

Example:
    >>> run = text_args_func(reflect_wrapper(add), PrintResults())
    >>> run(None, "2", "3")
    5
    Ok([5])
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from callcase.foundation.types import Context

from .wrapper import CallResult, Wrapper


@runtime_checkable
class ResultsHandler(Protocol):
    """Consumes the results of a successful call. Raises on failure."""

    def __call__(self, ctx: Context | None, results: list[Any]) -> None: ...


def _handled(result: CallResult, ctx: Context | None, handlers: tuple[ResultsHandler, ...]) -> CallResult:
    if result.is_ok():
        for handler in handlers:
            handler(ctx, result.unwrap())
    return result


def text_args_func(wrapper: Wrapper, *handlers: ResultsHandler) -> Callable[..., CallResult]:
    """``f(ctx, *texts)`` calling ``wrapper.call_with_text`` and then every handler."""
    def run(ctx: Context | None, *texts: str) -> CallResult:
        return _handled(wrapper.call_with_text(ctx, *texts), ctx, handlers)
    return run


def named_text_args_func(wrapper: Wrapper, *handlers: ResultsHandler) -> Callable[..., CallResult]:
    """``f(ctx, texts)`` calling ``wrapper.call_with_named_text`` and then every handler."""
    def run(ctx: Context | None, texts: Mapping[str, str]) -> CallResult:
        return _handled(wrapper.call_with_named_text(ctx, texts), ctx, handlers)
    return run


def json_args_func(wrapper: Wrapper, *handlers: ResultsHandler) -> Callable[..., CallResult]:
    """``f(ctx, data)`` calling ``wrapper.call_with_json`` and then every handler."""
    def run(ctx: Context | None, data: bytes | str) -> CallResult:
        return _handled(wrapper.call_with_json(ctx, data), ctx, handlers)
    return run
