"""The uniform invocation contract.

A ``Wrapper`` exposes one function through four calling conventions:

- ``call(ctx, args)``: already-typed values
- ``call_with_text(ctx, *texts)``: positional text tokens
- ``call_with_named_text(ctx, texts)``: text tokens by argument name
- ``call_with_json(ctx, data)``: one JSON object keyed by argument name

Each returns ``Ok(results)`` or ``Err(error)``. Arguments that are not
supplied bind zero values; extra tokens are ignored. If the function declares
an error result (``-> Result[T, E]``), its ``Err`` is returned unchanged.

Two implementations exist: ``ReflectWrapper`` inspects the function at
construction time, adapters generated by ``callcase-gen`` are derived from
source text ahead of time. Both behave identically.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable, TypeAlias

from callcase.foundation.errors import CoercionError, Ok, ParseArgumentText, Result
from callcase.foundation.types import Context

if TYPE_CHECKING:
    from callcase.foundation.types import TypeDescriptor

    from .description import FunctionDescription

CallResult: TypeAlias = Result[list[Any], Any]


class Wrapper(ABC):
    """Function callable through every convention. Stateless and thread-safe."""

    description: FunctionDescription

    # ─────────────────────────────────────────────────────────────────
    # Description Accessors
    # ─────────────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self.description.name

    @property
    def num_args(self) -> int:
        return self.description.num_args

    @property
    def arg_names(self) -> tuple[str, ...]:
        return self.description.arg_names

    @property
    def arg_descriptions(self) -> tuple[str, ...]:
        return self.description.arg_descriptions

    @property
    def arg_types(self) -> tuple[TypeDescriptor, ...]:
        return self.description.arg_types

    @property
    def result_types(self) -> tuple[TypeDescriptor, ...]:
        return self.description.result_types

    @property
    def has_context_arg(self) -> bool:
        return self.description.has_context_arg

    @property
    def has_error_result(self) -> bool:
        return self.description.has_error_result

    def __str__(self) -> str:
        return self.description.signature

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.description.signature})"

    # ─────────────────────────────────────────────────────────────────
    # Invocation
    # ─────────────────────────────────────────────────────────────────

    @abstractmethod
    def call(self, ctx: Context | None, args: Sequence[Any] = ()) -> CallResult:
        """Invoke with typed values, excluding the context argument."""

    @abstractmethod
    def call_with_text(self, ctx: Context | None, *texts: str) -> CallResult:
        """Invoke with positional text tokens, excluding the context argument."""

    @abstractmethod
    def call_with_named_text(self, ctx: Context | None, texts: Mapping[str, str]) -> CallResult:
        """Invoke with text tokens keyed by argument name."""

    @abstractmethod
    def call_with_json(self, ctx: Context | None, data: bytes | str) -> CallResult:
        """Invoke with a JSON object keyed by argument name."""

    # ─────────────────────────────────────────────────────────────────
    # Shared Helpers
    # ─────────────────────────────────────────────────────────────────

    def finish(self, out: Any) -> CallResult:
        """Normalize the raw return value of the wrapped function."""
        return normalize_results(self.description, out)

    def text_error(self, arg_name: str, text: str, target: TypeDescriptor, exc: Exception) -> ParseArgumentText:
        """Error value for a text token that failed to coerce."""
        return argument_error(self.description, arg_name, text, target, exc)


def normalize_results(description: FunctionDescription, out: Any) -> CallResult:
    """Turn a raw return value into ``Ok(list)``, or pass an error result through untouched."""
    if description.has_error_result and isinstance(out, Result):
        if out.is_err():
            return out
        out = out.unwrap()
    match len(description.value_result_types):
        case 0:
            return Ok([])
        case 1:
            return Ok([out])
    return Ok(list(out))


def argument_error(description: FunctionDescription, arg_name: str, text: str,
                   target: TypeDescriptor, exc: Exception) -> ParseArgumentText:
    """Wrap a coercion failure as ``ParseArgumentText``, adding source text and target if missing."""
    cause = exc if isinstance(exc, CoercionError) else CoercionError(text, target, exc)
    return ParseArgumentText(description.name, arg_name, text, cause)


def context_or_background(ctx: Context | None) -> Context:
    return ctx if ctx is not None else Context.background()


def wrapper_todo(func: Callable[..., Any]) -> Wrapper:
    """Marker the adapter generator replaces with a generated wrapper class.

    ``callcase-gen`` finds every ``name = wrapper_todo(func)`` assignment and
    rewrites it in place; ``callcase-gen --check`` reports the ones still
    present as missing adapters. Importing a module that still holds the
    marker fails.

    Example:
        >>> add_wrapper = wrapper_todo(add)  # replaced in place by callcase-gen

    Raises:
        NotImplementedError: Always; the module has not been run through callcase-gen
    """
    name = getattr(func, "__qualname__", repr(func))
    raise NotImplementedError(f"wrapper_todo({name}): run callcase-gen on this module to generate the adapter")
