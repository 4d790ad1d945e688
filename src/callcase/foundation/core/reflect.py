"""Runtime-introspecting wrapper.

``ReflectWrapper`` builds its description from the live function with
``inspect.signature`` and ``typing.get_type_hints`` and coerces arguments
through the scanner registry at call time.

Example:
    >>> def add(a: int, b: int) -> int:
    ...     return a + b
    >>> wrapper = reflect_wrapper(add)
    >>> wrapper.call_with_text(None, "2", "3").unwrap()
    [5]
    >>> wrapper.call_with_json(None, b'{"a": 2}').unwrap()
    [2]
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from typing import Any, Callable, get_args, get_origin, get_type_hints

from callcase.coercion import ScannerRegistry, coerce, zero_value
from callcase.foundation.errors import CoercionError, Err, InvocationError, Result
from callcase.foundation.types import ANY, CONTEXT_TYPE, ERROR_TYPE, Context, SequenceType, TypeDescriptor, describe

from .description import ArgKind, FunctionDescription, parse_arg_descriptions
from .json import bind_json
from .wrapper import CallResult, Wrapper, context_or_background

_PARAM_KINDS: dict[Any, ArgKind] = {
    inspect.Parameter.POSITIONAL_ONLY: ArgKind.POSITIONAL,
    inspect.Parameter.POSITIONAL_OR_KEYWORD: ArgKind.POSITIONAL,
    inspect.Parameter.KEYWORD_ONLY: ArgKind.KEYWORD,
    inspect.Parameter.VAR_POSITIONAL: ArgKind.VARIADIC,
}


class ReflectWrapper(Wrapper):
    """Wrapper deriving everything from the function object.

    Args:
        func: Function to wrap; coroutine functions and ``**kwargs`` are rejected
        *arg_names: Names replacing the parameter names, one per parameter
        scanners: Registry for text coercion, defaults to the process-wide one
    """

    __slots__ = ("_func", "_params", "_scanners", "description")

    def __init__(self, func: Callable[..., Any], *arg_names: str, scanners: ScannerRegistry | None = None) -> None:
        if inspect.iscoroutinefunction(func):
            raise TypeError(f"can't wrap coroutine function {func.__qualname__}")
        self._func = func
        self._scanners = scanners
        self._params = _parameters(func)
        self.description = _describe_function(func, self._params, arg_names)

    @property
    def func(self) -> Callable[..., Any]:
        return self._func

    # ─────────────────────────────────────────────────────────────────
    # Invocation
    # ─────────────────────────────────────────────────────────────────

    def call(self, ctx: Context | None, args: Sequence[Any] = ()) -> CallResult:
        try:
            values = [
                args[n] if n < len(args) and args[n] is not None else zero_value(target)
                for n, (_, _, target) in enumerate(self.description.bindable_args())
            ]
        except CoercionError as exc:
            return Err(exc)
        return self._invoke(ctx, values)

    def call_with_text(self, ctx: Context | None, *texts: str) -> CallResult:
        values: list[Any] = []
        for n, (_, name, target) in enumerate(self.description.bindable_args()):
            text = texts[n] if n < len(texts) else None
            try:
                values.append(zero_value(target) if text is None else coerce(text, target, self._scanners))
            except CoercionError as exc:
                return Err(self.text_error(name, text or "", target, exc))
        return self._invoke(ctx, values)

    def call_with_named_text(self, ctx: Context | None, texts: Mapping[str, str]) -> CallResult:
        values: list[Any] = []
        for _, name, target in self.description.bindable_args():
            text = texts.get(name)
            try:
                values.append(zero_value(target) if text is None else coerce(text, target, self._scanners))
            except CoercionError as exc:
                return Err(self.text_error(name, text or "", target, exc))
        return self._invoke(ctx, values)

    def call_with_json(self, ctx: Context | None, data: bytes | str) -> CallResult:
        try:
            values = bind_json(self.description, data)
        except InvocationError as exc:
            return Err(exc)
        return self._invoke(ctx, values)

    def _invoke(self, ctx: Context | None, values: list[Any]) -> CallResult:
        if self.description.has_context_arg:
            values = [context_or_background(ctx), *values]
        positional: list[Any] = []
        keywords: dict[str, Any] = {}
        for param, kind, value in zip(self._params, self.description.arg_kinds, values):
            match kind:
                case ArgKind.POSITIONAL:
                    positional.append(value)
                case ArgKind.VARIADIC:
                    positional.extend(value)
                case ArgKind.KEYWORD:
                    keywords[param.name] = value
        return self.finish(self._func(*positional, **keywords))


def reflect_wrapper(func: Callable[..., Any], *arg_names: str, scanners: ScannerRegistry | None = None) -> ReflectWrapper:
    """Wrap ``func`` by introspection. See ``ReflectWrapper``."""
    return ReflectWrapper(func, *arg_names, scanners=scanners)


def reflect_description(name: str, func: Callable[..., Any]) -> FunctionDescription:
    """Description of ``func`` under ``name`` with positional names ``a0, a1, ...``."""
    params = _parameters(func)
    desc = _describe_function(func, params, tuple(f"a{i}" for i in range(len(params))))
    return desc.model_copy(update={"name": name})


# ─────────────────────────────────────────────────────────────────────────────
# Introspection
# ─────────────────────────────────────────────────────────────────────────────


def _parameters(func: Callable[..., Any]) -> list[inspect.Parameter]:
    params = list(inspect.signature(func).parameters.values())
    for p in params:
        if p.kind is inspect.Parameter.VAR_KEYWORD:
            raise TypeError(f"can't wrap {getattr(func, '__qualname__', func)}: **{p.name} is not supported")
    return params


def _describe_function(func: Callable[..., Any], params: list[inspect.Parameter],
                       arg_names: tuple[str, ...]) -> FunctionDescription:
    hints = get_type_hints(func, include_extras=True)
    kinds = tuple(_PARAM_KINDS[p.kind] for p in params)
    types: list[TypeDescriptor] = []
    for p, kind in zip(params, kinds):
        desc = describe(hints.get(p.name, Any))
        types.append(SequenceType(desc, None, tuple) if kind is ArgKind.VARIADIC else desc)

    if not arg_names:
        only_context = len(types) == 1 and types[0] == CONTEXT_TYPE
        arg_names = ("ctx",) if only_context else tuple(p.name for p in params)
    elif len(arg_names) != len(params):
        raise ValueError(f"{len(arg_names)} argument names given for {func.__qualname__} "
                         f"with {len(params)} arguments")

    docs = parse_arg_descriptions(inspect.getdoc(func))
    return FunctionDescription(
        name=getattr(func, "__name__", type(func).__name__),
        arg_names=arg_names,
        arg_descriptions=tuple(docs.get(p.name, "") for p in params),
        arg_types=tuple(types),
        result_types=result_types(hints["return"]) if "return" in hints else (ANY,),
        arg_kinds=kinds,
    )


def result_types(annotation: Any) -> tuple[TypeDescriptor, ...]:
    """Result descriptors for a return annotation.

    ``None`` declares no results, a fixed ``tuple[A, B]`` declares several and
    ``Result[T, E]`` appends the error result.
    """
    if annotation is None or annotation is type(None):
        return ()
    if get_origin(annotation) is Result:
        args = get_args(annotation)
        return (*result_types(args[0] if args else Any), ERROR_TYPE)
    args = get_args(annotation)
    if get_origin(annotation) is tuple and args and args[-1] is not Ellipsis:
        return tuple(describe(a) for a in args)
    return (describe(annotation),)

