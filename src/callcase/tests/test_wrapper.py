"""Tests for function descriptions and the runtime-introspecting wrapper.

Validates:
- Descriptions, signatures and docstring argument descriptions
- Text, named text, typed and JSON calling conventions
- Zero values for missing arguments, extra tokens ignored
- Context pass-through and declared error results
- JSON field lookup by name, exported name and case-insensitively
- Results handlers
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import pytest

from callcase.foundation.core import (
    ArgKind,
    FunctionDescription,
    ReflectWrapper,
    args_model,
    exported_name,
    parse_arg_descriptions,
    reflect_description,
    reflect_wrapper,
    text_args_func,
    wrapper_todo,
)
from callcase.foundation.errors import (
    CoercionError,
    DuplicateRegistration,
    Err,
    Ok,
    ParseArgumentJSON,
    ParseArgumentsJSON,
    ParseArgumentText,
    Result,
)
from callcase.foundation.types import ERROR_TYPE, FLOAT, INT, TEXT, Context, SequenceType


def add(a: int, b: int) -> int:
    """Adds two numbers.

    Args:
        a: First summand
        b: Second summand
    """
    return a + b


def divide(a: float, b: float) -> Result[float, str]:
    return Err("division by zero") if b == 0 else Ok(a / b)


def split(s: str) -> tuple[str, str]:
    return s[:1], s[1:]


def total(*values: int) -> int:
    return sum(values)


def scale(x: float, *, factor: float = 2.0) -> float:
    return x * factor


def nothing() -> None:
    return None


@dataclass
class Span:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("empty span")


def measure(span: Span, scale: int) -> int:
    return (span.end - span.start) * scale


# ═════════════════════════════════════════════════════════════════════════════
# Descriptions
# ═════════════════════════════════════════════════════════════════════════════


def test_reflected_description() -> None:
    """Names, docstring descriptions and types come from the function."""
    wrapper = reflect_wrapper(add)
    assert wrapper.name == "add"
    assert wrapper.arg_names == ("a", "b")
    assert wrapper.arg_descriptions == ("First summand", "Second summand")
    assert wrapper.arg_types == (INT, INT)
    assert wrapper.result_types == (INT,)
    assert str(wrapper) == "add(a: int, b: int) -> int"
    assert not wrapper.has_context_arg and not wrapper.has_error_result


def test_signatures() -> None:
    """Signatures render variadics, error results and multiple results."""
    assert reflect_wrapper(divide).description.signature == "divide(a: float, b: float) -> Result[float, error]"
    assert reflect_wrapper(total).description.signature == "total(*values: int) -> int"
    assert reflect_wrapper(split).description.signature == "split(s: str) -> tuple[str, str]"
    assert reflect_wrapper(nothing).description.signature == "nothing() -> None"


def test_error_result_type() -> None:
    """Result[T, E] declares T plus the trailing error result."""
    wrapper = reflect_wrapper(divide)
    assert wrapper.result_types == (FLOAT, ERROR_TYPE)
    assert wrapper.has_error_result
    assert wrapper.description.value_result_types == (FLOAT,)


def test_variadic_and_keyword_kinds() -> None:
    """*args is a tuple-typed variadic argument, keyword-only params are keywords."""
    assert reflect_wrapper(total).description.arg_kinds == (ArgKind.VARIADIC,)
    assert reflect_wrapper(total).arg_types == (SequenceType(INT, None, tuple),)
    assert reflect_wrapper(scale).description.arg_kinds == (ArgKind.POSITIONAL, ArgKind.KEYWORD)


def test_custom_arg_names() -> None:
    """Explicit names replace parameter names, must match their count and be unique."""
    assert ReflectWrapper(add, "x", "y").arg_names == ("x", "y")
    with pytest.raises(ValueError):
        ReflectWrapper(add, "x")
    with pytest.raises(DuplicateRegistration, match="argument 'x' already added"):
        ReflectWrapper(add, "x", "x")


def test_reflect_description_uses_positional_names() -> None:
    """reflect_description names arguments a0, a1, ..."""
    desc = reflect_description("sum", add)
    assert desc.name == "sum"
    assert desc.arg_names == ("a0", "a1")


def test_rejected_functions() -> None:
    """Coroutine functions and **kwargs can't be wrapped."""
    async def fetch(url: str) -> str:
        return url

    def configure(**options: str) -> None:
        pass

    with pytest.raises(TypeError):
        reflect_wrapper(fetch)
    with pytest.raises(TypeError):
        reflect_wrapper(configure)


def test_description_validation() -> None:
    """Descriptions reject duplicate names and mismatched lengths."""
    with pytest.raises(DuplicateRegistration):
        FunctionDescription(name="f", arg_names=("a", "a"), arg_types=(INT, INT))
    with pytest.raises(ValueError):
        FunctionDescription(name="f", arg_names=("a",), arg_types=(INT, INT))
    desc = FunctionDescription(name="f", arg_names=("a",), arg_types=(TEXT,))
    assert desc.arg_descriptions == ("",)
    assert desc.arg_kinds == (ArgKind.POSITIONAL,)


def test_parse_arg_descriptions() -> None:
    """Google-style Args sections, with types and continuation lines."""
    doc = "Summary.\n\nArgs:\n    a: First\n    b (int): Second line,\n        continued\n\nReturns:\n    Sum\n"
    assert parse_arg_descriptions(doc) == {"a": "First", "b": "Second line, continued"}
    assert parse_arg_descriptions("No sections here.") == {}
    assert parse_arg_descriptions(None) == {}


def test_wrapper_todo_raises() -> None:
    """The placeholder fails until the generator replaces it."""
    with pytest.raises(NotImplementedError, match="callcase-gen"):
        wrapper_todo(add)


# ═════════════════════════════════════════════════════════════════════════════
# Text Conventions
# ═════════════════════════════════════════════════════════════════════════════


def test_call_with_text() -> None:
    """Positional tokens; missing ones bind zero, extra ones are ignored."""
    wrapper = reflect_wrapper(add)
    assert wrapper.call_with_text(None, "2", "3") == Ok([5])
    assert wrapper.call_with_text(None, "2") == Ok([2])
    assert wrapper.call_with_text(None, "2", "3", "4") == Ok([5])
    assert wrapper.call_with_text(None) == Ok([0])


def test_call_with_named_text() -> None:
    """Tokens by argument name."""
    wrapper = reflect_wrapper(add)
    assert wrapper.call_with_named_text(None, {"a": "2", "b": "3"}) == Ok([5])
    assert wrapper.call_with_named_text(None, {"b": "3", "other": "x"}) == Ok([3])


def test_text_argument_error() -> None:
    """A bad token returns ParseArgumentText naming the argument."""
    result = reflect_wrapper(add).call_with_text(None, "2", "x")
    assert result.is_err()
    error = result.unwrap_err()
    assert isinstance(error, ParseArgumentText)
    assert (error.function, error.arg_name, error.arg_value) == ("add", "b", "x")
    assert isinstance(error.cause, CoercionError)

    named = reflect_wrapper(add).call_with_named_text(None, {"a": "one"}).unwrap_err()
    assert named.arg_name == "a"


def test_call_with_values() -> None:
    """Typed values; None binds the zero value."""
    wrapper = reflect_wrapper(add)
    assert wrapper.call(None, [2, 3]) == Ok([5])
    assert wrapper.call(None, [2, None]) == Ok([2])
    assert wrapper.call(None) == Ok([0])


def test_missing_record_without_zero_value() -> None:
    """A record class rejecting its zero fields fails like a bad token instead of raising."""
    wrapper = reflect_wrapper(measure)
    assert wrapper.call_with_text(None, '{"start": 1, "end": 4}', "2") == Ok([6])

    error = wrapper.call_with_text(None).unwrap_err()
    assert isinstance(error, ParseArgumentText)
    assert (error.arg_name, error.arg_value) == ("span", "")
    assert isinstance(error.cause, CoercionError)
    assert wrapper.call_with_named_text(None, {"scale": "2"}).unwrap_err().arg_name == "span"
    assert isinstance(wrapper.call(None, []).unwrap_err(), CoercionError)

    error = wrapper.call_with_json(None, '{"scale": 2}').unwrap_err()
    assert isinstance(error, ParseArgumentJSON)
    assert error.arg_name == "span"


def test_results_normalization() -> None:
    """No results, several results and declared error results."""
    assert reflect_wrapper(nothing).call_with_text(None) == Ok([])
    assert reflect_wrapper(split).call_with_text(None, "abc") == Ok(["a", "bc"])
    assert reflect_wrapper(divide).call_with_text(None, "1", "4") == Ok([0.25])
    assert reflect_wrapper(divide).call_with_text(None, "1", "0") == Err("division by zero")


def test_variadic_and_keyword_calls() -> None:
    """Variadics take a sequence literal, keywords ignore Python defaults."""
    assert reflect_wrapper(total).call_with_text(None, "[1,2,3]") == Ok([6])
    assert reflect_wrapper(total).call_with_text(None) == Ok([0])
    assert reflect_wrapper(scale).call_with_text(None, "3", "3") == Ok([9.0])
    assert reflect_wrapper(scale).call_with_text(None, "3") == Ok([0.0])


def test_context_argument() -> None:
    """The context is passed through and never bound from caller input."""
    seen: list[Context] = []

    def greet(ctx: Context, name: str) -> str:
        seen.append(ctx)
        return f"hello {name}"

    wrapper = reflect_wrapper(greet)
    assert wrapper.has_context_arg
    assert str(wrapper) == "greet(ctx: Context, name: str) -> str"

    ctx = Context.background()
    assert wrapper.call_with_text(ctx, "bob") == Ok(["hello bob"])
    assert seen[-1] is ctx
    assert wrapper.call_with_named_text(None, {"name": "amy"}) == Ok(["hello amy"])
    assert isinstance(seen[-1], Context)


def test_context_only_function() -> None:
    """A lone context parameter is named ctx."""
    def ping(c: Context) -> None:
        pass

    wrapper = reflect_wrapper(ping)
    assert wrapper.arg_names == ("ctx",)
    assert wrapper.description.bindable_args() == []
    assert wrapper.call_with_text(None, "ignored") == Ok([])


def test_context_cancellation() -> None:
    """Cancelling a parent cancels derived contexts."""
    root = Context.background()
    child, _ = root.with_cancel()
    timed, _ = child.with_timeout(60)
    assert not timed.cancelled
    root.cancel()
    assert child.cancelled and timed.cancelled
    expired, _ = Context.background().with_timeout(0)
    assert expired.cancelled


def test_text_args_func_runs_handlers() -> None:
    """Handlers see results of successful calls only."""
    seen: list[list[Any]] = []
    run = text_args_func(reflect_wrapper(add), lambda ctx, results: seen.append(results))
    assert run(None, "2", "3") == Ok([5])
    assert run(None, "x").is_err()
    assert seen == [[5]]


# ═════════════════════════════════════════════════════════════════════════════
# JSON Convention
# ═════════════════════════════════════════════════════════════════════════════


def test_exported_names() -> None:
    """Leading acronyms upper-cased, otherwise the first letter."""
    assert [exported_name(n) for n in ("id", "apiKey", "documentId", "xmlParser", "count")] == [
        "ID", "APIKey", "DocumentId", "XMLParser", "Count",
    ]


def test_call_with_json_lookup() -> None:
    """Fields match by name, exported name and case-insensitively."""
    wrapper = reflect_wrapper(add)
    assert wrapper.call_with_json(None, '{"a": 2, "b": 3}') == Ok([5])
    assert wrapper.call_with_json(None, '{"A": 2, "B": 3}') == Ok([5])
    assert wrapper.call_with_json(None, b'{"a": 2}') == Ok([2])
    assert wrapper.call_with_json(None, '{"b": 3, "extra": true}') == Ok([3])
    assert wrapper.call_with_json(None, "null") == Ok([0])

    def login(apiKey: str) -> str:  # noqa: N803
        return apiKey

    assert reflect_wrapper(login).call_with_json(None, '{"APIKey": "k1"}') == Ok(["k1"])
    assert reflect_wrapper(login).call_with_json(None, '{"apikey": "k2"}') == Ok(["k2"])


def test_call_with_json_structured_values() -> None:
    """Sequences, optionals and durations decode from JSON values."""
    def tag(ids: list[int], label: str | None, wait: timedelta) -> tuple[list[int], str | None, timedelta]:
        return ids, label, wait

    wrapper = reflect_wrapper(tag)
    assert wrapper.call_with_json(None, '{"ids": [1, 2], "wait": "1m"}') == Ok([[1, 2], None, timedelta(minutes=1)])
    assert wrapper.call_with_json(None, '{"label": "x", "wait": 90}') == Ok([[], "x", timedelta(seconds=90)])


def test_call_with_json_null_binds_zero() -> None:
    """null binds the zero value of a required argument and None of an optional one."""
    assert reflect_wrapper(add).call_with_json(None, '{"a": null, "b": 3}') == Ok([3])
    assert reflect_wrapper(add).call_with_json(None, '{"A": null}') == Ok([0])

    def tag(ids: list[int], label: str | None, wait: timedelta) -> tuple[list[int], str | None, timedelta]:
        return ids, label, wait

    assert reflect_wrapper(tag).call_with_json(None, '{"ids": null, "label": null, "wait": null}') == Ok(
        [[], None, timedelta(0)]
    )


def test_call_with_json_errors() -> None:
    """Non-objects and invalid fields return JSON binding errors."""
    wrapper = reflect_wrapper(add)
    assert isinstance(wrapper.call_with_json(None, "[1]").unwrap_err(), ParseArgumentsJSON)
    assert isinstance(wrapper.call_with_json(None, "{not json").unwrap_err(), ParseArgumentsJSON)

    error = wrapper.call_with_json(None, '{"a": "x"}').unwrap_err()
    assert isinstance(error, ParseArgumentJSON)
    assert error.arg_name == "a"


def test_args_model_rejects_clashing_names() -> None:
    """Two arguments exporting the same field name can't be bound from JSON."""
    def clash(id: int, ID: int) -> int:  # noqa: A002, N803
        return id + ID

    wrapper = reflect_wrapper(clash)
    assert wrapper.call_with_text(None, "1", "2") == Ok([3])
    with pytest.raises(DuplicateRegistration):
        args_model(wrapper.description)
