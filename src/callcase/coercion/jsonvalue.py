"""Descriptor to pydantic annotation mapping for JSON decoding.

Composite and mapping arguments given as text, and every argument given
through the JSON convention, are decoded by pydantic. This module rebuilds a
pydantic-compatible annotation from a descriptor so both paths agree on
bounds, fixed lengths and opaque types.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Any, Optional

from pydantic import Field, PlainValidator, TypeAdapter
from pydantic.errors import PydanticSchemaGenerationError

from callcase.foundation.errors import CoercionError
from callcase.foundation.types import (
    CompositeType,
    Kind,
    MappingType,
    OpaqueType,
    OptionalType,
    PrimitiveType,
    SequenceType,
    TypeDescriptor,
)

from .scanners import scan_duration


@lru_cache(maxsize=512)
def json_annotation(target: TypeDescriptor) -> Any:
    """Pydantic annotation equivalent to ``target``."""
    match target:
        case PrimitiveType(kind=Kind.ANY):
            return Any
        case PrimitiveType(kind=Kind.DURATION):
            return Annotated[timedelta, PlainValidator(_duration_from_json)]
        case PrimitiveType(kind=Kind.INT, py_type=tp, bits=bits) if bits:
            lo, hi = target.bounds  # type: ignore[misc]
            return Annotated[tp, Field(ge=lo, le=hi)]
        case PrimitiveType(py_type=tp):
            return tp
        case OptionalType(inner=inner):
            return Optional[json_annotation(inner)]  # noqa: UP007
        case SequenceType(inner=inner, length=n, container=container):
            item = json_annotation(inner)
            if container is tuple:
                return tuple[item, ...] if n is None else tuple[(item,) * n] if n else tuple[()]
            if n is None:
                return container[item]
            return Annotated[container[item], Field(min_length=n, max_length=n)]
        case MappingType(key=key, value=value):
            return dict[json_annotation(key), json_annotation(value)]
        case CompositeType(py_type=tp):
            return tp
        case OpaqueType(py_type=tp) if _pydantic_native(tp):
            return tp
    return Annotated[Any, PlainValidator(_OpaqueValidator(target))]


@lru_cache(maxsize=512)
def json_adapter(target: TypeDescriptor) -> TypeAdapter[Any]:
    """Cached TypeAdapter for ``json_annotation(target)``."""
    return TypeAdapter(json_annotation(target))


@lru_cache(maxsize=256)
def _pydantic_native(tp: Any) -> bool:
    try:
        TypeAdapter(tp)
    except PydanticSchemaGenerationError:
        return False
    return True


def _duration_from_json(value: Any) -> timedelta:
    """Seconds as a number, or a duration string in either accepted syntax."""
    match value:
        case timedelta():
            return value
        case bool():
            raise ValueError("expected a duration, got a boolean")
        case int() | float():
            return timedelta(seconds=value)
        case str():
            return scan_duration(value)
    raise ValueError(f"expected a duration, got {type(value).__name__}")


class _OpaqueValidator:
    """Accept an instance, or a JSON string coerced through the text scanners."""

    __slots__ = ("target",)

    def __init__(self, target: TypeDescriptor) -> None:
        self.target = target

    def __call__(self, value: Any) -> Any:
        tp = self.target.python_type
        if isinstance(tp, type) and isinstance(value, tp):
            return value
        if not isinstance(value, str):
            raise ValueError(f"expected a JSON string for {self.target}, got {type(value).__name__}")
        from .engine import coerce
        try:
            return coerce(value, self.target)
        except CoercionError as exc:
            raise ValueError(str(exc)) from exc
