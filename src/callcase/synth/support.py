"""Names generated adapters use, imported as ``import callcase.synth.support as _cc``.

Generated code only touches this module, so the layout of the rest of the
package can change without regenerating adapters.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Callable, ClassVar, get_args, get_type_hints

from pydantic import BaseModel

from callcase.coercion import scan, zero_value
from callcase.coercion.scanners import (
    fixed_sequence_items,
    is_blank,
    is_nil,
    scan_bool,
    scan_bytes,
    scan_date,
    scan_duration,
    scan_float,
    scan_instant,
    scan_int,
    sequence_items,
)
from callcase.foundation.core import ArgKind, FunctionDescription, Wrapper, args_model, bind_json, context_or_background
from callcase.foundation.errors import CoercionError, Err, InvocationError
from callcase.foundation.types import (
    ANY,
    BOOL,
    BYTES,
    CONTEXT_TYPE,
    DATE,
    DURATION,
    ERROR_TYPE,
    FLOAT,
    INSTANT,
    INT,
    TEXT,
    Kind,
    MappingType,
    OptionalType,
    PrimitiveType,
    SequenceType,
    TypeDescriptor,
    describe,
)


class GeneratedWrapper(Wrapper):
    """Base class of adapters written by ``callcase-gen``.

    Subclasses carry a literal ``description``, the JSON ``args_model`` built
    from it and the four call methods with inlined argument scanning.
    """

    __slots__ = ()

    args_model: ClassVar[type[BaseModel]]


def type_ref(func: Callable[..., Any], slot: str, path: tuple[int, ...] = ()) -> TypeDescriptor:
    """Descriptor of an annotation the generator could not map statically.

    The annotation of parameter ``slot`` (or ``"return"``) is resolved with
    ``typing.get_type_hints`` as the reflecting wrapper does, then ``path``
    selects nested type arguments: ``type_ref(f, "return", (0,))`` is ``T`` for
    ``-> Result[T, E]``.
    """
    annotation = get_type_hints(func, include_extras=True)[slot]
    for index in path:
        annotation = get_args(annotation)[index]
    return describe(annotation)


def typed_arg(args: Sequence[Any], n: int, target: TypeDescriptor) -> Any:
    """``args[n]``, or the zero value of ``target`` when missing or None."""
    return args[n] if n < len(args) and args[n] is not None else zero_value(target)


__all__ = [
    "GeneratedWrapper", "type_ref", "typed_arg",
    "FunctionDescription", "ArgKind", "args_model", "bind_json", "context_or_background",
    "Err", "InvocationError", "CoercionError",
    "scan", "zero_value", "is_blank", "is_nil", "sequence_items", "fixed_sequence_items",
    "scan_bool", "scan_int", "scan_float", "scan_instant", "scan_date", "scan_duration", "scan_bytes",
    "Kind", "PrimitiveType", "OptionalType", "SequenceType", "MappingType",
    "TEXT", "BOOL", "INT", "FLOAT", "INSTANT", "DATE", "DURATION", "BYTES", "ANY", "CONTEXT_TYPE", "ERROR_TYPE",
]
