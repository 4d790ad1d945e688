"""Type descriptors: the shapes argument values can take.

A ``TypeDescriptor`` is a small, hashable, immutable description of a value
type. Python type hints are mapped onto descriptors by ``describe``; the
coercion engine, the JSON binder and the adapter generator all work on
descriptors instead of raw annotations.

Example:
    >>> describe(list[int]) == SequenceType(INT)
    True
    >>> str(describe(int | None))
    'int | None'
"""

from __future__ import annotations

import collections.abc as abc
import dataclasses
import types
import typing
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum, StrEnum
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from .context import Context


class Kind(StrEnum):
    """Category of a type descriptor."""
    TEXT = "text"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    INSTANT = "instant"
    DATE = "date"
    DURATION = "duration"
    BYTES = "bytes"
    ANY = "any"
    OPTIONAL = "optional"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    COMPOSITE = "composite"
    OPAQUE = "opaque"


# ─────────────────────────────────────────────────────────────────────────────
# Annotation Metadata
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class IntBits:
    """``Annotated`` marker bounding an int to a machine integer range."""
    bits: int
    unsigned: bool = False

    @property
    def bounds(self) -> tuple[int, int]:
        if self.unsigned:
            return 0, (1 << self.bits) - 1
        return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1


@dataclass(frozen=True, slots=True)
class Length:
    """``Annotated`` marker fixing the element count of a sequence."""
    n: int


Int8 = Annotated[int, IntBits(8)]
Int16 = Annotated[int, IntBits(16)]
Int32 = Annotated[int, IntBits(32)]
Int64 = Annotated[int, IntBits(64)]
UInt8 = Annotated[int, IntBits(8, unsigned=True)]
UInt16 = Annotated[int, IntBits(16, unsigned=True)]
UInt32 = Annotated[int, IntBits(32, unsigned=True)]
UInt64 = Annotated[int, IntBits(64, unsigned=True)]


# ─────────────────────────────────────────────────────────────────────────────
# Descriptors
# ─────────────────────────────────────────────────────────────────────────────


class TypeDescriptor:
    """Base of all descriptor variants."""

    __slots__ = ()

    @property
    def kind(self) -> Kind:
        raise NotImplementedError

    @property
    def python_type(self) -> Any:
        """The Python class (or typing construct) values of this type have."""
        raise NotImplementedError

    def satisfies(self, capability: type) -> bool:
        """Whether the described class implements ``capability``."""
        tp = self.python_type
        if not isinstance(tp, type):
            return False
        try:
            return issubclass(tp, capability)
        except TypeError:
            return False


@dataclass(frozen=True, slots=True)
class PrimitiveType(TypeDescriptor):
    kind: Kind
    py_type: type = str
    bits: int | None = None
    unsigned: bool = False

    @property
    def python_type(self) -> type:
        return self.py_type

    @property
    def bounds(self) -> tuple[int, int] | None:
        return IntBits(self.bits, self.unsigned).bounds if self.bits else None

    def __str__(self) -> str:
        if self.bits:
            return f"{'u' if self.unsigned else ''}int{self.bits}"
        return "Any" if self.kind is Kind.ANY else self.py_type.__name__


@dataclass(frozen=True, slots=True)
class OptionalType(TypeDescriptor):
    inner: TypeDescriptor

    @property
    def kind(self) -> Kind:
        return Kind.OPTIONAL

    @property
    def python_type(self) -> Any:
        return self.inner.python_type

    def satisfies(self, capability: type) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.inner} | None"


@dataclass(frozen=True, slots=True)
class SequenceType(TypeDescriptor):
    """Homogeneous sequence; ``length`` is set for fixed-size sequences."""
    inner: TypeDescriptor
    length: int | None = None
    container: type = list

    @property
    def kind(self) -> Kind:
        return Kind.SEQUENCE

    @property
    def python_type(self) -> type:
        return self.container

    def satisfies(self, capability: type) -> bool:
        return False

    def __str__(self) -> str:
        name = self.container.__name__
        if self.length is None:
            return f"tuple[{self.inner}, ...]" if self.container is tuple else f"{name}[{self.inner}]"
        if self.container is tuple:
            return f"tuple[{', '.join([str(self.inner)] * self.length)}]"
        return f"{name}[{self.inner}] (length {self.length})"


@dataclass(frozen=True, slots=True)
class MappingType(TypeDescriptor):
    key: TypeDescriptor
    value: TypeDescriptor

    @property
    def kind(self) -> Kind:
        return Kind.MAPPING

    @property
    def python_type(self) -> type:
        return dict

    def satisfies(self, capability: type) -> bool:
        return False

    def __str__(self) -> str:
        return f"dict[{self.key}, {self.value}]"


@dataclass(frozen=True, slots=True)
class CompositeType(TypeDescriptor):
    """Record type (dataclass or pydantic model) with named fields."""
    py_type: type
    fields: tuple[tuple[str, TypeDescriptor], ...] = field(default=(), compare=False, repr=False)

    @property
    def kind(self) -> Kind:
        return Kind.COMPOSITE

    @property
    def python_type(self) -> type:
        return self.py_type

    def __str__(self) -> str:
        return self.py_type.__name__


@dataclass(frozen=True, slots=True)
class OpaqueType(TypeDescriptor):
    """Any other type; handled only through registered or capability scanners."""
    py_type: Any

    @property
    def kind(self) -> Kind:
        return Kind.OPAQUE

    @property
    def python_type(self) -> Any:
        return self.py_type

    def __str__(self) -> str:
        return getattr(self.py_type, "__name__", None) or repr(self.py_type)


TEXT = PrimitiveType(Kind.TEXT, str)
BOOL = PrimitiveType(Kind.BOOL, bool)
INT = PrimitiveType(Kind.INT, int)
FLOAT = PrimitiveType(Kind.FLOAT, float)
INSTANT = PrimitiveType(Kind.INSTANT, datetime)
DATE = PrimitiveType(Kind.DATE, date)
DURATION = PrimitiveType(Kind.DURATION, timedelta)
BYTES = PrimitiveType(Kind.BYTES, bytes)
ANY = PrimitiveType(Kind.ANY, object)

CONTEXT_TYPE = OpaqueType(Context)
ERROR_TYPE = OpaqueType(Exception)


# ─────────────────────────────────────────────────────────────────────────────
# Annotation Mapping
# ─────────────────────────────────────────────────────────────────────────────

# Order matters: bool before int, datetime before date.
_PRIMITIVES: tuple[tuple[type, Kind], ...] = (
    (str, Kind.TEXT),
    (bool, Kind.BOOL),
    (int, Kind.INT),
    (float, Kind.FLOAT),
    (datetime, Kind.INSTANT),
    (date, Kind.DATE),
    (timedelta, Kind.DURATION),
    (bytes, Kind.BYTES),
    (bytearray, Kind.BYTES),
)

_SEQUENCE_ORIGINS: dict[Any, type] = {
    list: list,
    set: set,
    frozenset: frozenset,
    abc.Sequence: list,
    abc.MutableSequence: list,
    abc.Collection: list,
    abc.Iterable: list,
    abc.Set: frozenset,
    abc.MutableSet: set,
}
_MAPPING_ORIGINS = frozenset({dict, abc.Mapping, abc.MutableMapping})


def describe(annotation: Any) -> TypeDescriptor:
    """Map a Python type hint onto a descriptor.

    Unrecognized hints become ``OpaqueType``; they are coercible only
    through registered scanners or the text-constructor fallback.

    Raises:
        TypeError: If ``annotation`` is an unresolved string forward reference
    """
    return _describe(annotation, frozenset())


def _describe(tp: Any, seen: frozenset[type]) -> TypeDescriptor:
    if tp is Any or tp is object:
        return ANY
    if isinstance(tp, str | typing.ForwardRef):
        raise TypeError(f"unresolved forward reference {tp!r}; resolve hints with get_type_hints first")
    if isinstance(tp, typing.NewType):
        return _describe(tp.__supertype__, seen)

    origin, args = get_origin(tp), get_args(tp)
    if origin is Annotated:
        return _apply_metadata(_describe(args[0], seen), args[1:])
    if origin is Union or origin is types.UnionType:
        rest = tuple(a for a in args if a is not type(None))
        if len(rest) == len(args):
            return OpaqueType(tp)
        inner = _describe(rest[0], seen) if len(rest) == 1 else OpaqueType(Union[rest])  # noqa: UP007
        return OptionalType(inner)
    if origin is tuple or tp is tuple:
        return _describe_tuple(args, seen)
    if origin in _SEQUENCE_ORIGINS or (origin is None and tp in _SEQUENCE_ORIGINS):
        container = _SEQUENCE_ORIGINS[origin or tp]
        return SequenceType(_describe(args[0], seen) if args else ANY, None, container)
    if origin in _MAPPING_ORIGINS or tp in _MAPPING_ORIGINS:
        if args:
            return MappingType(_describe(args[0], seen), _describe(args[1], seen))
        return MappingType(TEXT, ANY)
    if origin is not None or not isinstance(tp, type):
        return OpaqueType(tp)

    if issubclass(tp, Enum):
        return OpaqueType(tp)
    for base, kind in _PRIMITIVES:
        if issubclass(tp, base):
            return PrimitiveType(kind, tp)
    if tp in seen:
        return OpaqueType(tp)
    if dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel):
        return CompositeType(tp, _composite_fields(tp, seen | {tp}))
    return OpaqueType(tp)


def _describe_tuple(args: tuple[Any, ...], seen: frozenset[type]) -> TypeDescriptor:
    if not args:
        return SequenceType(ANY, None, tuple)
    if len(args) == 2 and args[1] is Ellipsis:
        return SequenceType(_describe(args[0], seen), None, tuple)
    inner = [_describe(a, seen) for a in args]
    if all(d == inner[0] for d in inner):
        return SequenceType(inner[0], len(args), tuple)
    return OpaqueType(tuple[args])


def _apply_metadata(desc: TypeDescriptor, metadata: tuple[Any, ...]) -> TypeDescriptor:
    for meta in metadata:
        if isinstance(meta, IntBits) and isinstance(desc, PrimitiveType) and desc.kind is Kind.INT:
            desc = dataclasses.replace(desc, bits=meta.bits, unsigned=meta.unsigned)
        elif isinstance(meta, Length) and isinstance(desc, SequenceType):
            desc = dataclasses.replace(desc, length=meta.n)
    return desc


def _composite_fields(tp: type, seen: frozenset[type]) -> tuple[tuple[str, TypeDescriptor], ...]:
    if issubclass(tp, BaseModel):
        return tuple((name, _describe(f.annotation, seen)) for name, f in tp.model_fields.items())
    hints = get_type_hints(tp, include_extras=True)
    return tuple((f.name, _describe(hints.get(f.name, Any), seen)) for f in dataclasses.fields(tp) if f.init)
