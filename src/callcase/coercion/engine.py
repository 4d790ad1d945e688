"""Type-directed text coercion.

``coerce`` turns one text token into a value of a described type using the
process-wide scanner registry (or an explicit one). ``zero_value`` defines the
value bound to arguments that are not supplied at all.

Example:
    >>> coerce("[[1,2],[3,4]]", describe(list[list[int]]))
    [[1, 2], [3, 4]]
    >>> coerce('["a,b","c"]', describe(list[str]))
    ['a,b', 'c']
    >>> coerce("null", describe(int | None)) is None
    True
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Protocol, Self, runtime_checkable

from callcase.foundation.errors import CoercionError, TypeNotSupported
from callcase.foundation.types import (
    CompositeType,
    Context,
    Kind,
    MappingType,
    OpaqueType,
    OptionalType,
    PrimitiveType,
    SequenceType,
    TypeDescriptor,
)

from .jsonvalue import json_adapter
from .registry import ScannerRegistry, active_registry
from .scanners import (
    NIL_LITERALS,
    fixed_sequence_items,
    is_blank,
    scan_bool,
    scan_bytes,
    scan_date,
    scan_duration,
    scan_float,
    scan_instant,
    scan_int,
    sequence_items,
)


@runtime_checkable
class FromText(Protocol):
    """Capability of classes that parse themselves from a text token."""

    @classmethod
    def from_text(cls, text: str) -> Self: ...


# ─────────────────────────────────────────────────────────────────────────────
# Zero Values
# ─────────────────────────────────────────────────────────────────────────────

_PRIMITIVE_ZEROS: dict[Kind, Any] = {
    Kind.TEXT: "",
    Kind.BOOL: False,
    Kind.INT: 0,
    Kind.FLOAT: 0.0,
    Kind.INSTANT: datetime.min,
    Kind.DATE: date.min,
    Kind.DURATION: timedelta(0),
    Kind.BYTES: b"",
    Kind.ANY: None,
}


def zero_value(target: TypeDescriptor) -> Any:
    """Value bound to an argument that was not supplied.

    Records are built from the zero values of their fields.

    Raises:
        CoercionError: If a record class rejects its zero field values
    """
    match target:
        case PrimitiveType(kind=kind):
            return _as_declared(_PRIMITIVE_ZEROS[kind], target)
        case OptionalType():
            return None
        case SequenceType(inner=inner, length=None, container=container):
            return container()
        case SequenceType(inner=inner, length=n, container=container):
            return container([zero_value(inner) for _ in range(n)])
        case MappingType():
            return {}
        case CompositeType(py_type=tp, fields=fields):
            zeros = {name: zero_value(desc) for name, desc in fields}
            if hasattr(tp, "model_construct"):
                return tp.model_construct(**zeros)
            try:
                return tp(**zeros)
            except Exception as exc:
                raise CoercionError("", target, exc) from exc
        case OpaqueType(py_type=tp) if tp is Context:
            return Context.background()
        case OpaqueType(py_type=tp) if isinstance(tp, type) and issubclass(tp, Enum):
            return next(iter(tp), None)
        case OpaqueType(py_type=tp) if isinstance(tp, type) and not issubclass(tp, BaseException):
            try:
                return tp()
            except TypeError:
                return None
    return None


def _as_declared(value: Any, target: PrimitiveType) -> Any:
    """Convert a builtin value into the declared subclass, e.g. a ``NewType`` base or ``class Celsius(float)``."""
    tp = target.py_type
    if tp in _BUILTINS or type(value) is tp:
        return value
    return tp(value)


_BUILTINS = frozenset({str, bool, int, float, datetime, date, timedelta, bytes, object})


# ─────────────────────────────────────────────────────────────────────────────
# Default & Capability Scanners
# ─────────────────────────────────────────────────────────────────────────────


def scan_default(text: str, target: TypeDescriptor) -> Any:
    """Reference scanner for every descriptor kind."""
    kind = target.kind
    if kind is Kind.ANY:
        return text
    if kind is Kind.TEXT:
        return _as_declared(text, target)  # type: ignore[arg-type]
    if kind is Kind.BYTES:
        return _as_declared(scan_bytes(text), target)  # type: ignore[arg-type]
    if is_blank(text):
        return zero_value(target)

    match target:
        case PrimitiveType(kind=Kind.INT, bits=bits, unsigned=unsigned):
            return _as_declared(scan_int(text, bits, unsigned), target)
        case PrimitiveType(kind=kind):
            return _as_declared(_PRIMITIVE_SCANNERS[kind](text), target)
        case OptionalType(inner=inner):
            return None if text.strip() in NIL_LITERALS else scan(text, inner)
        case SequenceType(inner=inner, length=n, container=container):
            items = sequence_items(text) if n is None else fixed_sequence_items(text, target)
            return container([scan(item, inner) for item in items])
        case CompositeType() | MappingType():
            return json_adapter(target).validate_json(text, strict=True)
        case OpaqueType(py_type=tp) if isinstance(tp, type):
            if issubclass(tp, FromText):
                return scan_from_text(text, target)
            if issubclass(tp, Enum):
                return scan_enum(text, target)
            try:
                return tp(text)
            except TypeError as exc:
                raise TypeNotSupported(target, text) from exc
    raise TypeNotSupported(target, text)


_PRIMITIVE_SCANNERS = {
    Kind.BOOL: scan_bool,
    Kind.FLOAT: scan_float,
    Kind.INSTANT: scan_instant,
    Kind.DATE: scan_date,
    Kind.DURATION: scan_duration,
}


def scan_from_text(text: str, target: TypeDescriptor) -> Any:
    """Capability scanner delegating to ``cls.from_text``."""
    return target.python_type.from_text(text)


def scan_enum(text: str, target: TypeDescriptor) -> Any:
    """Capability scanner matching an enum member by value text, then by name."""
    tp: type[Enum] = target.python_type
    s = text.strip()
    if not s:
        return zero_value(target)
    for member in tp:
        if str(member.value) == s:
            return member
    if s in tp.__members__:
        return tp.__members__[s]
    options = ", ".join(str(m.value) for m in tp)
    raise ValueError(f"{text!r} is not a valid {tp.__name__}, expected one of: {options}")


DEFAULT_SCANNERS = (
    ScannerRegistry(default=scan_default)
    .with_capability_scanner(FromText, scan_from_text)
    .with_capability_scanner(Enum, scan_enum)
)

_scanners: ScannerRegistry = DEFAULT_SCANNERS


def get_scanners() -> ScannerRegistry:
    """Process-wide scanner registry."""
    return _scanners


def set_scanners(registry: ScannerRegistry) -> ScannerRegistry:
    """Replace the process-wide registry; returns the previous one."""
    global _scanners
    previous, _scanners = _scanners, registry
    return previous


def reset_scanners() -> None:
    """Restore the default registry (useful for testing)."""
    set_scanners(DEFAULT_SCANNERS)


# ─────────────────────────────────────────────────────────────────────────────
# Entry Points
# ─────────────────────────────────────────────────────────────────────────────


def scan(text: str, target: TypeDescriptor, registry: ScannerRegistry | None = None) -> Any:
    """Coerce without wrapping failures; used for recursion into elements."""
    return (registry or active_registry() or _scanners).scan(text, target)


def coerce(text: str, target: TypeDescriptor, registry: ScannerRegistry | None = None) -> Any:
    """Coerce ``text`` into a value of ``target``.

    Raises:
        TypeNotSupported: If no scanner can produce ``target``
        LengthMismatch: If a fixed-length sequence has the wrong element count
        CoercionError: For any other failure, with the original as ``cause``
    """
    try:
        return scan(text, target, registry)
    except CoercionError:
        raise
    except Exception as exc:
        raise CoercionError(text, target, exc) from exc


def scan_many(texts: Sequence[str], targets: Sequence[TypeDescriptor],
              registry: ScannerRegistry | None = None) -> list[Any]:
    """Coerce texts pairwise; missing texts bind zero values, extra texts are ignored."""
    return [coerce(texts[i], t, registry) if i < len(texts) else zero_value(t) for i, t in enumerate(targets)]
