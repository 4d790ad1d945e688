"""Static mapping of annotation syntax onto type descriptors.

Annotations are read from the AST, never evaluated. Well-known spellings
(builtins, ``typing`` generics, ``datetime`` classes, callcase's integer
aliases, ``Context`` and ``Result``) become ``StaticType`` nodes the emitter
can inline scanning code for. Everything else becomes a ``StaticRef`` naming
the parameter (or ``"return"``) it was written for; the generated module
looks the annotation up with ``typing.get_type_hints`` and ``describe``s it at
import time, so a reference always yields the same descriptor the runtime
wrapper computes.
"""

from __future__ import annotations

import ast
from collections.abc import Mapping
from dataclasses import dataclass

from callcase.foundation.core import ArgKind, parse_arg_descriptions
from callcase.foundation.errors import SynthesisError

from .locate import LocatedFunction

# ─────────────────────────────────────────────────────────────────────────────
# Static Types
# ─────────────────────────────────────────────────────────────────────────────


class StaticType:
    """Base of statically known annotation shapes."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class StaticPrimitive(StaticType):
    """One of the ``callcase.foundation.types`` constants, optionally bit-bounded."""
    const: str
    bits: int | None = None
    unsigned: bool = False


@dataclass(frozen=True, slots=True)
class StaticOptional(StaticType):
    inner: StaticType


@dataclass(frozen=True, slots=True)
class StaticSequence(StaticType):
    inner: StaticType
    length: int | None = None
    container: str = "list"


@dataclass(frozen=True, slots=True)
class StaticMapping(StaticType):
    key: StaticType
    value: StaticType


@dataclass(frozen=True, slots=True)
class StaticRef(StaticType):
    """Annotation resolved when the generated module is imported.

    ``slot`` is the parameter name or ``"return"``; ``path`` indexes into the
    type arguments of that annotation, e.g. ``(0,)`` for ``T`` in ``Result[T, E]``.
    ``expr`` is the annotation source, kept for messages and comparisons.
    """
    expr: str
    slot: str = ""
    path: tuple[int, ...] = ()


TEXT = StaticPrimitive("TEXT")
ANY = StaticPrimitive("ANY")
CONTEXT = StaticPrimitive("CONTEXT_TYPE")
ERROR = StaticPrimitive("ERROR_TYPE")

_BUILTINS: dict[str, StaticPrimitive] = {
    "str": TEXT,
    "bool": StaticPrimitive("BOOL"),
    "int": StaticPrimitive("INT"),
    "float": StaticPrimitive("FLOAT"),
    "bytes": StaticPrimitive("BYTES"),
    "object": ANY,
}
_QUALIFIED: dict[str, StaticPrimitive] = {
    "typing.Any": ANY,
    "datetime.datetime": StaticPrimitive("INSTANT"),
    "datetime.date": StaticPrimitive("DATE"),
    "datetime.timedelta": StaticPrimitive("DURATION"),
}
_INT_ALIASES: dict[str, tuple[int, bool]] = {
    "Int8": (8, False), "Int16": (16, False), "Int32": (32, False), "Int64": (64, False),
    "UInt8": (8, True), "UInt16": (16, True), "UInt32": (32, True), "UInt64": (64, True),
}

_SEQUENCES: dict[str, str] = {
    "list": "list", "set": "set", "frozenset": "frozenset",
    "typing.List": "list", "typing.Set": "set", "typing.FrozenSet": "frozenset",
    "typing.Sequence": "list", "typing.MutableSequence": "list", "typing.Collection": "list",
    "typing.Iterable": "list", "typing.AbstractSet": "frozenset", "typing.MutableSet": "set",
    "collections.abc.Sequence": "list", "collections.abc.MutableSequence": "list",
    "collections.abc.Collection": "list", "collections.abc.Iterable": "list",
    "collections.abc.Set": "frozenset", "collections.abc.MutableSet": "set",
}
_MAPPINGS = frozenset({
    "dict", "typing.Dict", "typing.Mapping", "typing.MutableMapping",
    "collections.abc.Mapping", "collections.abc.MutableMapping",
})
_TUPLES = frozenset({"tuple", "typing.Tuple"})
_OPTIONALS = frozenset({"typing.Optional"})
_UNIONS = frozenset({"typing.Union"})
_ANNOTATED = frozenset({"typing.Annotated", "typing_extensions.Annotated"})


class _Unmapped(Exception):
    """Raised internally when an annotation has no static form."""


class AnnotationMapper:
    """Maps annotation ASTs written in one module.

    Args:
        aliases: Local name to dotted import target of that module
        local_names: Names defined at module level, which shadow builtins
    """

    __slots__ = ("_aliases", "_local")

    def __init__(self, aliases: Mapping[str, str], local_names: frozenset[str] = frozenset()) -> None:
        self._aliases = dict(aliases)
        self._local = local_names

    def map(self, node: ast.expr | None, slot: str = "", path: tuple[int, ...] = ()) -> StaticType:
        """Static form of ``node``; a missing annotation is ``Any``.

        ``slot`` and ``path`` locate ``node`` within the function's annotations
        and end up in the ``StaticRef`` when there is no static form.
        """
        if node is None:
            return ANY
        try:
            return self._map(node)
        except _Unmapped:
            return StaticRef(_source(node), slot, path)

    def results(self, node: ast.expr | None, path: tuple[int, ...] = ()) -> tuple[StaticType, ...]:
        """Result types of a return annotation, ``ERROR`` last for ``Result[T, E]``."""
        if node is None:
            return (ANY,)
        node = _parse_string(node)
        if isinstance(node, ast.Constant) and node.value is None:
            return ()
        if isinstance(node, ast.Subscript):
            origin, args = self.qualify(node.value), _subscript_args(node)
            if origin is not None and _is_callcase(origin, "Result"):
                return (*self.results(args[0] if args else None, (*path, 0)), ERROR)
            if origin in _TUPLES and args and not _is_ellipsis(args[-1]):
                return tuple(self.map(a, "return", (*path, i)) for i, a in enumerate(args))
        return (self.map(node, "return", path),)

    def qualify(self, node: ast.expr) -> str | None:
        """Dotted name an annotation refers to, e.g. ``Optional`` → ``typing.Optional``."""
        match node:
            case ast.Name(id=name):
                if name in self._aliases:
                    return self._aliases[name]
                return None if name in self._local else name
            case ast.Attribute(value=value, attr=attr):
                base = self.qualify(value)
                return f"{base}.{attr}" if base else None
        return None

    # ─────────────────────────────────────────────────────────────────
    # Mapping
    # ─────────────────────────────────────────────────────────────────

    def _map(self, node: ast.expr) -> StaticType:
        node = _parse_string(node)
        match node:
            case ast.Constant(value=None):
                raise _Unmapped
            case ast.BinOp(op=ast.BitOr()):
                return self._union(_flatten_union(node))
            case ast.Subscript(value=value):
                return self._generic(self.qualify(value), _subscript_args(node))
            case ast.Name() | ast.Attribute():
                return self._plain(self.qualify(node))
        raise _Unmapped

    def _plain(self, name: str | None) -> StaticType:
        if name is None:
            raise _Unmapped
        if name in _BUILTINS:
            return _BUILTINS[name]
        if name in _QUALIFIED:
            return _QUALIFIED[name]
        if name.startswith("callcase") and (short := name.rpartition(".")[2]) in _INT_ALIASES:
            bits, unsigned = _INT_ALIASES[short]
            return StaticPrimitive("INT", bits, unsigned)
        if _is_callcase(name, "Context"):
            return CONTEXT
        if name in _SEQUENCES:
            return StaticSequence(ANY, None, _SEQUENCES[name])
        if name in _TUPLES:
            return StaticSequence(ANY, None, "tuple")
        if name in _MAPPINGS:
            return StaticMapping(TEXT, ANY)
        raise _Unmapped

    def _generic(self, origin: str | None, args: list[ast.expr]) -> StaticType:
        if origin is None or not args:
            raise _Unmapped
        if origin in _OPTIONALS:
            return StaticOptional(self._map(args[0]))
        if origin in _UNIONS:
            return self._union(args)
        if origin in _ANNOTATED:
            return self._annotated(self._map(args[0]), args[1:])
        if origin in _SEQUENCES and len(args) == 1:
            return StaticSequence(self._map(args[0]), None, _SEQUENCES[origin])
        if origin in _MAPPINGS and len(args) == 2:
            return StaticMapping(self._map(args[0]), self._map(args[1]))
        if origin in _TUPLES:
            if len(args) == 2 and _is_ellipsis(args[1]):
                return StaticSequence(self._map(args[0]), None, "tuple")
            if any(_is_ellipsis(a) for a in args):
                raise _Unmapped
            inner = [self._map(a) for a in args]
            if any(t != inner[0] for t in inner):
                raise _Unmapped
            return StaticSequence(inner[0], len(inner), "tuple")
        raise _Unmapped

    def _union(self, members: list[ast.expr]) -> StaticType:
        rest = [m for m in members if not _is_none(m)]
        if len(rest) != 1 or len(rest) == len(members):
            raise _Unmapped
        return StaticOptional(self._map(rest[0]))

    def _annotated(self, base: StaticType, metadata: list[ast.expr]) -> StaticType:
        for meta in metadata:
            if not isinstance(meta, ast.Call):
                continue
            name = self.qualify(meta.func)
            if name is None or not name.startswith("callcase"):
                continue
            values = [_literal(a) for a in meta.args]
            keywords = {k.arg: _literal(k.value) for k in meta.keywords}
            match name.rpartition(".")[2]:
                case "IntBits" if isinstance(base, StaticPrimitive) and base.const == "INT":
                    bits = values[0] if values else keywords.get("bits")
                    unsigned = values[1] if len(values) > 1 else keywords.get("unsigned", False)
                    if not isinstance(bits, int) or not isinstance(unsigned, bool):
                        raise _Unmapped
                    base = StaticPrimitive("INT", bits, unsigned)
                case "Length" if isinstance(base, StaticSequence):
                    n = values[0] if values else keywords.get("n")
                    if not isinstance(n, int):
                        raise _Unmapped
                    base = StaticSequence(base.inner, n, base.container)
        return base


# ─────────────────────────────────────────────────────────────────────────────
# Signatures
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class StaticParam:
    name: str
    kind: ArgKind
    type: StaticType
    description: str = ""


@dataclass(frozen=True, slots=True)
class StaticSignature:
    """Everything the emitter needs to know about one function."""
    name: str
    params: tuple[StaticParam, ...]
    results: tuple[StaticType, ...]

    @property
    def arg_names(self) -> tuple[str, ...]:
        """Argument names as the runtime wrapper derives them."""
        if len(self.params) == 1 and self.params[0].type == CONTEXT:
            return ("ctx",)
        return tuple(p.name for p in self.params)

    @property
    def has_context_arg(self) -> bool:
        return bool(self.params) and self.params[0].type == CONTEXT


def static_signature(func: LocatedFunction) -> StaticSignature:
    """Signature of a located function.

    Raises:
        SynthesisError: For coroutine functions and ``**kwargs`` parameters
    """
    node, module = func.node, func.module
    where = str(module.path) if module.path else None
    if isinstance(node, ast.AsyncFunctionDef):
        raise SynthesisError(f"can't wrap coroutine function {node.name}", where, node.lineno)
    if node.args.kwarg is not None:
        raise SynthesisError(f"can't wrap {node.name}: **{node.args.kwarg.arg} is not supported", where, node.lineno)

    mapper = AnnotationMapper(module.aliases, module.local_names)
    docs = parse_arg_descriptions(func.docstring)
    args = node.args
    params = [StaticParam(a.arg, ArgKind.POSITIONAL, mapper.map(a.annotation, a.arg), docs.get(a.arg, ""))
              for a in (*args.posonlyargs, *args.args)]
    if args.vararg is not None:
        inner = mapper.map(args.vararg.annotation, args.vararg.arg)
        params.append(StaticParam(args.vararg.arg, ArgKind.VARIADIC, StaticSequence(inner, None, "tuple"),
                                  docs.get(args.vararg.arg, "")))
    params += [StaticParam(a.arg, ArgKind.KEYWORD, mapper.map(a.annotation, a.arg), docs.get(a.arg, ""))
               for a in args.kwonlyargs]
    return StaticSignature(node.name, tuple(params), mapper.results(node.returns))


# ─────────────────────────────────────────────────────────────────────────────
# AST Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _parse_string(node: ast.expr) -> ast.expr:
    """Parse a string annotation (``"Point"``) into its expression."""
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        try:
            return ast.parse(node.value, mode="eval").body
        except SyntaxError as exc:
            raise SynthesisError(f"invalid string annotation {node.value!r}") from exc
    return node


def _source(node: ast.expr) -> str:
    node = _parse_string(node)
    return ast.unparse(node)


def _subscript_args(node: ast.Subscript) -> list[ast.expr]:
    return list(node.slice.elts) if isinstance(node.slice, ast.Tuple) else [node.slice]


def _flatten_union(node: ast.expr) -> list[ast.expr]:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return [*_flatten_union(node.left), *_flatten_union(node.right)]
    return [node]


def _is_none(node: ast.expr) -> bool:
    node = _parse_string(node)
    return isinstance(node, ast.Constant) and node.value is None


def _is_ellipsis(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is Ellipsis


def _is_callcase(name: str, short: str) -> bool:
    return name.startswith("callcase") and name.rpartition(".")[2] == short


def _literal(node: ast.expr) -> object:
    try:
        return ast.literal_eval(node)
    except ValueError:
        return None
