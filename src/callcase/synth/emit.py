"""Source emitter for generated adapters.

``render_wrapper`` writes one ``GeneratedWrapper`` subclass for a function:
a literal ``FunctionDescription``, the JSON argument model derived from it
and the four call methods with the text scanning of every argument inlined.
The emitted code calls only names from ``callcase.synth.support``.

Example output (abridged)::

    # _AddWrapper wraps add as Wrapper (generated code)
    class _AddWrapper(_cc.GeneratedWrapper):
        description = _cc.FunctionDescription(name='add', ...)
        args_model = _cc.args_model(description)

        def call_with_text(self, ctx, *texts):
            ...
"""

from __future__ import annotations

from callcase.foundation.core import ArgKind

from .locate import LocatedFunction
from .typing import (
    StaticMapping,
    StaticOptional,
    StaticParam,
    StaticPrimitive,
    StaticRef,
    StaticSequence,
    StaticSignature,
    StaticType,
    static_signature,
)

GENERATED_DOC = "wraps {func_ref} (generated code)"
MARKER = "# {class_name} wraps {func_ref} as Wrapper (generated code)"

_INDENT = "    "
_SCANNERS = {
    "BOOL": "scan_bool",
    "FLOAT": "scan_float",
    "INSTANT": "scan_instant",
    "DATE": "scan_date",
    "DURATION": "scan_duration",
    "BYTES": "scan_bytes",
}


def render_wrapper(func: LocatedFunction | StaticSignature, class_name: str, func_ref: str, alias: str = "_cc") -> str:
    """Source of the adapter class for ``func``, ending with a newline.

    Args:
        func: Located function or its already computed signature
        class_name: Name of the generated class
        func_ref: Expression the generated code calls, e.g. ``mathlib.add``
        alias: Name ``callcase.synth.support`` is imported as
    """
    sig = func if isinstance(func, StaticSignature) else static_signature(func)
    return _Emitter(sig, class_name, func_ref, alias).render()


class _Emitter:
    __slots__ = ("sig", "cls", "ref", "cc", "lines")

    def __init__(self, sig: StaticSignature, class_name: str, func_ref: str, alias: str) -> None:
        self.sig, self.cls, self.ref, self.cc = sig, class_name, func_ref, alias
        self.lines: list[str] = []

    def _line(self, depth: int, text: str) -> None:
        self.lines.append(_INDENT * depth + text)

    def _blank(self) -> None:
        self.lines.append("")

    def render(self) -> str:
        self._line(0, MARKER.format(class_name=self.cls, func_ref=self.ref))
        self._line(0, f"class {self.cls}({self.cc}.GeneratedWrapper):")
        self._line(1, f'"""{GENERATED_DOC.format(func_ref=self.ref)}"""')
        self._blank()
        self._line(1, "__slots__ = ()")
        self._blank()
        self._description()
        self._line(1, f"args_model = {self.cc}.args_model(description)")
        for method in (self._call, self._call_with_text, self._call_with_named_text, self._call_with_json, self._invoke):
            self._blank()
            method()
        return "\n".join(self.lines) + "\n"

    # ─────────────────────────────────────────────────────────────────
    # Description
    # ─────────────────────────────────────────────────────────────────

    def _description(self) -> None:
        sig, cc = self.sig, self.cc
        self._line(1, f"description = {cc}.FunctionDescription(")
        self._line(2, f"name={sig.name!r},")
        self._line(2, f"arg_names={_tuple(repr(n) for n in sig.arg_names)},")
        self._line(2, f"arg_descriptions={_tuple(repr(p.description) for p in sig.params)},")
        self._line(2, f"arg_types={_tuple(self._descriptor(p.type) for p in sig.params)},")
        self._line(2, f"result_types={_tuple(self._descriptor(t) for t in sig.results)},")
        self._line(2, f"arg_kinds={_tuple(f'{cc}.ArgKind.{p.kind.name}' for p in sig.params)},")
        self._line(1, ")")

    def _descriptor(self, t: StaticType) -> str:
        """Expression constructing the runtime descriptor of ``t``."""
        cc = self.cc
        match t:
            case StaticPrimitive(const=const, bits=None):
                return f"{cc}.{const}"
            case StaticPrimitive(bits=bits, unsigned=unsigned):
                return f"{cc}.PrimitiveType({cc}.Kind.INT, int, {bits}, {unsigned})"
            case StaticOptional(inner=inner):
                return f"{cc}.OptionalType({self._descriptor(inner)})"
            case StaticSequence(inner=inner, length=length, container=container):
                return f"{cc}.SequenceType({self._descriptor(inner)}, {length}, {container})"
            case StaticMapping(key=key, value=value):
                return f"{cc}.MappingType({self._descriptor(key)}, {self._descriptor(value)})"
            case StaticRef(slot=slot, path=()):
                return f"{cc}.type_ref({self.ref}, {slot!r})"
            case StaticRef(slot=slot, path=path):
                return f"{cc}.type_ref({self.ref}, {slot!r}, {path!r})"
        raise TypeError(f"unknown static type {t!r}")

    # ─────────────────────────────────────────────────────────────────
    # Methods
    # ─────────────────────────────────────────────────────────────────

    def _bindable(self) -> list[tuple[int, int, StaticParam]]:
        """``(arg index, input index, param)`` of every argument filled from caller input."""
        start = 1 if self.sig.has_context_arg else 0
        return [(i, i - start, p) for i, p in enumerate(self.sig.params) if i >= start]

    def _arg_types(self) -> None:
        if self._bindable():
            self._line(2, "arg_types = self.description.arg_types")

    def _call(self) -> None:
        cc = self.cc
        self._line(1, "def call(self, ctx, args=()):")
        if not self._bindable():
            self._line(2, "return self._invoke(ctx)")
            return
        self._arg_types()
        values = [f"{cc}.typed_arg(args, {n}, arg_types[{i}])" for i, n, _ in self._bindable()]
        self._line(2, "try:")
        self._line(3, f"values = {_tuple(values)}")
        self._line(2, f"except {cc}.CoercionError as exc:")
        self._line(3, f"return {cc}.Err(exc)")
        self._line(2, "return self._invoke(ctx, *values)")

    def _call_with_text(self) -> None:
        self._line(1, "def call_with_text(self, ctx, *texts):")
        self._arg_types()
        for i, n, param in self._bindable():
            self._line(2, f"text = texts[{n}] if len(texts) > {n} else None")
            self._scan_or_zero(i, param)
        self._return_invoke()

    def _call_with_named_text(self) -> None:
        self._line(1, "def call_with_named_text(self, ctx, texts):")
        self._arg_types()
        names = self.sig.arg_names
        for i, _, param in self._bindable():
            self._line(2, f"text = texts.get({names[i]!r})")
            self._scan_or_zero(i, param)
        self._return_invoke()

    def _scan_or_zero(self, i: int, param: StaticParam) -> None:
        cc, name = self.cc, self.sig.arg_names[i]
        scanned = self._scan(param.type, "text", f"arg_types[{i}]", 0)
        self._line(2, "try:")
        self._line(3, f"arg{i} = {cc}.zero_value(arg_types[{i}]) if text is None else {scanned}")
        self._line(2, "except Exception as exc:")
        self._line(3, f"return {cc}.Err(self.text_error({name!r}, text or '', arg_types[{i}], exc))")

    def _call_with_json(self) -> None:
        cc = self.cc
        self._line(1, "def call_with_json(self, ctx, data):")
        self._line(2, "try:")
        self._line(3, f"values = {cc}.bind_json(self.description, data, self.args_model)")
        self._line(2, f"except {cc}.InvocationError as exc:")
        self._line(3, f"return {cc}.Err(exc)")
        self._line(2, "return self._invoke(ctx, *values)")

    def _invoke(self) -> None:
        params = ", ".join(["self", "ctx", *(f"arg{i}" for i, _, _ in self._bindable())])
        self._line(1, f"def _invoke({params}):")
        args = [f"{self.cc}.context_or_background(ctx)"] if self.sig.has_context_arg else []
        for i, _, param in self._bindable():
            match param.kind:
                case ArgKind.POSITIONAL:
                    args.append(f"arg{i}")
                case ArgKind.VARIADIC:
                    args.append(f"*arg{i}")
                case ArgKind.KEYWORD:
                    args.append(f"{param.name}=arg{i}")
        self._line(2, f"return self.finish({self.ref}({', '.join(args)}))")

    def _return_invoke(self) -> None:
        args = ", ".join(["ctx", *(f"arg{i}" for i, _, _ in self._bindable())])
        self._line(2, f"return self._invoke({args})")

    # ─────────────────────────────────────────────────────────────────
    # Inlined Scanning
    # ─────────────────────────────────────────────────────────────────

    def _scan(self, t: StaticType, text: str, desc: str, depth: int) -> str:
        """Expression scanning ``text`` into ``t``; ``desc`` evaluates to its runtime descriptor."""
        cc = self.cc
        match t:
            case StaticPrimitive(const="TEXT" | "ANY"):
                return text
            case StaticPrimitive(const="INT", bits=None):
                return f"{cc}.scan_int({text})"
            case StaticPrimitive(const="INT", bits=bits, unsigned=unsigned):
                return f"{cc}.scan_int({text}, {bits}, {unsigned})"
            case StaticPrimitive(const=const) if const in _SCANNERS:
                return f"{cc}.{_SCANNERS[const]}({text})"
            case StaticOptional(inner=inner):
                return f"None if {cc}.is_nil({text}) else {self._scan(inner, text, f'{desc}.inner', depth)}"
            case StaticSequence(inner=inner, length=None, container=container):
                item = f"item{depth}"
                element = self._scan(inner, item, f"{desc}.inner", depth + 1)
                comprehension = f"{element} for {item} in {cc}.sequence_items({text})"
                return f"[{comprehension}]" if container == "list" else f"{container}({comprehension})"
            case StaticSequence(inner=inner, container=container):
                item = f"item{depth}"
                element = self._scan(inner, item, f"{desc}.inner", depth + 1)
                comprehension = f"{element} for {item} in {cc}.fixed_sequence_items({text}, {desc})"
                scanned = f"[{comprehension}]" if container == "list" else f"{container}({comprehension})"
                return f"{cc}.zero_value({desc}) if {cc}.is_blank({text}) else {scanned}"
        # Mappings, references and context/error types go through the scanner registry.
        return f"{cc}.scan({text}, {desc})"


def _tuple(items: object) -> str:
    parts = list(items)  # type: ignore[call-overload]
    if len(parts) == 1:
        return f"({parts[0]},)"
    return f"({', '.join(parts)})"
