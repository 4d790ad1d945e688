"""Finding function definitions in Python source without importing it.

The generator receives a reference like ``add`` or ``mathlib.add`` from a
``wrapper_todo(...)`` placeholder. ``locate_function`` resolves it to the
``def`` statement it names, following ``import``/``from ... import``
bindings to other source files on the file system.
"""

from __future__ import annotations

import ast
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from callcase.foundation.errors import SynthesisError

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef

# Re-exports followed before giving up; guards against import cycles.
_MAX_HOPS = 8


@dataclass(frozen=True, slots=True)
class ImportBinding:
    """Local name bound by an import statement."""
    module: str
    name: str | None = None
    level: int = 0

    @property
    def qualified(self) -> str:
        """Dotted target, relative targets prefixed with dots."""
        target = f"{self.module}.{self.name}" if self.module and self.name else self.module or self.name or ""
        return "." * self.level + target


@dataclass(frozen=True, slots=True)
class ModuleSource:
    """Parsed module with its top-level names."""
    path: Path | None
    tree: ast.Module
    bindings: Mapping[str, ImportBinding] = field(default_factory=lambda: MappingProxyType({}))
    functions: Mapping[str, FunctionNode] = field(default_factory=lambda: MappingProxyType({}))
    local_names: frozenset[str] = frozenset()

    @property
    def aliases(self) -> dict[str, str]:
        """Local name to dotted import target, used to recognize well-known annotations."""
        return {name: b.qualified for name, b in self.bindings.items()}


@dataclass(frozen=True, slots=True)
class LocatedFunction:
    """A function definition together with the module it is written in."""
    node: FunctionNode
    module: ModuleSource

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def docstring(self) -> str | None:
        return ast.get_docstring(self.node)


# ─────────────────────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────────────────────


def parse_module(source: str, path: Path | None = None) -> ModuleSource:
    """Parse ``source`` and index its imports and top-level definitions.

    Raises:
        SynthesisError: If the source has a syntax error
    """
    try:
        tree = ast.parse(source, filename=str(path or "<source>"))
    except SyntaxError as exc:
        raise SynthesisError(f"syntax error: {exc.msg}", str(path) if path else None, exc.lineno) from exc

    bindings: dict[str, ImportBinding] = {}
    for node in _module_level(tree.body):
        match node:
            case ast.Import(names=names):
                for alias in names:
                    if alias.asname:
                        bindings[alias.asname] = ImportBinding(alias.name)
                    else:
                        top = alias.name.partition(".")[0]
                        bindings[top] = ImportBinding(top)
            case ast.ImportFrom(module=module, names=names, level=level):
                for alias in names:
                    if alias.name != "*":
                        bindings[alias.asname or alias.name] = ImportBinding(module or "", alias.name, level)

    functions = {n.name: n for n in tree.body if isinstance(n, FunctionNode)}
    local_names = {n.name for n in tree.body if isinstance(n, FunctionNode | ast.ClassDef)}
    for node in tree.body:
        if isinstance(node, ast.Assign):
            local_names.update(t.id for t in node.targets if isinstance(t, ast.Name))
        elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
            local_names.add(node.target.id)
    return ModuleSource(path, tree, MappingProxyType(bindings), MappingProxyType(functions), frozenset(local_names))


def read_module(path: Path) -> ModuleSource:
    return parse_module(path.read_text(encoding="utf-8"), path)


def _module_level(body: Iterable[ast.stmt]) -> Iterable[ast.stmt]:
    """Statements executed at import time, descending into if/try blocks (e.g. ``if TYPE_CHECKING:``)."""
    for node in body:
        yield node
        match node:
            case ast.If(body=inner, orelse=orelse):
                yield from _module_level([*inner, *orelse])
            case ast.Try(body=inner, orelse=orelse, finalbody=final, handlers=handlers):
                yield from _module_level([*inner, *orelse, *final, *(s for h in handlers for s in h.body)])


# ─────────────────────────────────────────────────────────────────────────────
# Resolution
# ─────────────────────────────────────────────────────────────────────────────


def locate_function(ref: ast.expr, module: ModuleSource, search_paths: Iterable[Path] | None = None) -> LocatedFunction:
    """Resolve a function reference expression written in ``module``.

    Raises:
        SynthesisError: If the reference does not lead to a module-level ``def``
    """
    paths = tuple(search_paths) if search_paths is not None else _default_search_paths()
    where = str(module.path) if module.path else None
    match ref:
        case ast.Name(id=name):
            return _find(module, name, paths, _MAX_HOPS)
        case ast.Attribute(value=value, attr=attr):
            dotted = _dotted(value)
            head, _, rest = (dotted or "").partition(".")
            binding = module.bindings.get(head)
            if binding is None:
                raise SynthesisError(f"can't resolve {ast.unparse(ref)}: {head!r} is not an imported module",
                                     where, ref.lineno)
            target = ImportBinding(binding.qualified.lstrip(".") + (f".{rest}" if rest else ""), None, binding.level)
            return _find(_load(target, module, paths, ref.lineno), attr, paths, _MAX_HOPS)
    raise SynthesisError(f"unsupported function reference {ast.unparse(ref)}", where, ref.lineno)


def _find(module: ModuleSource, name: str, paths: tuple[Path, ...], hops: int) -> LocatedFunction:
    where = str(module.path) if module.path else None
    if (node := module.functions.get(name)) is not None:
        return LocatedFunction(node, module)
    binding = module.bindings.get(name)
    if binding is None or binding.name is None or hops <= 0:
        raise SynthesisError(f"function {name!r} not found", where)
    source = _load(ImportBinding(binding.module, None, binding.level), module, paths, None)
    return _find(source, binding.name, paths, hops - 1)


def _load(target: ImportBinding, origin: ModuleSource, paths: tuple[Path, ...], line: int | None) -> ModuleSource:
    path = find_module_file(target.module, level=target.level, origin=origin.path, search_paths=paths)
    if path is None:
        raise SynthesisError(f"module {target.qualified!r} not found", str(origin.path) if origin.path else None, line)
    return read_module(path)


def find_module_file(module: str, *, level: int = 0, origin: Path | None = None,
                     search_paths: Iterable[Path] = ()) -> Path | None:
    """Source file of a dotted module name, or None.

    Relative names (``level > 0``) resolve against ``origin``'s package;
    absolute names are looked up in the package root of ``origin``, next to
    ``origin`` and then in ``search_paths``.
    """
    parts = [p for p in module.split(".") if p]
    if level:
        if origin is None:
            return None
        base = origin.resolve().parent
        for _ in range(level - 1):
            base = base.parent
        roots: list[Path] = [base]
    else:
        roots = [*_origin_roots(origin), *search_paths]
    for root in roots:
        candidate = root.joinpath(*parts)
        for path in (candidate.with_suffix(".py") if parts else None, candidate / "__init__.py"):
            if path is not None and path.is_file():
                return path
    return None


def _origin_roots(origin: Path | None) -> list[Path]:
    if origin is None:
        return []
    here = origin.resolve().parent
    top = here
    while (top / "__init__.py").is_file() and top.parent != top:
        top = top.parent
    return [top, here] if top != here else [here]


def _default_search_paths() -> tuple[Path, ...]:
    return tuple(Path(p) for p in sys.path if p and Path(p).is_dir())


def _dotted(node: ast.expr) -> str | None:
    match node:
        case ast.Name(id=name):
            return name
        case ast.Attribute(value=value, attr=attr):
            base = _dotted(value)
            return f"{base}.{attr}" if base else None
    return None
