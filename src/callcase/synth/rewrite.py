"""In-place source rewriting for generated adapters.

A module opts in by assigning a placeholder::

    add_wrapper = wrapper_todo(add)

``rewrite_source`` replaces every such assignment with a generated
``GeneratedWrapper`` subclass followed by ``add_wrapper = _AddWrapper()``,
re-renders classes generated earlier (so they follow signature changes) and
adds ``import callcase.synth.support as _cc`` when needed. ``check_file``
performs the same analysis without writing and reports the drift.
"""

from __future__ import annotations

import ast
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from callcase.foundation.config import get_settings
from callcase.foundation.errors import SynthesisError
from callcase.runtime.observability import get_logger

from .emit import render_wrapper
from .locate import ModuleSource, locate_function, parse_module

SUPPORT_MODULE = "callcase.synth.support"
PLACEHOLDER = "wrapper_todo"

_GENERATED_DOC = re.compile(r"^wraps (?P<ref>[\w.]+) \(generated code\)$")
_MARKER = re.compile(r"^# \w+ wraps [\w.]+ as Wrapper \(generated code\)$")

log = get_logger("callcase.synth")


@dataclass(frozen=True, slots=True)
class _Edit:
    """Replacement of the 0-based line range ``[start, end)``."""
    start: int
    end: int
    text: str
    name: str = ""
    kind: str = ""


@dataclass(frozen=True, slots=True)
class DriftReport:
    """Differences between a file and its regenerated form.

    Attributes:
        path: Checked file
        missing: Placeholders that were never generated
        stale: Generated classes that no longer match their function
    """
    path: Path
    missing: tuple[str, ...] = ()
    stale: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing and not self.stale

    def render(self) -> str:
        lines = [f"{self.path}: missing adapter for {name}" for name in self.missing]
        lines += [f"{self.path}: {name} is out of date" for name in self.stale]
        return "\n".join(lines)


@dataclass(slots=True)
class RewriteOutcome:
    """Result of rewriting one source text."""
    source: str
    generated: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.generated or self.updated)


# ─────────────────────────────────────────────────────────────────────────────
# Rewriting
# ─────────────────────────────────────────────────────────────────────────────


def rewrite_source(source: str, path: Path | None = None, *, alias: str | None = None,
                   search_paths: Iterable[Path] | None = None) -> RewriteOutcome:
    """Generate missing adapters and refresh existing ones in ``source``.

    Args:
        source: Module text
        path: File the text belongs to, used to resolve imports
        alias: Name for a new support module import, defaults to settings
        search_paths: Extra roots for absolute imports, defaults to ``sys.path``

    Raises:
        SynthesisError: If the source does not parse or a function can't be located
    """
    module = parse_module(source, path)
    imported = _support_alias(module)
    alias = imported or alias or get_settings().gen.support_alias
    edits = _plan(module, source, alias, search_paths)
    outcome = RewriteOutcome(source)
    if not edits:
        return outcome
    if imported is None:
        position = _import_position(module, min(e.start for e in edits))
        edits.append(_Edit(*position, f"import {SUPPORT_MODULE} as {alias}\n"))
    lines = source.splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    for edit in sorted(edits, key=lambda e: (e.start, e.end), reverse=True):
        lines[edit.start:edit.end] = [edit.text]
    outcome.source = "".join(lines)
    outcome.generated = [e.name for e in edits if e.kind == "missing"]
    outcome.updated = [e.name for e in edits if e.kind == "stale"]
    return outcome


def rewrite_file(path: Path, *, write: bool = True, search_paths: Iterable[Path] | None = None) -> RewriteOutcome:
    """Rewrite ``path`` in place when anything changed (and ``write`` is set)."""
    outcome = rewrite_source(path.read_text(encoding="utf-8"), path, search_paths=search_paths)
    if outcome.changed:
        log.info("adapters generated", path=str(path), generated=outcome.generated, updated=outcome.updated)
        if write:
            path.write_text(outcome.source, encoding="utf-8")
    else:
        log.debug("adapters up to date", path=str(path))
    return outcome


def check_file(path: Path, *, search_paths: Iterable[Path] | None = None) -> DriftReport:
    """Drift of one file; nothing is written."""
    source = path.read_text(encoding="utf-8")
    module = parse_module(source, path)
    edits = _plan(module, source, _support_alias(module) or get_settings().gen.support_alias, search_paths)
    return DriftReport(
        path,
        missing=tuple(e.name for e in edits if e.kind == "missing"),
        stale=tuple(e.name for e in edits if e.kind == "stale"),
    )


def check_path(target: str | Path, *, search_paths: Iterable[Path] | None = None) -> list[DriftReport]:
    """Drift of every candidate file under ``target`` (see ``iter_source_files``)."""
    return [check_file(p, search_paths=search_paths) for p in iter_source_files(target)]


def iter_source_files(target: str | Path) -> Iterator[Path]:
    """Python files to process for a command line argument.

    ``dir/...`` recurses into subdirectories, a plain directory means its own
    files only. Files are yielded when they mention a placeholder or contain
    generated code; explicitly named files are always yielded.
    """
    text = str(target)
    recursive = text.endswith("/...")
    root = Path(text[:-4] or ".") if recursive else Path(text)
    if root.is_file():
        yield root
        return
    if not root.is_dir():
        raise SynthesisError(f"no such file or directory: {root}")
    for path in sorted(root.rglob("*.py") if recursive else root.glob("*.py")):
        content = path.read_text(encoding="utf-8")
        if PLACEHOLDER in content or "(generated code)" in content:
            yield path


# ─────────────────────────────────────────────────────────────────────────────
# Planning
# ─────────────────────────────────────────────────────────────────────────────


def _plan(module: ModuleSource, source: str, alias: str, search_paths: Iterable[Path] | None) -> list[_Edit]:
    """Edits turning ``source`` into its regenerated form, unchanged regions omitted."""
    paths = list(search_paths) if search_paths is not None else None
    lines = source.splitlines(keepends=True)
    edits: list[_Edit] = []
    for node in module.tree.body:
        if (placeholder := _placeholder(node)) is not None:
            target, annotation, ref = placeholder
            class_name = _class_name(target)
            func = locate_function(ref, module, paths)
            code = render_wrapper(func, class_name, ast.unparse(ref), alias)
            instance = f"{target}{annotation} = {class_name}()\n"
            edits.append(_Edit(node.lineno - 1, node.end_lineno or node.lineno, f"{code}\n\n{instance}",
                               target, "missing"))
        elif (generated := _generated(node)) is not None:
            cls, ref_text, cls_alias = generated
            ref = ast.parse(ref_text, mode="eval").body
            func = locate_function(ref, module, paths)
            start = _class_start(cls, lines)
            end = cls.end_lineno or cls.lineno
            code = render_wrapper(func, cls.name, ref_text, cls_alias)
            if "".join(lines[start:end]) != code:
                edits.append(_Edit(start, end, code, cls.name, "stale"))
    return edits


def _placeholder(node: ast.stmt) -> tuple[str, str, ast.expr] | None:
    """``(target, annotation suffix, function reference)`` of ``x = wrapper_todo(f)``."""
    match node:
        case ast.Assign(targets=[ast.Name(id=target)], value=value):
            annotation = ""
        case ast.AnnAssign(target=ast.Name(id=target), annotation=ann, value=value) if value is not None:
            annotation = f": {ast.unparse(ann)}"
        case _:
            return None
    match value:
        case ast.Call(func=ast.Name(id=name) | ast.Attribute(attr=name), args=[ref], keywords=[]):
            return (target, annotation, ref) if name == PLACEHOLDER else None
    return None


def _generated(node: ast.stmt) -> tuple[ast.ClassDef, str, str] | None:
    """``(class, function reference, support alias)`` of a previously generated class."""
    if not isinstance(node, ast.ClassDef):
        return None
    bases = [b for b in node.bases if isinstance(b, ast.Attribute) and b.attr == "GeneratedWrapper"
             and isinstance(b.value, ast.Name)]
    doc = ast.get_docstring(node)
    if not bases or doc is None or (m := _GENERATED_DOC.match(doc)) is None:
        return None
    return node, m["ref"], bases[0].value.id  # type: ignore[attr-defined]


def _class_start(cls: ast.ClassDef, lines: list[str]) -> int:
    """First line of a generated class, including its marker comment."""
    start = min([cls.lineno, *(d.lineno for d in cls.decorator_list)]) - 1
    if start > 0 and _MARKER.match(lines[start - 1].rstrip("\n")):
        start -= 1
    return start


def _class_name(target: str) -> str:
    """``add_wrapper`` → ``_AddWrapper``."""
    pascal = "".join(part[:1].upper() + part[1:] for part in target.split("_") if part)
    return f"_{pascal or 'Wrapper'}"


def _support_alias(module: ModuleSource) -> str | None:
    for node in module.tree.body:
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.name == SUPPORT_MODULE and alias.asname:
                    return alias.asname
    return None


def _import_position(module: ModuleSource, before: int) -> tuple[int, int]:
    """Insertion point after the last top-level import above line ``before``, or after the docstring."""
    body = module.tree.body
    imports = [n for n in body if isinstance(n, ast.Import | ast.ImportFrom) and (n.end_lineno or n.lineno) <= before]
    if imports:
        line = max(n.end_lineno or n.lineno for n in imports)
    elif body and isinstance(body[0], ast.Expr) and isinstance(body[0].value, ast.Constant) \
            and isinstance(body[0].value.value, str):
        line = body[0].end_lineno or body[0].lineno
    else:
        line = 0
    return line, line
