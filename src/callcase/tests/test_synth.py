"""Tests for ahead-of-time adapter generation.

Validates:
- Static annotation mapping, with unknown spellings left as references
- Placeholder rewriting and support import insertion
- Generated adapters describe and behave like reflected wrappers
- Drift detection after signature changes
- Function lookup through imports
- callcase-gen exit status
"""

from __future__ import annotations

import ast
import importlib.util
import sys
from pathlib import Path
from types import ModuleType

import pytest

import callcase.synth.support as support
from callcase.foundation.core import ArgKind, CallResult, reflect_wrapper
from callcase.foundation.errors import (
    DuplicateRegistration,
    ErrorReport,
    InvocationError,
    Ok,
    ParseArgumentText,
    SynthesisError,
)
from callcase.runtime.observability import NoOpRenderer, configure_logging
from callcase.synth import AnnotationMapper, check_file, rewrite_file, rewrite_source
from callcase.synth.cli import main
from callcase.synth.emit import render_wrapper
from callcase.synth.typing import (
    StaticMapping,
    StaticOptional,
    StaticParam,
    StaticPrimitive,
    StaticRef,
    StaticSequence,
    StaticSignature,
)

MATHLIB = '''"""Math helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from callcase import Context, Result, wrapper_todo
from callcase.foundation.errors import Err, Ok


@dataclass
class Point:
    x: int
    y: int


def add(a: int, b: int) -> int:
    """Adds two numbers.

    Args:
        a: First summand
        b: Second summand
    """
    return a + b


def divide(a: float, b: float) -> Result[float, str]:
    return Err("division by zero") if b == 0 else Ok(a / b)


def greet(ctx: Context, names: list[str], wait: timedelta | None = None) -> str:
    return "hello " + ", ".join(names)


def total(*values: int) -> int:
    return sum(values)


def move(p: Point, dx: int) -> Point:
    return Point(p.x + dx, p.y)


add_wrapper = wrapper_todo(add)
divide_wrapper = wrapper_todo(divide)
greet_wrapper = wrapper_todo(greet)
total_wrapper = wrapper_todo(total)
move_wrapper = wrapper_todo(move)
'''

PARITY = '''"""Signature shapes checked for generated/reflected parity."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Annotated, Optional

from callcase import Context, Int8, Length, Result, UInt16, wrapper_todo
from callcase.foundation.errors import Err, Ok


@dataclass
class Span:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("empty span")


def ping() -> None:
    pass


def deadline(ctx: Context) -> bool:
    return ctx.cancelled


def label(name: Optional[str], count: int | None) -> str:
    return f"{name}:{count}"


def grid(rows: list[list[int]], corner: tuple[int, int], size: Annotated[list[float], Length(2)]) -> int:
    return sum(map(sum, rows)) + sum(corner) + int(sum(size))


def flags(small: Int8, port: UInt16, on: bool) -> tuple[int, int, bool]:
    return small, port, on


def when(at: datetime, day: date, wait: timedelta) -> tuple[datetime, date, timedelta]:
    return at, day, wait


def stretch(span: Span, by: list[Span]) -> Result[Span, str]:
    if not by:
        return Err("nothing to stretch by")
    return Ok(Span(span.start, span.end + sum(s.end - s.start for s in by)))


ping_wrapper = wrapper_todo(ping)
deadline_wrapper = wrapper_todo(deadline)
label_wrapper = wrapper_todo(label)
grid_wrapper = wrapper_todo(grid)
flags_wrapper = wrapper_todo(flags)
when_wrapper = wrapper_todo(when)
stretch_wrapper = wrapper_todo(stretch)
'''

PLACEHOLDERS = ("add_wrapper", "divide_wrapper", "greet_wrapper", "total_wrapper", "move_wrapper")


def _expr(source: str) -> ast.expr:
    return ast.parse(source, mode="eval").body


def _load(path: Path, name: str, monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    """Import a rewritten file under ``name``."""
    spec = importlib.util.spec_from_file_location(name, path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, name, module)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(autouse=True)
def quiet_logging() -> object:
    """Generator logs stay out of captured output, also after main() reconfigures them."""
    configure_logging(renderer=NoOpRenderer())
    yield
    configure_logging(renderer=NoOpRenderer())


@pytest.fixture
def mathlib(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    """mathlib rewritten by the generator and imported."""
    path = tmp_path / "mathlib_gen.py"
    path.write_text(MATHLIB, encoding="utf-8")
    rewrite_file(path, search_paths=[])
    return _load(path, "mathlib_gen", monkeypatch)


@pytest.fixture
def parity(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    """The parity module rewritten by the generator and imported."""
    path = tmp_path / "parity_gen.py"
    path.write_text(PARITY, encoding="utf-8")
    rewrite_file(path, search_paths=[])
    return _load(path, "parity_gen", monkeypatch)


def _outcome(result: CallResult) -> object:
    """Comparable form of a call result; binding errors compare by type, argument and message."""
    if result.is_err() and isinstance(error := result.unwrap_err(), InvocationError):
        return type(error).__name__, getattr(error, "arg_name", None), ErrorReport.from_error(error).render()
    return result


# ═════════════════════════════════════════════════════════════════════════════
# Static Annotation Mapping
# ═════════════════════════════════════════════════════════════════════════════


def test_mapper_builtins_and_generics() -> None:
    """Builtins and typing generics map statically."""
    mapper = AnnotationMapper({"Optional": "typing.Optional", "timedelta": "datetime.timedelta"})
    assert mapper.map(_expr("int")) == StaticPrimitive("INT")
    assert mapper.map(_expr("Optional[int]")) == StaticOptional(StaticPrimitive("INT"))
    assert mapper.map(_expr("str | None")) == StaticOptional(StaticPrimitive("TEXT"))
    assert mapper.map(_expr("dict[str, list[int]]")) == StaticMapping(
        StaticPrimitive("TEXT"), StaticSequence(StaticPrimitive("INT"))
    )
    assert mapper.map(_expr("tuple[float, float]")) == StaticSequence(StaticPrimitive("FLOAT"), 2, "tuple")
    assert mapper.map(_expr("timedelta")) == StaticPrimitive("DURATION")
    assert mapper.map(None) == StaticPrimitive("ANY")


def test_mapper_callcase_metadata() -> None:
    """Integer aliases and Length markers imported from callcase."""
    mapper = AnnotationMapper({
        "UInt8": "callcase.UInt8",
        "Annotated": "typing.Annotated",
        "Length": "callcase.Length",
    })
    assert mapper.map(_expr("UInt8")) == StaticPrimitive("INT", 8, True)
    assert mapper.map(_expr("Annotated[list[int], Length(3)]")) == StaticSequence(StaticPrimitive("INT"), 3, "list")


def test_mapper_unknown_spellings_become_references() -> None:
    """Anything without a static form is resolved at import time."""
    mapper = AnnotationMapper({}, frozenset({"int"}))
    assert mapper.map(_expr("Point")) == StaticRef("Point")
    assert mapper.map(_expr("int | str")) == StaticRef("int | str")
    assert mapper.map(_expr("int")) == StaticRef("int")
    assert mapper.map(_expr("'Point'")) == StaticRef("Point")


def test_mapper_results() -> None:
    """Return annotations with None, tuples and Result."""
    mapper = AnnotationMapper({"Result": "callcase.Result"})
    assert mapper.results(_expr("None")) == ()
    assert mapper.results(_expr("tuple[int, str]")) == (StaticPrimitive("INT"), StaticPrimitive("TEXT"))
    assert mapper.results(_expr("Result[int, str]")) == (StaticPrimitive("INT"), StaticPrimitive("ERROR_TYPE"))


def test_mapper_reference_locations() -> None:
    """References record the parameter or return slot and the type argument path inside it."""
    mapper = AnnotationMapper({"Result": "callcase.Result"})
    assert mapper.map(_expr("Point"), "p") == StaticRef("Point", "p")
    assert mapper.results(_expr("Point")) == (StaticRef("Point", "return"),)
    assert mapper.results(_expr("Result[Point, str]")) == (
        StaticRef("Point", "return", (0,)), StaticPrimitive("ERROR_TYPE"),
    )
    assert mapper.results(_expr("Result[tuple[int, Point], str]")) == (
        StaticPrimitive("INT"), StaticRef("Point", "return", (0, 1)), StaticPrimitive("ERROR_TYPE"),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Rewriting
# ═════════════════════════════════════════════════════════════════════════════


def test_rewrite_replaces_placeholders() -> None:
    """Each placeholder becomes a class plus an instance assignment."""
    outcome = rewrite_source(MATHLIB)
    assert outcome.generated == list(PLACEHOLDERS)
    assert outcome.changed
    source = outcome.source
    assert "import callcase.synth.support as _cc\n" in source
    assert "# _AddWrapper wraps add as Wrapper (generated code)\nclass _AddWrapper(_cc.GeneratedWrapper):" in source
    assert "add_wrapper = _AddWrapper()\n" in source
    assert "wrapper_todo(add)" not in source
    assert "return self.finish(add(arg0, arg1))" in source
    assert "_cc.type_ref(move, 'p')" in source
    assert "_cc.type_ref(move, 'return')" in source
    ast.parse(source)


def test_rewrite_is_idempotent() -> None:
    """Rewriting generated source changes nothing."""
    once = rewrite_source(MATHLIB).source
    again = rewrite_source(once)
    assert not again.changed
    assert again.source == once


def test_rewrite_reuses_existing_support_alias() -> None:
    """An existing support import decides the alias."""
    source = "import callcase.synth.support as cc\nfrom callcase import wrapper_todo\n\n\n" \
             "def inc(n: int) -> int:\n    return n + 1\n\n\ninc_wrapper = wrapper_todo(inc)\n"
    out = rewrite_source(source).source
    assert "class _IncWrapper(cc.GeneratedWrapper):" in out
    assert out.count("import callcase.synth.support") == 1


def test_rewrite_errors() -> None:
    """Unknown functions, coroutines and syntax errors are synthesis errors."""
    with pytest.raises(SynthesisError, match="not found"):
        rewrite_source("from callcase import wrapper_todo\nw = wrapper_todo(missing)\n")
    with pytest.raises(SynthesisError, match="coroutine"):
        rewrite_source("async def fetch(url: str) -> str:\n    return url\n\nw = wrapper_todo(fetch)\n")
    with pytest.raises(SynthesisError, match="syntax error"):
        rewrite_source("def broken(:\n")


def test_rewrite_follows_imports(tmp_path: Path) -> None:
    """Functions are located in imported modules on disk."""
    (tmp_path / "helpers.py").write_text("def shout(text: str) -> str:\n    return text.upper()\n", encoding="utf-8")
    app = tmp_path / "app.py"
    app.write_text(
        "import helpers\nfrom helpers import shout as yell\nfrom callcase import wrapper_todo\n\n"
        "shout_wrapper = wrapper_todo(helpers.shout)\nyell_wrapper = wrapper_todo(yell)\n",
        encoding="utf-8",
    )
    outcome = rewrite_file(app, search_paths=[])
    assert outcome.generated == ["shout_wrapper", "yell_wrapper"]
    text = app.read_text(encoding="utf-8")
    assert "return self.finish(helpers.shout(arg0))" in text
    assert "return self.finish(yell(arg0))" in text


# ═════════════════════════════════════════════════════════════════════════════
# Generated Adapters Behave Like Reflected Wrappers
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("name", ["add", "divide", "greet", "total", "move"])
def test_generated_description_matches_reflection(mathlib: ModuleType, name: str) -> None:
    """Both wrapper kinds derive the same description."""
    generated = getattr(mathlib, f"{name}_wrapper")
    assert generated.description == reflect_wrapper(getattr(mathlib, name)).description


def test_generated_calls(mathlib: ModuleType) -> None:
    """Every convention returns the same results as the reflected wrapper."""
    add = mathlib.add_wrapper
    assert add.call_with_text(None, "2", "3") == Ok([5])
    assert add.call_with_text(None, "2") == Ok([2])
    assert add.call_with_named_text(None, {"b": "4"}) == Ok([4])
    assert add.call_with_json(None, '{"A": 2, "B": 3}') == Ok([5])
    assert add.call(None, [2, None]) == Ok([2])

    assert mathlib.divide_wrapper.call_with_text(None, "1", "0").unwrap_err() == "division by zero"
    assert mathlib.greet_wrapper.call_with_text(None, '["a", "b"]', "1m") == Ok(["hello a, b"])
    assert mathlib.greet_wrapper.call_with_named_text(None, {"names": "[x]"}) == Ok(["hello x"])
    assert mathlib.total_wrapper.call_with_text(None, "[1,2,3]") == Ok([6])
    assert mathlib.move_wrapper.call_with_text(None, '{"x": 1, "y": 2}', "3") == Ok([mathlib.Point(4, 2)])


@pytest.mark.parametrize(("name", "texts"), [
    ("add", ("2", "x")),
    ("greet", ("[a]", "soon")),
    ("total", ("[1,",)),
    ("move", ("{}", "1.5")),
])
def test_generated_errors_match_reflection(mathlib: ModuleType, name: str, texts: tuple[str, ...]) -> None:
    """Argument errors name the same argument with the same message."""
    generated = getattr(mathlib, f"{name}_wrapper").call_with_text(None, *texts).unwrap_err()
    reflected = reflect_wrapper(getattr(mathlib, name)).call_with_text(None, *texts).unwrap_err()
    assert isinstance(generated, ParseArgumentText)
    assert generated.arg_name == reflected.arg_name
    assert ErrorReport.from_error(generated).render() == ErrorReport.from_error(reflected).render()


@pytest.mark.parametrize("name", ["ping", "deadline", "label", "grid", "flags", "when", "stretch"])
def test_parity_descriptions(parity: ModuleType, name: str) -> None:
    """Zero-argument, context-only, optional, nested, bounded, temporal and record signatures."""
    generated = getattr(parity, f"{name}_wrapper")
    assert generated.description == reflect_wrapper(getattr(parity, name)).description


@pytest.mark.parametrize(("name", "convention", "given"), [
    ("ping", "call_with_text", ()),
    ("ping", "call_with_text", ("extra",)),
    ("ping", "call_with_named_text", {"x": "1"}),
    ("ping", "call_with_json", "{}"),
    ("ping", "call", []),
    ("deadline", "call_with_text", ()),
    ("deadline", "call_with_text", ("ignored",)),
    ("deadline", "call_with_named_text", {}),
    ("deadline", "call_with_json", "null"),
    ("label", "call_with_text", ("ann", "3")),
    ("label", "call_with_text", ("nil", "null")),
    ("label", "call_with_text", ()),
    ("label", "call_with_text", ("ann", "three")),
    ("label", "call_with_named_text", {"count": "4"}),
    ("label", "call_with_json", '{"name": null, "Count": 2}'),
    ("label", "call", [None, 5]),
    ("grid", "call_with_text", ("[[1,2],[3]]", "[4,5]", "[0.5,1.5]")),
    ("grid", "call_with_text", ()),
    ("grid", "call_with_text", ("[[1],[x]]",)),
    ("grid", "call_with_text", ("[]", "[1,2,3]")),
    ("grid", "call_with_text", ("[]", "[1,2]", "[1]")),
    ("grid", "call_with_text", ("[[1]", "[1,2]")),
    ("grid", "call_with_json", '{"rows": [[1]], "corner": [1, 2], "size": [1.0, 2.0]}'),
    ("grid", "call_with_json", '{"corner": [1]}'),
    ("flags", "call_with_text", ("-128", "65535", "T")),
    ("flags", "call_with_text", ("128",)),
    ("flags", "call_with_text", ("0", "-1")),
    ("flags", "call_with_text", ("0", "0", "yes")),
    ("flags", "call_with_named_text", {"on": "1", "port": "70000"}),
    ("flags", "call", [1, 2, True]),
    ("when", "call_with_text", ("2024-01-02T03:04:05Z", "2024-01-02", "1h30m")),
    ("when", "call_with_text", ("2024-01-02 03:04", "", "2 days, 0:00:01")),
    ("when", "call_with_text", ("noon",)),
    ("when", "call_with_text", ("", "", "soon")),
    ("when", "call_with_named_text", {"wait": "-1.5s"}),
    ("stretch", "call_with_text", ('{"start": 1, "end": 2}', '[{"start": 0, "end": 3}]')),
    ("stretch", "call_with_text", ('{"start": 1, "end": 2}', "[]")),
    ("stretch", "call_with_text", ()),
    ("stretch", "call_with_text", ('{"start": 2, "end": 1}',)),
    ("stretch", "call_with_named_text", {"by": "[]"}),
    ("stretch", "call_with_json", '{"span": {"start": 1, "end": 2}, "by": [{"start": 0, "end": 1}]}'),
    ("stretch", "call_with_json", "{}"),
    ("stretch", "call", [None, []]),
])
def test_parity_calls(parity: ModuleType, name: str, convention: str, given: object) -> None:
    """Generated and reflected wrappers return equal values, or the same error for the same argument."""
    generated = getattr(parity, f"{name}_wrapper")
    reflected = reflect_wrapper(getattr(parity, name))
    if convention == "call_with_text":
        outcomes = [_outcome(w.call_with_text(None, *given)) for w in (generated, reflected)]
    else:
        outcomes = [_outcome(getattr(w, convention)(None, given)) for w in (generated, reflected)]
    assert outcomes[0] == outcomes[1]


def test_parity_outcomes(parity: ModuleType) -> None:
    """Spot checks that the parity table compares real results."""
    assert parity.ping_wrapper.call_with_text(None) == Ok([])
    assert parity.deadline_wrapper.call_with_text(None) == Ok([False])
    assert parity.label_wrapper.call_with_text(None, "nil", "3") == Ok(["None:3"])
    assert parity.grid_wrapper.call_with_text(None, "[[1,2],[3]]", "[4,5]", "[0.5,1.5]") == Ok([17])
    assert parity.flags_wrapper.call_with_text(None, "-128", "65535", "T") == Ok([-128, 65535, True])
    assert parity.stretch_wrapper.call_with_text(None, '{"start": 1, "end": 2}', '[{"start": 0, "end": 3}]') == Ok(
        [parity.Span(1, 5)]
    )
    assert parity.stretch_wrapper.call_with_text(None, '{"start": 1, "end": 2}').unwrap_err() == "nothing to stretch by"

    missing = parity.stretch_wrapper.call_with_text(None).unwrap_err()
    assert isinstance(missing, ParseArgumentText)
    assert (missing.arg_name, missing.arg_value) == ("span", "")


def test_generated_description_rejects_duplicate_names() -> None:
    """A repeated argument name fails when the generated class is created, as with reflection."""
    int_param = StaticPrimitive("INT")
    sig = StaticSignature("f", (StaticParam("a", ArgKind.POSITIONAL, int_param),
                                StaticParam("a", ArgKind.POSITIONAL, int_param)), ())
    source = render_wrapper(sig, "_FWrapper", "f")
    with pytest.raises(DuplicateRegistration, match="argument 'a' already added"):
        exec(source, {"_cc": support})  # noqa: S102


# ═════════════════════════════════════════════════════════════════════════════
# Drift
# ═════════════════════════════════════════════════════════════════════════════


def test_check_reports_missing_and_stale(tmp_path: Path) -> None:
    """Missing placeholders first, then classes behind their function."""
    path = tmp_path / "mathlib.py"
    path.write_text(MATHLIB, encoding="utf-8")
    assert check_file(path, search_paths=[]).missing == PLACEHOLDERS

    rewrite_file(path, search_paths=[])
    assert check_file(path, search_paths=[]).ok

    changed = path.read_text(encoding="utf-8").replace(
        "def add(a: int, b: int) -> int:", "def add(a: int, b: int, c: int = 0) -> int:"
    )
    path.write_text(changed, encoding="utf-8")
    report = check_file(path, search_paths=[])
    assert report.stale == ("_AddWrapper",)
    assert "_AddWrapper is out of date" in report.render()

    assert rewrite_file(path, search_paths=[]).updated == ["_AddWrapper"]
    assert check_file(path, search_paths=[]).ok


def test_marker_fails_import_until_generated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A module still holding wrapper_todo markers can't be imported and is reported by --check."""
    path = tmp_path / "pending.py"
    path.write_text(MATHLIB, encoding="utf-8")
    with pytest.raises(NotImplementedError, match=r"wrapper_todo\(add\)"):
        _load(path, "pending", monkeypatch)
    assert "add_wrapper" in check_file(path, search_paths=[]).missing

    rewrite_file(path, search_paths=[])
    assert _load(path, "pending", monkeypatch).add_wrapper.call_with_text(None, "1", "2") == Ok([3])


def test_cli_exit_status(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """0 when up to date, 1 on drift with --check, 2 on errors."""
    path = tmp_path / "mathlib.py"
    path.write_text(MATHLIB, encoding="utf-8")

    assert main(["--check", str(path)]) == 1
    assert "missing adapter for add_wrapper" in capsys.readouterr().out
    assert main([str(path)]) == 0
    assert main(["--check", str(path)]) == 0
    assert main([str(tmp_path / "absent.py")]) == 2
    assert "no such file or directory" in capsys.readouterr().err
