"""Immutable metadata of a wrapped function.

``FunctionDescription`` is what every collaborator (dispatcher, HTTP adapter,
form renderer, generator) reads instead of the function itself: argument
names, descriptions and types plus result types.

Example:
    >>> desc = FunctionDescription(
    ...     name="add",
    ...     arg_names=("a", "b"),
    ...     arg_types=(INT, INT),
    ...     result_types=(INT,),
    ... )
    >>> desc.signature
    'add(a: int, b: int) -> int'
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from callcase.foundation.errors import DuplicateRegistration
from callcase.foundation.types import CONTEXT_TYPE, ERROR_TYPE, TypeDescriptor


class ArgKind(StrEnum):
    """How an argument is passed to the underlying function."""
    POSITIONAL = "positional"
    KEYWORD = "keyword"
    VARIADIC = "variadic"


class FunctionDescription(BaseModel):
    """Names, descriptions and types of a function's arguments and results.

    Attributes:
        name: Function name
        arg_names: Unique argument names in declaration order
        arg_descriptions: Human text per argument, empty when unknown
        arg_types: Descriptor per argument
        result_types: Descriptor per result, ``ERROR_TYPE`` last for error results
        arg_kinds: Passing convention per argument
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    arg_names: tuple[str, ...] = ()
    arg_descriptions: tuple[str, ...] = ()
    arg_types: tuple[TypeDescriptor, ...] = ()
    result_types: tuple[TypeDescriptor, ...] = ()
    arg_kinds: tuple[ArgKind, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        """Default descriptions to empty strings and kinds to positional."""
        if isinstance(data, dict):
            n = len(data.get("arg_names", ()))
            data = {**data}
            data["arg_descriptions"] = tuple(data.get("arg_descriptions") or ("",) * n)
            data["arg_kinds"] = tuple(data.get("arg_kinds") or (ArgKind.POSITIONAL,) * n)
        return data

    @model_validator(mode="after")
    def _check_shape(self) -> FunctionDescription:
        n = len(self.arg_names)
        for label, seq in (("arg_descriptions", self.arg_descriptions), ("arg_types", self.arg_types),
                           ("arg_kinds", self.arg_kinds)):
            if len(seq) != n:
                raise ValueError(f"{label} has {len(seq)} entries for {n} arguments")
        seen: set[str] = set()
        for arg in self.arg_names:
            if arg in seen:
                raise DuplicateRegistration("argument", arg)
            seen.add(arg)
        if ArgKind.VARIADIC in self.arg_kinds:
            tail = self.arg_kinds[self.arg_kinds.index(ArgKind.VARIADIC) + 1:]
            if any(kind is not ArgKind.KEYWORD for kind in tail):
                raise ValueError("only keyword arguments may follow a variadic argument")
        return self

    @computed_field
    @property
    def has_context_arg(self) -> bool:
        """Whether the first argument receives the invocation context."""
        return bool(self.arg_types) and self.arg_types[0] == CONTEXT_TYPE

    @computed_field
    @property
    def has_error_result(self) -> bool:
        """Whether the last result is the function's error result."""
        return bool(self.result_types) and self.result_types[-1] == ERROR_TYPE

    @property
    def num_args(self) -> int:
        return len(self.arg_names)

    @property
    def num_results(self) -> int:
        return len(self.result_types)

    @property
    def value_result_types(self) -> tuple[TypeDescriptor, ...]:
        """Result types without the trailing error result."""
        return self.result_types[:-1] if self.has_error_result else self.result_types

    def bindable_args(self) -> list[tuple[int, str, TypeDescriptor]]:
        """``(index, name, type)`` of every argument filled from caller input, i.e. all but the context."""
        start = 1 if self.has_context_arg else 0
        return [(i, self.arg_names[i], self.arg_types[i]) for i in range(start, self.num_args)]

    @property
    def signature(self) -> str:
        args = ", ".join(
            f"{'*' if kind is ArgKind.VARIADIC else ''}{name}: {_arg_type_name(t, kind)}"
            for name, t, kind in zip(self.arg_names, self.arg_types, self.arg_kinds)
        )
        results = [str(t) for t in self.value_result_types]
        ret = "None" if not results else results[0] if len(results) == 1 else f"tuple[{', '.join(results)}]"
        if self.has_error_result:
            ret = f"Result[{ret}, error]"
        return f"{self.name}({args}) -> {ret}"

    def __str__(self) -> str:
        return self.signature


def _arg_type_name(t: TypeDescriptor, kind: ArgKind) -> str:
    if kind is ArgKind.VARIADIC:
        return str(getattr(t, "inner", t))
    return "Context" if t == CONTEXT_TYPE else str(t)


# ─────────────────────────────────────────────────────────────────────────────
# Docstring Parsing
# ─────────────────────────────────────────────────────────────────────────────

_PARAM_PATTERN = re.compile(
    r"^\s*\**(?P<name>\w+)\s*(?:\([^)]*\))?\s*:\s*(?P<desc>.+?)(?=\n\s*\**\w+\s*(?:\([^)]*\))?\s*:|\Z)",
    re.MULTILINE | re.DOTALL,
)
_ARGS_HEADER = re.compile(r"\n\s*(?:Args|Arguments|Parameters)\s*:\s*\n", re.IGNORECASE)
_NEXT_SECTION = re.compile(r"\n\s*(?:Returns|Raises|Examples?|Notes?|Yields|Attributes)\s*:", re.IGNORECASE)


def parse_arg_descriptions(docstring: str | None) -> dict[str, str]:
    """Argument descriptions from the ``Args:`` section of a Google-style docstring."""
    if not docstring:
        return {}
    sections = _ARGS_HEADER.split(docstring, maxsplit=1)
    if len(sections) < 2:
        return {}
    args_section = _NEXT_SECTION.split(sections[1], maxsplit=1)[0]
    return {m["name"]: " ".join(m["desc"].split()) for m in _PARAM_PATTERN.finditer(args_section)}
