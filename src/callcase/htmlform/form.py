"""HTML form fields inferred from a function description.

Every argument except the context becomes one field. The input type follows
the argument type:

==========================  ==================
bool                        checkbox
int, float                  number
bytes, ``FileLike``         file
enum, explicit options      select
datetime                    datetime-local
date                        date
anything else               text
==========================  ==================

``X | None`` arguments infer from ``X`` and are not required.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from enum import Enum
from html import escape
from typing import Any, Protocol, Self, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from callcase.foundation.core import FunctionDescription
from callcase.foundation.types import Kind, OptionalType, TypeDescriptor


@runtime_checkable
class FileLike(Protocol):
    """Readable binary content, bound from an uploaded file."""

    def read(self) -> bytes: ...


class UploadedFile:
    """Content of an uploaded form file. Implements ``FileLike`` and parses from text."""

    __slots__ = ("data",)

    def __init__(self, data: bytes = b"") -> None:
        self.data = data

    @classmethod
    def from_text(cls, text: str) -> Self:
        return cls(text.encode("utf-8", "surrogateescape"))

    def read(self) -> bytes:
        return self.data

    def __eq__(self, other: object) -> bool:
        return isinstance(other, UploadedFile) and other.data == self.data

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"UploadedFile({len(self.data)} bytes)"


class Option(BaseModel):
    """One choice of a select field."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: Any


class FormField(BaseModel):
    """One rendered form input."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    type: str = "text"
    value: str = ""
    required: bool = True
    options: tuple[Option, ...] = Field(default=())


def form_fields(
    description: FunctionDescription,
    *,
    options: Mapping[str, Sequence[Option]] | None = None,
    defaults: Mapping[str, Any] | None = None,
    required: Mapping[str, bool] | None = None,
    input_types: Mapping[str, str] | None = None,
) -> list[FormField]:
    """One field per non-context argument of ``description``.

    Args:
        description: Function to build the form for
        options: Explicit choices per argument, turns the field into a select
        defaults: Initial values per argument
        required: Overrides the inferred required flag per argument
        input_types: Overrides the inferred input type per argument
    """
    options, defaults = options or {}, defaults or {}
    required, input_types = required or {}, input_types or {}
    fields = []
    for i, name, arg_type in description.bindable_args():
        field_type, choices = _infer(arg_type)
        if name in options:
            field_type, choices = "select", tuple(options[name])
        fields.append(FormField(
            name=name,
            label=description.arg_descriptions[i] or name,
            type=input_types.get(name, field_type),
            value=_value_text(defaults[name]) if name in defaults else "",
            required=required.get(name, not isinstance(arg_type, OptionalType)),
            options=choices,
        ))
    return fields


def _infer(arg_type: TypeDescriptor) -> tuple[str, tuple[Option, ...]]:
    if isinstance(arg_type, OptionalType):
        return _infer(arg_type.inner)
    if arg_type.kind is Kind.BYTES or arg_type.satisfies(FileLike):
        return "file", ()
    tp = arg_type.python_type
    if isinstance(tp, type) and issubclass(tp, Enum):
        return "select", tuple(Option(label=m.name, value=m.value) for m in tp)
    match arg_type.kind:
        case Kind.BOOL:
            return "checkbox", ()
        case Kind.INT | Kind.FLOAT:
            return "number", ()
        case Kind.INSTANT:
            return "datetime-local", ()
        case Kind.DATE:
            return "date", ()
    return "text", ()


def _value_text(value: Any) -> str:
    match value:
        case bool():
            return "true" if value else "false"
        case datetime():
            return value.strftime("%Y-%m-%dT%H:%M")
        case date():
            return value.isoformat()
        case Enum():
            return str(value.value)
    return str(value)


# ─────────────────────────────────────────────────────────────────────────────
# Rendering
# ─────────────────────────────────────────────────────────────────────────────

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
\t<meta charset="utf-8"/>
\t<meta name="viewport" content="width=device-width,initial-scale=1.0">
\t<title>{title}</title>
\t<style>
\t\tbody {{ font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial, sans-serif; line-height: 1.6; }}
\t\tlabel {{ display: block; }}
\t\tform {{ margin: 10px; }}
\t\tform div {{ padding-bottom: 10px; }}
\t</style>
</head>
<body>
<h1>{title}</h1>
<form method="post" enctype="multipart/form-data">
{fields}
\t<button>{submit}</button>
</form>
</body>
</html>
"""


def render_form(title: str, fields: Sequence[FormField], submit_text: str = "Submit") -> str:
    """Complete HTML page posting ``fields`` back as multipart form data."""
    return _PAGE.format(
        title=escape(title),
        fields="\n".join(render_field(f) for f in fields),
        submit=escape(submit_text),
    )


def render_field(field: FormField) -> str:
    """``<div>`` with label and input for one field."""
    name, label = escape(field.name), escape(field.label)
    req = " required" if field.required else ""
    match field.type:
        case "checkbox":
            checked = " checked" if field.value == "true" else ""
            body = (f'<input type="checkbox" id="{name}" name="{name}" value="true"{checked}/>\n'
                    f'\t\t<label style="display: inline" for="{name}">{label}</label>')
        case "select":
            opts = "".join(
                f'\n\t\t\t<option value="{escape(_value_text(o.value))}"'
                f'{" selected" if _value_text(o.value) == field.value else ""}>{escape(o.label)}</option>'
                for o in field.options
            )
            body = (f'<label for="{name}">{label}:</label>\n'
                    f'\t\t<select id="{name}" name="{name}"{req}>{opts}\n\t\t</select>')
        case "textarea":
            body = (f'<label for="{name}">{label}:</label>\n'
                    f'\t\t<textarea id="{name}" name="{name}" cols="40" rows="5"{req}>{escape(field.value)}</textarea>')
        case _:
            body = (f'<label for="{name}">{label}:</label>\n'
                    f'\t\t<input type="{escape(field.type)}" id="{name}" name="{name}" '
                    f'value="{escape(field.value)}" size="40"{req}/>')
    return f"\t<div>\n\t\t{body}\n\t</div>"
