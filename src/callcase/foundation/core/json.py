"""Binding of JSON argument objects.

Each argument is read from the same-named field of one JSON object. A field
is found by the argument name, then by its exported name (``apiKey`` →
``APIKey``), then by a case-insensitive match of either. Absent fields
bind zero values, and so does ``null`` for an argument that is not optional.
Values are validated by a pydantic model in strict mode, built per
description with ``create_model``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import orjson
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, create_model

from callcase.coercion import json_annotation, zero_value
from callcase.foundation.errors import CoercionError, DuplicateRegistration, ParseArgumentJSON, ParseArgumentsJSON
from callcase.foundation.types import OptionalType

from .description import FunctionDescription

# Leading acronyms kept fully upper-case in exported names.
_ACRONYMS: tuple[str, ...] = ("acl", "api", "csv", "html", "http", "jpeg", "json", "png", "tiff", "uuid", "xml")


def exported_name(name: str) -> str:
    """Conventional capitalized field name for an argument name.

    Example:
        >>> [exported_name(n) for n in ("id", "apiKey", "documentId", "xmlParser")]
        ['ID', 'APIKey', 'DocumentId', 'XMLParser']
    """
    if name == "id":
        return "ID"
    for acronym in _ACRONYMS:
        if name.startswith(acronym):
            return acronym.upper() + name[len(acronym):]
    return name[:1].upper() + name[1:]


def _field_name(arg_name: str) -> str:
    """Model attribute for an argument; pydantic reserves names with a leading underscore."""
    exported = exported_name(arg_name.lstrip("_") or "arg")
    return exported if exported[0].isalpha() else f"Arg{exported}"


# ─────────────────────────────────────────────────────────────────────────────
# Argument Models
# ─────────────────────────────────────────────────────────────────────────────


@lru_cache(maxsize=256)
def args_model(description: FunctionDescription) -> type[BaseModel]:
    """Strict pydantic model with one field per non-context argument.

    Raises:
        DuplicateRegistration: If two arguments map to the same exported name
    """
    fields: dict[str, Any] = {}
    for _, name, target in description.bindable_args():
        field = _field_name(name)
        if field in fields:
            raise DuplicateRegistration("JSON field", field)
        fields[field] = (json_annotation(target), Field(
            default_factory=_zero_factory(description.name, name, target),
            validation_alias=AliasChoices(name, field),
        ))
    model_name = f"{_field_name(description.name)}Args"
    return create_model(model_name, __config__=ConfigDict(strict=True, extra="ignore"), **fields)


def _zero_factory(function: str, arg_name: str, target: Any) -> Any:
    def factory() -> Any:
        try:
            return zero_value(target)
        except CoercionError as exc:
            raise ParseArgumentJSON(function, arg_name, exc) from exc
    return factory


def _normalize_keys(payload: dict[str, Any], description: FunctionDescription) -> dict[str, Any]:
    """Key the payload by argument name: exact name first, then exported name, then case-insensitively.

    ``null`` for an argument that is not optional is dropped, so the argument
    binds its zero value like an absent field.
    """
    folded = {key.lower(): value for key, value in payload.items()}
    out: dict[str, Any] = {}
    for _, name, target in description.bindable_args():
        field = _field_name(name)
        for source, key in ((payload, name), (payload, field), (folded, name.lower()), (folded, field.lower())):
            if key in source:
                value = source[key]
                break
        else:
            continue
        if value is not None or isinstance(target, OptionalType):
            out[name] = value
    return out


def bind_json(description: FunctionDescription, data: bytes | str,
              model: type[BaseModel] | None = None) -> list[Any]:
    """Values of every non-context argument, in declaration order.

    Raises:
        ParseArgumentsJSON: If ``data`` is not a JSON object
        ParseArgumentJSON: If one field fails validation
    """
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise ParseArgumentsJSON(description.name, data, exc) from exc
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        err = TypeError(f"expected a JSON object, got {type(payload).__name__}")
        raise ParseArgumentsJSON(description.name, data, err)

    model = model or args_model(description)
    normalized = _normalize_keys(payload, description)
    try:
        instance = model.model_validate_json(orjson.dumps(normalized))
    except ValidationError as exc:
        loc = exc.errors()[0]["loc"]
        raise ParseArgumentJSON(description.name, _arg_for(loc[0] if loc else "", description), exc) from exc
    return [getattr(instance, _field_name(name)) for _, name, _ in description.bindable_args()]


def _arg_for(key: Any, description: FunctionDescription) -> str:
    for _, name, _ in description.bindable_args():
        if key in (name, _field_name(name)):
            return name
    return str(key)
