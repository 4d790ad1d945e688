"""Getters extracting named text arguments from a Starlette request.

A getter is an async callable ``(request) -> dict[str, str]``. Its result is
passed to ``Wrapper.call_with_named_text``, so every value is a text token.
Getters raise ``ValueError`` for malformed requests and ``LookupError`` for
missing configuration; the endpoint answers both with 400.

Example:
    >>> getter = merge_args(path_args, query_args, header_arg("X-User", "user"))
    >>> Route("/orders/{id}", endpoint(reflect_wrapper(get_order), args=getter))
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import orjson
from starlette.datastructures import UploadFile
from starlette.requests import Request

RequestArgs = Callable[[Request], Awaitable[dict[str, str]]]

MULTI_VALUE_SEPARATOR = ";"


# ─────────────────────────────────────────────────────────────────────────────
# Constants & Composition
# ─────────────────────────────────────────────────────────────────────────────


def const_args(args: Mapping[str, str]) -> RequestArgs:
    """Same arguments for every request."""
    frozen = dict(args)

    async def get(request: Request) -> dict[str, str]:
        return dict(frozen)
    return get


def const_arg(name: str, value: str) -> RequestArgs:
    return const_args({name: value})


def env_arg(env_var: str, arg_name: str) -> RequestArgs:
    """Value of an environment variable, read per request.

    Raises:
        LookupError: When called and the variable is not set
    """
    async def get(request: Request) -> dict[str, str]:
        value = os.environ.get(env_var)
        if value is None:
            raise LookupError(f"environment variable {env_var} is not set")
        return {arg_name: value}
    return get


def merge_args(*getters: RequestArgs) -> RequestArgs:
    """Union of several getters; later getters overwrite earlier ones."""
    async def get(request: Request) -> dict[str, str]:
        args: dict[str, str] = {}
        for getter in getters:
            args.update(await getter(request))
        return args
    return get


# ─────────────────────────────────────────────────────────────────────────────
# URL
# ─────────────────────────────────────────────────────────────────────────────


async def query_args(request: Request) -> dict[str, str]:
    """All query parameters; repeated keys are joined with ``;``."""
    return {key: MULTI_VALUE_SEPARATOR.join(request.query_params.getlist(key)) for key in request.query_params}


def query_arg(key: str, arg_name: str | None = None) -> RequestArgs:
    """One query parameter, empty text when absent."""
    async def get(request: Request) -> dict[str, str]:
        return {arg_name or key: request.query_params.get(key, "")}
    return get


async def path_args(request: Request) -> dict[str, str]:
    """All path parameters of the matched route."""
    return {key: str(value) for key, value in request.path_params.items()}


def path_arg(key: str, arg_name: str | None = None) -> RequestArgs:
    async def get(request: Request) -> dict[str, str]:
        return {arg_name or key: str(request.path_params.get(key, ""))}
    return get


# ─────────────────────────────────────────────────────────────────────────────
# Headers
# ─────────────────────────────────────────────────────────────────────────────


def header_arg(header: str, arg_name: str | None = None) -> RequestArgs:
    """One header, empty text when absent. The argument name defaults to the header name."""
    async def get(request: Request) -> dict[str, str]:
        return {arg_name or header: request.headers.get(header, "")}
    return get


def headers_as_args(header_to_arg: Mapping[str, str]) -> RequestArgs:
    """Several headers keyed by header name, mapped onto argument names."""
    mapping = dict(header_to_arg)

    async def get(request: Request) -> dict[str, str]:
        return {arg: request.headers.get(header, "") for header, arg in mapping.items()}
    return get


# ─────────────────────────────────────────────────────────────────────────────
# Body
# ─────────────────────────────────────────────────────────────────────────────


def body_as_arg(arg_name: str) -> RequestArgs:
    """The raw request body (decoded as UTF-8) as one argument."""
    async def get(request: Request) -> dict[str, str]:
        return {arg_name: (await request.body()).decode("utf-8", "surrogateescape")}
    return get


async def json_body_args(request: Request) -> dict[str, str]:
    """Fields of a JSON object body.

    String values are unescaped, every other value is passed on as its JSON
    text, so ``{"ids": [1, 2]}`` binds ``ids`` to ``"[1,2]"``.

    Raises:
        ValueError: If the body is not a JSON object
    """
    fields = orjson.loads(await request.body())
    if not isinstance(fields, dict):
        raise ValueError(f"request body must be a JSON object, got {type(fields).__name__}")
    return {name: _json_text(value) for name, value in fields.items()}


async def form_args(request: Request) -> dict[str, str]:
    """URL-encoded or multipart form fields; repeated fields are joined with ``;``.

    Uploaded files are read and passed on as their decoded content.
    """
    async with request.form() as form:
        args: dict[str, str] = {}
        for key in form:
            values = [await _form_text(v) for v in form.getlist(key)]
            args[key] = MULTI_VALUE_SEPARATOR.join(values)
        return args


def _json_text(value: Any) -> str:
    return value if isinstance(value, str) else orjson.dumps(value).decode()


async def _form_text(value: str | UploadFile) -> str:
    if isinstance(value, UploadFile):
        return (await value.read()).decode("utf-8", "surrogateescape")
    return value
