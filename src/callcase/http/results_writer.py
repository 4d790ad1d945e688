"""Results writers turning call results into Starlette responses.

A writer is called with the request, the results of a successful call and
``None``, or with an empty result list and the error of a failed call. It
returns a response, or ``None`` to leave the error to the endpoint's default
error handling. Only ``respond_json_object`` with an ``error_key`` handles
errors itself.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from xml.etree import ElementTree

import orjson
from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from callcase.coercion import format_duration
from callcase.foundation.config import get_settings

JSON_TYPE = "application/json"
XML_TYPE = "application/xml; charset=utf-8"
TEXT_TYPE = "text/plain; charset=utf-8"
HTML_TYPE = "text/html; charset=utf-8"


@runtime_checkable
class ResultsWriter(Protocol):
    """Writes call results, or returns None for errors it does not handle."""

    def __call__(self, request: Request, results: list[Any], error: Any | None) -> Response | None: ...


# ─────────────────────────────────────────────────────────────────────────────
# Encoding
# ─────────────────────────────────────────────────────────────────────────────


def encode_json(value: Any) -> bytes:
    """JSON bytes, indented when ``CALLCASE_HTTP_PRETTY_PRINT`` is set."""
    option = orjson.OPT_NON_STR_KEYS
    if get_settings().http.pretty_print:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(value, option=option, default=_json_default)


def _json_default(value: Any) -> Any:
    match value:
        case BaseModel():
            return value.model_dump(mode="json")
        case set() | frozenset():
            return sorted(value, key=repr)
        case timedelta():
            return format_duration(value)
        case bytes() | bytearray():
            return bytes(value).decode("utf-8", "replace")
    raise TypeError(f"type {type(value).__name__} is not JSON serializable")


def encode_xml(value: Any, tag: str = "result") -> bytes:
    """XML document for one value.

    Records and mappings become child elements named after their fields,
    sequences repeat an ``item`` element, scalars become element text.
    """
    root = _xml_element(tag, value)
    if get_settings().http.pretty_print:
        ElementTree.indent(root, space="  ")
    return ElementTree.tostring(root, encoding="utf-8", xml_declaration=False)


def _xml_element(tag: str, value: Any) -> ElementTree.Element:
    element = ElementTree.Element(tag)
    match value:
        case None:
            pass
        case BaseModel():
            _xml_children(element, value.model_dump(mode="json"))
        case Mapping():
            _xml_children(element, value)
        case str() | bytes() | bytearray():
            element.text = value if isinstance(value, str) else bytes(value).decode("utf-8", "replace")
        case list() | tuple() | set() | frozenset():
            element.extend(_xml_element("item", item) for item in value)
        case _ if dataclasses.is_dataclass(value) and not isinstance(value, type):
            _xml_children(element, dataclasses.asdict(value))
        case _:
            element.text = _scalar_text(value)
    return element


def _xml_children(element: ElementTree.Element, fields: Mapping[Any, Any]) -> None:
    element.extend(_xml_element(str(key), item) for key, item in fields.items())


def _scalar_text(value: Any) -> str:
    match value:
        case bool():
            return "true" if value else "false"
        case datetime() | date():
            return value.isoformat()
        case timedelta():
            return format_duration(value)
        case Enum():
            return str(value.value)
    return str(value)


# ─────────────────────────────────────────────────────────────────────────────
# Result Writers
# ─────────────────────────────────────────────────────────────────────────────


def respond_json(request: Request, results: list[Any], error: Any | None) -> Response | None:
    """One result as-is, several as a JSON array, none as an empty 200."""
    if error is not None:
        return None
    if not results:
        return Response(status_code=200)
    return Response(encode_json(results[0] if len(results) == 1 else results), media_type=JSON_TYPE)


def respond_json_object(*result_keys: str, error_key: str | None = None) -> ResultsWriter:
    """Results as one JSON object, named in order by ``result_keys``.

    With ``error_key`` a failed call responds ``{error_key: message}`` instead
    of an error response, and successful calls carry ``error_key: null``.

    Raises:
        ValueError: If the keys contain duplicates
    """
    keys = (*result_keys, error_key) if error_key is not None else result_keys
    if len(set(keys)) != len(keys):
        raise ValueError(f"respond_json_object keys contain duplicates: {keys!r}")

    def write(request: Request, results: list[Any], error: Any | None) -> Response | None:
        if error is not None:
            if error_key is None:
                return None
            return Response(encode_json({error_key: str(error)}), media_type=JSON_TYPE)
        if len(results) != len(result_keys):
            raise ValueError(f"respond_json_object expects {len(result_keys)} results for {list(result_keys)}, "
                             f"got {len(results)}")
        body: dict[str, Any] = dict(zip(result_keys, results))
        if error_key is not None:
            body[error_key] = None
        return Response(encode_json(body), media_type=JSON_TYPE)
    return write


def respond_xml(request: Request, results: list[Any], error: Any | None) -> Response | None:
    """Every result as its own ``<result>`` document, separated by newlines."""
    if error is not None:
        return None
    return Response(b"\n".join(encode_xml(r) for r in results), media_type=XML_TYPE)


def respond_plaintext(request: Request, results: list[Any], error: Any | None) -> Response | None:
    """Results as text, with a space between neighbours that are both non-strings."""
    if error is not None:
        return None
    parts: list[str] = []
    for i, result in enumerate(results):
        if i > 0 and not isinstance(result, str) and not isinstance(results[i - 1], str):
            parts.append(" ")
        parts.append(_scalar_text(result))
    return Response("".join(parts), media_type=TEXT_TYPE)


def respond_html(request: Request, results: list[Any], error: Any | None) -> Response | None:
    """Results concatenated, bytes written unchanged."""
    if error is not None:
        return None
    body = b"".join(bytes(r) if isinstance(r, bytes | bytearray) else str(r).encode() for r in results)
    return Response(body, media_type=HTML_TYPE)


def respond_binary(content_type: str) -> ResultsWriter:
    """Concatenated bytes, text or readable results with a fixed content type.

    Raises:
        TypeError: For a result of any other type
    """
    def write(request: Request, results: list[Any], error: Any | None) -> Response | None:
        if error is not None:
            return None
        chunks: list[bytes] = []
        for result in results:
            match result:
                case bytes() | bytearray():
                    chunks.append(bytes(result))
                case str():
                    chunks.append(result.encode())
                case _ if callable(getattr(result, "read", None)):
                    data = result.read()
                    chunks.append(data.encode() if isinstance(data, str) else data)
                case _:
                    raise TypeError(f"respond_binary does not support result type {type(result).__name__}")
        return Response(b"".join(chunks), media_type=content_type)
    return write


def respond_content_type(content_type: str) -> ResultsWriter:
    """Exactly one bytes result with a fixed content type."""
    def write(request: Request, results: list[Any], error: Any | None) -> Response | None:
        if error is not None:
            return None
        if len(results) != 1 or not isinstance(results[0], bytes | bytearray):
            kinds = [type(r).__name__ for r in results]
            raise TypeError(f"respond_content_type({content_type}) needs one bytes result, got {kinds}")
        return Response(bytes(results[0]), media_type=content_type)
    return write


# ─────────────────────────────────────────────────────────────────────────────
# Static Writers
# ─────────────────────────────────────────────────────────────────────────────


class RespondStatic:
    """Fixed response body, ignoring the results. Also usable as a route endpoint.

    Example:
        >>> Route("/health", RespondStatic('{"ok": true}', JSON_TYPE).endpoint)
    """

    __slots__ = ("content", "media_type")

    def __init__(self, content: str | bytes, media_type: str) -> None:
        self.content = content
        self.media_type = media_type

    def __call__(self, request: Request, results: list[Any], error: Any | None) -> Response | None:
        return None if error is not None else self.response()

    def response(self) -> Response:
        return Response(self.content, media_type=self.media_type)

    async def endpoint(self, request: Request) -> Response:
        return self.response()

    def __repr__(self) -> str:
        return f"RespondStatic({self.media_type!r}, {len(self.content)} bytes)"


def respond_static_html(html: str) -> RespondStatic:
    return RespondStatic(html, HTML_TYPE)


def respond_static_json(json: str | bytes) -> RespondStatic:
    return RespondStatic(json, JSON_TYPE)


def respond_static_xml(xml: str) -> RespondStatic:
    return RespondStatic(xml, XML_TYPE)


def respond_static_plaintext(text: str) -> RespondStatic:
    return RespondStatic(text, TEXT_TYPE)


def respond_nothing(request: Request, results: list[Any], error: Any | None) -> Response | None:
    """Empty 200 for successful calls."""
    return None if error is not None else Response(status_code=200)


class RespondRedirect:
    """302 Found to a fixed URL, or to one computed from the request."""

    __slots__ = ("_target",)

    def __init__(self, target: str | Callable[[Request], str]) -> None:
        self._target = target

    def url(self, request: Request) -> str:
        return self._target if isinstance(self._target, str) else self._target(request)

    def __call__(self, request: Request, results: list[Any], error: Any | None) -> Response | None:
        if error is not None:
            return None
        return RedirectResponse(self.url(request), status_code=302)

    async def endpoint(self, request: Request) -> Response:
        return RedirectResponse(self.url(request), status_code=302)

