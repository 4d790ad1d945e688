"""Starlette endpoints calling wrappers with request arguments.

Example:
    >>> from starlette.applications import Starlette
    >>> app = Starlette(routes=[
    ...     route("/add", reflect_wrapper(add), args=query_args),
    ...     route("/users/{id}", reflect_wrapper(get_user), args=path_args, writer=respond_json),
    ... ])

    GET /add?a=5&b=3 responds ``8``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from callcase.foundation.config import get_settings
from callcase.foundation.core import Wrapper
from callcase.foundation.errors import ErrorCode, ErrorReport, is_invocation_error
from callcase.foundation.types import Context
from callcase.runtime.observability import get_logger

from .request_args import RequestArgs
from .results_writer import JSON_TYPE, ResultsWriter, encode_json, respond_json

Endpoint = Callable[[Request], Awaitable[Response]]

log = get_logger("callcase.http")


def error_response(report: ErrorReport, status_code: int) -> Response:
    """``ErrorReport`` as a JSON response."""
    return Response(encode_json(report.model_dump(mode="json")), status_code=status_code, media_type=JSON_TYPE)


def endpoint(wrapper: Wrapper, args: RequestArgs | None = None, writer: ResultsWriter = respond_json, *,
             catch_errors: bool | None = None) -> Endpoint:
    """Starlette endpoint calling ``wrapper.call_with_named_text`` in the thread pool.

    Args:
        wrapper: Function to call
        args: Getter for the named text arguments, None calls without arguments
        writer: Turns results into the response
        catch_errors: Answer exceptions with 500 instead of re-raising,
            defaults to ``CALLCASE_HTTP_CATCH_ERRORS``

    Status codes: 400 when the request arguments can't be read or bound,
    500 for error results and exceptions of the function or the writer.
    """
    async def handle(request: Request) -> Response:
        settings = get_settings()
        catch = settings.http.catch_errors if catch_errors is None else catch_errors
        bound = log.bind_function(wrapper.name).bind(method=request.method, path=request.url.path)

        try:
            texts = await args(request) if args is not None else {}
        except (ValueError, LookupError) as exc:
            bound.warning("request arguments unreadable", error=str(exc))
            report = ErrorReport(function=wrapper.name, message=str(exc) or type(exc).__name__,
                                 code=ErrorCode.PARSE_ERROR)
            return error_response(report, 400)

        try:
            result = await run_in_threadpool(wrapper.call_with_named_text, Context.background(), texts)
            error = result.err() if result.is_err() else None
            results: list[Any] = [] if error is not None else result.unwrap()
            response = writer(request, results, error)
        except Exception as exc:
            if not catch:
                raise
            bound.exception("endpoint raised")
            return error_response(ErrorReport.from_error(exc, wrapper.name, include_trace=settings.debug), 500)

        if response is not None:
            return response
        if error is None:
            return Response(status_code=200)
        status = 400 if is_invocation_error(error) else 500
        bound.info("call failed", status=status, error=str(error))
        return error_response(ErrorReport.from_error(error, wrapper.name, include_trace=settings.debug), status)

    handle.__name__ = wrapper.name or "endpoint"
    handle.__doc__ = str(wrapper)
    return handle


def route(path: str, wrapper: Wrapper, args: RequestArgs | None = None, writer: ResultsWriter = respond_json, *,
          methods: Sequence[str] = ("GET",), name: str | None = None) -> Route:
    """``Route`` for ``endpoint(wrapper, args, writer)``."""
    return Route(path, endpoint(wrapper, args, writer), methods=list(methods), name=name or wrapper.name)
