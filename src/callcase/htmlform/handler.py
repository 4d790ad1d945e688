"""Starlette handler serving a form for a wrapper and calling it on submit.

Example:
    >>> form = FormHandler(reflect_wrapper(register_user), "Register")
    >>> form.set_arg_options("plan", [Option(label="Free", value="free"), Option(label="Pro", value="pro")])
    >>> app = Starlette(routes=[form.route("/register")])
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from starlette.datastructures import UploadFile
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from callcase.foundation.core import Wrapper
from callcase.http import ResultsWriter, endpoint, respond_html
from callcase.runtime.observability import get_logger

from .form import FormField, Option, form_fields, render_form

MAX_PART_SIZE = 100 * 1024 * 1024

log = get_logger("callcase.htmlform")


async def first_form_values(request: Request) -> dict[str, str]:
    """First value of every submitted field; files are read and decoded as UTF-8.

    Unchecked checkboxes are not submitted and bind their zero value (``False``).
    """
    async with request.form(max_part_size=MAX_PART_SIZE) as form:
        args: dict[str, str] = {}
        for key, value in form.multi_items():
            if key in args:
                continue
            if isinstance(value, UploadFile):
                args[key] = (await value.read()).decode("utf-8", "surrogateescape")
            else:
                args[key] = value
        return args


class FormHandler:
    """GET renders the form, POST calls the wrapper with the submitted fields.

    Argument errors respond 400, function errors 500, both as JSON error reports.
    Successful results go through ``writer``.
    """

    __slots__ = ("wrapper", "title", "submit_text", "_options", "_defaults", "_required", "_input_types", "_submit")

    def __init__(self, wrapper: Wrapper, title: str, writer: ResultsWriter = respond_html) -> None:
        self.wrapper = wrapper
        self.title = title
        self.submit_text = "Submit"
        self._options: dict[str, tuple[Option, ...]] = {}
        self._defaults: dict[str, Any] = {}
        self._required: dict[str, bool] = {}
        self._input_types: dict[str, str] = {}
        self._submit = endpoint(wrapper, args=first_form_values, writer=writer)

    # ─────────────────────────────────────────────────────────────────
    # Field Overrides
    # ─────────────────────────────────────────────────────────────────

    def set_arg_options(self, arg: str, options: Sequence[Option]) -> None:
        self._options[arg] = tuple(options)

    def set_arg_default(self, arg: str, value: Any) -> None:
        self._defaults[arg] = value

    def set_arg_required(self, arg: str, required: bool) -> None:
        self._required[arg] = required

    def set_arg_input_type(self, arg: str, input_type: str) -> None:
        """Force an input type, e.g. ``"textarea"`` or ``"password"``."""
        self._input_types[arg] = input_type

    def set_submit_button_text(self, text: str) -> None:
        self.submit_text = text

    def fields(self) -> list[FormField]:
        return form_fields(self.wrapper.description, options=self._options, defaults=self._defaults,
                           required=self._required, input_types=self._input_types)

    # ─────────────────────────────────────────────────────────────────
    # Serving
    # ─────────────────────────────────────────────────────────────────

    async def endpoint(self, request: Request) -> Response:
        if request.method == "POST":
            log.debug("form submitted", function=self.wrapper.name)
            return await self._submit(request)
        return HTMLResponse(render_form(self.title, self.fields(), self.submit_text))

    def route(self, path: str, *, name: str | None = None) -> Route:
        return Route(path, self.endpoint, methods=["GET", "POST"], name=name or self.wrapper.name)
