"""User-visible rendering of call failures.

``ErrorReport`` flattens an error value into the pieces a command line or
HTTP client needs: the innermost message, the argument involved and the raw
text that failed to parse.
"""

from __future__ import annotations

import traceback
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .errors import CallcaseError, ErrorCode, InvocationError, ParseArgumentJSON, ParseArgumentText


class ErrorReport(BaseModel):
    """Structured, serializable description of a failed call.

    Attributes:
        function: Name of the function whose call failed
        message: Message of the innermost cause
        code: Machine-readable error code
        arg_name: Offending argument, when the failure is argument-specific
        arg_value: Raw text of the offending argument, when known
        details: Optional traceback text
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "title": "Call Error",
            "examples": [{
                "function": "add",
                "message": "invalid literal for int: 'x'",
                "code": "PARSE_ARGUMENT_TEXT",
                "arg_name": "a",
                "arg_value": "x",
            }],
        },
    )

    function: str = ""
    message: str = Field(min_length=1, description="Innermost error message")
    code: ErrorCode = ErrorCode.UNKNOWN
    arg_name: str | None = None
    arg_value: str | None = None
    details: str | None = None

    @computed_field
    @property
    def is_invocation_error(self) -> bool:
        """Whether arguments failed to bind, i.e. the caller is at fault."""
        return self.code in _INVOCATION_CODES

    @classmethod
    def from_error(cls, error: Any, function: str = "", *, include_trace: bool = False) -> Self:
        """Build a report from an Err payload of any type."""
        if not isinstance(error, BaseException):
            return cls(function=function, message=str(error) or repr(error))
        inner = error.innermost_cause() if isinstance(error, CallcaseError) else error
        return cls(
            function=getattr(error, "function", function) or function,
            message=str(inner) or type(inner).__name__,
            code=error.code if isinstance(error, CallcaseError) else ErrorCode.UNKNOWN,
            arg_name=error.arg_name if isinstance(error, ParseArgumentText | ParseArgumentJSON) else None,
            arg_value=error.arg_value if isinstance(error, ParseArgumentText) else None,
            details="".join(traceback.format_exception(error)) if include_trace else None,
        )

    def render(self) -> str:
        """One-line summary for terminals."""
        where = f" ({self.function})" if self.function else ""
        head = f"error{where}: "
        if self.arg_name is not None:
            value = f" = {self.arg_value!r}" if self.arg_value is not None else ""
            head += f"argument {self.arg_name}{value}: "
        return head + self.message + (f"\n{self.details}" if self.details else "")

    __str__ = render


_INVOCATION_CODES = frozenset({
    ErrorCode.TYPE_NOT_SUPPORTED,
    ErrorCode.PARSE_ERROR,
    ErrorCode.LENGTH_MISMATCH,
    ErrorCode.PARSE_ARGUMENT_TEXT,
    ErrorCode.PARSE_ARGUMENT_JSON,
    ErrorCode.PARSE_ARGUMENTS_JSON,
})


def is_invocation_error(error: object) -> bool:
    """True for errors produced while binding arguments."""
    return isinstance(error, InvocationError)
