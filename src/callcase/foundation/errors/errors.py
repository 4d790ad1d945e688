"""Error taxonomy for argument coercion, invocation and dispatch.

Every failure produced by callcase itself is a ``CallcaseError`` carrying an
``ErrorCode``. Invocation methods never raise these: they return them inside
``Err``. Causes are chained with ``raise ... from`` and exposed as ``.cause``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from callcase.foundation.types import TypeDescriptor


class ErrorCode(StrEnum):
    """Machine-readable classification of callcase failures."""
    TYPE_NOT_SUPPORTED = "TYPE_NOT_SUPPORTED"
    PARSE_ERROR = "PARSE_ERROR"
    LENGTH_MISMATCH = "LENGTH_MISMATCH"
    PARSE_ARGUMENT_TEXT = "PARSE_ARGUMENT_TEXT"
    PARSE_ARGUMENT_JSON = "PARSE_ARGUMENT_JSON"
    PARSE_ARGUMENTS_JSON = "PARSE_ARGUMENTS_JSON"
    COMMAND_NOT_FOUND = "COMMAND_NOT_FOUND"
    NAMESPACE_NOT_FOUND = "NAMESPACE_NOT_FOUND"
    INVALID_COMMAND_NAME = "INVALID_COMMAND_NAME"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    SYNTHESIS_ERROR = "SYNTHESIS_ERROR"
    UNKNOWN = "UNKNOWN"


class CallcaseError(Exception):
    """Base class for all callcase errors."""

    code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN

    @property
    def cause(self) -> BaseException | None:
        """The wrapped underlying error, if any."""
        return self.__cause__

    def innermost_cause(self) -> BaseException:
        """Follow the cause chain down to the original error."""
        err: BaseException = self
        while err.__cause__ is not None:
            err = err.__cause__
        return err


# ─────────────────────────────────────────────────────────────────────────────
# Coercion & Invocation
# ─────────────────────────────────────────────────────────────────────────────


class InvocationError(CallcaseError):
    """Argument binding failed before the wrapped function could run."""


class CoercionError(InvocationError):
    """Text could not be converted into a value of the target type."""

    code = ErrorCode.PARSE_ERROR

    def __init__(self, text: str, target: TypeDescriptor, cause: BaseException | None = None) -> None:
        self.text, self.target = text, target
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"can't scan {text!r} as {target}{reason}")
        if cause is not None:
            self.__cause__ = cause


class TypeNotSupported(CoercionError):
    """No registry tier and no default scanner can produce the target type.

    Scanners also raise it to decline a target, letting the next tier try.
    """

    code = ErrorCode.TYPE_NOT_SUPPORTED

    def __init__(self, target: TypeDescriptor, text: str = "") -> None:
        self.text, self.target = text, target
        Exception.__init__(self, f"type not supported: {target}")


class LengthMismatch(CoercionError):
    """A fixed-length sequence literal has the wrong number of elements."""

    code = ErrorCode.LENGTH_MISMATCH

    def __init__(self, text: str, target: TypeDescriptor, expected: int, actual: int) -> None:
        self.text, self.target = text, target
        self.expected, self.actual = expected, actual
        Exception.__init__(self, f"expected {expected} elements for {target} but got {actual}")


class ParseArgumentText(InvocationError):
    """A text token could not be coerced into its argument's type."""

    code = ErrorCode.PARSE_ARGUMENT_TEXT

    def __init__(self, function: str, arg_name: str, arg_value: str, cause: BaseException) -> None:
        self.function, self.arg_name, self.arg_value = function, arg_name, arg_value
        super().__init__(
            f"can't parse argument '{arg_name}' string value '{arg_value}' "
            f"as argument for function {function}, error: {cause}"
        )
        self.__cause__ = cause


class ParseArgumentJSON(InvocationError):
    """One field of a JSON argument object failed to decode."""

    code = ErrorCode.PARSE_ARGUMENT_JSON

    def __init__(self, function: str, arg_name: str, cause: BaseException) -> None:
        self.function, self.arg_name = function, arg_name
        super().__init__(f"error unmarshalling JSON argument '{arg_name}' of function {function}: {cause}")
        self.__cause__ = cause


class ParseArgumentsJSON(InvocationError):
    """The JSON payload is not a decodable object."""

    code = ErrorCode.PARSE_ARGUMENTS_JSON

    def __init__(self, function: str, data: bytes | str, cause: BaseException) -> None:
        self.function = function
        self.data = data.decode("utf-8", "replace") if isinstance(data, bytes) else data
        super().__init__(f"error unmarshalling JSON arguments for function {function}: {cause}")
        self.__cause__ = cause


# ─────────────────────────────────────────────────────────────────────────────
# Dispatch & Registration
# ─────────────────────────────────────────────────────────────────────────────


class DispatchError(CallcaseError):
    """Failure to route a command to a wrapper."""


class CommandNotFound(DispatchError):
    code = ErrorCode.COMMAND_NOT_FOUND

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"command '{command}' not found")


class NamespaceNotFound(DispatchError):
    code = ErrorCode.NAMESPACE_NOT_FOUND

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(f"super command '{namespace}' not found")


class InvalidCommandName(DispatchError, ValueError):
    code = ErrorCode.INVALID_COMMAND_NAME

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        super().__init__(f"invalid command name {command!r}: {reason}")


class DuplicateRegistration(CallcaseError):
    """A name is registered twice in a place that requires uniqueness."""

    code = ErrorCode.DUPLICATE_REGISTRATION

    def __init__(self, kind: str, name: str) -> None:
        self.kind, self.name = kind, name
        super().__init__(f"{kind} '{name}' already added")


# ─────────────────────────────────────────────────────────────────────────────
# Code Generation
# ─────────────────────────────────────────────────────────────────────────────


class SynthesisError(CallcaseError):
    """Source could not be analyzed or rewritten by the adapter generator."""

    code = ErrorCode.SYNTHESIS_ERROR

    def __init__(self, message: str, path: str | None = None, line: int | None = None) -> None:
        self.path, self.line = path, line
        where = f"{path}:{line}: " if path and line else f"{path}: " if path else ""
        super().__init__(where + message)
