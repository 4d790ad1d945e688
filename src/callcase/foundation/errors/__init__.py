"""Error handling for callcase.

- ErrorCode: machine-readable failure classification
- CallcaseError and subclasses: coercion, invocation and dispatch failures
- Result/Ok/Err: return type of every invocation convention
- ErrorReport: user-visible rendering of failures
"""

from .errors import (
    CallcaseError,
    CoercionError,
    CommandNotFound,
    DispatchError,
    DuplicateRegistration,
    ErrorCode,
    InvalidCommandName,
    InvocationError,
    LengthMismatch,
    NamespaceNotFound,
    ParseArgumentJSON,
    ParseArgumentsJSON,
    ParseArgumentText,
    SynthesisError,
    TypeNotSupported,
)
from .report import ErrorReport, is_invocation_error
from .result import Err, Ok, Result, sequence

__all__ = [
    # Taxonomy
    "ErrorCode", "CallcaseError", "InvocationError", "CoercionError", "TypeNotSupported", "LengthMismatch",
    "ParseArgumentText", "ParseArgumentJSON", "ParseArgumentsJSON",
    "DispatchError", "CommandNotFound", "NamespaceNotFound", "InvalidCommandName", "DuplicateRegistration",
    "SynthesisError",
    # Result
    "Result", "Ok", "Err", "sequence",
    # Rendering
    "ErrorReport", "is_invocation_error",
]
