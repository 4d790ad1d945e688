"""callcase - call any Python function through text, named text or JSON arguments.

A ``Wrapper`` exposes one function through four calling conventions, coercing
text tokens into the declared argument types:

    >>> from callcase import reflect_wrapper
    >>>
    >>> def add(a: int, b: int) -> int:
    ...     '''Adds two numbers.
    ...
    ...     Args:
    ...         a: First summand
    ...         b: Second summand
    ...     '''
    ...     return a + b
    >>>
    >>> wrapper = reflect_wrapper(add)
    >>> wrapper.call_with_text(None, "2", "3")
    Ok([5])
    >>> wrapper.call_with_named_text(None, {"a": "2"})
    Ok([2])
    >>> wrapper.call_with_json(None, '{"A": 2, "B": 3}')
    Ok([5])

Generated Adapters (no runtime introspection):
    >>> from callcase import wrapper_todo
    >>> add_wrapper = wrapper_todo(add)   # then run: callcase-gen path/to/module.py

Command Line:
    >>> from callcase.cli import StringArgsDispatcher, PrintResults
    >>> dispatcher = StringArgsDispatcher()
    >>> dispatcher.add_command("add", "Adds two numbers", wrapper, PrintResults())
    >>> raise SystemExit(dispatcher.main())

HTTP (Starlette):
    >>> from callcase.http import route, query_args
    >>> app = Starlette(routes=[route("/add", wrapper, args=query_args)])
"""

from __future__ import annotations

__version__ = "0.1.0"

# Coercion
from .coercion import (
    DEFAULT_SCANNERS,
    FromText,
    Scanner,
    ScannerRegistry,
    coerce,
    get_scanners,
    reset_scanners,
    scan,
    set_scanners,
    zero_value,
)

# Invocation contract
from .foundation.core import (
    ArgKind,
    CallResult,
    FunctionDescription,
    ReflectWrapper,
    ResultsHandler,
    Wrapper,
    args_model,
    bind_json,
    exported_name,
    json_args_func,
    named_text_args_func,
    reflect_description,
    reflect_wrapper,
    text_args_func,
    wrapper_todo,
)

# Errors
from .foundation.errors import (
    CallcaseError,
    CoercionError,
    CommandNotFound,
    DispatchError,
    DuplicateRegistration,
    Err,
    ErrorCode,
    ErrorReport,
    InvalidCommandName,
    InvocationError,
    LengthMismatch,
    NamespaceNotFound,
    Ok,
    ParseArgumentJSON,
    ParseArgumentsJSON,
    ParseArgumentText,
    Result,
    SynthesisError,
    TypeNotSupported,
    is_invocation_error,
)

# Types
from .foundation.types import (
    Context,
    Int8,
    Int16,
    Int32,
    Int64,
    IntBits,
    Kind,
    Length,
    TypeDescriptor,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    describe,
)

# Configuration & logging
from .foundation.config import CallcaseSettings, clear_settings_cache, get_settings
from .runtime.observability import configure_logging, get_logger

__all__ = [
    # Version
    "__version__",
    # Coercion
    "coerce", "scan", "zero_value",
    "Scanner", "ScannerRegistry", "DEFAULT_SCANNERS", "get_scanners", "set_scanners", "reset_scanners", "FromText",
    # Invocation contract
    "Wrapper", "CallResult", "FunctionDescription", "ArgKind",
    "ReflectWrapper", "reflect_wrapper", "reflect_description", "wrapper_todo",
    "exported_name", "args_model", "bind_json",
    "ResultsHandler", "text_args_func", "named_text_args_func", "json_args_func",
    # Errors
    "ErrorCode", "CallcaseError", "InvocationError", "CoercionError", "TypeNotSupported", "LengthMismatch",
    "ParseArgumentText", "ParseArgumentJSON", "ParseArgumentsJSON",
    "DispatchError", "CommandNotFound", "NamespaceNotFound", "InvalidCommandName", "DuplicateRegistration",
    "SynthesisError", "ErrorReport", "is_invocation_error",
    "Result", "Ok", "Err",
    # Types
    "Context", "Kind", "TypeDescriptor", "describe",
    "IntBits", "Length", "Int8", "Int16", "Int32", "Int64", "UInt8", "UInt16", "UInt32", "UInt64",
    # Configuration & logging
    "CallcaseSettings", "get_settings", "clear_settings_cache", "configure_logging", "get_logger",
]
