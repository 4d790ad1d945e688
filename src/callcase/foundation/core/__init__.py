"""Function descriptions, the Wrapper contract and its runtime implementation."""

from .description import ArgKind, FunctionDescription, parse_arg_descriptions
from .handlers import ResultsHandler, json_args_func, named_text_args_func, text_args_func
from .json import args_model, bind_json, exported_name
from .reflect import ReflectWrapper, reflect_description, reflect_wrapper, result_types
from .wrapper import (
    CallResult,
    Wrapper,
    argument_error,
    context_or_background,
    normalize_results,
    wrapper_todo,
)

__all__ = [
    "ArgKind", "FunctionDescription", "parse_arg_descriptions",
    "Wrapper", "CallResult", "normalize_results", "argument_error", "context_or_background", "wrapper_todo",
    "ReflectWrapper", "reflect_wrapper", "reflect_description", "result_types",
    "exported_name", "args_model", "bind_json",
    "ResultsHandler", "text_args_func", "named_text_args_func", "json_args_func",
]
