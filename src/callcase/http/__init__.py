"""HTTP adapter for Starlette applications.

- request_args: getters producing named text arguments from a request
- results_writer: writers turning results into responses
- handler: ``endpoint`` and ``route`` binding a wrapper to both
"""

from .handler import Endpoint, endpoint, error_response, route
from .request_args import (
    MULTI_VALUE_SEPARATOR,
    RequestArgs,
    body_as_arg,
    const_arg,
    const_args,
    env_arg,
    form_args,
    header_arg,
    headers_as_args,
    json_body_args,
    merge_args,
    path_arg,
    path_args,
    query_arg,
    query_args,
)
from .results_writer import (
    HTML_TYPE,
    JSON_TYPE,
    TEXT_TYPE,
    XML_TYPE,
    RespondRedirect,
    RespondStatic,
    ResultsWriter,
    encode_json,
    encode_xml,
    respond_binary,
    respond_content_type,
    respond_html,
    respond_json,
    respond_json_object,
    respond_nothing,
    respond_plaintext,
    respond_static_html,
    respond_static_json,
    respond_static_plaintext,
    respond_static_xml,
    respond_xml,
)

__all__ = [
    # Endpoints
    "Endpoint", "endpoint", "route", "error_response",
    # Request arguments
    "RequestArgs", "MULTI_VALUE_SEPARATOR", "const_args", "const_arg", "env_arg", "merge_args",
    "query_args", "query_arg", "path_args", "path_arg", "header_arg", "headers_as_args",
    "body_as_arg", "json_body_args", "form_args",
    # Results writers
    "ResultsWriter", "JSON_TYPE", "XML_TYPE", "TEXT_TYPE", "HTML_TYPE", "encode_json", "encode_xml",
    "respond_json", "respond_json_object", "respond_xml", "respond_plaintext", "respond_html",
    "respond_binary", "respond_content_type", "respond_nothing",
    "RespondStatic", "respond_static_html", "respond_static_json", "respond_static_xml", "respond_static_plaintext",
    "RespondRedirect",
]
