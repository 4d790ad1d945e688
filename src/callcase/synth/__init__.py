"""Ahead-of-time adapter generation.

- locate: find function definitions in source without importing it
- typing: static mapping of annotations onto descriptors
- emit: render one GeneratedWrapper subclass
- rewrite: replace wrapper_todo placeholders, detect drift
- support: names generated code imports as ``_cc``

``support`` is imported by generated modules only; it is not re-exported here.
"""

from .emit import render_wrapper
from .locate import LocatedFunction, ModuleSource, find_module_file, locate_function, parse_module, read_module
from .rewrite import DriftReport, RewriteOutcome, check_file, check_path, iter_source_files, rewrite_file, rewrite_source
from .typing import AnnotationMapper, StaticSignature, static_signature

__all__ = [
    "render_wrapper",
    "LocatedFunction", "ModuleSource", "parse_module", "read_module", "locate_function", "find_module_file",
    "AnnotationMapper", "StaticSignature", "static_signature",
    "rewrite_source", "rewrite_file", "check_file", "check_path", "iter_source_files", "DriftReport", "RewriteOutcome",
]
