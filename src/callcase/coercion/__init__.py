"""Text to value coercion.

- coerce/scan: convert one text token into a described type
- zero_value: value bound to arguments that are not supplied
- ScannerRegistry: tiered, immutable scanner lookup
- scanners: primitive scanners shared with generated adapters
"""

from .engine import (
    DEFAULT_SCANNERS,
    FromText,
    coerce,
    get_scanners,
    reset_scanners,
    scan,
    scan_default,
    scan_enum,
    scan_from_text,
    scan_many,
    set_scanners,
    zero_value,
)
from .jsonvalue import json_adapter, json_annotation
from .registry import Scanner, ScannerRegistry
from .scanners import TIME_FORMATS, format_duration, split_sequence

__all__ = [
    "coerce", "scan", "scan_many", "zero_value",
    "Scanner", "ScannerRegistry", "DEFAULT_SCANNERS", "get_scanners", "set_scanners", "reset_scanners",
    "FromText", "scan_default", "scan_enum", "scan_from_text",
    "json_annotation", "json_adapter",
    "TIME_FORMATS", "format_duration", "split_sequence",
]
