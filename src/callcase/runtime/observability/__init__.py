"""Observability: structured logging."""

from .logging import (
    BoundLogger,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    LogRenderer,
    MemoryRenderer,
    NoOpRenderer,
    configure_logging,
    get_logger,
    log_context,
)

__all__ = [
    "BoundLogger", "LogEntry", "LogRenderer", "ConsoleRenderer", "JsonRenderer", "NoOpRenderer", "MemoryRenderer",
    "configure_logging", "get_logger", "log_context",
]
