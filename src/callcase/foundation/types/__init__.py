"""Type descriptors and the cancellation context."""

from .context import Context
from .descriptor import (
    ANY,
    BOOL,
    BYTES,
    CONTEXT_TYPE,
    DATE,
    DURATION,
    ERROR_TYPE,
    FLOAT,
    INSTANT,
    INT,
    TEXT,
    CompositeType,
    Int8,
    Int16,
    Int32,
    Int64,
    IntBits,
    Kind,
    Length,
    MappingType,
    OpaqueType,
    OptionalType,
    PrimitiveType,
    SequenceType,
    TypeDescriptor,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    describe,
)

__all__ = [
    "Context",
    "Kind", "TypeDescriptor", "PrimitiveType", "OptionalType", "SequenceType", "MappingType",
    "CompositeType", "OpaqueType", "describe",
    "TEXT", "BOOL", "INT", "FLOAT", "INSTANT", "DATE", "DURATION", "BYTES", "ANY",
    "CONTEXT_TYPE", "ERROR_TYPE",
    "IntBits", "Length", "Int8", "Int16", "Int32", "Int64", "UInt8", "UInt16", "UInt32", "UInt64",
]
