"""Immutable, tiered table of text scanners.

Lookup order for a target descriptor:

1. exact descriptor
2. capabilities the target's class satisfies, in registration order
3. descriptor kind
4. default scanner

A scanner declines a target by raising ``TypeNotSupported``; lookup then
continues with the next candidate. Every ``with_*`` method returns a new
registry, so a registry can be shared freely between threads.

Example:
    >>> from decimal import Decimal
    >>> scanners = get_scanners().with_type_scanner(Decimal, lambda text, _: Decimal(text.replace(",", ".")))
    >>> coerce("1,5", describe(Decimal), scanners)
    Decimal('1.5')
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any, TypeAlias

from callcase.foundation.errors import TypeNotSupported
from callcase.foundation.types import Kind, TypeDescriptor, describe

Scanner: TypeAlias = Callable[[str, TypeDescriptor], Any]

# Registry performing the current scan; nested scans reuse it.
_active: ContextVar[ScannerRegistry | None] = ContextVar("active_scanners", default=None)

_EMPTY: Mapping[Any, Scanner] = MappingProxyType({})


class ScannerRegistry:
    """Scanner lookup tables. Never mutated after construction."""

    __slots__ = ("_types", "_capabilities", "_kinds", "_default")

    def __init__(
        self,
        types: Mapping[TypeDescriptor, Scanner] = _EMPTY,
        capabilities: tuple[tuple[type, Scanner], ...] = (),
        kinds: Mapping[Kind, Scanner] = _EMPTY,
        default: Scanner | None = None,
    ) -> None:
        self._types = MappingProxyType(dict(types))
        self._capabilities = tuple(capabilities)
        self._kinds = MappingProxyType(dict(kinds))
        self._default = default

    # ─────────────────────────────────────────────────────────────────
    # Builders
    # ─────────────────────────────────────────────────────────────────

    def with_type_scanner(self, target: TypeDescriptor | Any, scanner: Scanner) -> ScannerRegistry:
        """Copy with ``scanner`` registered for one exact type (descriptor or annotation)."""
        key = target if isinstance(target, TypeDescriptor) else describe(target)
        return ScannerRegistry({**self._types, key: scanner}, self._capabilities, self._kinds, self._default)

    def with_capability_scanner(self, capability: type, scanner: Scanner) -> ScannerRegistry:
        """Copy with ``scanner`` registered for every type satisfying ``capability``.

        Re-registering a capability replaces its scanner in place.
        """
        caps = [(cap, scanner if cap is capability else fn) for cap, fn in self._capabilities]
        if all(cap is not capability for cap, _ in self._capabilities):
            caps.append((capability, scanner))
        return ScannerRegistry(self._types, tuple(caps), self._kinds, self._default)

    def with_kind_scanner(self, kind: Kind, scanner: Scanner) -> ScannerRegistry:
        return ScannerRegistry(self._types, self._capabilities, {**self._kinds, kind: scanner}, self._default)

    def with_default_scanner(self, scanner: Scanner | None) -> ScannerRegistry:
        return ScannerRegistry(self._types, self._capabilities, self._kinds, scanner)

    # ─────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────

    @property
    def default(self) -> Scanner | None:
        return self._default

    def candidates(self, target: TypeDescriptor) -> list[Scanner]:
        """Scanners applicable to ``target`` in the order they are tried."""
        found: list[Scanner] = []
        if (exact := self._types.get(target)) is not None:
            found.append(exact)
        found.extend(fn for cap, fn in self._capabilities if target.satisfies(cap))
        if (by_kind := self._kinds.get(target.kind)) is not None:
            found.append(by_kind)
        if self._default is not None:
            found.append(self._default)
        return found

    def scan(self, text: str, target: TypeDescriptor) -> Any:
        """Run the first candidate that does not decline ``target``.

        Raises:
            TypeNotSupported: If every candidate declines or none exists
            Exception: Whatever the chosen scanner raises on bad input
        """
        token = _active.set(self)
        try:
            for scanner in self.candidates(target):
                try:
                    return scanner(text, target)
                except TypeNotSupported as exc:
                    if exc.target != target:
                        raise
            raise TypeNotSupported(target, text)
        finally:
            _active.reset(token)

    def __repr__(self) -> str:
        return (f"ScannerRegistry(types={len(self._types)}, capabilities={len(self._capabilities)}, "
                f"kinds={len(self._kinds)}, default={self._default is not None})")


def active_registry() -> ScannerRegistry | None:
    """Registry currently scanning on this thread/task, if any."""
    return _active.get()
