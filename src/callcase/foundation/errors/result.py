"""Result type returned by every invocation convention.

A call either succeeds with the function's results (``Ok([...])``) or fails
with an error value (``Err(e)``). The error value is whatever the wrapped
function returned as its error result, or an ``InvocationError`` when the
arguments could not be bound.

Functions may declare ``-> Result[T, E]`` themselves; wrappers recognize that
annotation as an error result and pass ``Err`` values through untouched.

Example:
    >>> def divide(a: float, b: float) -> Result[float, str]:
    ...     return Err("division by zero") if b == 0 else Ok(a / b)
    >>> divide(1, 0).unwrap_err()
    'division by zero'
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, TypeVar, cast

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


class Result(Generic[T, E]):
    """Success (``Ok``) or failure (``Err``) carrying one value."""

    __slots__ = ("_value", "_is_ok")
    __match_args__ = ("_value",)

    def __init__(self, value: T | E, is_ok: bool) -> None:
        """Private constructor. Use Ok() or Err() instead."""
        self._value: T | E = value
        self._is_ok: bool = is_ok

    def is_ok(self) -> bool:
        return self._is_ok

    def is_err(self) -> bool:
        return not self._is_ok

    # ─────────────────────────────────────────────────────────────────
    # Extraction
    # ─────────────────────────────────────────────────────────────────

    def unwrap(self) -> T:
        """Extract the Ok value.

        Raises:
            RuntimeError: If Result is Err. An exception error value is
                chained as the cause.
        """
        if self._is_ok:
            return cast(T, self._value)
        cause = self._value if isinstance(self._value, BaseException) else None
        raise RuntimeError(f"Called unwrap() on Err value: {self._value}") from cause

    def unwrap_err(self) -> E:
        """Extract the Err value.

        Raises:
            RuntimeError: If Result is Ok
        """
        if not self._is_ok:
            return cast(E, self._value)
        raise RuntimeError(f"Called unwrap_err() on Ok value: {self._value}")

    def unwrap_or(self, default: T) -> T:
        return cast(T, self._value) if self._is_ok else default

    def expect(self, msg: str) -> T:
        """Extract Ok value, raising RuntimeError with ``msg`` on Err."""
        if self._is_ok:
            return cast(T, self._value)
        raise RuntimeError(f"{msg}: {self._value}")

    def ok(self) -> T | None:
        """Ok value or None."""
        return cast(T, self._value) if self._is_ok else None

    def err(self) -> E | None:
        """Err value or None."""
        return cast(E, self._value) if not self._is_ok else None

    # ─────────────────────────────────────────────────────────────────
    # Composition
    # ─────────────────────────────────────────────────────────────────

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        """Apply ``f`` to the Ok value, leaving Err unchanged."""
        return Ok(f(cast(T, self._value))) if self._is_ok else Err(cast(E, self._value))

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]:
        """Apply ``f`` to the Err value, leaving Ok unchanged."""
        return Err(f(cast(E, self._value))) if not self._is_ok else Ok(cast(T, self._value))

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain an operation that can itself fail."""
        return f(cast(T, self._value)) if self._is_ok else Err(cast(E, self._value))

    def match(self, *, ok: Callable[[T], U], err: Callable[[E], U]) -> U:
        """Exhaustive case analysis.

        Example:
            >>> wrapper.call_with_text(None, "2", "3").match(
            ...     ok=lambda results: f"sum={results[0]}",
            ...     err=lambda e: f"failed: {e}",
            ... )
            'sum=5'
        """
        return ok(cast(T, self._value)) if self._is_ok else err(cast(E, self._value))

    # ─────────────────────────────────────────────────────────────────
    # Dunder Methods
    # ─────────────────────────────────────────────────────────────────

    def __bool__(self) -> bool:
        return self._is_ok

    def __repr__(self) -> str:
        return f"{'Ok' if self._is_ok else 'Err'}({self._value!r})"

    __str__ = __repr__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._is_ok == other._is_ok and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._is_ok, self._value))

    def __iter__(self) -> Iterator[T]:
        """Yield the Ok value, nothing for Err."""
        if self._is_ok:
            yield cast(T, self._value)


def Ok(value: T) -> Result[T, E]:  # noqa: N802
    """Construct the success variant."""
    return Result(value, is_ok=True)


def Err(error: E) -> Result[T, E]:  # noqa: N802
    """Construct the failure variant."""
    return Result(error, is_ok=False)


def sequence(results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """Collect Ok values into a list, stopping at the first Err.

    Example:
        >>> sequence([Ok(1), Ok(2)]).unwrap()
        [1, 2]
    """
    values: list[T] = []
    for result in results:
        if result.is_err():
            return Err(result.unwrap_err())
        values.append(result.unwrap())
    return Ok(values)
