"""Cancellation context passed as the first argument of wrapped functions.

A function whose first parameter is annotated ``Context`` receives the
context given to the invocation method. callcase never inspects it; it only
hands it through.

Example:
    >>> ctx, cancel = Context.background().with_cancel()
    >>> cancel()
    >>> ctx.cancelled
    True
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class Context:
    """Thread-safe cancellation signal with an optional deadline.

    Children are cancelled together with their parent.
    """

    __slots__ = ("_event", "_deadline", "_children", "_lock")

    def __init__(self, deadline: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._children: list[Context] = []
        self._lock = threading.Lock()

    @classmethod
    def background(cls) -> Context:
        """Root context that is never cancelled by itself."""
        return cls()

    def with_cancel(self) -> tuple[Context, Callable[[], None]]:
        """Child context plus the function that cancels it."""
        child = self._child(self._deadline)
        return child, child.cancel

    def with_timeout(self, seconds: float) -> tuple[Context, Callable[[], None]]:
        """Child context that reports cancellation once ``seconds`` elapse."""
        deadline = time.monotonic() + seconds
        if self._deadline is not None:
            deadline = min(deadline, self._deadline)
        child = self._child(deadline)
        return child, child.cancel

    def _child(self, deadline: float | None) -> Context:
        child = Context(deadline)
        with self._lock:
            self._children.append(child)
        if self._event.is_set():
            child.cancel()
        return child

    def cancel(self) -> None:
        """Cancel this context and all contexts derived from it."""
        self._event.set()
        with self._lock:
            children, self._children = self._children, []
        for child in children:
            child.cancel()

    @property
    def deadline(self) -> float | None:
        """Monotonic-clock deadline, or None."""
        return self._deadline

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; returns ``cancelled``."""
        if self._deadline is not None:
            remaining = max(self._deadline - time.monotonic(), 0.0)
            timeout = remaining if timeout is None else min(timeout, remaining)
        self._event.wait(timeout)
        return self.cancelled

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"Context({state}, deadline={self._deadline})"
