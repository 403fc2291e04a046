"""Cancellation and request-scoped values passed to notification services."""

from __future__ import annotations

import threading
from typing import Any, Optional, Protocol, runtime_checkable


class Cancelled(Exception):
    """Raised when work is attempted on a cancelled context."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class Context:
    """Carries a cancellation signal and key/value pairs down a call chain.

    A context derived with :meth:`with_value` sees the values and the
    cancellation of its parent; cancelling the child leaves the parent alone.
    """

    def __init__(self, _parent: Optional["Context"] = None) -> None:
        self._parent = _parent
        self._event = threading.Event()
        self._values: dict[Any, Any] = {}

    def _is_cancelled(self) -> bool:
        node: Optional[Context] = self
        while node is not None:
            if node._event.is_set():
                return True
            node = node._parent
        return False

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._event.set()

    def check(self) -> None:
        """Raise :class:`Cancelled` if this context has been cancelled."""
        if self._is_cancelled():
            raise Cancelled()

    def with_value(self, key: Any, value: Any) -> "Context":
        """Return a derived context that maps ``key`` to ``value``."""
        child = Context(_parent=self)
        child._values[key] = value
        return child

    def value(self, key: Any) -> Any:
        """Return the value bound to ``key`` here or in an ancestor, else None."""
        node: Optional[Context] = self
        while node is not None:
            if key in node._values:
                return node._values[key]
            node = node._parent
        return None


@runtime_checkable
class Notifier(Protocol):
    """Anything that can deliver a subject and a message to its destination."""

    def send(self, ctx: Optional[Context], subject: str, message: str) -> None:
        """Deliver the subject and message; raise on failure."""