"""Central dispatcher that fans a message out to notification services."""

from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Optional

from notifykit.context import Context, Notifier


class SendNotificationError(Exception):
    """Raised when at least one service failed to send a notification."""


Option = Callable[["Notify"], None]


@dataclass
class Notify:
    """Holds notification services and sends messages to all of them."""

    disabled: bool = False
    _notifiers: list = field(default_factory=list, init=False)

    def _use_services(self, *services: Optional[Notifier]) -> None:
        self._notifiers.extend(s for s in services if s is not None)

    def with_options(self, *options: Optional[Option]) -> "Notify":
        """Apply the given options in order, skipping None, and return self."""
        for option in options:
            if option is not None:
                option(self)
        return self

    def send(self, ctx: Optional[Context], subject: str, message: str) -> None:
        """Send subject and message through all services concurrently.

        Raises SendNotificationError carrying the first failure.
        """
        if self.disabled:
            return
        if ctx is None:
            ctx = Context()
        services = [s for s in self._notifiers if s is not None]
        if not services:
            return
        with ThreadPoolExecutor(max_workers=len(services)) as pool:
            futures = [pool.submit(s.send, ctx, subject, message) for s in services]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            first = next((f.exception() for f in done if f.exception() is not None), None)
        if first is not None:
            raise SendNotificationError(f"{first}: send notification") from first


def enable(n: Optional[Notify]) -> None:
    """Option that enables a Notify instance."""
    if n is not None:
        n.disabled = False


def disable(n: Optional[Notify]) -> None:
    """Option that disables a Notify instance."""
    if n is not None:
        n.disabled = True


def new_with_options(*options: Optional[Option]) -> Notify:
    """Return a new enabled Notify with the given options applied."""
    return Notify().with_options(*options)


def new() -> Notify:
    """Return a new enabled Notify with no services."""
    return new_with_options()


def new_with_services(*services: Optional[Notifier]) -> Notify:
    """Return a new enabled Notify using the given services; None is ignored."""
    n = new()
    n._use_services(*services)
    return n


_std = new()


def default() -> Notify:
    """Return the package-level Notify instance."""
    return _std


def send(ctx: Optional[Context], subject: str, message: str) -> None:
    """Send through the package-level Notify instance."""
    _std.send(ctx, subject, message)