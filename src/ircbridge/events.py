"""Client event types and the observer registry that delivers them."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger

if TYPE_CHECKING:
    from ircbridge.irc.client import IRCClient


@dataclass(frozen=True)
class Welcome:
    """Registration complete (numeric 001); time to join channels."""


@dataclass(frozen=True)
class Message:
    """PRIVMSG to a channel or to us."""

    source: str  # target the message was sent to, e.g. "#chan" or our nick
    author: str
    content: str


@dataclass(frozen=True)
class Join:
    """User joined a channel."""

    channel: str
    user: str


@dataclass(frozen=True)
class Leave:
    """User parted a channel."""

    channel: str
    user: str
    reason: str | None = None


@dataclass(frozen=True)
class Quit:
    """User disconnected from the network."""

    user: str
    reason: str | None = None


@dataclass(frozen=True)
class WriteFailed:
    """A write raised; the connection is being torn down."""

    line: str
    error: str


@dataclass(frozen=True)
class Disconnected:
    """Read loop ended and the transport was released."""

    reason: str


E = TypeVar("E")
Handler = Callable[["IRCClient", Any], None]


class EventHooks:
    """Per-event-type handler lists.

    ``dispatch`` calls handlers synchronously, in registration order, on the
    calling thread (the client's read loop). Handlers may call the client's
    write methods. A handler that raises is logged and the rest still run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[type, list[Handler]] = {}

    def register(self, event_type: type[E], handler: Callable[[IRCClient, E], None]) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def unregister(self, event_type: type[E], handler: Callable[[IRCClient, E], None]) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def on(self, event_type: type[E]) -> Callable[[Callable[[IRCClient, E], None]], Callable[[IRCClient, E], None]]:
        """Decorator form of ``register``."""

        def decorator(handler: Callable[[IRCClient, E], None]) -> Callable[[IRCClient, E], None]:
            self.register(event_type, handler)
            return handler

        return decorator

    def handlers_for(self, event_type: type) -> list[Handler]:
        with self._lock:
            return list(self._handlers.get(event_type, ()))

    def dispatch(self, client: IRCClient, evt: object) -> None:
        """Deliver evt to every handler registered for its type."""
        for handler in self.handlers_for(type(evt)):
            try:
                handler(client, evt)
            except Exception as exc:
                logger.exception("IRC event handler {} failed on {}: {}", handler, evt, exc)
