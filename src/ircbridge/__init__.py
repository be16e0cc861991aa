"""Minimal IRC client core for chat bridges."""

from ircbridge.events import Disconnected, EventHooks, Join, Leave, Message, Quit, Welcome, WriteFailed
from ircbridge.irc import ConnectionParams, IRCClient

__version__ = "0.1.0"

__all__ = [
    "ConnectionParams",
    "Disconnected",
    "EventHooks",
    "IRCClient",
    "Join",
    "Leave",
    "Message",
    "Quit",
    "Welcome",
    "WriteFailed",
    "__version__",
]
