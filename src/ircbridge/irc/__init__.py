"""IRC protocol core: transport, parser, state machine, dispatcher, client."""

from ircbridge.irc.client import IRCClient
from ircbridge.irc.dispatcher import CommandDispatcher
from ircbridge.irc.models import ClientState, ConnectionParams
from ircbridge.irc.parser import ParsedCommand, nick_from_origin, parse_line
from ircbridge.irc.state import ConnectionStateMachine
from ircbridge.irc.transport import Transport

__all__ = [
    "ClientState",
    "CommandDispatcher",
    "ConnectionParams",
    "ConnectionStateMachine",
    "IRCClient",
    "ParsedCommand",
    "Transport",
    "nick_from_origin",
    "parse_line",
]
