"""Command dispatch: parsed server lines to replies and client events."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from ircbridge.events import Join, Leave, Message, Quit, Welcome

if TYPE_CHECKING:
    from ircbridge.irc.client import IRCClient
    from ircbridge.irc.parser import ParsedCommand

RPL_WELCOME = 1
ERROR_REPLIES = range(400, 600)


class CommandDispatcher:
    """Interprets one ParsedCommand at a time on the read-loop thread."""

    def __init__(self, client: IRCClient) -> None:
        self.client = client
        self._handlers: dict[str, Callable[[ParsedCommand], None]] = {
            "PING": self._handle_ping,
            "PRIVMSG": self._handle_privmsg,
            "JOIN": self._handle_join,
            "PART": self._handle_part,
            "QUIT": self._handle_quit,
        }

    def handle(self, parsed: ParsedCommand) -> None:
        if parsed.is_numeric:
            self._handle_numeric(parsed)
            return
        handler = self._handlers.get(parsed.command.upper())
        if handler is not None:
            handler(parsed)

    def _emit(self, evt: object) -> None:
        self.client.events.dispatch(self.client, evt)

    def _handle_numeric(self, parsed: ParsedCommand) -> None:
        code = int(parsed.command)
        if code == RPL_WELCOME:
            logger.info("IRC registration complete as {}", self.client.params.nickname)
            self._emit(Welcome())
        elif code in ERROR_REPLIES:
            logger.warning("IRC error reply {}: {}", parsed.command, " ".join(parsed.params))

    def _handle_ping(self, parsed: ParsedCommand) -> None:
        if not parsed.params:
            return
        self.client._write(f"PONG {parsed.params[-1]}")  # noqa: SLF001

    def _handle_privmsg(self, parsed: ParsedCommand) -> None:
        nick = parsed.nick
        if nick is None or len(parsed.params) < 2:
            logger.debug("Ignoring PRIVMSG without origin or text: {}", parsed)
            return
        self._emit(Message(source=parsed.params[0], author=nick, content=parsed.params[-1]))

    def _handle_join(self, parsed: ParsedCommand) -> None:
        nick = parsed.nick
        if nick is None or not parsed.params:
            return
        self._emit(Join(channel=parsed.params[-1], user=nick))

    def _handle_part(self, parsed: ParsedCommand) -> None:
        nick = parsed.nick
        if nick is None or not parsed.params:
            return
        reason = parsed.params[1] if len(parsed.params) > 1 else None
        self._emit(Leave(channel=parsed.params[0], user=nick, reason=reason))

    def _handle_quit(self, parsed: ParsedCommand) -> None:
        nick = parsed.nick
        if nick is None:
            return
        reason = parsed.params[-1] if parsed.params else None
        self._emit(Quit(user=nick, reason=reason))
