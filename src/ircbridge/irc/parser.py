"""IRC line parsing: one raw protocol line to a structured command.

Lines look like ``[:origin ]COMMAND [middle ...][ :trailing]``. The parser
does not classify numerics; a purely digit command is left to the dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass

from ircbridge.errors import MalformedLine


@dataclass(frozen=True)
class ParsedCommand:
    """Structured form of a single server line."""

    origin: str | None
    command: str
    params: tuple[str, ...] = ()

    @property
    def nick(self) -> str | None:
        """Origin with the ``!user@host`` part removed."""
        if self.origin is None:
            return None
        return nick_from_origin(self.origin)

    @property
    def is_numeric(self) -> bool:
        return self.command.isascii() and self.command.isdigit()


def nick_from_origin(origin: str) -> str:
    """Strip everything at or after ``!`` (``nick!user@host`` -> ``nick``)."""
    return origin.split("!", 1)[0]


def parse_line(line: str | None) -> ParsedCommand:
    """Parse a raw line (without CRLF). Raises MalformedLine on bad input.

    A ``:`` that is the last character of the line leaves the command without
    a trailing parameter rather than adding an empty one.
    """
    if not line:
        raise MalformedLine(line, "empty line")

    origin: str | None = None
    pos = 0
    if line[0] == ":":
        space = line.find(" ")
        if space == -1:
            raise MalformedLine(line, "origin without command")
        origin = line[1:space]
        pos = space + 1

    trailing: str | None = None
    colon = line.find(":", pos)
    if colon == -1:
        segment = line[pos:].strip()
        if not segment:
            raise MalformedLine(line, "missing command")
    else:
        segment = line[pos:colon]
        if colon + 1 < len(line):
            trailing = line[colon + 1 :]

    tokens = [token for token in segment.split(" ") if token]
    if not tokens:
        raise MalformedLine(line, "missing command")
    if not _is_command_token(tokens[0]):
        raise MalformedLine(line, "invalid command token")

    params = tokens[1:]
    if trailing is not None:
        params.append(trailing)
    return ParsedCommand(origin=origin, command=tokens[0], params=tuple(params))


def _is_command_token(token: str) -> bool:
    # Alphabetic verb (PING, PRIVMSG) or three-digit numeric reply.
    if token.isascii() and token.isdigit():
        return len(token) == 3
    return token.isascii() and token.isalpha()
