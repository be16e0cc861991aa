"""IRC client domain exceptions."""

from __future__ import annotations


class IRCError(Exception):
    """Base for IRC client errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class ConnectTimeout(IRCError):
    """No TCP connection within the connect timeout."""


class ConnectError(IRCError):
    """Socket-level failure while connecting."""


class TlsError(IRCError):
    """TLS handshake or certificate validation failure."""


class NotRunning(IRCError):
    """Write attempted while the client is not running."""


class AlreadyRunning(IRCError):
    """start() called on a client that is starting, running, or already used."""


class MalformedLine(IRCError):
    """Server sent a line that does not parse as an IRC command."""

    def __init__(self, line: str | None, reason: str = "malformed line") -> None:
        super().__init__(f"{reason}: {line!r}", code="malformed_line")
        self.line = line


class ConfigurationError(IRCError):
    """Config validation or load failure."""


__all__ = [
    "AlreadyRunning",
    "ConfigurationError",
    "ConnectError",
    "ConnectTimeout",
    "IRCError",
    "MalformedLine",
    "NotRunning",
    "TlsError",
]
