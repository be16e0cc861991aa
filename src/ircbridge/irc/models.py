"""Connection parameters, client state and the transport link."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ircbridge.irc.transport import Transport

# Seconds allowed for the TCP connect before ConnectTimeout.
CONNECT_TIMEOUT = 10.0


@dataclass(frozen=True)
class ConnectionParams:
    """Where and as whom to connect. Set once at construction."""

    host: str
    port: int
    username: str
    nickname: str
    use_tls: bool = False
    skip_cert_validation: bool = False


class ClientState(Enum):
    DEAD = auto()
    STARTING = auto()
    RUNNING = auto()


@dataclass(frozen=True)
class NotConnected:
    """No transport: before start, during connect, or after teardown."""


@dataclass(frozen=True)
class Connected:
    """Live transport owned by the client."""

    transport: Transport


Link = NotConnected | Connected

NOT_CONNECTED = NotConnected()
