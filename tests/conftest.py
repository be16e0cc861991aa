"""Shared fixtures: fake server wired into Transport.connect, loguru capture."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from loguru import logger

from ircbridge.irc.models import ConnectionParams
from ircbridge.irc.transport import Transport
from tests.mocks import FakeServer


@pytest.fixture
def params() -> ConnectionParams:
    return ConnectionParams(host="irc.example", port=6667, username="bridge", nickname="bot")


@pytest.fixture
def server() -> Iterator[FakeServer]:
    """FakeServer that every Transport.connect call in the test connects to."""
    srv = FakeServer()
    with patch.object(Transport, "connect", return_value=srv.client_transport):
        yield srv
    srv.close()
    srv.client_transport.close()


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Formatted loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda msg: messages.append(msg.record["level"].name + " " + msg.record["message"]),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
