"""Connection lifecycle: Dead -> Starting -> Running -> Dead, once per client."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from ircbridge.errors import AlreadyRunning, NotRunning
from ircbridge.irc.models import NOT_CONNECTED, ClientState, Connected, Link

if TYPE_CHECKING:
    from ircbridge.irc.transport import Transport


class ConnectionStateMachine:
    """Lock-guarded client state plus the transport link it gates.

    The transport is only reachable through ``require_transport`` while
    Running, so a write before connect or after teardown cannot find one.
    This lock is separate from the transport's write lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = ClientState.DEAD
        self._link: Link = NOT_CONNECTED
        self._used = False

    @property
    def state(self) -> ClientState:
        with self._lock:
            return self._state

    def is_running(self) -> bool:
        with self._lock:
            return self._state is ClientState.RUNNING

    def begin_start(self) -> None:
        """Dead -> Starting. Only the first call on a fresh client succeeds."""
        with self._lock:
            if self._state is not ClientState.DEAD:
                raise AlreadyRunning(
                    "This client is already running (or still starting).",
                    code="already_running",
                )
            if self._used:
                raise AlreadyRunning(
                    "This client has already run; construct a new one.",
                    code="client_spent",
                )
            self._used = True
            self._state = ClientState.STARTING

    def mark_running(self, transport: Transport) -> None:
        """Starting -> Running with the freshly connected transport."""
        with self._lock:
            if self._state is not ClientState.STARTING:
                raise NotRunning(
                    f"Cannot enter RUNNING from {self._state.name}.",
                    code="bad_transition",
                )
            self._link = Connected(transport)
            self._state = ClientState.RUNNING

    def require_transport(self) -> Transport:
        """Transport of a running client, else NotRunning."""
        with self._lock:
            link = self._link
            if self._state is not ClientState.RUNNING or not isinstance(link, Connected):
                raise NotRunning("This client is not running.", code="not_running")
            return link.transport

    def mark_dead(self) -> Link | None:
        """Enter Dead. Returns the link being released, or None if already Dead.

        Only the first call after a start gets the link, so the caller can run
        teardown exactly once.
        """
        with self._lock:
            if self._state is ClientState.DEAD:
                return None
            link = self._link
            self._state = ClientState.DEAD
            self._link = NOT_CONNECTED
        return link
