"""Blocking IRC client: one connection, one read-loop thread, many writers."""

from __future__ import annotations

import re
import threading

from loguru import logger

from ircbridge.errors import MalformedLine, NotRunning
from ircbridge.events import Disconnected, EventHooks, WriteFailed
from ircbridge.irc.dispatcher import CommandDispatcher
from ircbridge.irc.models import ClientState, ConnectionParams, Connected
from ircbridge.irc.parser import parse_line
from ircbridge.irc.state import ConnectionStateMachine
from ircbridge.irc.transport import Transport

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class IRCClient:
    """Minimal IRC client.

    ``start()`` connects, registers (NICK/USER) and runs the read loop until
    the connection ends; run it on a dedicated thread. Event handlers
    registered on ``events`` run synchronously on that thread and may call the
    write methods, which any thread can use while the client is running.
    Write methods raise ValueError for arguments containing CR or LF.

    A failed write closes the connection; the read loop then reports
    ``WriteFailed`` followed by ``Disconnected``. When ``close()`` ends the
    client instead, those final events are delivered on the caller's thread.

    A client runs once. After it stops, construct a new instance.
    """

    def __init__(
        self,
        params: ConnectionParams,
        *,
        events: EventHooks | None = None,
        log_raw: bool = False,
        strict: bool = False,
    ) -> None:
        self.params = params
        self.events = events or EventHooks()
        self.log_raw = log_raw
        self.strict = strict
        self._state = ConnectionStateMachine()
        self._dispatcher = CommandDispatcher(self)
        self._failure_lock = threading.Lock()
        self._write_failure: WriteFailed | None = None

    def __repr__(self) -> str:
        return (
            f"<IRCClient {self.params.nickname}@{self.params.host}:{self.params.port} "
            f"{self._state.state.name}>"
        )

    @property
    def state(self) -> ClientState:
        return self._state.state

    def is_alive(self) -> bool:
        return self._state.is_running()

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Connect and process server lines until the connection ends.

        Raises AlreadyRunning if this client was started before, and the
        connect errors (ConnectTimeout, ConnectError, TlsError) if the
        connection cannot be established. In strict mode a malformed line
        ends the loop with MalformedLine.
        """
        self._state.begin_start()
        reason = "connection closed"
        try:
            transport = self._connect()
            if transport is None:
                reason = "closed while connecting"
                return
            self._register()
            reason = self._read_loop(transport)
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            raise
        finally:
            self._teardown(reason)

    def close(self) -> None:
        """Release the connection now. Unblocks the read loop; idempotent."""
        self._teardown("closed by caller")

    def _connect(self) -> Transport | None:
        params = self.params
        logger.info(
            "Connecting to IRC {}:{}{}",
            params.host,
            params.port,
            " (TLS)" if params.use_tls else "",
        )
        transport = Transport.connect(
            params.host,
            params.port,
            tls=params.use_tls,
            skip_cert_validation=params.skip_cert_validation,
        )
        try:
            self._state.mark_running(transport)
        except NotRunning:
            # close() won the race while we were connecting
            transport.close()
            return None
        logger.info("IRC connected to {}:{}", params.host, params.port)
        return transport

    def _register(self) -> None:
        username = self.params.username
        try:
            self._write(f"NICK {self.params.nickname}")
            self._write(f"USER {username} 0 * :{username}")
        except NotRunning:
            logger.debug("IRC client closed before registration")

    def _read_loop(self, transport: Transport) -> str:
        raw_level = "INFO" if self.log_raw else "DEBUG"
        while True:
            try:
                line = transport.read_line()
                if line is None:
                    return self._failure_reason() or "end of stream"
                logger.log(raw_level, "> {}", line)
                parsed = parse_line(line)
            except MalformedLine as exc:
                logger.error("IRC server sent malformed message: {!r}", exc.line)
                if self.strict:
                    raise
                continue
            except OSError as exc:
                logger.error("IRC read failed: {}", exc)
                return self._failure_reason() or f"read error: {exc}"

            try:
                self._dispatcher.handle(parsed)
            except NotRunning:
                return "closed by caller"

    def _failure_reason(self) -> str | None:
        with self._failure_lock:
            failure = self._write_failure
        return f"write failed: {failure.error}" if failure else None

    def _teardown(self, reason: str) -> None:
        link = self._state.mark_dead()
        if link is None:
            return
        if isinstance(link, Connected):
            link.transport.close()
            logger.info("IRC disconnected from {}:{} ({})", self.params.host, self.params.port, reason)
        with self._failure_lock:
            failure = self._write_failure
        if failure is not None:
            self.events.dispatch(self, failure)
        self.events.dispatch(self, Disconnected(reason=reason))

    # -- writes ------------------------------------------------------------

    def _write(self, line: str) -> None:
        if "\r" in line or "\n" in line:
            raise ValueError(f"IRC line must not contain line breaks: {line!r}")
        transport = self._state.require_transport()
        try:
            transport.write_line(line)
        except OSError as exc:
            logger.warning("IRC write failed, closing connection: {}", exc)
            with self._failure_lock:
                if self._write_failure is None:
                    self._write_failure = WriteFailed(line=line, error=str(exc))
            # The read loop sees end of stream and reports the failure from its thread.
            transport.close()

    def send_message(self, target: str, text: str) -> None:
        """PRIVMSG target; multi-line text goes out as one PRIVMSG per line.

        Text made only of line breaks sends nothing.
        """
        for part in _LINE_BREAK.split(text):
            if part:
                self._write(f"PRIVMSG {target} :{part}")

    def execute_raw(self, line: str) -> None:
        """Send a raw protocol line as-is (CRLF is added)."""
        self._write(line)

    def set_self_mode(self, mode: str) -> None:
        self._write(f"MODE {self.params.nickname} {mode}")

    def join_channel(self, channel: str) -> None:
        self._write(f"JOIN {channel}")

    def request_disconnect(self, reason: str | None = None) -> None:
        """Send QUIT; the server closes the connection and the loop ends."""
        self._write("QUIT" if reason is None else f"QUIT :{reason}")
