"""Socket transport: connect, optional TLS upgrade, CRLF line framing."""

from __future__ import annotations

import contextlib
import socket
import ssl
import threading

from loguru import logger

from ircbridge.errors import ConnectError, ConnectTimeout, MalformedLine, TlsError
from ircbridge.irc.models import CONNECT_TIMEOUT

_CRLF = "\r\n"
# 512 bytes plus room for IRCv3 message tags.
MAX_LINE_BYTES = 8192


def tls_context(skip_cert_validation: bool = False) -> ssl.SSLContext:
    """Client context; with skip_cert_validation any peer certificate is accepted."""
    context = ssl.create_default_context()
    if skip_cert_validation:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def upgrade_tls(
    sock: socket.socket,
    server_hostname: str,
    *,
    skip_cert_validation: bool = False,
) -> ssl.SSLSocket:
    """Wrap a connected socket in TLS. Closes ``sock`` on failure."""
    context = tls_context(skip_cert_validation)
    try:
        return context.wrap_socket(sock, server_hostname=server_hostname)
    except OSError as exc:
        sock.close()
        raise TlsError(
            f"TLS handshake with {server_hostname} failed: {exc}",
            code="tls_failed",
            original_error=exc,
        ) from exc


class Transport:
    """Owns one connected socket (plain or TLS) for a single connection attempt.

    Writers are serialized by an internal lock so concurrent callers never
    interleave partial lines. Reads are meant for a single thread. ``close``
    is the only way to interrupt a blocked ``read_line``.
    """

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._write_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = False

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        *,
        tls: bool = False,
        skip_cert_validation: bool = False,
        timeout: float = CONNECT_TIMEOUT,
    ) -> Transport:
        """Open a stream socket to host:port, upgrading to TLS when asked."""
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except TimeoutError as exc:
            raise ConnectTimeout(
                f"IRC connection to {host}:{port} timed out after {timeout:g}s",
                code="connect_timeout",
                original_error=exc,
            ) from exc
        except OSError as exc:
            raise ConnectError(
                f"IRC connection to {host}:{port} failed: {exc}",
                code="connect_failed",
                original_error=exc,
            ) from exc
        logger.debug("TCP connected to {}:{}", host, port)

        if tls:
            if skip_cert_validation:
                logger.warning("TLS certificate validation disabled for {}", host)
            sock = upgrade_tls(sock, host, skip_cert_validation=skip_cert_validation)
            logger.debug("TLS established with {} ({})", host, sock.version())

        # Reads block until data, EOF or close().
        sock.settimeout(None)
        return cls(sock)

    @property
    def closed(self) -> bool:
        return self._closed

    def write_line(self, text: str) -> None:
        """Send ``text`` followed by CRLF. Raises OSError if the socket is gone."""
        data = (text + _CRLF).encode("utf-8")
        with self._write_lock:
            self._sock.sendall(data)

    def read_line(self) -> str | None:
        """Block for the next line, without its terminator. None at end of stream.

        A line longer than MAX_LINE_BYTES is read up to its terminator and
        discarded; MalformedLine is raised carrying its first bytes.
        """
        try:
            raw = self._reader.readline(MAX_LINE_BYTES)
            if len(raw) >= MAX_LINE_BYTES and not raw.endswith(b"\n"):
                self._discard_rest_of_line()
                head = raw[:64].decode("utf-8", errors="replace")
                raise MalformedLine(head, f"line longer than {MAX_LINE_BYTES} bytes")
        except (OSError, ValueError):
            if self._closed:
                return None
            raise
        if not raw:
            return None
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def _discard_rest_of_line(self) -> None:
        while True:
            chunk = self._reader.readline(MAX_LINE_BYTES)
            if not chunk or chunk.endswith(b"\n"):
                return

    def close(self) -> None:
        """Release the socket. Safe to call more than once, from any thread."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        # shutdown() wakes a reader blocked in recv(); close() alone may not.
        with contextlib.suppress(OSError):
            self._sock.shutdown(socket.SHUT_RDWR)
        with contextlib.suppress(OSError):
            self._reader.close()
        self._sock.close()
