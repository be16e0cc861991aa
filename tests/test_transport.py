"""Tests for the socket transport: framing, close semantics, connect/TLS errors."""

from __future__ import annotations

import socket
import ssl
import threading
from unittest.mock import MagicMock, patch

import pytest

from ircbridge.errors import ConnectError, ConnectTimeout, MalformedLine, TlsError
from ircbridge.irc.transport import MAX_LINE_BYTES, Transport, tls_context, upgrade_tls


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    b.settimeout(5)
    transport = Transport(a)
    yield transport, b
    transport.close()
    b.close()


def _recv_exactly(sock: socket.socket, size: int) -> bytes:
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


class TestFraming:
    def test_write_line_appends_crlf(self, pair):
        # Arrange
        transport, peer = pair

        # Act
        transport.write_line("PRIVMSG #chan :hello world")

        # Assert
        expected = b"PRIVMSG #chan :hello world\r\n"
        assert _recv_exactly(peer, len(expected)) == expected

    def test_write_line_encodes_utf8(self, pair):
        transport, peer = pair

        transport.write_line("PRIVMSG #chan :héllo ✓")

        expected = "PRIVMSG #chan :héllo ✓\r\n".encode()
        assert _recv_exactly(peer, len(expected)) == expected

    def test_read_line_strips_crlf_and_lf(self, pair):
        transport, peer = pair

        peer.sendall(b"PING :a\r\n:x!y@z JOIN #c\n")

        assert transport.read_line() == "PING :a"
        assert transport.read_line() == ":x!y@z JOIN #c"

    def test_read_line_returns_none_at_end_of_stream(self, pair):
        transport, peer = pair

        peer.sendall(b"PING :last\r\n")
        peer.shutdown(socket.SHUT_WR)

        assert transport.read_line() == "PING :last"
        assert transport.read_line() is None

    def test_overlong_line_is_discarded(self, pair):
        # Arrange
        transport, peer = pair
        peer.sendall(b"PRIVMSG #c :" + b"x" * (MAX_LINE_BYTES * 3) + b"\r\nPING :next\r\n")

        # Act
        with pytest.raises(MalformedLine) as exc_info:
            transport.read_line()

        # Assert
        assert exc_info.value.line.startswith("PRIVMSG #c :xxx")
        assert transport.read_line() == "PING :next"

    def test_line_at_limit_is_kept(self, pair):
        transport, peer = pair
        body = "PRIVMSG #c :" + "y" * (MAX_LINE_BYTES - 14)

        peer.sendall(body.encode() + b"\r\n")

        assert transport.read_line() == body

    def test_invalid_utf8_is_replaced(self, pair):
        transport, peer = pair

        peer.sendall(b"PRIVMSG #c :\xff\xfe\r\n")

        assert transport.read_line() == "PRIVMSG #c :��"

    def test_round_trip_between_two_transports(self):
        a, b = socket.socketpair()
        left, right = Transport(a), Transport(b)
        try:
            left.write_line(":srv 001 bot :Welcome to the network")
            assert right.read_line() == ":srv 001 bot :Welcome to the network"
        finally:
            left.close()
            right.close()

    def test_concurrent_writers_do_not_interleave(self, pair):
        # Arrange
        transport, peer = pair
        writers, per_writer = 8, 50
        received: list[bytes] = []
        reader = peer.makefile("rb")

        def read_all():
            for _ in range(writers * per_writer):
                received.append(reader.readline())

        consumer = threading.Thread(target=read_all)
        consumer.start()

        def write(n: int):
            for i in range(per_writer):
                transport.write_line(f"PRIVMSG #chan :writer-{n} line-{i} " + "x" * 200)

        # Act
        threads = [threading.Thread(target=write, args=(n,)) for n in range(writers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)
        consumer.join(5)

        # Assert
        assert len(received) == writers * per_writer
        for line in received:
            assert line.startswith(b"PRIVMSG #chan :writer-")
            assert line.endswith(b"x" * 200 + b"\r\n")


class TestClose:
    def test_close_is_idempotent(self, pair):
        transport, _ = pair

        transport.close()
        transport.close()

        assert transport.closed

    def test_read_after_close_returns_none(self, pair):
        transport, _ = pair

        transport.close()

        assert transport.read_line() is None

    def test_write_after_close_raises_oserror(self, pair):
        transport, _ = pair

        transport.close()

        with pytest.raises(OSError):
            transport.write_line("PING :x")

    def test_close_unblocks_blocked_reader(self, pair):
        # Arrange
        transport, _ = pair
        result: list[str | None] = []
        started = threading.Event()

        def read():
            started.set()
            result.append(transport.read_line())

        reader = threading.Thread(target=read, daemon=True)
        reader.start()
        started.wait(5)

        # Act
        transport.close()
        reader.join(5)

        # Assert
        assert not reader.is_alive()
        assert result == [None]

    def test_peer_sees_end_of_stream_after_close(self, pair):
        transport, peer = pair

        transport.close()

        assert peer.recv(1) == b""


class TestConnect:
    def test_connects_to_listener(self):
        # Arrange
        listener = socket.create_server(("127.0.0.1", 0))
        port = listener.getsockname()[1]

        try:
            # Act
            transport = Transport.connect("127.0.0.1", port)
            conn, _ = listener.accept()
            conn.settimeout(5)
            transport.write_line("NICK bot")

            # Assert
            assert _recv_exactly(conn, 10) == b"NICK bot\r\n"
            transport.close()
            conn.close()
        finally:
            listener.close()

    def test_timeout_raises_connect_timeout(self):
        with patch(
            "ircbridge.irc.transport.socket.create_connection",
            side_effect=TimeoutError("timed out"),
        ) as create:
            with pytest.raises(ConnectTimeout) as exc_info:
                Transport.connect("irc.example", 6667)

        create.assert_called_once_with(("irc.example", 6667), timeout=10.0)
        assert isinstance(exc_info.value.original_error, TimeoutError)

    def test_refused_raises_connect_error(self):
        # Arrange: grab a free port, then stop listening on it
        listener = socket.create_server(("127.0.0.1", 0))
        port = listener.getsockname()[1]
        listener.close()

        # Act / Assert
        with pytest.raises(ConnectError):
            Transport.connect("127.0.0.1", port)

    def test_dns_failure_raises_connect_error(self):
        with patch(
            "ircbridge.irc.transport.socket.create_connection",
            side_effect=socket.gaierror("Name or service not known"),
        ):
            with pytest.raises(ConnectError):
                Transport.connect("no.such.host.invalid", 6667)


class TestTls:
    def test_default_context_validates(self):
        context = tls_context()

        assert context.check_hostname is True
        assert context.verify_mode == ssl.CERT_REQUIRED

    def test_skip_validation_accepts_anything(self):
        context = tls_context(skip_cert_validation=True)

        assert context.check_hostname is False
        assert context.verify_mode == ssl.CERT_NONE

    def test_handshake_failure_closes_socket(self):
        # Arrange
        sock = MagicMock()
        context = MagicMock()
        context.wrap_socket.side_effect = ssl.SSLCertVerificationError("certificate verify failed")

        # Act
        with patch("ircbridge.irc.transport.tls_context", return_value=context):
            with pytest.raises(TlsError):
                upgrade_tls(sock, "irc.example")

        # Assert
        context.wrap_socket.assert_called_once_with(sock, server_hostname="irc.example")
        sock.close.assert_called_once()

    def test_plaintext_server_fails_tls_upgrade(self):
        # Arrange: a server that answers the ClientHello with plain text
        listener = socket.create_server(("127.0.0.1", 0))
        port = listener.getsockname()[1]

        def serve():
            conn, _ = listener.accept()
            conn.sendall(b"NOTICE * :this is not TLS\r\n")
            conn.close()

        server_thread = threading.Thread(target=serve, daemon=True)
        server_thread.start()

        try:
            # Act / Assert
            with pytest.raises(TlsError):
                Transport.connect("127.0.0.1", port, tls=True, skip_cert_validation=True)
        finally:
            server_thread.join(5)
            listener.close()
