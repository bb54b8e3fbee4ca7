"""
Unit tests for transports and the record serializer.

Tests cover:
- InMemoryTransport replay and recording
- SocketTransport against a local listener
- JSON record serialization
"""

import socket
import threading

import pytest

from sdk.orientdb_sdk.errors import (
    ConnectionError,
    SerializationError,
    ShortReadError,
    TransportError,
)
from sdk.orientdb_sdk.memory import InMemoryTransport
from sdk.orientdb_sdk.serializer import JsonRecordSerializer, RecordSerializer
from sdk.orientdb_sdk.transport import SocketTransport, Transport


class TestInMemoryTransport:
    """Tests for InMemoryTransport."""

    @pytest.fixture
    def transport(self):
        return InMemoryTransport(b"\x01\x02\x03")

    def test_satisfies_protocol(self, transport):
        assert isinstance(transport, Transport)

    def test_reads_in_order(self, transport):
        """Queued bytes come back in order."""
        assert transport.read(2) == b"\x01\x02"
        assert transport.pending == 1
        assert transport.read(1) == b"\x03"

    def test_feed_appends(self, transport):
        transport.read(3)
        transport.feed(b"\x04")

        assert transport.read(1) == b"\x04"

    def test_read_past_end(self, transport):
        """Reading more than is queued raises ShortReadError."""
        with pytest.raises(ShortReadError):
            transport.read(4)

    def test_records_writes(self, transport):
        """Writes are kept both joined and per call."""
        transport.write(b"ab")
        transport.write(b"c")

        assert transport.sent == b"abc"
        assert transport.writes == [b"ab", b"c"]

    def test_closed(self, transport):
        """A closed transport refuses reads and writes."""
        transport.close()

        assert not transport.is_open
        with pytest.raises(TransportError, match="closed"):
            transport.read(1)
        with pytest.raises(TransportError):
            transport.write(b"x")


class TestSocketTransport:
    """Tests for SocketTransport against a local listener."""

    @pytest.fixture
    def server(self):
        """Listener that sends a greeting, then echoes one message."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)

        def serve():
            conn, _ = listener.accept()
            with conn:
                conn.sendall(b"\x00\x0f")
                data = conn.recv(5)
                conn.sendall(data)

        thread = threading.Thread(target=serve, daemon=True)
        thread.start()
        yield listener.getsockname()[1]
        thread.join(timeout=5)
        listener.close()

    def test_round_trip(self, server):
        """Bytes written come back through exact-size reads."""
        with SocketTransport("127.0.0.1", server, timeout=5) as transport:
            assert transport.is_open
            assert transport.read(2) == b"\x00\x0f"

            transport.write(b"hello")
            assert transport.read(5) == b"hello"

            with pytest.raises(ShortReadError):
                transport.read(1)

        assert not transport.is_open

    def test_not_connected(self):
        transport = SocketTransport("127.0.0.1", 1)

        with pytest.raises(TransportError, match="Not connected"):
            transport.read(1)

    def test_connection_refused(self):
        """An unreachable server raises ConnectionError with the address."""
        spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        spare.bind(("127.0.0.1", 0))
        port = spare.getsockname()[1]
        spare.close()

        transport = SocketTransport("127.0.0.1", port, timeout=1)

        with pytest.raises(ConnectionError) as exc_info:
            transport.connect()

        assert exc_info.value.address == f"127.0.0.1:{port}"


class TestJsonRecordSerializer:
    """Tests for the default serializer."""

    @pytest.fixture
    def serializer(self):
        return JsonRecordSerializer()

    def test_satisfies_protocol(self, serializer):
        assert isinstance(serializer, RecordSerializer)

    def test_compact_output(self, serializer):
        assert serializer.serialize({"name": "bar"}) == b'{"name":"bar"}'

    def test_deserialize(self, serializer):
        assert serializer.deserialize(b'{"name":"foo"}') == {"name": "foo"}

    def test_empty_content(self, serializer):
        assert serializer.deserialize(b"") is None

    def test_unserializable(self, serializer):
        with pytest.raises(SerializationError):
            serializer.serialize({"when": object()})

    def test_bad_content(self, serializer):
        with pytest.raises(SerializationError, match="Cannot deserialize"):
            serializer.deserialize(b"\xff not json")
