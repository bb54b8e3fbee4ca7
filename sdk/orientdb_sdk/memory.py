"""
In-memory transport for testing.

This module provides a transport backed by two byte buffers for:
- Unit tests that script server replies byte for byte
- Inspecting exactly what a command put on the wire
- Local development without a running server

Invariants:
    - Replies are consumed in the order they were queued
    - A read past the queued bytes raises ShortReadError, as a closed
      socket would
"""

from __future__ import annotations

import logging

from .errors import ShortReadError, TransportError

logger = logging.getLogger(__name__)


class InMemoryTransport:
    """Transport that replays queued server bytes and records writes.

    Attributes:
        sent: Everything written so far

    Example:
        >>> transport = InMemoryTransport()
        >>> transport.feed(b"\\x00\\x00\\x00\\x00\\x2a")
        >>> session = read_response(transport)
    """

    def __init__(self, incoming: bytes = b"") -> None:
        """Initialize with optional queued server bytes."""
        self._incoming = bytearray(incoming)
        self._pos = 0
        self.sent = bytearray()
        self._open = True
        self._writes: list[bytes] = []

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def pending(self) -> int:
        """Queued bytes not read yet."""
        return len(self._incoming) - self._pos

    @property
    def writes(self) -> list[bytes]:
        """Each write() call as a separate chunk, oldest first."""
        return list(self._writes)

    def feed(self, data: bytes) -> None:
        """Queue bytes for later reads."""
        self._incoming += data

    def write(self, data: bytes) -> None:
        if not self._open:
            raise TransportError("Transport is closed")
        self.sent += data
        self._writes.append(bytes(data))

    def read(self, size: int) -> bytes:
        if not self._open:
            raise TransportError("Transport is closed")
        if size > self.pending:
            raise ShortReadError(size, self.pending)
        chunk = bytes(self._incoming[self._pos:self._pos + size])
        self._pos += size
        return chunk

    def close(self) -> None:
        self._open = False
        logger.debug("InMemoryTransport closed")
