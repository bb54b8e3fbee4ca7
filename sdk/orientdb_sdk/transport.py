"""
Transport protocol and the TCP implementation.

This module defines the Transport protocol the protocol layer writes to and
reads from, plus SocketTransport for talking to a real server.

Invariants:
    - read(size) returns exactly size bytes or raises TransportError
    - write(data) sends all of data or raises TransportError
    - Requests are strictly sequential; a transport is never shared by two
      in-flight requests

How to change safely:
    - Timeouts and reconnects belong here, never in the protocol layer
    - Keep new transports compatible with the Transport protocol
"""

from __future__ import annotations

import logging
import socket
from abc import abstractmethod
from typing import Any, Optional, Protocol, runtime_checkable

from .errors import ConnectionError, ShortReadError, TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Protocol for byte-stream transports.

    Ordering contract:
        - Bytes are delivered in the order they were written
        - read() blocks until the requested count is available
    """

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write all of data.

        Raises:
            TransportError: If the stream is closed or broken
        """
        ...

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read exactly size bytes.

        Raises:
            ShortReadError: If the stream ends first
            TransportError: For other read failures
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the underlying stream."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the transport can still be used."""
        ...


class SocketTransport:
    """Blocking TCP transport.

    Example:
        >>> with SocketTransport("localhost", 2424) as transport:
        ...     server_version = read_i16(transport)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 2424,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize the transport.

        Args:
            host: Server hostname
            port: Server binary port
            timeout: Socket timeout in seconds, None blocks forever
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        """Open the TCP connection.

        Raises:
            ConnectionError: If the server cannot be reached
        """
        if self._sock is not None:
            return

        try:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            raise ConnectionError(f"Failed to connect: {e}", address=self.address) from e

        logger.debug(f"Connected to OrientDB server at {self.address}")

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None
                logger.debug(f"Disconnected from {self.address}")

    def write(self, data: bytes) -> None:
        sock = self._ensure_open()
        try:
            sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Write to {self.address} failed: {e}") from e

    def read(self, size: int) -> bytes:
        sock = self._ensure_open()
        chunks = []
        received = 0
        while received < size:
            try:
                chunk = sock.recv(size - received)
            except OSError as e:
                raise TransportError(f"Read from {self.address} failed: {e}") from e
            if not chunk:
                raise ShortReadError(size, received)
            chunks.append(chunk)
            received += len(chunk)
        return b"".join(chunks)

    def _ensure_open(self) -> socket.socket:
        if self._sock is None:
            raise TransportError("Not connected. Call connect() first.")
        return self._sock

    def __enter__(self) -> SocketTransport:
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
