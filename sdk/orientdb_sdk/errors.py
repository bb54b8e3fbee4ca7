"""
Error types for the OrientDB SDK.

This module defines all exception types raised by the SDK:
- OrientDbError: Base exception
- TransportError: Short reads, resets and other I/O failures
- ProtocolError: The byte stream violated the protocol
- ServerError: The server answered with an error preamble
- SessionError: Operation attempted without an open session
- InvalidOptionError: Caller supplied a bad option mapping

Invariants:
    - All errors inherit from OrientDbError
    - Protocol violations name the offending value
    - Nothing at this layer retries; errors propagate to the caller
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ServerException


class OrientDbError(Exception):
    """Base exception for all OrientDB SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ORIENTDB_ERROR"
        self.details = details or {}


class TransportError(OrientDbError):
    """The byte stream to the server failed.

    Raised when:
    - The connection is reset or closed
    - A write cannot be completed
    - A read returns fewer bytes than required
    """

    def __init__(self, message: str, code: Optional[str] = None, **details: Any) -> None:
        super().__init__(message, code=code or "TRANSPORT_ERROR", details=details)


class ShortReadError(TransportError):
    """Fewer bytes were available than a field required."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Short read: expected {expected} bytes, got {received}",
            code="SHORT_READ",
            expected=expected,
            received=received,
        )
        self.expected = expected
        self.received = received


class ConnectionError(TransportError):
    """Failed to connect to the OrientDB server."""

    def __init__(self, message: str, address: Optional[str] = None) -> None:
        super().__init__(message, code="CONNECTION_ERROR", address=address)
        self.address = address


class ProtocolError(OrientDbError):
    """The server sent bytes this client cannot interpret.

    A protocol error leaves the stream position undefined; the connection
    must not be reused afterwards.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code or "PROTOCOL_ERROR", details=details)


class UnsupportedRecordTypeError(ProtocolError):
    """A record carried a type tag other than document."""

    def __init__(self, record_type: int) -> None:
        super().__init__(
            f"Unsupported record type: {_describe_tag(record_type)}",
            code="UNSUPPORTED_RECORD_TYPE",
            details={"record_type": record_type},
        )
        self.record_type = record_type


class UnsupportedPayloadStatusError(ProtocolError):
    """A payload loop met a status byte it does not know."""

    def __init__(self, status: int) -> None:
        super().__init__(
            f"Unsupported payload status: {_describe_tag(status)}",
            code="UNSUPPORTED_PAYLOAD_STATUS",
            details={"status": status},
        )
        self.status = status


class UnsupportedOperationError(ProtocolError):
    """Operation or command layout not defined by the active revision."""

    def __init__(self, operation: str, version: int) -> None:
        super().__init__(
            f"'{operation}' is not available in protocol revision {version}",
            code="UNSUPPORTED_OPERATION",
            details={"operation": operation, "version": version},
        )
        self.operation = operation
        self.version = version


class ProtocolVersionError(ProtocolError):
    """No registered revision can talk to the server."""

    def __init__(self, message: str, version: Optional[int] = None) -> None:
        super().__init__(message, code="PROTOCOL_VERSION", details={"version": version})
        self.version = version


class ServerError(OrientDbError):
    """The server reported a failure in the response preamble.

    Attributes:
        session: Session id echoed in the error preamble
        exceptions: Server-side exception chain, outermost first
    """

    def __init__(
        self,
        session: int,
        exceptions: Sequence[ServerException],
    ) -> None:
        exceptions = list(exceptions)
        if exceptions:
            first = exceptions[0]
            msg = f"{first.exception_class}: {first.message}"
        else:
            msg = "Server reported an error without details"

        super().__init__(
            msg,
            code="SERVER_ERROR",
            details={
                "session": session,
                "exceptions": [(e.exception_class, e.message) for e in exceptions],
            },
        )
        self.session = session
        self.exceptions = exceptions


class SerializationError(OrientDbError):
    """Record content could not be serialized or deserialized."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="SERIALIZATION_ERROR")


class SessionError(OrientDbError):
    """Operation requires a session that has not been opened."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="SESSION_ERROR")


class InvalidOptionError(OrientDbError):
    """Option value cannot be used for the operation."""

    def __init__(self, message: str, option: Optional[str] = None) -> None:
        super().__init__(message, code="INVALID_OPTION", details={"option": option})
        self.option = option


class UnknownOptionError(InvalidOptionError):
    """Unknown key in an options mapping.

    Includes suggestions for similar option names.

    Attributes:
        option: The unknown option
        operation: The operation it was passed to
        suggestions: Similar option names
    """

    def __init__(
        self,
        option: str,
        operation: str,
        suggestions: Optional[List[str]] = None,
    ) -> None:
        suggestions = suggestions or []
        msg = f"Unknown option '{option}' for '{operation}'"
        if suggestions:
            msg += f". Did you mean: {', '.join(suggestions)}?"

        super().__init__(msg, option=option)
        self.code = "UNKNOWN_OPTION"
        self.details.update({"operation": operation, "suggestions": suggestions})
        self.operation = operation
        self.suggestions = suggestions


def _describe_tag(value: int) -> str:
    """Render a status/type byte with its character when printable."""
    if 32 <= value < 127:
        return f"{value} ({chr(value)!r})"
    return str(value)
