"""
OrientDB Python SDK - Client library for the OrientDB binary protocol.

This SDK speaks the OrientDB binary protocol over a plain byte stream:
- Declarative command layouts (CommandDef, FieldDef)
- Protocol revisions layered as override tables (ProtocolVersion)
- Response decoding with strict status and record-type checks
- DbClient for connecting to a server

Example:
    >>> from orientdb_sdk import DbClient
    >>>
    >>> with DbClient("localhost", 2424) as db:
    ...     db.open("test", "admin", "admin")
    ...     record = db.load("#0:10")
    ...     print(record.document)

Invariants:
    - One request in flight per connection
    - Unknown status bytes and record types are errors, never skipped
    - A revision inherits every command and operation it does not override

Version: 1.0.0
"""

from .constants import DRIVER_VERSION

__version__ = DRIVER_VERSION

from .client import DbClient
from .config import ClientSettings
from .errors import (
    ConnectionError,
    InvalidOptionError,
    OrientDbError,
    ProtocolError,
    ProtocolVersionError,
    SerializationError,
    ServerError,
    SessionError,
    ShortReadError,
    TransportError,
    UnknownOptionError,
    UnsupportedOperationError,
    UnsupportedPayloadStatusError,
    UnsupportedRecordTypeError,
)
from .memory import InMemoryTransport
from .models import Cluster, DbOpenResult, Record, RecordCreateResult, RecordId
from .options import QueryClass
from .protocol import Protocol
from .registry import ProtocolVersion, VersionRegistry, get_registry, wrap
from .schema import CommandDef, FieldDef, FieldKind, field
from .serializer import JsonRecordSerializer, RecordSerializer
from .transport import SocketTransport, Transport

__all__ = [
    # Version
    "__version__",
    # Layouts
    "CommandDef",
    "FieldDef",
    "FieldKind",
    "field",
    # Revisions
    "ProtocolVersion",
    "VersionRegistry",
    "get_registry",
    "wrap",
    "Protocol",
    # Client
    "DbClient",
    "ClientSettings",
    "QueryClass",
    # Models
    "RecordId",
    "Record",
    "Cluster",
    "DbOpenResult",
    "RecordCreateResult",
    # Transport and serialization
    "Transport",
    "SocketTransport",
    "InMemoryTransport",
    "RecordSerializer",
    "JsonRecordSerializer",
    # Errors
    "OrientDbError",
    "TransportError",
    "ShortReadError",
    "ConnectionError",
    "ProtocolError",
    "UnsupportedRecordTypeError",
    "UnsupportedPayloadStatusError",
    "UnsupportedOperationError",
    "ProtocolVersionError",
    "ServerError",
    "SerializationError",
    "SessionError",
    "InvalidOptionError",
    "UnknownOptionError",
]
