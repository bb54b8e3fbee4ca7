"""
Wire constants for the OrientDB binary protocol.

This module is the single table of magic values consulted by every command
layout and every decoder:
- Operation codes
- Response and payload statuses
- Record types and sync modes
- Fixed driver identity sent during the handshake

Invariants:
    - Values are part of the wire contract and never change for a revision
    - Every command and decoder reads its constants from here

How to change safely:
    - Add new members; never renumber existing ones
    - Revision-specific values belong in the revision module, not here
"""

from __future__ import annotations

from enum import IntEnum


class Operation(IntEnum):
    """Request operation codes (first byte of every command)."""

    SHUTDOWN = 1
    CONNECT = 2
    DB_OPEN = 3
    DB_CREATE = 4
    DB_CLOSE = 5
    DB_EXIST = 6
    DB_DELETE = 7
    DB_SIZE = 8
    DB_COUNTRECORDS = 9
    RECORD_LOAD = 30
    RECORD_CREATE = 31
    RECORD_UPDATE = 32
    RECORD_DELETE = 33
    COMMAND = 41
    CONFIG_GET = 70
    DB_RELOAD = 73


class Status(IntEnum):
    """First byte of every response."""

    OK = 0
    ERROR = 1


class PayloadStatus(IntEnum):
    """Status bytes that drive the response payload loops."""

    NO_RECORDS = 0
    RESULTSET = 1
    PREFETCHED = 2
    NULL = ord("n")
    RECORD = ord("r")
    SERIALIZED = ord("a")
    COLLECTION = ord("l")


class RecordType(IntEnum):
    """Record type tags. Only DOCUMENT is decoded by this client."""

    RAW = ord("b")
    FLAT = ord("f")
    DOCUMENT = ord("d")


class SyncMode(IntEnum):
    """Write modes for record operations."""

    SYNC = 0
    ASYNC = 1


class RecordFormat(IntEnum):
    """Leading short of a record inside a command result."""

    FULL = 0
    NULL = -2
    RID = -3


# Session id sent before the server has assigned one
NEW_SESSION = -1

# Data segment id meaning "let the server pick"
UNASSIGNED_DATASEGMENT = -1

# Synchronous command execution
COMMAND_MODE_SYNC = ord("s")

# Default for queries without an explicit limit
NO_LIMIT = -1

DRIVER_NAME = "OrientDB Python SDK"
DRIVER_VERSION = "1.0.0"

# Fully qualified query class accepted by every revision
LEGACY_QUERY_CLASS = "com.orientechnologies.orient.core.sql.query.OSQLSynchQuery"

# Single-character query classes understood from revision 15 on
QUERY_CLASS_QUERY = "q"
QUERY_CLASS_COMMAND = "c"

DEFAULT_DATABASE_TYPE = "document"
DEFAULT_STORAGE_TYPE = "local"

DEFAULT_PORT = 2424
