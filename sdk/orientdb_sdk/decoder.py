"""
Response decoding for the OrientDB binary protocol.

This module provides the revision-independent parts of reading a response:
- The generic preamble (status byte, echoed session, error chain)
- The record-load payload loop
- The command-result dispatch
- The cluster list frame

The exact shape of a record or cluster entry differs between revisions, so
the loops take the entry reader as an argument and the revision tables
decide which one is used.

Invariants:
    - Every loop either returns the full structure or raises
    - Unknown status or record-type bytes are never skipped; skipping would
      desynchronise every later read on the connection
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from .codec import Reader, read_i8, read_i16, read_i32, read_string
from .constants import PayloadStatus, RecordType, Status
from .errors import (
    ProtocolError,
    ServerError,
    UnsupportedPayloadStatusError,
    UnsupportedRecordTypeError,
)
from .models import Record, ServerException

logger = logging.getLogger(__name__)

T = TypeVar("T")

RecordReader = Callable[[Reader], Any]
Deserialize = Callable[[bytes], Any]


def read_response(reader: Reader) -> int:
    """Read the generic response preamble.

    Returns:
        The session id echoed by the server

    Raises:
        ServerError: If the status byte reports a failure
    """
    status = read_i8(reader)
    if status not in (Status.OK, Status.ERROR):
        raise ProtocolError(
            f"Unknown response status: {status}",
            details={"status": status},
        )

    session = read_i32(reader)
    if status == Status.ERROR:
        raise read_server_error(reader, session)

    return session


def read_server_error(reader: Reader, session: int) -> ServerError:
    """Read the exception chain that follows an error preamble.

    Each link is announced by a 1 byte; a 0 byte ends the chain.
    """
    exceptions = []
    while read_i8(reader) == 1:
        exceptions.append(
            ServerException(
                exception_class=read_string(reader),
                message=read_string(reader),
            )
        )

    error = ServerError(session, exceptions)
    logger.debug(f"S: ERROR session={session} {error.message}")
    return error


def read_list(reader: Reader, read_entry: Callable[[Reader], T]) -> list[T]:
    """Read an i16 count followed by that many entries."""
    count = read_i16(reader)
    return [read_entry(reader) for _ in range(count)]


def require_document(record: Record) -> Record:
    """Raise unless the record is a document."""
    if record.record_type != RecordType.DOCUMENT:
        raise UnsupportedRecordTypeError(record.record_type)
    return record


def read_payload(
    reader: Reader,
    read_record: RecordReader,
    deserialize: Deserialize,
) -> Optional[Record]:
    """Run the record-load payload loop.

    Consumes status bytes until NO_RECORDS. Each RESULTSET is followed by
    one record; the first record becomes the result and any further ones
    are attached to its ``prefetched`` list.

    Returns:
        The first record with its document decoded, or None if the server
        sent no records

    Raises:
        UnsupportedPayloadStatusError: On a status other than RESULTSET
            or NO_RECORDS
        UnsupportedRecordTypeError: On a record that is not a document
    """
    result: Optional[Record] = None

    status = read_i8(reader)
    while status != PayloadStatus.NO_RECORDS:
        if status != PayloadStatus.RESULTSET:
            raise UnsupportedPayloadStatusError(status)

        record = require_document(read_record(reader))
        record.document = deserialize(record.content)

        if result is None:
            result = record
        else:
            result.prefetched.append(record)

        status = read_i8(reader)

    return result


def read_command_result(
    reader: Reader,
    read_record: RecordReader,
) -> Any:
    """Read the body of a synchronous command response.

    Returns:
        None, a single record, a list of records, or a serialized string
        depending on the leading status byte
    """
    status = read_i8(reader)

    if status == PayloadStatus.NULL:
        return None
    if status == PayloadStatus.RECORD:
        return read_record(reader)
    if status == PayloadStatus.COLLECTION:
        count = read_i32(reader)
        return [read_record(reader) for _ in range(count)]
    if status == PayloadStatus.SERIALIZED:
        return read_string(reader)

    raise UnsupportedPayloadStatusError(status)
