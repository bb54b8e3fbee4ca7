"""
Protocol revision 7: the base command set.

Every later revision inherits from this one. Operations here never name a
layout object directly: they go through ``proto.send()`` and
``proto.call()``, so a newer revision that replaces a layout or a parser
changes what these operations put on and read off the wire without
redefining them.

Layouts:
    connect, db_open, db_create, db_close, db_exist, db_delete, db_reload,
    db_size, db_countrecords, record_load, record_create, record_update,
    record_delete, command, query (command payload)

Parsers:
    read_db_open, read_cluster, read_load_record, read_create_result,
    read_command_record
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .codec import Reader, read_bytes, read_i8, read_i16, read_i32, read_i64, read_string
from .constants import (
    COMMAND_MODE_SYNC,
    DEFAULT_DATABASE_TYPE,
    DEFAULT_STORAGE_TYPE,
    DRIVER_NAME,
    DRIVER_VERSION,
    NEW_SESSION,
    NO_LIMIT,
    Operation,
    RecordFormat,
    RecordType,
    SyncMode,
)
from .decoder import (
    read_command_result,
    read_list,
    read_payload,
    read_response,
    require_document,
)
from .errors import ProtocolError
from .models import Cluster, DbOpenResult, Record, RecordCreateResult, RecordId
from .options import (
    COMMAND_OPTIONS,
    CONNECT_OPTIONS,
    CREATE_DATABASE_OPTIONS,
    LOAD_OPTIONS,
    OPEN_OPTIONS,
    legacy_query_class_name,
    validate_options,
)
from .registry import ProtocolVersion
from .schema import CommandDef, FieldDef, field

logger = logging.getLogger(__name__)

VERSION = 7


def request(
    name: str,
    operation: Operation,
    *fields: FieldDef,
    new_session: bool = False,
) -> CommandDef:
    """Layout with the operation byte and session id in front of fields.

    With new_session the session is fixed to the NEW_SESSION sentinel.
    """
    if new_session:
        session = field("session", "i32", value=NEW_SESSION)
    else:
        session = field("session", "i32")
    return CommandDef(
        name=name,
        fields=(field("operation", "i8", value=operation), session) + fields,
    )


DRIVER_FIELDS = (
    field("driver_name", "string", value=DRIVER_NAME),
    field("driver_version", "string", value=DRIVER_VERSION),
    field("protocol_version", "i16"),
    field("client_id", "string"),
)

CONNECT = request(
    "connect",
    Operation.CONNECT,
    *DRIVER_FIELDS,
    field("user_name", "string"),
    field("user_password", "string"),
    new_session=True,
)

DB_OPEN = request(
    "db_open",
    Operation.DB_OPEN,
    *DRIVER_FIELDS,
    field("database_name", "string"),
    field("user_name", "string"),
    field("user_password", "string"),
    new_session=True,
)

DB_CREATE = request(
    "db_create",
    Operation.DB_CREATE,
    field("database", "string"),
    field("storage_type", "string"),
)

DB_CLOSE = request("db_close", Operation.DB_CLOSE)

DB_EXIST = request("db_exist", Operation.DB_EXIST, field("database", "string"))

DB_DELETE = request("db_delete", Operation.DB_DELETE, field("database", "string"))

DB_RELOAD = request("db_reload", Operation.DB_RELOAD)

DB_SIZE = request("db_size", Operation.DB_SIZE)

DB_COUNTRECORDS = request("db_countrecords", Operation.DB_COUNTRECORDS)

RECORD_LOAD = request(
    "record_load",
    Operation.RECORD_LOAD,
    field("cluster_id", "i16"),
    field("cluster_position", "i64"),
    field("fetch_plan", "string", default=""),
)

RECORD_CREATE = request(
    "record_create",
    Operation.RECORD_CREATE,
    field("cluster_id", "i16"),
    field("record_content", "bytes"),
    field("record_type", "i8", value=RecordType.DOCUMENT),
    field("mode", "i8", value=SyncMode.SYNC),
)

RECORD_UPDATE = request(
    "record_update",
    Operation.RECORD_UPDATE,
    field("cluster_id", "i16"),
    field("cluster_position", "i64"),
    field("record_content", "bytes"),
    field("record_version", "i32"),
    field("record_type", "i8", value=RecordType.DOCUMENT),
    field("mode", "i8", value=SyncMode.SYNC),
)

RECORD_DELETE = request(
    "record_delete",
    Operation.RECORD_DELETE,
    field("cluster_id", "i16"),
    field("cluster_position", "i64"),
    field("record_version", "i32"),
    field("mode", "i8", value=SyncMode.SYNC),
)

COMMAND = request(
    "command",
    Operation.COMMAND,
    field("mode", "i8", value=COMMAND_MODE_SYNC),
    field("payload", "bytes"),
)

# Carried inside COMMAND's payload field, so it has no operation or session.
QUERY = CommandDef(
    name="query",
    fields=(
        field("query_class_name", "string"),
        field("text", "string"),
        field("non_text_limit", "i32", default=NO_LIMIT),
        field("fetch_plan", "string", default=""),
        field("serialized_params", "bytes", default=b""),
    ),
)


# Parsers


def read_db_open(proto, reader: Reader) -> DbOpenResult:
    """Body of a DB_OPEN response, after the generic preamble.

    The body starts with its own session id. The preamble already carried
    one; both are read, in this order, and the body's is the one returned.
    """
    session = read_i32(reader)
    clusters = read_list(reader, lambda r: proto.call("read_cluster", r))
    cluster_config = read_bytes(reader)
    return DbOpenResult(
        session=session,
        clusters=tuple(clusters),
        cluster_config=cluster_config.decode("utf-8") if cluster_config is not None else None,
    )


def read_cluster(proto, reader: Reader) -> Cluster:
    return Cluster(
        name=read_string(reader),
        id=read_i16(reader),
        type=read_string(reader),
    )


def read_load_record(proto, reader: Reader) -> Record:
    """One RECORD_LOAD entry: content, version, type."""
    content = read_bytes(reader) or b""
    version = read_i32(reader)
    record_type = read_i8(reader)
    return Record(record_type=record_type, content=content, version=version)


def read_create_result(proto, reader: Reader, cluster_id: int) -> RecordCreateResult:
    return RecordCreateResult(cluster_id=cluster_id, cluster_position=read_i64(reader))


def read_command_record(proto, reader: Reader) -> Any:
    """One record inside a command result.

    Returns:
        None for a null entry, a RecordId for a bare link, otherwise a
        Record with its document decoded
    """
    fmt = read_i16(reader)

    if fmt == RecordFormat.NULL:
        return None
    if fmt == RecordFormat.RID:
        return RecordId(read_i16(reader), read_i64(reader))
    if fmt != RecordFormat.FULL:
        raise ProtocolError(f"Unknown record format: {fmt}", details={"format": fmt})

    record_type = read_i8(reader)
    rid = RecordId(read_i16(reader), read_i64(reader))
    version = read_i32(reader)
    content = read_bytes(reader) or b""

    record = require_document(
        Record(record_type=record_type, content=content, version=version, rid=rid)
    )
    record.document = proto.serializer.deserialize(content)
    return record


# Operations


def connect(
    proto,
    transport,
    user: str,
    password: str,
    options: Optional[Mapping[str, Any]] = None,
) -> int:
    options = validate_options("connect", options, CONNECT_OPTIONS)

    proto.send(
        transport,
        "connect",
        protocol_version=proto.tag,
        client_id=options.get("client_id"),
        user_name=user,
        user_password=password,
    )
    read_response(transport)
    session = read_i32(transport)
    logger.debug(f"S: CONNECT session={session}")
    return session


def open_database(
    proto,
    transport,
    database: str,
    options: Optional[Mapping[str, Any]] = None,
) -> DbOpenResult:
    options = validate_options("open", options, OPEN_OPTIONS)

    proto.send(
        transport,
        "db_open",
        protocol_version=proto.tag,
        client_id=options.get("client_id"),
        database_name=database,
        database_type=options.get("database_type") or DEFAULT_DATABASE_TYPE,
        user_name=options.get("user"),
        user_password=options.get("password"),
    )

    echoed = read_response(transport)
    result = proto.call("read_db_open", transport)
    logger.debug(
        f"S: DB_OPEN session={result.session} (preamble {echoed}), "
        f"{len(result.clusters)} clusters"
    )
    return result


def create_database(
    proto,
    transport,
    session: int,
    database: str,
    options: Optional[Mapping[str, Any]] = None,
) -> bool:
    options = validate_options("create_database", options, CREATE_DATABASE_OPTIONS)

    proto.send(
        transport,
        "db_create",
        session=session,
        database=database,
        database_type=options.get("database_type"),
        storage_type=options.get("storage_type") or DEFAULT_STORAGE_TYPE,
    )
    read_response(transport)
    return True


def database_exists(proto, transport, session: int, database: str) -> bool:
    proto.send(transport, "db_exist", session=session, database=database)
    read_response(transport)
    return read_i8(transport) == 1


def drop_database(proto, transport, session: int, database: str) -> bool:
    proto.send(transport, "db_delete", session=session, database=database)
    read_response(transport)
    return True


def close_database(proto, transport, session: int) -> None:
    # No reply: the server closes the socket.
    proto.send(transport, "db_close", session=session)


def reload(proto, transport, session: int) -> tuple[Cluster, ...]:
    proto.send(transport, "db_reload", session=session)
    read_response(transport)
    return tuple(read_list(transport, lambda r: proto.call("read_cluster", r)))


def size(proto, transport, session: int) -> int:
    proto.send(transport, "db_size", session=session)
    read_response(transport)
    return read_i64(transport)


def count_records(proto, transport, session: int) -> int:
    proto.send(transport, "db_countrecords", session=session)
    read_response(transport)
    return read_i64(transport)


def load_record(
    proto,
    transport,
    session: int,
    rid: RecordId,
    options: Optional[Mapping[str, Any]] = None,
) -> Optional[Record]:
    options = validate_options("load_record", options, LOAD_OPTIONS)

    proto.send(
        transport,
        "record_load",
        session=session,
        cluster_id=rid.cluster_id,
        cluster_position=rid.cluster_position,
        fetch_plan=options.get("fetch_plan", ""),
    )
    read_response(transport)

    record = read_payload(
        transport,
        lambda r: proto.call("read_load_record", r),
        proto.serializer.deserialize,
    )
    if record is not None:
        record.rid = rid
    logger.debug(f"S: RECORD_LOAD {rid} {'found' if record is not None else 'not found'}")
    return record


def create_record(proto, transport, session: int, cluster_id: int, record: Any) -> RecordCreateResult:
    proto.send(
        transport,
        "record_create",
        session=session,
        cluster_id=cluster_id,
        record_content=proto.serializer.serialize(record),
    )
    read_response(transport)

    result = proto.call("read_create_result", transport, cluster_id)
    logger.debug(f"S: RECORD_CREATE {result.rid}")
    return result


def update_record(proto, transport, session: int, rid: RecordId, record: Any, version: int) -> int:
    proto.send(
        transport,
        "record_update",
        session=session,
        cluster_id=rid.cluster_id,
        cluster_position=rid.cluster_position,
        record_content=proto.serializer.serialize(record),
        record_version=version,
    )
    read_response(transport)
    return read_i32(transport)


def delete_record(proto, transport, session: int, rid: RecordId, version: int) -> bool:
    proto.send(
        transport,
        "record_delete",
        session=session,
        cluster_id=rid.cluster_id,
        cluster_position=rid.cluster_position,
        record_version=version,
    )
    read_response(transport)
    return read_i8(transport) == 1


def command(
    proto,
    transport,
    session: int,
    text: str,
    options: Optional[Mapping[str, Any]] = None,
) -> Any:
    options = validate_options("command", options, COMMAND_OPTIONS)

    payload = proto.build(
        "query",
        query_class_name=legacy_query_class_name(options.get("query_class_name")),
        text=text,
        non_text_limit=options.get("non_text_limit", NO_LIMIT),
        fetch_plan=options.get("fetch_plan", ""),
    )
    proto.send(transport, "command", session=session, payload=payload.encode())
    read_response(transport)

    return read_command_result(transport, lambda r: proto.call("read_command_record", r))


PROTOCOL_7 = ProtocolVersion(
    tag=VERSION,
    commands={
        d.name: d
        for d in (
            CONNECT,
            DB_OPEN,
            DB_CREATE,
            DB_CLOSE,
            DB_EXIST,
            DB_DELETE,
            DB_RELOAD,
            DB_SIZE,
            DB_COUNTRECORDS,
            RECORD_LOAD,
            RECORD_CREATE,
            RECORD_UPDATE,
            RECORD_DELETE,
            COMMAND,
            QUERY,
        )
    },
    operations={
        "read_db_open": read_db_open,
        "read_cluster": read_cluster,
        "read_load_record": read_load_record,
        "read_create_result": read_create_result,
        "read_command_record": read_command_record,
        "connect": connect,
        "open": open_database,
        "create_database": create_database,
        "database_exists": database_exists,
        "drop_database": drop_database,
        "close_database": close_database,
        "reload": reload,
        "size": size,
        "count_records": count_records,
        "load_record": load_record,
        "create_record": create_record,
        "update_record": update_record,
        "delete_record": delete_record,
        "command": command,
    },
    description="Base command set",
)
