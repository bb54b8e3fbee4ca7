"""
Protocol revision 15.

Only the differences from revision 7 live here:
- config_get: new command and operation
- db_open, db_create: carry the database type
- record_load: carries a fixed ignore-cache flag
- record_create: carries a fixed data segment id and answers with a version
- Cluster entries gain a data segment id
- Load records are sent as type tag then content

command and create_database are wrapped rather than replaced: their
options are normalised here and revision 7 does the rest.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from .codec import Reader, read_bytes, read_i8, read_i16, read_i32, read_i64, read_string
from .constants import UNASSIGNED_DATASEGMENT, Operation, RecordType, SyncMode
from .decoder import read_response
from .models import Cluster, Record, RecordCreateResult
from .options import (
    COMMAND_OPTIONS,
    normalize_create_options,
    normalize_query_class_name,
    validate_options,
)
from .protocol_v7 import DRIVER_FIELDS, PROTOCOL_7, request
from .registry import ProtocolVersion, wrap
from .schema import field

logger = logging.getLogger(__name__)

VERSION = 15

CONFIG_GET = request(
    "config_get",
    Operation.CONFIG_GET,
    field("config_name", "string"),
)

DB_OPEN = request(
    "db_open",
    Operation.DB_OPEN,
    *DRIVER_FIELDS,
    field("database_name", "string"),
    field("database_type", "string"),
    field("user_name", "string"),
    field("user_password", "string"),
    new_session=True,
)

DB_CREATE = request(
    "db_create",
    Operation.DB_CREATE,
    field("database", "string"),
    field("database_type", "string"),
    field("storage_type", "string"),
)

RECORD_LOAD = request(
    "record_load",
    Operation.RECORD_LOAD,
    field("cluster_id", "i16"),
    field("cluster_position", "i64"),
    field("fetch_plan", "string", default=""),
    field("ignore_cache", "i8", value=1),
)

RECORD_CREATE = request(
    "record_create",
    Operation.RECORD_CREATE,
    field("datasegment_id", "i32", value=UNASSIGNED_DATASEGMENT),
    field("cluster_id", "i16"),
    field("record_content", "bytes"),
    field("record_type", "i8", value=RecordType.DOCUMENT),
    field("mode", "i8", value=SyncMode.SYNC),
)


def read_cluster(proto, reader: Reader) -> Cluster:
    return Cluster(
        name=read_string(reader),
        id=read_i16(reader),
        type=read_string(reader),
        data_segment=read_i16(reader),
    )


def read_load_record(proto, reader: Reader) -> Record:
    """One RECORD_LOAD entry: type tag, then content."""
    record_type = read_i8(reader)
    content = read_bytes(reader) or b""
    return Record(record_type=record_type, content=content)


def read_create_result(proto, reader: Reader, cluster_id: int) -> RecordCreateResult:
    return RecordCreateResult(
        cluster_id=cluster_id,
        cluster_position=read_i64(reader),
        record_version=read_i32(reader),
    )


def get_config(proto, transport, session: int, name: str) -> Optional[str]:
    proto.send(transport, "config_get", session=session, config_name=name)
    read_response(transport)
    value = read_string(transport)
    logger.debug(f"S: CONFIG_GET {name}={value!r}")
    return value


def command(
    inner,
    proto,
    transport,
    session: int,
    text: str,
    options: Optional[Mapping[str, Any]] = None,
) -> Any:
    options = validate_options("command", options, COMMAND_OPTIONS)
    options["query_class_name"] = normalize_query_class_name(options.get("query_class_name"))
    return inner(proto, transport, session, text, options)


def create_database(
    inner,
    proto,
    transport,
    session: int,
    database: str,
    options: Union[Mapping[str, Any], str, None] = None,
) -> bool:
    return inner(proto, transport, session, database, normalize_create_options(options))


PROTOCOL_15 = ProtocolVersion(
    tag=VERSION,
    parent=PROTOCOL_7,
    commands={
        "config_get": CONFIG_GET,
        "db_open": DB_OPEN,
        "db_create": DB_CREATE,
        "record_load": RECORD_LOAD,
        "record_create": RECORD_CREATE,
    },
    operations={
        "read_cluster": read_cluster,
        "read_load_record": read_load_record,
        "read_create_result": read_create_result,
        "get_config": get_config,
        "command": wrap(command),
        "create_database": wrap(create_database),
    },
    description="Adds config_get, database types and data segments",
)
