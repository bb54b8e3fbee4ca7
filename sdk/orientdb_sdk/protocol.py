"""
Protocol runtime for one negotiated revision.

A Protocol binds a ProtocolVersion's resolved tables to a record serializer
and exposes the public operations. Every operation follows the same
sequence: build command -> write to transport -> read response preamble ->
decode body -> return a result.

The Protocol holds no connection state. The caller passes the transport and
session on every call, so one Protocol can serve any number of sequential
sessions as long as each transport carries one request at a time.

Example:
    >>> proto = Protocol(get_registry().get(15))
    >>> opened = proto.open(transport, "test", {"user": "admin", "password": "admin"})
    >>> record = proto.load_record(transport, opened.session, RecordId(0, 10))
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from .errors import UnsupportedOperationError
from .models import Cluster, DbOpenResult, Record, RecordCreateResult, RecordId
from .registry import ProtocolVersion
from .schema import Command, CommandDef
from .serializer import JsonRecordSerializer, RecordSerializer
from .transport import Transport

logger = logging.getLogger(__name__)


class Protocol:
    """Operations of one protocol revision.

    Attributes:
        version: The revision whose tables are in use
        serializer: Record content serializer
    """

    def __init__(
        self,
        version: ProtocolVersion,
        serializer: Optional[RecordSerializer] = None,
    ) -> None:
        self.version = version
        self.serializer = serializer or JsonRecordSerializer()
        self._commands = version.command_table
        self._operations = version.operation_table

    @property
    def tag(self) -> int:
        """Revision number sent in the handshake."""
        return self.version.tag

    def __repr__(self) -> str:
        return f"Protocol(tag={self.tag})"

    # Tables

    def definition(self, name: str) -> CommandDef:
        """Effective layout for a command name.

        Raises:
            UnsupportedOperationError: If the revision has no such layout
        """
        try:
            return self._commands[name]
        except KeyError:
            raise UnsupportedOperationError(name, self.tag) from None

    def supports(self, operation: str) -> bool:
        """Whether the revision defines the operation."""
        return operation in self._operations

    def build(self, name: str, **values: Any) -> Command:
        """Build a command with this revision's layout."""
        return self.definition(name).build(**values)

    def send(self, transport: Transport, name: str, **values: Any) -> Command:
        """Build a command and write it to the transport."""
        command = self.build(name, **values)
        logger.debug(f"C: {name.upper()} session={command.session} (revision {self.tag})")
        transport.write(command.encode())
        return command

    def call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Run an operation from the resolved table.

        Raises:
            UnsupportedOperationError: If the revision has no such operation
        """
        try:
            func = self._operations[operation]
        except KeyError:
            raise UnsupportedOperationError(operation, self.tag) from None
        return func(self, *args, **kwargs)

    # Server operations

    def connect(
        self,
        transport: Transport,
        user: str,
        password: str,
        options: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Log in to the server itself. Returns the server session id."""
        return self.call("connect", transport, user, password, options)

    def open(
        self,
        transport: Transport,
        database: str,
        options: Optional[Mapping[str, Any]] = None,
    ) -> DbOpenResult:
        """Open a database.

        Options: database_type (default "document"), user, password,
        client_id.
        """
        return self.call("open", transport, database, options)

    def create_database(
        self,
        transport: Transport,
        session: int,
        database: str,
        options: Union[Mapping[str, Any], str, None] = None,
    ) -> bool:
        """Create a database. Server errors raise ServerError."""
        return self.call("create_database", transport, session, database, options)

    def database_exists(self, transport: Transport, session: int, database: str) -> bool:
        return self.call("database_exists", transport, session, database)

    def drop_database(self, transport: Transport, session: int, database: str) -> bool:
        return self.call("drop_database", transport, session, database)

    def close_database(self, transport: Transport, session: int) -> None:
        """Send DB_CLOSE. The server replies by closing the connection."""
        self.call("close_database", transport, session)

    def reload(self, transport: Transport, session: int) -> tuple[Cluster, ...]:
        """Fetch the current cluster inventory."""
        return self.call("reload", transport, session)

    def size(self, transport: Transport, session: int) -> int:
        return self.call("size", transport, session)

    def count_records(self, transport: Transport, session: int) -> int:
        return self.call("count_records", transport, session)

    def get_config(self, transport: Transport, session: int, name: str) -> Optional[str]:
        """Read a server configuration value."""
        return self.call("get_config", transport, session, name)

    # Record operations

    def load_record(
        self,
        transport: Transport,
        session: int,
        rid: RecordId,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Record]:
        """Load a record. Returns None if no record matched."""
        return self.call("load_record", transport, session, rid, options)

    def create_record(
        self,
        transport: Transport,
        session: int,
        cluster_id: int,
        record: Any,
    ) -> RecordCreateResult:
        """Serialize and store a new document in a cluster."""
        return self.call("create_record", transport, session, cluster_id, record)

    def update_record(
        self,
        transport: Transport,
        session: int,
        rid: RecordId,
        record: Any,
        version: int,
    ) -> int:
        """Overwrite a document. Returns the new record version."""
        return self.call("update_record", transport, session, rid, record, version)

    def delete_record(
        self,
        transport: Transport,
        session: int,
        rid: RecordId,
        version: int,
    ) -> bool:
        return self.call("delete_record", transport, session, rid, version)

    def command(
        self,
        transport: Transport,
        session: int,
        text: str,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Run a synchronous SQL query or command.

        Options: query_class_name, fetch_plan, non_text_limit.
        """
        return self.call("command", transport, session, text, options)
