"""
OrientDB Client for Python SDK.

This module provides the main client interface:
- DbClient: One connection to an OrientDB server, its negotiated protocol
  revision and the sessions opened over it

Example:
    >>> with DbClient("localhost", 2424) as db:
    ...     db.open("test", "admin", "admin")
    ...     record = db.load("#0:10")
    ...     created = db.create("default", {"name": "bar"})

Invariants:
    - One request is in flight per connection at any time
    - Session-bound methods fail before writing anything when no session is open
    - The protocol revision is fixed once connect() returns
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Union

from .codec import read_i16
from .config import ClientSettings
from .constants import DEFAULT_PORT
from .errors import ProtocolVersionError, SessionError, TransportError
from .models import Cluster, DbOpenResult, Record, RecordCreateResult, RecordId
from .protocol import Protocol
from .registry import VersionRegistry, get_registry
from .serializer import RecordSerializer
from .transport import SocketTransport, Transport

logger = logging.getLogger(__name__)

RidLike = Union[RecordId, str]


class DbClient:
    """Client for connecting to an OrientDB server.

    Owns the transport, the negotiated Protocol and the session ids. The
    protocol layer itself is stateless; everything that changes over the
    life of a connection lives here.

    Attributes:
        protocol: Protocol for the negotiated revision, None before connect()
        server_version: Revision the server announced on connect
        server_session: Session from login(), used for server operations
        session: Session from open(), used for database operations
        clusters: Cluster inventory of the open database
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = DEFAULT_PORT,
        *,
        protocol_version: Optional[int] = None,
        timeout: float = 30.0,
        serializer: Optional[RecordSerializer] = None,
        transport: Optional[Transport] = None,
        registry: Optional[VersionRegistry] = None,
        client_id: Optional[str] = None,
    ) -> None:
        """Initialize client.

        Args:
            host: Server host
            port: Server binary port
            protocol_version: Pin a revision instead of negotiating
            timeout: Socket timeout in seconds
            serializer: Record serializer, JSON by default
            transport: Already connected transport; a socket is opened otherwise
            registry: Revision registry, the built-in one by default
            client_id: Client id sent with connect and open
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.client_id = client_id
        self.registry = registry or get_registry()

        self._pinned_version = protocol_version
        self._serializer = serializer
        self._transport = transport
        self._owns_transport = transport is None
        self._lock = threading.RLock()
        self._settings: Optional[ClientSettings] = None

        self.protocol: Optional[Protocol] = None
        self.server_version: Optional[int] = None
        self.server_session: Optional[int] = None
        self.session: Optional[int] = None
        self.clusters: tuple[Cluster, ...] = ()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        **kwargs: Any,
    ) -> DbClient:
        """Build a client from ClientSettings (environment by default).

        The settings' database and credentials become the defaults for
        open() and login().
        """
        settings = settings or ClientSettings()
        client = cls(
            settings.host,
            settings.port,
            protocol_version=settings.protocol_version,
            timeout=settings.timeout,
            client_id=settings.client_id,
            **kwargs,
        )
        client._settings = settings
        return client

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def connected(self) -> bool:
        return self.protocol is not None and self._transport is not None and self._transport.is_open

    # Connection

    def connect(self) -> Protocol:
        """Open the transport and pick the protocol revision.

        The server announces its revision as an i16 right after the TCP
        handshake. The newest registered revision not newer than that is
        used, unless one was pinned.

        Raises:
            ConnectionError: If the socket cannot be opened
            TransportError: If a caller-supplied transport was already closed
            ProtocolVersionError: If no usable revision is registered
        """
        with self._lock:
            if self.protocol is not None:
                return self.protocol

            if self._transport is None:
                if not self._owns_transport:
                    raise TransportError(
                        "The transport passed to DbClient was closed; create a new client"
                    )
                transport = SocketTransport(self.host, self.port, timeout=self.timeout)
                transport.connect()
                self._transport = transport

            self.server_version = read_i16(self._transport)

            if self._pinned_version is not None:
                version = self.registry.get(self._pinned_version)
                if version.tag > self.server_version:
                    raise ProtocolVersionError(
                        f"Pinned protocol revision {version.tag} is newer than "
                        f"the server's revision {self.server_version}",
                        version=version.tag,
                    )
            else:
                version = self.registry.negotiate(self.server_version)

            self.protocol = Protocol(version, self._serializer)
            logger.info(f"Connected to {self.host}:{self.port} using {self.protocol}")
            return self.protocol

    def close(self) -> None:
        """Close the open database, if any, then the transport."""
        with self._lock:
            try:
                if self.session is not None and self.connected:
                    self.protocol.close_database(self._transport, self.session)
            finally:
                self.session = None
                self.server_session = None
                self.clusters = ()
                if self._transport is not None:
                    self._transport.close()
                    self._transport = None
                self.protocol = None

    def __enter__(self) -> DbClient:
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # Server operations

    def login(self, user: Optional[str] = None, password: Optional[str] = None) -> int:
        """Open a server session (needed for database administration).

        Returns:
            The server session id
        """
        with self._lock:
            protocol = self.connect()
            user, password = self._credentials(user, password)
            self.server_session = protocol.connect(
                self._transport, user, password, self._client_options()
            )
            return self.server_session

    def open(
        self,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        database_type: Optional[str] = None,
    ) -> DbOpenResult:
        """Open a database and keep its session and cluster inventory.

        Args:
            database: Database name, the configured one if omitted
            user: User name
            password: Password
            database_type: "document" or "graph"; only sent from revision 15

        Returns:
            The decoded open response
        """
        with self._lock:
            protocol = self.connect()

            if database is None and self._settings is not None:
                database = self._settings.database
            if database is None:
                raise ValueError("No database name given and none configured")

            user, password = self._credentials(user, password)
            if database_type is None and self._settings is not None:
                database_type = self._settings.database_type

            options = self._client_options()
            options.update(user=user, password=password)
            if database_type is not None:
                options["database_type"] = database_type

            result = protocol.open(self._transport, database, options)
            self.session = result.session
            self.clusters = result.clusters
            logger.info(f"Opened database '{database}' (session {self.session})")
            return result

    def create_database(
        self,
        database: str,
        storage_type: Optional[str] = None,
        database_type: Optional[str] = None,
    ) -> bool:
        with self._lock:
            session = self._require_any_session()
            options = {}
            if storage_type is not None:
                options["storage_type"] = storage_type
            if database_type is not None:
                options["database_type"] = database_type
            return self.protocol.create_database(self._transport, session, database, options)

    def database_exists(self, database: str) -> bool:
        with self._lock:
            session = self._require_any_session()
            return self.protocol.database_exists(self._transport, session, database)

    def drop_database(self, database: str) -> bool:
        with self._lock:
            session = self._require_any_session()
            return self.protocol.drop_database(self._transport, session, database)

    def get_config(self, name: str) -> Optional[str]:
        """Read a server configuration value (revision 15 and later)."""
        with self._lock:
            session = self._require_any_session()
            return self.protocol.get_config(self._transport, session, name)

    # Database operations

    def reload(self) -> tuple[Cluster, ...]:
        """Refresh the cluster inventory."""
        with self._lock:
            session = self._require_session()
            self.clusters = self.protocol.reload(self._transport, session)
            return self.clusters

    def size(self) -> int:
        with self._lock:
            session = self._require_session()
            return self.protocol.size(self._transport, session)

    def count_records(self) -> int:
        with self._lock:
            session = self._require_session()
            return self.protocol.count_records(self._transport, session)

    def cluster(self, name_or_id: Union[str, int]) -> Optional[Cluster]:
        """Find a cluster of the open database by name or id."""
        for cluster in self.clusters:
            if isinstance(name_or_id, int):
                if cluster.id == name_or_id:
                    return cluster
            elif cluster.name == name_or_id:
                return cluster
        return None

    def load(self, rid: RidLike, fetch_plan: Optional[str] = None) -> Optional[Record]:
        """Load a record by id.

        Args:
            rid: RecordId or its "#cluster:position" form
            fetch_plan: Fetch plan; records it pulls in land in ``prefetched``

        Returns:
            The record, or None if it does not exist
        """
        with self._lock:
            session = self._require_session()
            options = {"fetch_plan": fetch_plan} if fetch_plan is not None else None
            return self.protocol.load_record(self._transport, session, _rid(rid), options)

    def create(self, cluster: Union[str, int], document: Any) -> RecordCreateResult:
        """Store a new document.

        Args:
            cluster: Cluster name or id
            document: Document to serialize

        Raises:
            ValueError: If the cluster name is not in the inventory
        """
        with self._lock:
            session = self._require_session()
            if isinstance(cluster, str):
                found = self.cluster(cluster)
                if found is None:
                    raise ValueError(f"Unknown cluster: {cluster!r}")
                cluster = found.id
            return self.protocol.create_record(self._transport, session, cluster, document)

    def update(self, rid: RidLike, document: Any, version: int) -> int:
        """Overwrite a document. Returns the new version."""
        with self._lock:
            session = self._require_session()
            return self.protocol.update_record(
                self._transport, session, _rid(rid), document, version
            )

    def delete(self, rid: RidLike, version: int) -> bool:
        with self._lock:
            session = self._require_session()
            return self.protocol.delete_record(self._transport, session, _rid(rid), version)

    def command(
        self,
        text: str,
        *,
        query_class_name: Any = None,
        fetch_plan: Optional[str] = None,
        non_text_limit: Optional[int] = None,
    ) -> Any:
        """Run a SQL query or command synchronously.

        Example:
            >>> db.command("SELECT FROM OUser", query_class_name="query")
        """
        with self._lock:
            session = self._require_session()
            options: dict[str, Any] = {}
            if query_class_name is not None:
                options["query_class_name"] = query_class_name
            if fetch_plan is not None:
                options["fetch_plan"] = fetch_plan
            if non_text_limit is not None:
                options["non_text_limit"] = non_text_limit
            return self.protocol.command(self._transport, session, text, options)

    # Helpers

    def _require_session(self) -> int:
        if self.protocol is None or self.session is None:
            raise SessionError("No database is open; call open() first")
        return self.session

    def _require_any_session(self) -> int:
        if self.protocol is not None:
            if self.server_session is not None:
                return self.server_session
            if self.session is not None:
                return self.session
        raise SessionError("No session is open; call login() or open() first")

    def _credentials(
        self, user: Optional[str], password: Optional[str]
    ) -> tuple[Optional[str], Optional[str]]:
        if self._settings is not None:
            user = user if user is not None else self._settings.user
            password = password if password is not None else self._settings.password
        return user, password

    def _client_options(self) -> dict[str, Any]:
        return {"client_id": self.client_id} if self.client_id is not None else {}


def _rid(value: RidLike) -> RecordId:
    if isinstance(value, RecordId):
        return value
    return RecordId.parse(value)
