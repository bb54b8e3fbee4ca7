"""
Result types returned by protocol operations.

Attributes of these dataclasses mirror what the server sends; nothing here
talks to a transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .constants import RecordType


@dataclass(frozen=True)
class RecordId:
    """Composite key of a stored record.

    Attributes:
        cluster_id: Cluster the record lives in
        cluster_position: Position inside the cluster
    """

    cluster_id: int
    cluster_position: int

    @classmethod
    def parse(cls, value: str) -> RecordId:
        """Parse the textual form ``#<cluster>:<position>``."""
        text = value[1:] if value.startswith("#") else value
        try:
            cluster, position = text.split(":", 1)
            return cls(int(cluster), int(position))
        except ValueError as e:
            raise ValueError(f"Invalid record id: {value!r}") from e

    def __str__(self) -> str:
        return f"#{self.cluster_id}:{self.cluster_position}"


@dataclass
class Record:
    """A record read from the server.

    Attributes:
        record_type: Record type tag
        content: Serialized record bytes as sent by the server
        document: Content decoded by the record deserializer
        version: Record version, when the layout carries one
        rid: Record id, when the layout carries one
        prefetched: Further records sent with the same response
    """

    record_type: int
    content: bytes
    document: Any = None
    version: int | None = None
    rid: RecordId | None = None
    prefetched: list[Record] = field(default_factory=list)

    @property
    def is_document(self) -> bool:
        return self.record_type == RecordType.DOCUMENT


@dataclass(frozen=True)
class Cluster:
    """One entry of the cluster inventory sent when a database is opened.

    Attributes:
        name: Cluster name
        id: Cluster id
        type: Storage type (PHYSICAL, LOGICAL, MEMORY)
        data_segment: Data segment id; None for revisions that do not send it
    """

    name: str
    id: int
    type: str
    data_segment: int | None = None


@dataclass(frozen=True)
class DbOpenResult:
    """Body of a database-open response.

    Attributes:
        session: Session id assigned by the server
        clusters: Cluster inventory
        cluster_config: Raw cluster configuration, None if not sent
    """

    session: int
    clusters: tuple[Cluster, ...]
    cluster_config: str | None = None


@dataclass(frozen=True)
class RecordCreateResult:
    """Outcome of a record create.

    The server does not echo the cluster id; it is copied from the request.
    """

    cluster_id: int
    cluster_position: int
    record_version: int | None = None

    @property
    def rid(self) -> RecordId:
        return RecordId(self.cluster_id, self.cluster_position)


@dataclass(frozen=True)
class ServerException:
    """One link of the exception chain sent in an error preamble."""

    exception_class: str | None
    message: str | None
