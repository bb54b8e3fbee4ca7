"""
Record content serialization boundary.

The protocol treats record content as opaque bytes. A RecordSerializer turns
a structured document into those bytes and back; the protocol layer never
looks inside.

The default JsonRecordSerializer stores documents as compact UTF-8 JSON.
Servers that expect their own record format need a serializer for it passed
to the client.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

from .errors import SerializationError


@runtime_checkable
class RecordSerializer(Protocol):
    """Converts documents to record content and back."""

    def serialize(self, document: Any) -> bytes:
        ...

    def deserialize(self, content: bytes) -> Any:
        ...


class JsonRecordSerializer:
    """Stores documents as compact JSON."""

    def serialize(self, document: Any) -> bytes:
        try:
            return json.dumps(document, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot serialize document: {e}") from e

    def deserialize(self, content: bytes) -> Any:
        if not content:
            return None
        try:
            return json.loads(content.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializationError(f"Cannot deserialize record content: {e}") from e
